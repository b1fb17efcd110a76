"""
Project-wide pytest configuration for the Django apps.

App-specific fixtures are defined in each app's tests/conftest.py.
"""

import pytest
from rest_framework.test import APIClient


def pytest_configure():
    """Adjust settings for the test run."""
    from django.conf import settings

    # Disable throttling during tests to prevent rate limit failures
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_CLASSES"] = []
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {}

    # Use fast password hasher for tests
    settings.PASSWORD_HASHERS = [
        "django.contrib.auth.hashers.MD5PasswordHasher",
    ]


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_integration.py → e2e (purchase-to-refund journeys)
    - test_views.py, test_tasks.py, service tests, etc. → integration
    - test_models.py, test_fees.py, test_events.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    e2e_patterns = ["test_integration.py"]

    integration_patterns = [
        "test_views.py",
        "test_tasks.py",
        "test_processor.py",
        "test_purchase_ledger.py",
        "test_refund_issuer.py",
        "test_checkout.py",
        "test_ledger_service.py",
        "test_entitlements.py",
        "test_services.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_exceptions.py",
        "test_fees.py",
        "test_refund_evaluator.py",
        "test_events.py",
        "test_signature.py",
        "test_adapters.py",
        "test_state_transitions.py",
        "test_aggregate_events.py",
    ]

    for item in items:
        # Skip if test already has unit/integration/e2e marker
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration", "e2e"}:
            continue

        filename = str(item.fspath).split("/")[-1]

        # Check patterns in priority order
        if any(pattern in filename for pattern in e2e_patterns):
            item.add_marker(pytest.mark.e2e)
        elif any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            # Default: integration (safe for Django where most tests hit DB)
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def api_client():
    """Unauthenticated DRF API client."""
    return APIClient()


@pytest.fixture
def staff_user(django_user_model):
    """Staff user allowed to use the admin refund endpoints."""
    return django_user_model.objects.create_user(
        username="ops",
        email="ops@example.com",
        password="pass1234",
        is_staff=True,
    )


@pytest.fixture
def staff_client(staff_user):
    """API client authenticated as a staff user."""
    client = APIClient()
    client.force_authenticate(user=staff_user)
    return client
