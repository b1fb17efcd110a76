"""
Tests for catalog models.
"""

from datetime import timedelta

import pytest
from django.utils import timezone

from catalog.models import ProductState
from catalog.tests.factories import ProductFactory


@pytest.mark.django_db
class TestProduct:
    """Tests for Product helpers."""

    @pytest.mark.parametrize("state", [ProductState.ACTIVE, ProductState.LIVE])
    def test_active_and_live_are_purchasable(self, state):
        """Active and live products can be bought."""
        assert ProductFactory(state=state).is_purchasable

    @pytest.mark.parametrize(
        "state",
        [ProductState.DRAFT, ProductState.ENDED, ProductState.CANCELLED],
    )
    def test_other_states_are_not_purchasable(self, state):
        """Draft, ended and cancelled products cannot be bought."""
        assert not ProductFactory(state=state).is_purchasable

    def test_scheduled_duration(self):
        """Duration is the window between start and end."""
        start = timezone.now()
        product = ProductFactory(starts_at=start, ends_at=start + timedelta(minutes=45))

        assert product.scheduled_duration == timedelta(minutes=45)

    def test_scheduled_duration_unknown_without_end(self):
        """Duration is None when the end time is missing."""
        product = ProductFactory(ends_at=None)

        assert product.scheduled_duration is None
