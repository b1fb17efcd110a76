"""
Pytest fixtures for playback tests.
"""

import pytest

from paywall.tests.factories import EntitlementFactory
from playback.services import PlaybackService, TelemetryAggregator
from playback.tests.factories import SESSION_START, PlaybackSessionFactory


@pytest.fixture
def playback_service():
    return PlaybackService()


@pytest.fixture
def aggregator():
    return TelemetryAggregator()


@pytest.fixture
def entitlement(db):
    return EntitlementFactory()


@pytest.fixture
def open_session(entitlement):
    return PlaybackSessionFactory(entitlement=entitlement, started_at=SESSION_START)
