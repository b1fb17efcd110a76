"""
Tests for the playback session endpoints.
"""

import uuid

import pytest
from django.urls import reverse
from rest_framework import status

from paywall.state_machines import EntitlementStatus
from paywall.tests.factories import EntitlementFactory
from playback.models import PlaybackSession
from playback.tests.factories import SESSION_START_MS

pytestmark = pytest.mark.django_db


def start_url(token):
    return reverse("playback:start_session", kwargs={"token": token})


def end_url(token, session_id):
    return reverse("playback:end_session", kwargs={"token": token, "session_id": session_id})


def telemetry_url(token, session_id):
    return reverse(
        "playback:submit_telemetry", kwargs={"token": token, "session_id": session_id}
    )


SUMMARY = {
    "total_watch_ms": 3600000,
    "total_buffer_ms": 12000,
    "buffer_events": 4,
    "fatal_errors": 0,
    "startup_latency_ms": 1800,
}


class TestStartSessionView:
    def test_opens_session(self, api_client, entitlement):
        response = api_client.post(start_url(entitlement.token_id))

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["entitlement_id"] == str(entitlement.id)
        assert response.data["ended_at"] is None

    def test_unknown_token(self, api_client):
        response = api_client.post(start_url("f" * 64))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "ENTITLEMENT_NOT_FOUND"

    def test_revoked_entitlement(self, api_client):
        entitlement = EntitlementFactory(status=EntitlementStatus.REVOKED)

        response = api_client.post(start_url(entitlement.token_id))

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "ENTITLEMENT_NOT_USABLE"


class TestEndSessionView:
    def test_ends_session(self, api_client, entitlement, open_session):
        response = api_client.post(
            end_url(entitlement.token_id, open_session.id), SUMMARY, format="json"
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["total_watch_ms"] == 3600000
        assert response.data["ended_at"] is not None

    def test_buffer_above_watch(self, api_client, entitlement, open_session):
        body = {**SUMMARY, "total_buffer_ms": SUMMARY["total_watch_ms"] + 1}

        response = api_client.post(
            end_url(entitlement.token_id, open_session.id), body, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "INVALID_TELEMETRY"

    def test_negative_value(self, api_client, entitlement, open_session):
        body = {**SUMMARY, "fatal_errors": -1}

        response = api_client.post(
            end_url(entitlement.token_id, open_session.id), body, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "INVALID_TELEMETRY"

    def test_missing_field(self, api_client, entitlement, open_session):
        body = {key: value for key, value in SUMMARY.items() if key != "total_watch_ms"}

        response = api_client.post(
            end_url(entitlement.token_id, open_session.id), body, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert PlaybackSession.objects.get(id=open_session.id).is_open

    def test_already_ended(self, api_client, entitlement, open_session):
        url = end_url(entitlement.token_id, open_session.id)
        api_client.post(url, SUMMARY, format="json")

        response = api_client.post(url, SUMMARY, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "SESSION_ALREADY_ENDED"

    def test_unknown_session(self, api_client, entitlement):
        response = api_client.post(
            end_url(entitlement.token_id, uuid.uuid4()), SUMMARY, format="json"
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "PLAYBACK_SESSION_NOT_FOUND"


class TestSubmitTelemetryView:
    def test_aggregates_batch(self, api_client, entitlement, open_session):
        body = {
            "events": [
                {"type": "play", "timestamp": SESSION_START_MS + 1000},
                {"type": "buffer", "timestamp": SESSION_START_MS + 5000},
                {"type": "play", "timestamp": SESSION_START_MS + 8000},
                {"type": "pause", "timestamp": SESSION_START_MS + 20000},
            ]
        }

        response = api_client.post(
            telemetry_url(entitlement.token_id, open_session.id), body, format="json"
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["total_watch_ms"] == 19000
        assert response.data["total_buffer_ms"] == 3000
        assert response.data["buffer_events"] == 1
        assert response.data["startup_latency_ms"] == 1000

    def test_unknown_event_type(self, api_client, entitlement, open_session):
        body = {"events": [{"type": "rewind", "timestamp": SESSION_START_MS}]}

        response = api_client.post(
            telemetry_url(entitlement.token_id, open_session.id), body, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert PlaybackSession.objects.get(id=open_session.id).is_open
