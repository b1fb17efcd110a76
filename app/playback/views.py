"""
DRF views for the playback app.

Endpoints:
    POST /api/v1/playback/watch/{token}/sessions/ - Open a session
    POST /api/v1/playback/watch/{token}/sessions/{id}/end/ - Close with a summary
    POST /api/v1/playback/watch/{token}/sessions/{id}/telemetry/ - Close with raw events

The watch token is the credential: it is unguessable and every session
route is scoped to it.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from playback.serializers import (
    PlaybackSessionSerializer,
    SessionSummarySerializer,
    TelemetryBatchSerializer,
)
from playback.services import PlaybackService


class StartSessionView(APIView):
    """
    Open a playback session for a watch token.

    URL: /api/v1/playback/watch/{token}/sessions/
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="Start playback session",
        tags=["Playback"],
        request=None,
        responses={
            201: PlaybackSessionSerializer,
            400: OpenApiResponse(description="Entitlement revoked or expired"),
            404: OpenApiResponse(description="Entitlement not found"),
        },
    )
    def post(self, request, token):
        session = PlaybackService().start_session(token)
        return Response(
            PlaybackSessionSerializer(session).data,
            status=status.HTTP_201_CREATED,
        )


class EndSessionView(APIView):
    """
    Close a session with the player's own summary.

    URL: /api/v1/playback/watch/{token}/sessions/{session_id}/end/
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="End playback session",
        tags=["Playback"],
        request=SessionSummarySerializer,
        responses={
            200: PlaybackSessionSerializer,
            400: OpenApiResponse(description="Invalid telemetry or session already ended"),
            404: OpenApiResponse(description="Playback session not found"),
        },
    )
    def post(self, request, token, session_id):
        """
        Close the session.

        Request body:
            {
                "total_watch_ms": 3600000,
                "total_buffer_ms": 12000,
                "buffer_events": 4,
                "fatal_errors": 0,
                "startup_latency_ms": 1800
            }
        """
        serializer = SessionSummarySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        session = PlaybackService().end_session(
            session_id, serializer.to_metrics(), token_id=token
        )
        return Response(PlaybackSessionSerializer(session).data)


class SubmitTelemetryView(APIView):
    """
    Close a session from a batch of raw player events.

    URL: /api/v1/playback/watch/{token}/sessions/{session_id}/telemetry/
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="Submit telemetry events",
        description="Aggregate the events into a session summary and end the session.",
        tags=["Playback"],
        request=TelemetryBatchSerializer,
        responses={
            200: PlaybackSessionSerializer,
            400: OpenApiResponse(description="Invalid telemetry or session already ended"),
            404: OpenApiResponse(description="Playback session not found"),
        },
    )
    def post(self, request, token, session_id):
        """
        Aggregate and close.

        Request body:
            {
                "events": [
                    {"type": "play", "timestamp": 1718000002000},
                    {"type": "buffer", "timestamp": 1718000010000, "duration": 5000},
                    {"type": "error", "timestamp": 1718000065000, "error_code": "fatal_decode"}
                ]
            }
        """
        serializer = TelemetryBatchSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        session = PlaybackService().submit_events(
            session_id, serializer.validated_data["events"], token_id=token
        )
        return Response(PlaybackSessionSerializer(session).data)
