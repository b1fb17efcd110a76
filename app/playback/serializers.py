"""
DRF serializers for the playback app.

Related files:
    - views.py: Session endpoints
    - services.py: aggregate_events consumes TelemetryEventSerializer output
"""

from __future__ import annotations

from rest_framework import serializers

from playback.models import PlaybackSession
from playback.services import EVENT_TYPES
from playback.types import SessionMetrics


class PlaybackSessionSerializer(serializers.ModelSerializer):
    entitlement_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = PlaybackSession
        fields = [
            "id",
            "entitlement_id",
            "started_at",
            "ended_at",
            "total_watch_ms",
            "total_buffer_ms",
            "buffer_events",
            "fatal_errors",
            "startup_latency_ms",
        ]
        read_only_fields = fields


class SessionSummarySerializer(serializers.Serializer):
    """
    Session summary reported by the player when it closes a session.

    Ranges are checked by the service (InvalidTelemetryError), so negative
    values are accepted here and rejected with the domain error code.
    """

    total_watch_ms = serializers.IntegerField()
    total_buffer_ms = serializers.IntegerField()
    buffer_events = serializers.IntegerField()
    fatal_errors = serializers.IntegerField()
    startup_latency_ms = serializers.IntegerField(required=False, allow_null=True)
    stream_down_ms = serializers.IntegerField(required=False, default=0)

    def to_metrics(self) -> SessionMetrics:
        return SessionMetrics(**self.validated_data)


class TelemetryEventSerializer(serializers.Serializer):
    """
    One raw player event.

    Fields:
        type: play, buffer, pause, error, seek or quality_change
        timestamp: Epoch milliseconds
        duration: Optional duration in milliseconds (buffer, stream down)
        error_code: Optional player error code (error events)
    """

    type = serializers.ChoiceField(choices=EVENT_TYPES)
    timestamp = serializers.IntegerField(min_value=0)
    duration = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    error_code = serializers.CharField(
        max_length=100, required=False, allow_null=True, allow_blank=True
    )


class TelemetryBatchSerializer(serializers.Serializer):
    events = TelemetryEventSerializer(many=True, allow_empty=True)
