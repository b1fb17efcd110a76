"""
Playback services: session lifecycle and telemetry aggregation.

- TelemetryAggregator: sums session metrics for an entitlement (read-only)
- PlaybackService: opens and closes sessions under an entitlement token
- aggregate_events: folds a batch of raw player events into SessionMetrics

Usage:
    from playback.services import PlaybackService, TelemetryAggregator

    session = PlaybackService().start_session(token_id)
    PlaybackService().submit_events(session.id, events)

    summary = TelemetryAggregator().summarize_for_purchase(purchase)
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from django.db import models
from django.db.models import Sum, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from core.services import BaseService

from paywall.models import Entitlement, Purchase
from playback.exceptions import (
    EntitlementNotFoundError,
    EntitlementNotUsableError,
    InvalidTelemetryError,
    PlaybackSessionNotFoundError,
    SessionAlreadyEndedError,
)
from playback.models import PlaybackSession
from playback.types import SessionMetrics, TelemetrySummary

# Raw player event types
EVENT_PLAY = "play"
EVENT_BUFFER = "buffer"
EVENT_PAUSE = "pause"
EVENT_ERROR = "error"
EVENT_SEEK = "seek"
EVENT_QUALITY_CHANGE = "quality_change"

EVENT_TYPES = (
    EVENT_PLAY,
    EVENT_BUFFER,
    EVENT_PAUSE,
    EVENT_ERROR,
    EVENT_SEEK,
    EVENT_QUALITY_CHANGE,
)

STREAM_DOWN_ERROR_CODES = frozenset({"stream_unavailable", "stream_down"})


def _sum(field: str):
    return Coalesce(Sum(field), Value(0), output_field=models.BigIntegerField())


class TelemetryAggregator(BaseService):
    """Sums playback metrics across every session of an entitlement."""

    def summarize(self, entitlement: Entitlement) -> TelemetrySummary:
        """
        Aggregate all sessions of an entitlement.

        Open sessions contribute their (zero) counters until they end.

        Args:
            entitlement: Entitlement whose sessions are summed

        Returns:
            TelemetrySummary; the zero summary when there are no sessions
        """
        totals = PlaybackSession.objects.filter(entitlement=entitlement).aggregate(
            watch_ms=_sum("total_watch_ms"),
            buffer_ms=_sum("total_buffer_ms"),
            buffer_events=_sum("buffer_events"),
            fatal_errors=_sum("fatal_errors"),
        )
        return TelemetrySummary(
            watch_ms=totals["watch_ms"],
            buffer_ms=totals["buffer_ms"],
            buffer_events=totals["buffer_events"],
            fatal_errors=totals["fatal_errors"],
            stream_down_ms=self._stream_down_ms(entitlement),
        )

    def summarize_for_purchase(self, purchase: Purchase) -> TelemetrySummary:
        """
        Aggregate the sessions of a purchase's entitlement.

        A purchase that never got an entitlement (never paid) yields the
        zero summary.
        """
        entitlement = Entitlement.objects.filter(purchase=purchase).first()
        if entitlement is None:
            return TelemetrySummary.zero()
        return self.summarize(entitlement)

    def _stream_down_ms(self, entitlement: Entitlement) -> int:
        # No session or incident record stores downtime yet.
        return 0


class PlaybackService(BaseService):
    """
    Opens and closes playback sessions.

    Sessions are addressed by id and, from the public endpoints, scoped to
    the watch token so one viewer cannot close another viewer's session.
    """

    def start_session(self, token_id: str) -> PlaybackSession:
        """
        Open a session under an entitlement.

        Args:
            token_id: Entitlement token from the watch link

        Returns:
            The new, open PlaybackSession

        Raises:
            EntitlementNotFoundError: Unknown token
            EntitlementNotUsableError: Entitlement revoked or outside its
                validity window
        """
        entitlement = Entitlement.objects.filter(token_id=token_id).first()
        if entitlement is None:
            raise EntitlementNotFoundError("Entitlement not found")

        if not entitlement.is_usable():
            raise EntitlementNotUsableError(
                "Entitlement is not active",
                details={
                    "status": entitlement.status,
                    "valid_from": entitlement.valid_from.isoformat(),
                    "valid_to": entitlement.valid_to.isoformat(),
                },
            )

        session = PlaybackSession.objects.create(entitlement=entitlement)
        self.get_logger().info(
            "Playback session started",
            extra={
                "session_id": str(session.id),
                "entitlement_id": str(entitlement.id),
            },
        )
        return session

    def get_session(
        self, session_id: uuid.UUID, token_id: str | None = None
    ) -> PlaybackSession:
        """
        Fetch a session, optionally requiring it to belong to a token.

        Raises:
            PlaybackSessionNotFoundError: No such session (for that token)
        """
        queryset = PlaybackSession.objects.filter(id=session_id)
        if token_id is not None:
            queryset = queryset.filter(entitlement__token_id=token_id)
        session = queryset.first()
        if session is None:
            raise PlaybackSessionNotFoundError(
                "Playback session not found",
                details={"session_id": str(session_id)},
            )
        return session

    def end_session(
        self,
        session_id: uuid.UUID,
        metrics: SessionMetrics,
        token_id: str | None = None,
    ) -> PlaybackSession:
        """
        Close a session and store its metrics.

        Args:
            session_id: Session to close
            metrics: Summary reported by the player or built by
                aggregate_events
            token_id: Watch token the session must belong to, if given

        Returns:
            The ended session

        Raises:
            PlaybackSessionNotFoundError: Unknown session
            SessionAlreadyEndedError: Session already closed
            InvalidTelemetryError: Negative values, or buffer time above
                watch time
        """
        with self.atomic():
            session = self.get_session(session_id, token_id)
            session = PlaybackSession.objects.select_for_update().get(id=session.id)
            if not session.is_open:
                raise SessionAlreadyEndedError(
                    "Playback session already ended",
                    details={"session_id": str(session.id)},
                )
            validate_metrics(metrics)

            session.ended_at = timezone.now()
            session.total_watch_ms = metrics.total_watch_ms
            session.total_buffer_ms = metrics.total_buffer_ms
            session.buffer_events = metrics.buffer_events
            session.fatal_errors = metrics.fatal_errors
            session.startup_latency_ms = metrics.startup_latency_ms
            session.save()

        self.get_logger().info(
            "Playback session ended",
            extra={
                "session_id": str(session.id),
                "total_watch_ms": metrics.total_watch_ms,
                "total_buffer_ms": metrics.total_buffer_ms,
                "buffer_events": metrics.buffer_events,
                "fatal_errors": metrics.fatal_errors,
                "stream_down_ms": metrics.stream_down_ms,
            },
        )
        return session

    def submit_events(
        self,
        session_id: uuid.UUID,
        events: Iterable[Mapping[str, Any]],
        token_id: str | None = None,
    ) -> PlaybackSession:
        """
        Aggregate a batch of raw player events and end the session with it.

        Raises:
            PlaybackSessionNotFoundError: Unknown session
            InvalidTelemetryError: Malformed event or inconsistent totals
        """
        session = self.get_session(session_id, token_id)
        metrics = aggregate_events(events, session.started_at)
        return self.end_session(session.id, metrics, token_id)


def validate_metrics(metrics: SessionMetrics) -> None:
    """
    Reject impossible session summaries.

    Raises:
        InvalidTelemetryError: A counter is negative, or buffering time
            exceeds watch time
    """
    counters = (
        metrics.total_watch_ms,
        metrics.total_buffer_ms,
        metrics.buffer_events,
        metrics.fatal_errors,
    )
    if any(value < 0 for value in counters):
        raise InvalidTelemetryError("Invalid telemetry summary: negative values")
    if metrics.total_buffer_ms > metrics.total_watch_ms:
        raise InvalidTelemetryError(
            "Invalid telemetry summary: buffer time exceeds watch time",
            details={
                "total_watch_ms": metrics.total_watch_ms,
                "total_buffer_ms": metrics.total_buffer_ms,
            },
        )


def _is_fatal(error_code: str | None) -> bool:
    return bool(error_code) and (error_code == "fatal" or error_code.startswith("fatal_"))


def aggregate_events(
    events: Iterable[Mapping[str, Any]],
    session_started_at: datetime,
) -> SessionMetrics:
    """
    Fold raw player events into a session summary.

    Events carry ``type``, ``timestamp`` (epoch milliseconds) and optionally
    ``duration`` (ms) and ``error_code``. They are processed in timestamp
    order:

    - ``play`` starts a watch interval (a repeated ``play`` while playing
      changes nothing) and ends any open stall. The first one sets
      startup latency.
    - ``pause`` ends the watch interval and any open stall.
    - ``buffer`` opens a stall and counts it; with a ``duration`` it is
      counted as a whole stall of that length instead.
    - ``error`` with code ``fatal`` or ``fatal_*`` counts a fatal error;
      ``stream_unavailable`` / ``stream_down`` add their duration to
      stream-down time.
    - ``seek`` and ``quality_change`` do not affect the totals.

    Stalls happen while playing, so buffer time is part of watch time.
    Intervals still open at the end of the batch are closed at the last
    event's timestamp.

    Args:
        events: Raw events from the player
        session_started_at: When the session was opened

    Returns:
        SessionMetrics for the batch

    Raises:
        InvalidTelemetryError: An event is missing its type or timestamp
    """
    events = list(events)
    for event in events:
        if not event.get("type") or event.get("timestamp") is None:
            raise InvalidTelemetryError(
                "Invalid telemetry event: missing type or timestamp"
            )

    ordered = sorted(events, key=lambda e: e["timestamp"])
    started_ms = session_started_at.timestamp() * 1000

    watch_ms = 0.0
    buffer_ms = 0.0
    buffer_events = 0
    fatal_errors = 0
    stream_down_ms = 0.0
    startup_latency_ms: float | None = None

    playing_since: float | None = None
    buffering_since: float | None = None

    for event in ordered:
        event_type = event["type"]
        at = event["timestamp"]
        duration = event.get("duration")

        if event_type == EVENT_PLAY:
            if startup_latency_ms is None:
                startup_latency_ms = max(at - started_ms, 0)
            if buffering_since is not None:
                buffer_ms += max(at - buffering_since, 0)
                buffering_since = None
            if playing_since is None:
                playing_since = at

        elif event_type == EVENT_PAUSE:
            if playing_since is not None:
                watch_ms += max(at - playing_since, 0)
                playing_since = None
            if buffering_since is not None:
                buffer_ms += max(at - buffering_since, 0)
                buffering_since = None

        elif event_type == EVENT_BUFFER:
            if duration:
                buffer_ms += max(duration, 0)
                buffer_events += 1
            elif buffering_since is None:
                buffering_since = at
                buffer_events += 1

        elif event_type == EVENT_ERROR:
            error_code = event.get("error_code")
            if _is_fatal(error_code):
                fatal_errors += 1
            if error_code in STREAM_DOWN_ERROR_CODES and duration:
                stream_down_ms += max(duration, 0)

    if ordered:
        last_at = ordered[-1]["timestamp"]
        if playing_since is not None:
            watch_ms += last_at - playing_since
        if buffering_since is not None:
            buffer_ms += last_at - buffering_since

    return SessionMetrics(
        total_watch_ms=round(watch_ms),
        total_buffer_ms=round(buffer_ms),
        buffer_events=buffer_events,
        fatal_errors=fatal_errors,
        startup_latency_ms=(
            round(startup_latency_ms) if startup_latency_ms is not None else None
        ),
        stream_down_ms=round(stream_down_ms),
    )
