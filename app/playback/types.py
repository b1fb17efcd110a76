"""
Value types for playback telemetry.

Pure data, no Django model imports, so the refund evaluator can depend on
these without touching the database.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class TelemetrySummary:
    """
    Playback metrics summed across all sessions of an entitlement.

    Attributes:
        watch_ms: Total time spent playing
        buffer_ms: Total time spent buffering
        buffer_events: Number of buffering stalls
        fatal_errors: Number of unrecoverable player errors
        stream_down_ms: Time the stream was unavailable (no session field
            feeds this yet, so aggregation leaves it at 0)
    """

    watch_ms: int = 0
    buffer_ms: int = 0
    buffer_events: int = 0
    fatal_errors: int = 0
    stream_down_ms: int = 0

    @classmethod
    def zero(cls) -> TelemetrySummary:
        return cls()

    def to_dict(self) -> dict[str, int]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TelemetrySummary:
        return cls(
            watch_ms=int(data.get("watch_ms", 0)),
            buffer_ms=int(data.get("buffer_ms", 0)),
            buffer_events=int(data.get("buffer_events", 0)),
            fatal_errors=int(data.get("fatal_errors", 0)),
            stream_down_ms=int(data.get("stream_down_ms", 0)),
        )


@dataclass(frozen=True)
class SessionMetrics:
    """
    Metrics for one playback session, as reported by the player or folded
    from its raw events.

    Attributes:
        total_watch_ms: Time spent playing
        total_buffer_ms: Time spent buffering
        buffer_events: Buffering stalls
        fatal_errors: Unrecoverable errors
        startup_latency_ms: Session start to first play, if known
        stream_down_ms: Stream-unavailable time reported by the player
    """

    total_watch_ms: int
    total_buffer_ms: int
    buffer_events: int
    fatal_errors: int
    startup_latency_ms: int | None = None
    stream_down_ms: int = 0
