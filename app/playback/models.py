"""
PlaybackSession model: one viewing session under an entitlement.

A viewer may open several sessions for the same entitlement (reconnects,
second device). Counters stay at zero while the session is open and are
written once when it ends.

Usage:
    from playback.models import PlaybackSession

    open_sessions = PlaybackSession.objects.filter(ended_at__isnull=True)
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class PlaybackSession(UUIDPrimaryKeyMixin, BaseModel):
    """
    A viewing session.

    Fields:
        entitlement: Entitlement the session plays under
        started_at: When the session was opened
        ended_at: When the session was closed (NULL while open)
        total_watch_ms / total_buffer_ms: Time playing / buffering
        buffer_events: Buffering stalls
        fatal_errors: Unrecoverable player errors
        startup_latency_ms: Session start to first frame, if reported
    """

    entitlement = models.ForeignKey(
        "paywall.Entitlement",
        on_delete=models.PROTECT,
        related_name="playback_sessions",
        help_text="Entitlement this session plays under",
    )

    started_at = models.DateTimeField(
        default=timezone.now,
        help_text="When the session was opened",
    )

    ended_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the session was closed (NULL while open)",
    )

    # ==========================================================================
    # Telemetry Counters
    # ==========================================================================

    total_watch_ms = models.PositiveBigIntegerField(
        default=0,
        help_text="Time spent playing, in milliseconds",
    )

    total_buffer_ms = models.PositiveBigIntegerField(
        default=0,
        help_text="Time spent buffering, in milliseconds",
    )

    buffer_events = models.PositiveIntegerField(
        default=0,
        help_text="Number of buffering stalls",
    )

    fatal_errors = models.PositiveIntegerField(
        default=0,
        help_text="Number of unrecoverable player errors",
    )

    startup_latency_ms = models.IntegerField(
        null=True,
        blank=True,
        help_text="Session start to first play, in milliseconds",
    )

    class Meta:
        ordering = ["-started_at"]
        verbose_name = "Playback Session"
        verbose_name_plural = "Playback Sessions"
        indexes = [
            models.Index(
                fields=["entitlement", "started_at"], name="session_entitlement_idx"
            ),
        ]

    def __str__(self) -> str:
        state = "ended" if self.ended_at else "open"
        return f"PlaybackSession({self.id}, {state})"

    @property
    def is_open(self) -> bool:
        return self.ended_at is None
