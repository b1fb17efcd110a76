"""
Data types for paywall operations.

These dataclasses are the inputs and outputs of the paywall services.
They carry no Django model references so they can be built in pure
code (fee splits, refund decisions) and serialized into JSON columns.
"""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from playback.types import TelemetrySummary


@dataclass(frozen=True)
class CheckoutHandle:
    """
    What the checkout page needs to collect payment.

    Attributes:
        purchase_id: The newly created Purchase
        checkout_url: Page hosting the card form for this purchase
    """

    purchase_id: uuid.UUID
    checkout_url: str


class RefundTier(str, Enum):
    """Refund tiers in precedence order."""

    FULL = "full"
    HALF = "half"
    PARTIAL = "partial"
    NONE = "none"


@dataclass(frozen=True)
class TelemetrySnapshot:
    """
    Telemetry as seen by the refund decision, stored on the Refund row.

    Attributes:
        watch_ms / buffer_ms / buffer_events / fatal_errors / stream_down_ms:
            Aggregated telemetry (see TelemetrySummary)
        buffer_ratio: buffer_ms / watch_ms
        downtime_ratio: stream_down_ms / expected duration
        applied_rule: Rule that fired, None when nothing fired
    """

    watch_ms: int
    buffer_ms: int
    buffer_events: int
    fatal_errors: int
    stream_down_ms: int
    buffer_ratio: float
    downtime_ratio: float
    applied_rule: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TelemetrySnapshot:
        summary = TelemetrySummary.from_dict(data)
        return cls(
            watch_ms=summary.watch_ms,
            buffer_ms=summary.buffer_ms,
            buffer_events=summary.buffer_events,
            fatal_errors=summary.fatal_errors,
            stream_down_ms=summary.stream_down_ms,
            buffer_ratio=float(data.get("buffer_ratio", 0.0)),
            downtime_ratio=float(data.get("downtime_ratio", 0.0)),
            applied_rule=data.get("applied_rule"),
        )


@dataclass(frozen=True)
class EvaluationResult:
    """
    Outcome of a refund eligibility evaluation.

    Attributes:
        eligible: Whether a refund should be issued
        tier: Which tier matched (NONE when not eligible)
        amount_cents: Refund amount (0 when not eligible)
        reason_code: Machine-readable reason, equal to the applied rule
            for policy refunds
        applied_rule: Rule that fired
        rule_version: Version of the rules used
        buffer_ratio / downtime_ratio: Derived ratios
        telemetry: Input telemetry
    """

    eligible: bool
    tier: RefundTier
    rule_version: str
    telemetry: TelemetrySummary
    buffer_ratio: float = 0.0
    downtime_ratio: float = 0.0
    amount_cents: int = 0
    reason_code: str | None = None
    applied_rule: str | None = None

    def snapshot(self) -> TelemetrySnapshot:
        """Telemetry plus derived ratios, for persisting on a Refund."""
        return TelemetrySnapshot(
            watch_ms=self.telemetry.watch_ms,
            buffer_ms=self.telemetry.buffer_ms,
            buffer_events=self.telemetry.buffer_events,
            fatal_errors=self.telemetry.fatal_errors,
            stream_down_ms=self.telemetry.stream_down_ms,
            buffer_ratio=self.buffer_ratio,
            downtime_ratio=self.downtime_ratio,
            applied_rule=self.applied_rule,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "eligible": self.eligible,
            "tier": self.tier.value,
            "reason_code": self.reason_code,
            "amount_cents": self.amount_cents if self.eligible else None,
            "rule_version": self.rule_version,
            "buffer_ratio": self.buffer_ratio,
            "downtime_ratio": self.downtime_ratio,
            "applied_rule": self.applied_rule,
            "telemetry_summary": self.telemetry.to_dict(),
        }
