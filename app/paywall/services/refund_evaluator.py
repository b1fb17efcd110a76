"""
Refund eligibility evaluation.

``evaluate`` is a pure function of the purchase amount, the aggregated
telemetry, the expected content duration and the rules. It touches neither
the database nor the clock, so the same inputs always produce the same
decision.

Tiers (first match wins, refunds never stack):

    full     buffer ratio > full_ratio
             OR downtime ratio > full_ratio
             OR (fatal errors >= 3 AND watch < 5 minutes)
    half     buffer ratio > half_ratio
             OR downtime ratio > half_ratio
             OR (fatal errors >= 1 AND watch < 2 minutes)
    partial  buffer events > excessive_buffer_events
    none     otherwise

Watch time below ``min_watch_ms`` is never eligible: a purchase that was
barely played cannot trigger a policy refund.

Usage:
    from paywall.services.refund_evaluator import RefundRules, evaluate

    result = evaluate(
        purchase_amount_cents=1000,
        telemetry=TelemetrySummary(watch_ms=600_000, buffer_ms=150_000),
        expected_duration_ms=90 * 60 * 1000,
        rules=RefundRules.from_settings(),
    )
    result.tier  # RefundTier.FULL
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal

from django.conf import settings

from playback.types import TelemetrySummary

from paywall.types import EvaluationResult, RefundTier

FULL_TIER_FATAL_ERRORS = 3
FULL_TIER_MAX_WATCH_MS = 5 * 60 * 1000
HALF_TIER_FATAL_ERRORS = 1
HALF_TIER_MAX_WATCH_MS = 2 * 60 * 1000

RULE_FULL_BUFFER = "full_refund_buffer_ratio_high"
RULE_FULL_DOWNTIME = "full_refund_downtime_ratio_high"
RULE_FULL_FATAL = "full_refund_fatal_errors_multiple"
RULE_HALF_BUFFER = "half_refund_buffer_ratio_medium"
RULE_HALF_DOWNTIME = "half_refund_downtime_ratio_medium"
RULE_HALF_FATAL = "half_refund_fatal_error_minimal_watch"
RULE_PARTIAL_BUFFERING = "partial_refund_excessive_buffering"


@dataclass(frozen=True)
class RefundRules:
    """
    Refund thresholds.

    Attributes:
        full_ratio: Buffer/downtime ratio above which the full amount is refunded
        half_ratio: Ratio above which half is refunded
        excessive_buffer_events: Stall count above which the partial tier applies
        partial_percent: Share refunded by the partial tier, in percent
        min_watch_ms: Watch time below which nothing is refunded
        version: Stamped on every decision for audit
    """

    full_ratio: float = 0.20
    half_ratio: float = 0.10
    excessive_buffer_events: int = 10
    partial_percent: float = 25
    min_watch_ms: int = 30_000
    version: str = "v1.0"

    @classmethod
    def from_settings(cls) -> RefundRules:
        return cls(
            full_ratio=settings.REFUND_FULL_RATIO,
            half_ratio=settings.REFUND_HALF_RATIO,
            excessive_buffer_events=settings.REFUND_EXCESSIVE_BUFFER_EVENTS,
            partial_percent=settings.REFUND_PARTIAL_PERCENT,
            min_watch_ms=settings.REFUND_MIN_WATCH_MS,
            version=settings.REFUND_RULE_VERSION,
        )


def buffer_ratio(telemetry: TelemetrySummary) -> float:
    if telemetry.watch_ms <= 0:
        return 0.0
    return telemetry.buffer_ms / telemetry.watch_ms


def downtime_ratio(telemetry: TelemetrySummary, expected_duration_ms: int) -> float:
    if expected_duration_ms <= 0:
        return 0.0
    return telemetry.stream_down_ms / expected_duration_ms


def _floor_percent(amount_cents: int, percent: float) -> int:
    return int(
        (Decimal(amount_cents) * Decimal(str(percent)) / Decimal(100)).to_integral_value(
            rounding=ROUND_FLOOR
        )
    )


def not_eligible(
    rules: RefundRules,
    telemetry: TelemetrySummary | None = None,
    buffer: float = 0.0,
    downtime: float = 0.0,
) -> EvaluationResult:
    """A "no refund" decision, carrying whatever telemetry was looked at."""
    return EvaluationResult(
        eligible=False,
        tier=RefundTier.NONE,
        rule_version=rules.version,
        telemetry=telemetry or TelemetrySummary.zero(),
        buffer_ratio=buffer,
        downtime_ratio=downtime,
    )


def evaluate(
    purchase_amount_cents: int,
    telemetry: TelemetrySummary,
    expected_duration_ms: int,
    rules: RefundRules | None = None,
) -> EvaluationResult:
    """
    Decide whether, and how much, to refund.

    Args:
        purchase_amount_cents: Gross amount of the purchase
        telemetry: Aggregated playback telemetry
        expected_duration_ms: Scheduled content length
        rules: Thresholds (defaults to RefundRules())

    Returns:
        EvaluationResult; ``applied_rule`` and ``reason_code`` name the
        condition that fired, checked in the order listed in the tier table
    """
    rules = rules or RefundRules()
    buffer = buffer_ratio(telemetry)
    downtime = downtime_ratio(telemetry, expected_duration_ms)

    if telemetry.watch_ms < rules.min_watch_ms:
        return not_eligible(rules, telemetry, buffer, downtime)

    tier, rule = _match_tier(telemetry, buffer, downtime, rules)
    if tier == RefundTier.NONE:
        return not_eligible(rules, telemetry, buffer, downtime)

    if tier == RefundTier.FULL:
        amount_cents = purchase_amount_cents
    elif tier == RefundTier.HALF:
        amount_cents = purchase_amount_cents // 2
    else:
        amount_cents = _floor_percent(purchase_amount_cents, rules.partial_percent)

    return EvaluationResult(
        eligible=True,
        tier=tier,
        rule_version=rules.version,
        telemetry=telemetry,
        buffer_ratio=buffer,
        downtime_ratio=downtime,
        amount_cents=amount_cents,
        reason_code=rule,
        applied_rule=rule,
    )


def _match_tier(
    telemetry: TelemetrySummary,
    buffer: float,
    downtime: float,
    rules: RefundRules,
) -> tuple[RefundTier, str | None]:
    if buffer > rules.full_ratio:
        return RefundTier.FULL, RULE_FULL_BUFFER
    if downtime > rules.full_ratio:
        return RefundTier.FULL, RULE_FULL_DOWNTIME
    if (
        telemetry.fatal_errors >= FULL_TIER_FATAL_ERRORS
        and telemetry.watch_ms < FULL_TIER_MAX_WATCH_MS
    ):
        return RefundTier.FULL, RULE_FULL_FATAL

    # Ratios here are already <= full_ratio.
    if buffer > rules.half_ratio:
        return RefundTier.HALF, RULE_HALF_BUFFER
    if downtime > rules.half_ratio:
        return RefundTier.HALF, RULE_HALF_DOWNTIME
    if (
        telemetry.fatal_errors >= HALF_TIER_FATAL_ERRORS
        and telemetry.watch_ms < HALF_TIER_MAX_WATCH_MS
    ):
        return RefundTier.HALF, RULE_HALF_FATAL

    if telemetry.buffer_events > rules.excessive_buffer_events:
        return RefundTier.PARTIAL, RULE_PARTIAL_BUFFERING

    return RefundTier.NONE, None
