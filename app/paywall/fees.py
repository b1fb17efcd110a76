"""
Marketplace fee splitting.

A gross amount splits into three parts:
- platform fee: the marketplace's percentage
- processor fee: the card processor's percentage plus a fixed surcharge
- owner net: whatever is left, owed to the product owner

All arithmetic is done in Decimal and rounded half away from zero, so
0.5 cents always rounds up for the non-negative amounts handled here.
Owner net is computed by subtraction, which makes the three parts sum to
the gross exactly. For very small amounts the fixed surcharge can push
owner net below zero; that value is kept as is.

Usage:
    from paywall.fees import FeeCalculator

    split = FeeCalculator.from_settings().split(1000, platform_fee_percent=10)
    # FeeSplit(gross_cents=1000, platform_fee_cents=100,
    #          processor_fee_cents=59, owner_net_cents=841)
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings


def round_half_away_from_zero(value: Decimal) -> int:
    """Round to a whole number of cents, halves away from zero."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class FeeSplit:
    """
    Result of splitting a gross amount.

    Invariant: platform_fee_cents + processor_fee_cents + owner_net_cents == gross_cents
    """

    gross_cents: int
    platform_fee_cents: int
    processor_fee_cents: int
    owner_net_cents: int


class FeeCalculator:
    """
    Pure fee splitter.

    Args:
        platform_fee_percent: Default marketplace share, in percent
        processor_fee_percent: Card processor percentage (2.9 by default)
        processor_fixed_cents: Card processor fixed surcharge (30 by default)
    """

    def __init__(
        self,
        platform_fee_percent: float = 10.0,
        processor_fee_percent: float = 2.9,
        processor_fixed_cents: int = 30,
    ):
        self.platform_fee_percent = platform_fee_percent
        self.processor_fee_percent = processor_fee_percent
        self.processor_fixed_cents = processor_fixed_cents

    @classmethod
    def from_settings(cls) -> FeeCalculator:
        """Build a calculator from PLATFORM_FEE_PERCENT and PROCESSOR_FEE_* settings."""
        return cls(
            platform_fee_percent=settings.PLATFORM_FEE_PERCENT,
            processor_fee_percent=settings.PROCESSOR_FEE_PERCENT,
            processor_fixed_cents=settings.PROCESSOR_FEE_FIXED_CENTS,
        )

    def processor_fee(self, gross_cents: int) -> int:
        """Estimated processor fee for a gross amount."""
        percent = Decimal(str(self.processor_fee_percent))
        return (
            round_half_away_from_zero(Decimal(gross_cents) * percent / Decimal(100))
            + self.processor_fixed_cents
        )

    def platform_fee(self, gross_cents: int, platform_fee_percent: float) -> int:
        """Marketplace fee for a gross amount."""
        percent = Decimal(str(platform_fee_percent))
        return round_half_away_from_zero(Decimal(gross_cents) * percent / Decimal(100))

    def split(
        self,
        gross_cents: int,
        platform_fee_percent: float | None = None,
    ) -> FeeSplit:
        """
        Split a gross amount into platform fee, processor fee and owner net.

        Args:
            gross_cents: Non-negative gross amount in minor units
            platform_fee_percent: Overrides the calculator's default share

        Returns:
            FeeSplit whose three parts sum to gross_cents

        Raises:
            ValueError: If gross_cents or the percentage is negative
        """
        if gross_cents < 0:
            raise ValueError("gross_cents must be non-negative")
        if platform_fee_percent is None:
            platform_fee_percent = self.platform_fee_percent
        if platform_fee_percent < 0:
            raise ValueError("platform_fee_percent must be non-negative")

        platform_fee_cents = self.platform_fee(gross_cents, platform_fee_percent)
        processor_fee_cents = self.processor_fee(gross_cents)

        return FeeSplit(
            gross_cents=gross_cents,
            platform_fee_cents=platform_fee_cents,
            processor_fee_cents=processor_fee_cents,
            owner_net_cents=gross_cents - platform_fee_cents - processor_fee_cents,
        )
