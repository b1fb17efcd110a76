"""
Playback app: viewing sessions and the telemetry they report.

Sessions hang off a paywall Entitlement. Their summed metrics feed the
refund policy through TelemetryAggregator.

Usage:
    from playback.services import TelemetryAggregator

    summary = TelemetryAggregator().summarize_for_purchase(purchase)
"""
