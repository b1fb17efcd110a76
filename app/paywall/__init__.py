"""
Paywall app: purchases, Square payments, entitlements and refunds.

Related apps:
    - catalog: Products, owners and viewers being sold to
    - playback: Telemetry the refund policy is evaluated against

Usage:
    from paywall.services import PurchaseLedger, RefundIssuer

    handle = PurchaseLedger().create_purchase(product_id, "fan@example.com")

    # Later, when the stream went badly
    refund = RefundIssuer().issue_refund(handle.purchase_id)
"""
