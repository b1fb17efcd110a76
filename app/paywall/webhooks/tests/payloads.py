"""
Square webhook payload builders for tests.
"""

import json

WEBHOOK_SIGNATURE_KEY = "test-signature-key"
WEBHOOK_URL = "https://paywall.example.com/api/v1/paywall/webhooks/square/"


def payment_body(payment_id, status, event_id="evt_pay_1", **payment_fields):
    """Encoded payment.updated delivery."""
    payment = {
        "id": payment_id,
        "status": status,
        "amount_money": {"amount": 1000, "currency": "USD"},
        **payment_fields,
    }
    return json.dumps(
        {
            "event_id": event_id,
            "type": "payment.updated",
            "data": {"type": "payment", "id": payment_id, "object": {"payment": payment}},
        }
    ).encode()


def refund_body(
    payment_id,
    amount_cents,
    refund_id="sq_refund_dash",
    event_id="evt_ref_1",
    status="COMPLETED",
):
    """Encoded refund.updated delivery."""
    return json.dumps(
        {
            "event_id": event_id,
            "type": "refund.updated",
            "data": {
                "type": "refund",
                "id": refund_id,
                "object": {
                    "refund": {
                        "id": refund_id,
                        "payment_id": payment_id,
                        "status": status,
                        "amount_money": {"amount": amount_cents, "currency": "USD"},
                    }
                },
            },
        }
    ).encode()

