"""
Tests for typed Square webhook events.
"""

import json

import pytest

from paywall.webhooks.events import (
    PaymentEvent,
    RefundEvent,
    UnrecognizedEvent,
    parse_event,
)
from paywall.webhooks.tests.payloads import payment_body, refund_body


class TestParseEvent:
    def test_payment_event(self):
        payload = json.loads(
            payment_body(
                "sq_pay_1",
                "COMPLETED",
                customer_id="sq_cust_1",
                processing_fee=[{"amount_money": {"amount": 59, "currency": "USD"}}],
            )
        )

        event = parse_event(payload)

        assert event == PaymentEvent(
            event_id="evt_pay_1",
            event_type="payment.updated",
            payment_id="sq_pay_1",
            status="COMPLETED",
            amount_cents=1000,
            currency="USD",
            customer_id="sq_cust_1",
            processing_fee_cents=59,
        )

    def test_camel_case_payment(self):
        payload = {
            "eventId": "evt_camel",
            "type": "payment.created",
            "data": {
                "object": {
                    "payment": {
                        "id": "sq_pay_2",
                        "status": "APPROVED",
                        "amountMoney": {"amount": 500, "currency": "USD"},
                        "customerId": "sq_cust_2",
                    }
                }
            },
        }

        event = parse_event(payload)

        assert isinstance(event, PaymentEvent)
        assert event.event_id == "evt_camel"
        assert event.amount_cents == 500
        assert event.customer_id == "sq_cust_2"
        assert event.processing_fee_cents is None

    def test_refund_event(self):
        event = parse_event(json.loads(refund_body("sq_pay_1", 400)))

        assert event == RefundEvent(
            event_id="evt_ref_1",
            event_type="refund.updated",
            payment_id="sq_pay_1",
            refund_id="sq_refund_dash",
            amount_cents=400,
            status="COMPLETED",
        )

    @pytest.mark.parametrize(
        "payload",
        [
            {"event_id": "e1", "type": "customer.created", "data": {}},
            {"event_id": "e2", "type": "payment.updated", "data": {"object": {}}},
            {"event_id": "e3", "type": "refund.created", "data": {"object": {"refund": {}}}},
            {"type": "payment.updated"},
        ],
    )
    def test_unrecognized(self, payload):
        assert isinstance(parse_event(payload), UnrecognizedEvent)

    def test_non_object_rejected(self):
        with pytest.raises(ValueError):
            parse_event(["not", "an", "object"])
