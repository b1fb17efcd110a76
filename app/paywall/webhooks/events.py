"""
Typed Square webhook events.

Square posts JSON shaped like:

    {
        "event_id": "6a8f...",
        "type": "payment.updated",
        "data": {"object": {"payment": {"id": "...", "status": "COMPLETED", ...}}}
    }

``parse_event`` turns that into one of three variants:

    PaymentEvent       payment.created / payment.updated with a payment id
    RefundEvent        refund.created / refund.updated with a payment id
    UnrecognizedEvent  anything else, always ignored

Field names are read in both snake_case (REST webhooks) and camelCase
(SDK-serialized payloads).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

PAYMENT_EVENT_TYPES = frozenset({"payment.created", "payment.updated"})
REFUND_EVENT_TYPES = frozenset({"refund.created", "refund.updated"})


@dataclass(frozen=True)
class PaymentEvent:
    event_id: str | None
    event_type: str
    payment_id: str
    status: str
    amount_cents: int | None = None
    currency: str | None = None
    customer_id: str | None = None
    processing_fee_cents: int | None = None


@dataclass(frozen=True)
class RefundEvent:
    event_id: str | None
    event_type: str
    payment_id: str
    refund_id: str | None
    amount_cents: int
    status: str | None = None


@dataclass(frozen=True)
class UnrecognizedEvent:
    event_id: str | None
    event_type: str


WebhookEventData = Union[PaymentEvent, RefundEvent, UnrecognizedEvent]


def _get(data: dict[str, Any], *keys: str) -> Any:
    """First present key, so snake_case and camelCase payloads both parse."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def _money_amount(money: Any) -> int | None:
    if not isinstance(money, dict):
        return None
    amount = money.get("amount")
    return int(amount) if amount is not None else None


def _processing_fee(payment: dict[str, Any]) -> int | None:
    fees = _get(payment, "processing_fee", "processingFee")
    if isinstance(fees, list) and fees:
        return sum(_money_amount(_get(fee, "amount_money", "amountMoney")) or 0 for fee in fees)
    return _money_amount(_get(payment, "processing_fee_money", "processingFeeMoney"))


def parse_event(payload: dict[str, Any]) -> WebhookEventData:
    """
    Parse a decoded webhook body.

    Raises:
        ValueError: Body is not a JSON object
    """
    if not isinstance(payload, dict):
        raise ValueError("Webhook payload must be a JSON object")

    event_id = _get(payload, "event_id", "eventId")
    event_type = str(payload.get("type") or "")
    data = payload.get("data") if isinstance(payload.get("data"), dict) else {}
    obj = data.get("object") if isinstance(data.get("object"), dict) else {}

    if event_type in PAYMENT_EVENT_TYPES:
        payment = obj.get("payment")
        if isinstance(payment, dict) and payment.get("id"):
            amount_money = _get(payment, "amount_money", "amountMoney") or {}
            return PaymentEvent(
                event_id=event_id,
                event_type=event_type,
                payment_id=str(payment["id"]),
                status=str(payment.get("status") or ""),
                amount_cents=_money_amount(amount_money),
                currency=amount_money.get("currency") if isinstance(amount_money, dict) else None,
                customer_id=_get(payment, "customer_id", "customerId"),
                processing_fee_cents=_processing_fee(payment),
            )

    if event_type in REFUND_EVENT_TYPES:
        refund = obj.get("refund")
        if isinstance(refund, dict):
            payment_id = _get(refund, "payment_id", "paymentId")
            if payment_id:
                return RefundEvent(
                    event_id=event_id,
                    event_type=event_type,
                    payment_id=str(payment_id),
                    refund_id=refund.get("id"),
                    amount_cents=_money_amount(_get(refund, "amount_money", "amountMoney")) or 0,
                    status=refund.get("status"),
                )

    return UnrecognizedEvent(event_id=event_id, event_type=event_type)
