"""Mapping of Stripe statuses and events to local payment states."""

from __future__ import annotations

from typing import Optional

from app.models.booking_payment import PaymentStatus

STRIPE_INTENT_TO_PAYMENT_STATUS = {
    "requires_payment_method": PaymentStatus.PENDING,
    "requires_confirmation": PaymentStatus.PENDING,
    "requires_action": PaymentStatus.PENDING,
    "processing": PaymentStatus.PENDING,
    "succeeded": PaymentStatus.PAID,
    "canceled": PaymentStatus.FAILED,
}

STRIPE_EVENT_TO_PAYMENT_STATUS = {
    "payment_intent.created": PaymentStatus.PENDING,
    "payment_intent.processing": PaymentStatus.PENDING,
    "payment_intent.requires_action": PaymentStatus.PENDING,
    "payment_intent.succeeded": PaymentStatus.PAID,
    "payment_intent.payment_failed": PaymentStatus.FAILED,
    "payment_intent.canceled": PaymentStatus.FAILED,
    "charge.refunded": PaymentStatus.REFUNDED,
}

# Forward-only moves; anything else reported by the gateway is ignored.
ALLOWED_PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.UNPAID: frozenset(
        {PaymentStatus.PENDING, PaymentStatus.PAID, PaymentStatus.FAILED}
    ),
    PaymentStatus.PENDING: frozenset({PaymentStatus.PAID, PaymentStatus.FAILED}),
    PaymentStatus.FAILED: frozenset({PaymentStatus.PENDING, PaymentStatus.PAID}),
    PaymentStatus.PAID: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.REFUNDED: frozenset(),
}


def map_intent_status(stripe_status: Optional[str]) -> PaymentStatus:
    """Map a Stripe PaymentIntent status to the local payment state."""
    if not stripe_status:
        return PaymentStatus.PENDING
    return STRIPE_INTENT_TO_PAYMENT_STATUS.get(stripe_status, PaymentStatus.PENDING)


def map_event_type(event_type: str) -> Optional[PaymentStatus]:
    """Local state reported by a Stripe event type, or None for events we do not track."""
    return STRIPE_EVENT_TO_PAYMENT_STATUS.get(event_type)


def can_transition(current: PaymentStatus, target: PaymentStatus) -> bool:
    return target in ALLOWED_PAYMENT_TRANSITIONS.get(current, frozenset())
