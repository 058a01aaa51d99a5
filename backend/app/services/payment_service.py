# backend/app/services/payment_service.py
"""
Payment Service for the Room Rental platform

Creates gateway payment intents and refunds for bookings, exposes the
booking's payment state and a seeker's payment history, and reconciles
asynchronous gateway events into that state.

The amount charged is always the one stored on the booking. Every write to a
payment row happens after re-reading it under a row lock, so concurrent
webhooks and intent or refund requests cannot move it backwards.

Reconciliation is idempotent: every event is first written to the
``payment_events`` ledger and a redelivery of a recorded event is skipped.
Events older than the last applied one are discarded, and the payment state
only moves forward (see ``app.constants.payment_status``).
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
import logging
import math
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..constants.payment_status import can_transition, map_event_type, map_intent_status
from ..core.config import Settings, settings as default_settings
from ..core.exceptions import (
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from ..models.booking import Booking, BookingStatus
from ..models.booking_payment import BookingPayment, PaymentStatus
from ..models.payment_event import PaymentEvent, PaymentEventStatus
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .booking_service import MAX_PAGE_SIZE
from .stripe_service import PaymentGateway

logger = logging.getLogger(__name__)

STRIPE_SOURCE = "stripe"


@dataclass(frozen=True)
class GatewayEvent:
    """A gateway status report, normalized from a webhook or a poll."""

    event_id: str
    event_type: str
    status: Optional[PaymentStatus]
    occurred_at: datetime
    booking_id: Optional[str] = None
    intent_id: Optional[str] = None
    payment_id: Optional[str] = None
    source: str = STRIPE_SOURCE
    payload: Dict[str, Any] = field(default_factory=dict)


def to_minor_units(amount: Any) -> int:
    """Major currency units to the gateway's minor units (x100, half-up)."""
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise ValidationException("Amount must be a number", code="INVALID_PARAMETER")
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def parse_stripe_event(event: Dict[str, Any]) -> GatewayEvent:
    """
    Normalize a verified Stripe event.

    Event types we do not track come back with ``status=None``; they are
    recorded in the ledger and otherwise ignored.
    """
    obj = (event.get("data") or {}).get("object") or {}
    event_type = str(event.get("type", ""))
    metadata = obj.get("metadata") or {}

    if obj.get("object") == "charge":
        intent_id = obj.get("payment_intent")
        payment_id = obj.get("id")
    else:
        intent_id = obj.get("id")
        payment_id = obj.get("latest_charge") or obj.get("id")

    created = event.get("created")
    occurred_at = (
        datetime.fromtimestamp(int(created), tz=timezone.utc)
        if created is not None
        else datetime.now(timezone.utc)
    )

    return GatewayEvent(
        event_id=str(event.get("id", "")),
        event_type=event_type,
        status=map_event_type(event_type),
        occurred_at=occurred_at,
        booking_id=metadata.get("booking_id"),
        intent_id=intent_id,
        payment_id=payment_id,
        source=STRIPE_SOURCE,
        payload={"id": event.get("id"), "type": event_type, "object_id": obj.get("id")},
    )


def payment_snapshot(payment: BookingPayment) -> Dict[str, Any]:
    return {
        "payment_id": payment.payment_id,
        "order_id": payment.order_id,
        "amount": payment.amount,
        "currency": payment.currency,
        "status": payment.status,
        "payment_date": payment.payment_date,
        "refund_date": payment.refund_date,
    }


def payment_history_entry(payment: BookingPayment) -> Dict[str, Any]:
    booking = payment.booking
    room = booking.room if booking is not None else None
    return {
        **payment_snapshot(payment),
        "booking_id": payment.booking_id,
        "room_title": room.title if room is not None else None,
        "refund_amount": payment.refund_amount,
        "created_at": payment.created_at,
    }


class PaymentService(BaseService):
    """Intents, refunds, payment reads and gateway reconciliation."""

    def __init__(
        self,
        db: Session,
        gateway: Optional[PaymentGateway] = None,
        config: Optional[Settings] = None,
    ):
        super().__init__(db)
        self.gateway = gateway
        self.config = config or default_settings
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.event_repository = RepositoryFactory.create_payment_event_repository(db)

    def _load_booking(self, booking_id: str) -> Booking:
        booking = self.booking_repository.get_by_id(booking_id)
        if booking is None:
            raise NotFoundException("Booking not found", code="BOOKING_NOT_FOUND")
        return booking

    def _require_gateway(self) -> PaymentGateway:
        if self.gateway is None:
            raise RuntimeError(f"{self.__class__.__name__} needs a payment gateway for this call")
        return self.gateway

    @BaseService.measure_operation("create_payment_intent")
    def create_intent(self, booking_id: str, amount: Any, requester_id: str) -> Dict[str, str]:
        """
        Create a gateway payment intent for a booking.

        The charge is always the amount stored when the booking was created.
        ``amount`` is optional; when given it must match that stored amount.
        The gateway call runs outside any database transaction, and creation
        is keyed on booking and amount, so a client retry returns the same
        intent.

        Returns:
            ``{"clientSecret": ..., "paymentIntentId": ...}``

        Raises:
            NotFoundException: Booking or its payment record does not exist
            ForbiddenException: Requester is not the booking's seeker
            ValidationException: Booking closed, already paid, or amount mismatch
            PaymentGatewayException: The gateway call failed; safe to retry
        """
        gateway = self._require_gateway()

        # Phase 1: validate
        booking = self._load_booking(booking_id)
        if booking.seeker_id != requester_id:
            raise ForbiddenException("Only the seeker can pay for this booking")
        if booking.status in (BookingStatus.CANCELLED.value, BookingStatus.COMPLETED.value):
            raise ValidationException(
                f"Cannot pay for a {booking.status} booking", code="INVALID_BOOKING_STATE"
            )
        payment = booking.payment
        if payment is None:
            raise NotFoundException("Payment not found", code="PAYMENT_NOT_FOUND")
        if payment.status in (PaymentStatus.PAID.value, PaymentStatus.REFUNDED.value):
            raise ValidationException(
                "Payment already completed for this booking", code="PAYMENT_ALREADY_COMPLETED"
            )
        amount_minor = to_minor_units(payment.amount)
        if amount is not None and to_minor_units(amount) != amount_minor:
            raise ValidationException(
                "Amount does not match the booking amount",
                code="AMOUNT_MISMATCH",
                details={"expected": str(payment.amount)},
            )

        # Phase 2: gateway call, no transaction held
        intent = gateway.create_intent(
            amount_minor=amount_minor,
            currency=payment.currency or self.config.stripe_currency,
            metadata={
                "booking_id": booking.id,
                "seeker_id": booking.seeker_id,
                "owner_id": booking.owner_id,
            },
            idempotency_key=f"booking-{booking.id}-intent-{amount_minor}",
        )

        # Phase 3: record the intent against the locked payment row
        with self.transaction():
            payment = self.booking_repository.lock_payment(booking.id)
            if payment is None:
                raise NotFoundException("Payment not found", code="PAYMENT_NOT_FOUND")
            current = PaymentStatus(payment.status)
            target = map_intent_status(intent.status)
            if can_transition(current, target):
                payment.order_id = intent.id
                payment.status = target.value
                if target == PaymentStatus.PAID:
                    payment.payment_date = datetime.now(timezone.utc)
            elif not payment.order_id:
                payment.order_id = intent.id

        self.logger.info(f"Created payment intent {intent.id} for booking {booking_id}")
        return {"clientSecret": intent.client_secret, "paymentIntentId": intent.id}

    @BaseService.measure_operation("get_payment_status")
    def get_status(self, booking_id: str, requester_id: str) -> Dict[str, Any]:
        booking = self._load_booking(booking_id)
        if not booking.is_participant(requester_id):
            raise ForbiddenException("You do not have access to this booking")
        if booking.payment is None:
            raise NotFoundException("Payment not found", code="PAYMENT_NOT_FOUND")
        return payment_snapshot(booking.payment)

    @BaseService.measure_operation("refund_payment")
    def refund(
        self,
        booking_id: str,
        requester_id: str,
        amount: Any = None,
        reason: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Refund a paid booking, in full or in part, and cancel it if still active.

        Either participant may ask. The gateway call runs outside the
        transaction; a retry with the same amount reuses the same refund.

        Returns:
            ``{"refundId", "refundAmount", "refundDate", "bookingId"}``

        Raises:
            NotFoundException: Booking or payment does not exist
            ForbiddenException: Requester is not a participant
            ValidationException: Not paid, already refunded, bad amount or no intent
            PaymentGatewayException: The gateway refused the refund; safe to retry
        """
        gateway = self._require_gateway()

        booking = self._load_booking(booking_id)
        if not booking.is_participant(requester_id):
            raise ForbiddenException("You do not have access to this booking")
        payment = booking.payment
        if payment is None:
            raise NotFoundException("Payment not found", code="PAYMENT_NOT_FOUND")
        if payment.status == PaymentStatus.REFUNDED.value:
            raise ValidationException("Payment has already been refunded", code="ALREADY_REFUNDED")
        if payment.status != PaymentStatus.PAID.value:
            raise ValidationException(
                "Cannot refund a payment that is not completed", code="PAYMENT_NOT_COMPLETED"
            )

        paid_minor = to_minor_units(payment.amount)
        refund_minor = to_minor_units(amount) if amount is not None else paid_minor
        if refund_minor <= 0:
            raise ValidationException("Amount must be greater than zero", code="INVALID_PARAMETER")
        if refund_minor > paid_minor:
            raise ValidationException(
                "Refund amount cannot exceed the amount paid",
                code="INVALID_AMOUNT",
                details={"paid": str(payment.amount)},
            )
        if not payment.order_id:
            raise ValidationException(
                "No gateway payment to refund for this booking", code="NO_PAYMENT_ID"
            )

        refund = gateway.create_refund(
            intent_id=payment.order_id,
            amount_minor=refund_minor,
            metadata={"booking_id": booking.id, "requested_by": requester_id},
            idempotency_key=f"booking-{booking.id}-refund-{refund_minor}",
        )

        refunded_at = datetime.now(timezone.utc)
        refund_amount = Decimal(refund_minor) / 100
        with self.transaction():
            payment = self.booking_repository.lock_payment(booking.id)
            if payment is None:
                raise NotFoundException("Payment not found", code="PAYMENT_NOT_FOUND")
            if can_transition(PaymentStatus(payment.status), PaymentStatus.REFUNDED):
                payment.status = PaymentStatus.REFUNDED.value
                payment.refund_date = refunded_at
            payment.refund_amount = refund_amount

            booking = self._load_booking(booking_id)
            if booking.is_cancellable:
                booking.cancel(requester_id, reason or "Payment refunded")

        self.logger.info(f"Refunded {refund_amount} for booking {booking_id} ({refund.id})")
        return {
            "refundId": refund.id,
            "refundAmount": refund_amount,
            "refundDate": payment.refund_date or refunded_at,
            "bookingId": booking.id,
        }

    @BaseService.measure_operation("payment_history")
    def payment_history(
        self,
        requester_id: str,
        user_id: str,
        status: Optional[PaymentStatus] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Dict[str, Any]:
        """
        Payments the user started as a seeker, newest first.

        Returns:
            ``{"payments": [...], "pagination": {page, limit, total, totalPages}}``
        """
        if requester_id != user_id:
            raise ForbiddenException("You can only view your own payment history")
        if page < 1:
            raise ValidationException("page must be at least 1", code="INVALID_PARAMETER")
        if limit < 1 or limit > MAX_PAGE_SIZE:
            raise ValidationException(
                f"limit must be between 1 and {MAX_PAGE_SIZE}", code="INVALID_PARAMETER"
            )

        payments, total = self.booking_repository.list_payments_for_seeker(
            user_id,
            status=PaymentStatus(status) if status is not None else None,
            offset=(page - 1) * limit,
            limit=limit,
        )
        return {
            "payments": [payment_history_entry(p) for p in payments],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "totalPages": math.ceil(total / limit) if total else 0,
            },
        }

    @BaseService.measure_operation("reconcile_payment")
    def reconcile(self, event: GatewayEvent) -> str:
        """
        Apply a gateway event to the booking's payment state.

        Returns:
            The outcome: ``applied``, ``duplicate``, ``stale``,
            ``unknown_booking``, ``untracked`` or ``ignored``
        """
        with self.transaction():
            ledger = self.event_repository.record_if_new(
                source=event.source,
                event_id=event.event_id,
                event_type=event.event_type,
                booking_id=event.booking_id,
                payload=event.payload,
            )
            if ledger is None:
                outcome = "duplicate"
            else:
                outcome = self._apply(event, ledger)

        prometheus_metrics.record_reconciliation(outcome)
        self.logger.info(f"Gateway event {event.event_id} ({event.event_type}): {outcome}")
        return outcome

    def _ignore(self, ledger: PaymentEvent, outcome: str, booking_id: Optional[str] = None) -> str:
        self.event_repository.mark(
            ledger, PaymentEventStatus.IGNORED, outcome=outcome, booking_id=booking_id
        )
        return outcome

    def _resolve_booking(self, event: GatewayEvent) -> Optional[Booking]:
        booking = None
        if event.booking_id:
            booking = self.booking_repository.get_by_id(event.booking_id)
        if booking is None and event.intent_id:
            booking = self.booking_repository.get_by_order_id(event.intent_id)
        return booking

    def _apply(self, event: GatewayEvent, ledger: PaymentEvent) -> str:
        if event.status is None:
            return self._ignore(ledger, "untracked")

        booking = self._resolve_booking(event)
        payment = self.booking_repository.lock_payment(booking.id) if booking else None
        if booking is None or payment is None:
            self.logger.warning(f"Gateway event {event.event_id} matches no booking")
            return self._ignore(ledger, "unknown_booking")

        occurred_at = _as_utc(event.occurred_at)
        last_applied = _as_utc(payment.last_event_at)
        if last_applied is not None and occurred_at is not None and occurred_at < last_applied:
            return self._ignore(ledger, "stale", booking.id)

        current = PaymentStatus(payment.status)
        if not can_transition(current, event.status):
            return self._ignore(ledger, "ignored", booking.id)

        payment.status = event.status.value
        if event.payment_id:
            payment.payment_id = event.payment_id
        if event.intent_id and not payment.order_id:
            payment.order_id = event.intent_id
        if event.status == PaymentStatus.PAID:
            payment.payment_date = occurred_at
        elif event.status == PaymentStatus.REFUNDED:
            payment.refund_date = occurred_at
        payment.last_event_at = occurred_at

        self.event_repository.mark(
            ledger, PaymentEventStatus.APPLIED, outcome=event.status.value, booking_id=booking.id
        )
        self.logger.info(
            f"Booking {booking.id} payment moved {current.value} -> {event.status.value}"
        )
        return "applied"
