"""
Payment-related Pydantic schemas for the Room Rental platform.

Request and response models for intent creation, refunds, payment status and
history reads, and the gateway webhook acknowledgement.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field

from ._strict_base import StrictModel, StrictRequestModel


class CreatePaymentIntentRequest(StrictRequestModel):
    """Request to create a payment intent for a booking."""

    booking_id: str = Field(..., description="Booking to pay for")
    amount: Optional[Decimal] = Field(
        None, gt=0, description="Expected amount in INR; must equal the booking amount if sent"
    )


class CreatePaymentIntentResponse(StrictModel):
    client_secret: str = Field(..., description="Client secret for the payment UI")
    payment_intent_id: str = Field(..., description="Gateway payment intent id")


class PaymentStatusResponse(StrictModel):
    """Snapshot of a booking's payment state."""

    payment_id: Optional[str] = None
    order_id: Optional[str] = None
    amount: Decimal
    currency: str
    status: str
    payment_date: Optional[datetime] = None
    refund_date: Optional[datetime] = None


class RefundRequest(StrictRequestModel):
    """Refund a paid booking; omit ``amount`` for a full refund."""

    booking_id: str = Field(..., description="Booking whose payment is refunded")
    amount: Optional[Decimal] = Field(None, gt=0, description="Partial refund amount in INR")
    reason: Optional[str] = Field(None, max_length=500)


class RefundResponse(StrictModel):
    refund_id: str
    refund_amount: Decimal
    refund_date: datetime
    booking_id: str


class PaymentHistoryItem(PaymentStatusResponse):
    """A payment in the seeker's history, with the room it was for."""

    booking_id: str
    room_title: Optional[str] = None
    refund_amount: Optional[Decimal] = None
    created_at: Optional[datetime] = None


class WebhookResponse(StrictModel):
    status: str = Field(..., description="Processing status")
    event_type: str
    outcome: str = Field(..., description="Reconciliation outcome")
