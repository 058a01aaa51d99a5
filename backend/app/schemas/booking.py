# backend/app/schemas/booking.py
"""
Booking schemas for the Room Rental platform.

Requests accept camelCase or snake_case keys; responses are camelCase.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field, field_validator

from ..models.booking import BookingStatus
from ._strict_base import StrictModel, StrictRequestModel
from .payment_schemas import PaymentStatusResponse


class BookingCreate(StrictRequestModel):
    """A seeker's request to rent a room."""

    room_id: str = Field(..., description="Room to book")
    amount: Decimal = Field(..., gt=0, description="Agreed monthly rent in INR")
    message: Optional[str] = Field(None, max_length=500, description="Note to the owner")

    @field_validator("message")
    @classmethod
    def _strip_message(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        return value or None


class BookingStatusUpdate(StrictRequestModel):
    status: BookingStatus = Field(..., description="Target status")
    message: Optional[str] = Field(
        None, max_length=500, description="Owner response or cancellation reason"
    )


class BookingResponse(StrictModel):
    """Booking with its payment state."""

    id: str
    room_id: str
    seeker_id: str
    owner_id: str
    status: BookingStatus
    message: Optional[str] = None
    owner_response: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancelled_by_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    payment: Optional[PaymentStatusResponse] = None
