"""
Database models for the Room Rental platform.

- User: owner/seeker accounts with verified phone
- VerificationChallenge: in-flight phone OTPs
- Room: listing reference used by bookings
- Booking / BookingPayment: booking lifecycle and its payment state
- PaymentEvent: ledger of processed payment gateway events
"""

from .booking import Booking, BookingStatus
from .booking_payment import BookingPayment, PaymentStatus
from .payment_event import PaymentEvent, PaymentEventStatus
from .room import Room
from .user import User, UserRole
from .verification_challenge import VerificationChallenge

__all__ = [
    "User",
    "UserRole",
    "VerificationChallenge",
    "Room",
    "Booking",
    "BookingStatus",
    "BookingPayment",
    "PaymentStatus",
    "PaymentEvent",
    "PaymentEventStatus",
]
