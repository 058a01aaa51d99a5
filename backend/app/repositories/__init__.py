# backend/app/repositories/__init__.py
"""
Repository Pattern Implementation for the Room Rental platform

This package provides the repository layer for data access,
separating business logic from database queries.

Key Components:
- BaseRepository: Primary-key lookup and insert shared by every repository
- RepositoryFactory: Factory for creating repository instances
- UserRepository: Account lookups and phone claims
- VerificationChallengeRepository: Phone OTP challenges with atomic attempt counting
- RoomRepository: Listing lookups for booking creation
- BookingRepository: Booking lifecycle reads/writes and paginated listings
- PaymentEventRepository: Idempotent ledger of gateway events

Usage:
    from app.repositories import RepositoryFactory

    # In a service:
    self.booking_repository = RepositoryFactory.create_booking_repository(db)
    booking = self.booking_repository.get_by_order_id(intent_id)
"""

from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .factory import RepositoryFactory
from .payment_event_repository import PaymentEventRepository
from .room_repository import RoomRepository
from .user_repository import UserRepository
from .verification_challenge_repository import VerificationChallengeRepository

__all__ = [
    "BaseRepository",
    "RepositoryFactory",
    "UserRepository",
    "VerificationChallengeRepository",
    "RoomRepository",
    "BookingRepository",
    "PaymentEventRepository",
]
