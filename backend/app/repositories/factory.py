# backend/app/repositories/factory.py
"""
Repository Factory for the Room Rental platform

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .booking_repository import BookingRepository
    from .payment_event_repository import PaymentEventRepository
    from .room_repository import RoomRepository
    from .user_repository import UserRepository
    from .verification_challenge_repository import VerificationChallengeRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation to ensure consistent initialization
    and makes it easy to swap implementations if needed.
    """

    @staticmethod
    def create_user_repository(db: Session) -> "UserRepository":
        """Create repository for account lookups."""
        from .user_repository import UserRepository

        return UserRepository(db)

    @staticmethod
    def create_verification_challenge_repository(
        db: Session,
    ) -> "VerificationChallengeRepository":
        """Create repository for phone OTP challenges."""
        from .verification_challenge_repository import VerificationChallengeRepository

        return VerificationChallengeRepository(db)

    @staticmethod
    def create_room_repository(db: Session) -> "RoomRepository":
        from .room_repository import RoomRepository

        return RoomRepository(db)

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        """Create repository for booking operations."""
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_payment_event_repository(db: Session) -> "PaymentEventRepository":
        """Create repository for the payment event ledger."""
        from .payment_event_repository import PaymentEventRepository

        return PaymentEventRepository(db)
