# backend/app/models/booking.py
"""
Booking model for the Room Rental platform.

Represents a seeker's request to rent a room from its owner. Bookings move
pending → confirmed → completed, or to cancelled from pending/confirmed.
They are never deleted. Payment state lives in the ``booking_payments``
satellite table (see ``app.models.booking_payment``).
"""

from datetime import datetime, timezone
from enum import Enum
import logging
from typing import Any, Optional

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base

logger = logging.getLogger(__name__)


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING = "pending"  # Initial state, awaiting owner decision
    CONFIRMED = "confirmed"  # Owner accepted
    COMPLETED = "completed"  # Tenancy finished
    CANCELLED = "cancelled"  # Withdrawn by seeker or rejected by owner


class Booking(Base):
    """Rental request between a seeker and a room owner."""

    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))

    # Core relationships
    room_id = Column(String(26), ForeignKey("rooms.id"), nullable=False)
    seeker_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    owner_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)

    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value, index=True)
    message = Column(String(500), nullable=True)
    owner_response = Column(String(500), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    # Cancellation tracking
    cancelled_by_id = Column(String(26), ForeignKey("users.id"), nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    # Relationships
    room = relationship("Room")
    seeker = relationship("User", foreign_keys=[seeker_id])
    owner = relationship("User", foreign_keys=[owner_id])
    cancelled_by = relationship("User", foreign_keys=[cancelled_by_id])
    payment = relationship(
        "BookingPayment",
        back_populates="booking",
        uselist=False,
        cascade="all, delete-orphan",
        lazy="joined",
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'completed', 'cancelled')",
            name="ck_bookings_status",
        ),
    )

    def __init__(self, **kwargs: Any) -> None:
        """Initialize as a pending request by default."""
        super().__init__(**kwargs)
        if not self.status:
            self.status = BookingStatus.PENDING.value
        logger.info(
            f"Creating booking for seeker {self.seeker_id} on room {self.room_id} "
            f"owned by {self.owner_id}"
        )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<Booking {self.id}: seeker={self.seeker_id}, owner={self.owner_id}, "
            f"room={self.room_id}, status={self.status}>"
        )

    def confirm(self, response: Optional[str] = None) -> None:
        """Mark booking as confirmed by the owner."""
        self.status = BookingStatus.CONFIRMED.value
        self.confirmed_at = datetime.now(timezone.utc)
        if response:
            self.owner_response = response
        logger.info(f"Booking {self.id} confirmed")

    def cancel(self, cancelled_by_user_id: str, reason: Optional[str] = None) -> None:
        """Cancel this booking."""
        self.status = BookingStatus.CANCELLED.value
        self.cancelled_at = datetime.now(timezone.utc)
        self.cancelled_by_id = cancelled_by_user_id
        self.cancellation_reason = reason
        logger.info(f"Booking {self.id} cancelled by user {cancelled_by_user_id}")

    def complete(self) -> None:
        """Mark booking as completed."""
        self.status = BookingStatus.COMPLETED.value
        self.completed_at = datetime.now(timezone.utc)
        logger.info(f"Booking {self.id} marked as completed")

    @property
    def is_cancellable(self) -> bool:
        """Check if booking can be cancelled."""
        return self.status in (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)

    def is_participant(self, user_id: str) -> bool:
        """Whether the user is this booking's seeker or owner."""
        return user_id in (self.seeker_id, self.owner_id)


ACTIVE_BOOKING_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)

# A seeker holds at most one pending or confirmed booking per room.
Index(
    "uq_bookings_active_seeker_room",
    Booking.seeker_id,
    Booking.room_id,
    unique=True,
    postgresql_where=Booking.status.in_(ACTIVE_BOOKING_STATUSES),
    sqlite_where=Booking.status.in_(ACTIVE_BOOKING_STATUSES),
)
