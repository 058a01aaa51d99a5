"""Booking payment satellite table."""

from __future__ import annotations

from enum import Enum

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base


class PaymentStatus(str, Enum):
    """Local payment states, moved forward by gateway reconciliation."""

    UNPAID = "unpaid"
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"
    FAILED = "failed"


class BookingPayment(Base):
    """Payment state for a single booking."""

    __tablename__ = "booking_payments"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    booking_id = Column(
        String(26),
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    payment_id = Column(String(255), nullable=True)  # gateway charge / intent id
    order_id = Column(String(255), nullable=True, index=True)  # gateway intent id
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="inr")
    status = Column(String(20), nullable=False, default=PaymentStatus.UNPAID.value)
    payment_date = Column(DateTime(timezone=True), nullable=True)
    refund_date = Column(DateTime(timezone=True), nullable=True)
    refund_amount = Column(Numeric(10, 2), nullable=True)  # set by a refund we requested
    last_event_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    booking = relationship("Booking", back_populates="payment")

    __table_args__ = (
        CheckConstraint(
            "status IN ('unpaid', 'pending', 'paid', 'refunded', 'failed')",
            name="ck_booking_payments_status",
        ),
        CheckConstraint("amount > 0", name="check_payment_amount_positive"),
    )

    def __repr__(self) -> str:
        return f"<BookingPayment booking={self.booking_id} status={self.status}>"
