# backend/app/models/room.py
"""Room listing reference used by bookings."""

from typing import Any

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base


class Room(Base):
    """
    Listed room owned by a property owner.

    Only the fields bookings depend on live here; listing content, media and
    search data belong to other services.
    """

    __tablename__ = "rooms"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    owner_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    monthly_rent = Column(Numeric(10, 2), nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    owner = relationship("User", foreign_keys=[owner_id])

    __table_args__ = (CheckConstraint("monthly_rent > 0", name="check_rent_positive"),)

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if self.is_available is None:
            self.is_available = True

    def __repr__(self) -> str:
        return f"<Room {self.id}: owner={self.owner_id} rent={self.monthly_rent}>"
