# backend/app/models/user.py
"""
User model for the Room Rental platform.

A single account type serves both property owners and room seekers,
differentiated by the ``role`` field. Phone ownership is proven through the
OTP flow in ``app.services.phone_verification_service``.

Classes:
    UserRole: Enum defining the possible account roles
    User: Main account model
"""

from enum import Enum
import logging
from typing import Any

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Index, String
from sqlalchemy.sql import func
import ulid

from ..database import Base

logger = logging.getLogger(__name__)


class UserRole(str, Enum):
    """Account roles."""

    OWNER = "owner"
    SEEKER = "seeker"
    BOTH = "both"
    ADMIN = "admin"


class User(Base):
    """
    Account record for owners and seekers.

    Attributes:
        id: ULID primary key
        email: Unique email address used for login
        full_name: Display name
        phone: Canonical phone number (+91XXXXXXXXXX), set once verified
        phone_verified: Whether ``phone`` was proven through an OTP
        role: owner, seeker, both or admin
        is_active: Whether the account may authenticate

    Note:
        At most one account may hold a given phone with ``phone_verified``
        true. The partial unique index ``uq_users_verified_phone`` enforces
        it in the database; the verification service only pre-checks.
    """

    __tablename__ = "users"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String(100), nullable=False, default="")
    phone = Column(String(20), nullable=True, index=True)
    phone_verified = Column(Boolean, nullable=False, default=False)
    role = Column(String(20), nullable=False, default=UserRole.SEEKER.value)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(
            "role IN ('owner', 'seeker', 'both', 'admin')",
            name="ck_users_role",
        ),
    )

    def __init__(self, **kwargs: Any) -> None:
        """Initialize a new user."""
        super().__init__(**kwargs)
        if self.phone_verified is None:
            self.phone_verified = False
        if not self.role:
            self.role = UserRole.SEEKER.value

    def __repr__(self) -> str:
        """String representation of the User object."""
        return f"<User {self.email} ({self.role})>"

    @property
    def can_seek(self) -> bool:
        """Whether the account may request bookings."""
        return self.role in (UserRole.SEEKER.value, UserRole.BOTH.value)

    @property
    def can_own(self) -> bool:
        """Whether the account may list rooms and act on their bookings."""
        return self.role in (UserRole.OWNER.value, UserRole.BOTH.value)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


Index(
    "uq_users_verified_phone",
    User.phone,
    unique=True,
    postgresql_where=User.phone_verified.is_(True),
    sqlite_where=User.phone_verified.is_(True),
)
