# backend/app/models/verification_challenge.py
"""
One-time-code challenge for proving control of a phone number.

A challenge belongs to the phone it targets rather than to an account,
since the phone may not be attached to any account when the code is issued.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, String
from sqlalchemy.sql import func
import ulid

from ..database import Base


class VerificationChallenge(Base):
    """In-flight OTP for a canonical phone number."""

    __tablename__ = "verification_challenges"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    phone = Column(String(20), nullable=False, index=True)
    code = Column(String(6), nullable=False)
    attempts = Column(Integer, nullable=False, default=0)
    verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)

    __table_args__ = (
        CheckConstraint("attempts >= 0", name="ck_challenge_attempts_non_negative"),
    )

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if self.attempts is None:
            self.attempts = 0
        if self.verified is None:
            self.verified = False

    def __repr__(self) -> str:
        return (
            f"<VerificationChallenge {self.phone[-4:] if self.phone else '?'} "
            f"attempts={self.attempts} verified={self.verified}>"
        )
