"""Processed payment-gateway event ledger."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

import sqlalchemy as sa
from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON
import ulid

from app.database import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class PaymentEventStatus(str, Enum):
    RECEIVED = "received"
    APPLIED = "applied"
    IGNORED = "ignored"
    FAILED = "failed"


class PaymentEvent(Base):
    """
    One row per gateway event seen by reconciliation.

    The ``(source, event_id)`` unique constraint is what makes reconciliation
    idempotent: a redelivered event fails the insert and is skipped.
    """

    __tablename__ = "payment_events"

    __table_args__ = (
        sa.Index("ix_payment_events_booking_id", "booking_id"),
        sa.Index("ix_payment_events_received_at", "received_at"),
        sa.UniqueConstraint("source", "event_id", name="uq_payment_events_source_event_id"),
    )

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    source: Mapped[str] = mapped_column(String(50), nullable=False, default="stripe")
    event_id: Mapped[str] = mapped_column(String(255), nullable=False)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    booking_id: Mapped[str | None] = mapped_column(String(26), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaymentEventStatus.RECEIVED.value
    )
    outcome: Mapped[str | None] = mapped_column(Text, nullable=True)
    payload: Mapped[dict[str, Any] | None] = mapped_column(
        JSONB(astext_type=Text()).with_variant(JSON(), "sqlite"),
        nullable=True,
    )
    received_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_now_utc,
        server_default=func.now(),
    )
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<PaymentEvent {self.source}:{self.event_id} {self.status}>"
