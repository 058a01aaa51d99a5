"""Repository helpers for the payment event ledger."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Any, cast

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import RepositoryException
from app.models.payment_event import PaymentEvent, PaymentEventStatus
from app.repositories.base_repository import BaseRepository

logger = logging.getLogger(__name__)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class PaymentEventRepository(BaseRepository[PaymentEvent]):
    """Repository for payment ledger writes and lookups."""

    def __init__(self, db: Session) -> None:
        super().__init__(db, PaymentEvent)

    def get_by_event_id(self, source: str, event_id: str) -> PaymentEvent | None:
        try:
            return cast(
                PaymentEvent | None,
                self.db.query(PaymentEvent)
                .filter(PaymentEvent.source == source, PaymentEvent.event_id == event_id)
                .first(),
            )
        except SQLAlchemyError as exc:
            self.logger.error("Failed to load payment event %s: %s", event_id, str(exc))
            raise RepositoryException("Failed to load payment event") from exc

    def record_if_new(
        self,
        *,
        source: str,
        event_id: str,
        event_type: str,
        booking_id: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> PaymentEvent | None:
        """
        Insert the ledger row for an event.

        Returns None when ``(source, event_id)`` was already recorded. The
        insert runs in a SAVEPOINT so a duplicate leaves the outer
        transaction usable.
        """
        if self.get_by_event_id(source, event_id) is not None:
            return None
        event = PaymentEvent(
            source=source,
            event_id=event_id,
            event_type=event_type,
            booking_id=booking_id,
            payload=payload,
            status=PaymentEventStatus.RECEIVED.value,
        )
        try:
            with self.db.begin_nested():
                self.db.add(event)
                self.db.flush()
        except IntegrityError:
            # Lost the race against a concurrent delivery of the same event
            self.logger.info("Payment event %s:%s already recorded", source, event_id)
            return None
        except SQLAlchemyError as exc:
            self.logger.error("Failed to record payment event %s: %s", event_id, str(exc))
            raise RepositoryException("Failed to record payment event") from exc
        return event

    def mark(
        self,
        event: PaymentEvent,
        status: PaymentEventStatus,
        *,
        outcome: str | None = None,
        booking_id: str | None = None,
    ) -> PaymentEvent:
        event.status = status.value
        event.outcome = outcome
        if booking_id:
            event.booking_id = booking_id
        event.processed_at = _now_utc()
        self.db.flush()
        return event
