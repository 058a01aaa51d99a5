# backend/app/repositories/booking_repository.py
"""
Booking Repository for the Room Rental platform

Implements booking data access, including the owner/seeker listing queries.
The listing side is chosen through ``_LIST_QUERY_BUILDERS``, a small dispatch
table keyed by ``BookingListType``.
"""

import logging
from typing import Callable, Dict, List, Optional, Tuple, cast

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session, joinedload, selectinload

from ..core.enums import BookingListType, BookingSortField, SortOrder
from ..core.exceptions import RepositoryException
from ..models.booking import ACTIVE_BOOKING_STATUSES, Booking, BookingStatus
from ..models.booking_payment import BookingPayment, PaymentStatus
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


def _owner_bookings(db: Session, user_id: str) -> Query:
    return db.query(Booking).filter(Booking.owner_id == user_id)


def _seeker_bookings(db: Session, user_id: str) -> Query:
    return db.query(Booking).filter(Booking.seeker_id == user_id)


_LIST_QUERY_BUILDERS: Dict[BookingListType, Callable[[Session, str], Query]] = {
    BookingListType.OWNER: _owner_bookings,
    BookingListType.SEEKER: _seeker_bookings,
}


def _sort_column(sort_by: BookingSortField):
    if sort_by == BookingSortField.AMOUNT:
        return (
            select(BookingPayment.amount)
            .where(BookingPayment.booking_id == Booking.id)
            .scalar_subquery()
        )
    return getattr(Booking, sort_by.value)


class BookingRepository(BaseRepository[Booking]):
    """Repository for booking data access."""

    def __init__(self, db: Session):
        """Initialize with Booking model."""
        super().__init__(db, Booking)
        self.logger = logging.getLogger(__name__)

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(joinedload(Booking.payment))

    def get_by_order_id(self, order_id: str) -> Optional[Booking]:
        """Find the booking whose payment carries the gateway intent id."""
        try:
            return cast(
                Optional[Booking],
                self.db.query(Booking)
                .join(BookingPayment, BookingPayment.booking_id == Booking.id)
                .filter(BookingPayment.order_id == order_id)
                .first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting booking by order {order_id}: {str(e)}")
            raise RepositoryException(f"Failed to get booking by order: {str(e)}")

    def get_active_for_seeker_and_room(self, seeker_id: str, room_id: str) -> Optional[Booking]:
        """Pending or confirmed booking the seeker already holds on the room."""
        try:
            return cast(
                Optional[Booking],
                self.db.query(Booking)
                .filter(
                    Booking.seeker_id == seeker_id,
                    Booking.room_id == room_id,
                    Booking.status.in_(ACTIVE_BOOKING_STATUSES),
                )
                .first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error checking existing booking: {str(e)}")
            raise RepositoryException(f"Failed to check existing booking: {str(e)}")

    def create_with_payment(self, amount, currency: str, **booking_fields) -> Booking:
        """
        Create a booking together with its unpaid payment row. Does not commit.

        Raises:
            IntegrityError: The seeker already holds an active booking for the
                room (``uq_bookings_active_seeker_room``); the caller decides
                how to report it
        """
        try:
            booking = Booking(**booking_fields)
            booking.payment = BookingPayment(amount=amount, currency=currency)
            self.db.add(booking)
            self.db.flush()
            return booking
        except IntegrityError:
            raise
        except SQLAlchemyError as e:
            self.logger.error(f"Error creating booking: {str(e)}")
            self.db.rollback()
            raise RepositoryException(f"Failed to create booking: {str(e)}")

    def lock_payment(self, booking_id: str) -> Optional[BookingPayment]:
        """
        Re-read a booking's payment row under ``SELECT ... FOR UPDATE``.

        Loaded attributes are overwritten with the locked row, so a status
        committed by a concurrent transaction is seen before it is checked.
        """
        try:
            return cast(
                Optional[BookingPayment],
                self.db.query(BookingPayment)
                .filter(BookingPayment.booking_id == booking_id)
                .populate_existing()
                .with_for_update()
                .first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error locking payment for booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to lock payment: {str(e)}")

    def list_payments_for_seeker(
        self,
        seeker_id: str,
        *,
        status: Optional[PaymentStatus] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> Tuple[List[BookingPayment], int]:
        """
        Page through the payments a seeker has started, newest first.

        Payments still ``unpaid`` never reached the gateway and are left out.
        """
        try:
            query = (
                self.db.query(BookingPayment)
                .join(Booking, BookingPayment.booking_id == Booking.id)
                .filter(
                    Booking.seeker_id == seeker_id,
                    BookingPayment.status != PaymentStatus.UNPAID.value,
                )
            )
            if status is not None:
                query = query.filter(BookingPayment.status == status.value)

            total = query.count()
            items = (
                query.options(joinedload(BookingPayment.booking).joinedload(Booking.room))
                .order_by(BookingPayment.created_at.desc(), BookingPayment.id.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )
            return cast(List[BookingPayment], items), int(total)
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing payments for {seeker_id}: {str(e)}")
            raise RepositoryException(f"Failed to list payments: {str(e)}")

    def list_for_user(
        self,
        list_type: BookingListType,
        user_id: str,
        *,
        status: Optional[BookingStatus] = None,
        sort_by: BookingSortField = BookingSortField.CREATED_AT,
        sort_order: SortOrder = SortOrder.DESC,
        offset: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Booking], int]:
        """
        Page through a user's bookings as owner or as seeker.

        Returns:
            (bookings on the requested page, total matching bookings)
        """
        try:
            query = _LIST_QUERY_BUILDERS[list_type](self.db, user_id)
            if status is not None:
                query = query.filter(Booking.status == status.value)

            total = query.count()

            column = _sort_column(sort_by)
            ordering = column.asc() if sort_order == SortOrder.ASC else column.desc()
            items = (
                query.options(selectinload(Booking.payment))
                .order_by(ordering, Booking.id.asc())
                .offset(offset)
                .limit(limit)
                .all()
            )
            return cast(List[Booking], items), int(total)
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing {list_type.value} bookings: {str(e)}")
            raise RepositoryException(f"Failed to list bookings: {str(e)}")
