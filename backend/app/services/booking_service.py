# backend/app/services/booking_service.py
"""
Booking Service for the Room Rental platform

Owns the booking status lifecycle:

    pending → confirmed → completed
    pending | confirmed → cancelled

Only a booking's seeker or owner may read or act on it. Whether an owner may
confirm before the payment is settled is controlled by the
``booking_confirm_requires_payment`` setting.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
import logging
import math
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import Settings, settings as default_settings
from ..core.enums import BookingListType, BookingSortField, SortOrder
from ..core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from ..models.booking import Booking, BookingStatus
from ..models.booking_payment import PaymentStatus
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100
_CENT = Decimal("0.01")


def _already_booked() -> ConflictException:
    return ConflictException(
        "You already have an active booking for this room", code="BOOKING_ALREADY_EXISTS"
    )


def _to_amount(value: Any) -> Decimal:
    try:
        return Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        raise ValidationException("Amount must be a number", code="INVALID_PARAMETER")


class BookingService(BaseService):
    """Booking creation, reads, status transitions and listings."""

    def __init__(self, db: Session, config: Optional[Settings] = None):
        super().__init__(db)
        self.config = config or default_settings
        self.repository = RepositoryFactory.create_booking_repository(db)
        self.room_repository = RepositoryFactory.create_room_repository(db)
        self._transitions: Dict[BookingStatus, Callable[[Booking, str, Optional[str]], None]] = {
            BookingStatus.CONFIRMED: self._confirm,
            BookingStatus.CANCELLED: self._cancel,
            BookingStatus.COMPLETED: self._complete,
        }

    @BaseService.measure_operation("create_booking")
    def create_booking(
        self,
        seeker: User,
        room_id: str,
        amount: Any,
        message: Optional[str] = None,
    ) -> Booking:
        """
        Create a pending booking with an unpaid payment record.

        Args:
            seeker: Account requesting the room
            room_id: Room being requested
            amount: Monthly rent the seeker agreed to, in major units
            message: Optional note to the owner

        Raises:
            ForbiddenException: Account cannot seek or has no verified phone
            NotFoundException: Room does not exist
            ValidationException: Room unavailable, own room or amount mismatch
            ConflictException: Seeker already has an active booking for the room
        """
        if not seeker.can_seek:
            raise ForbiddenException(
                "Only seekers can request bookings", code="INSUFFICIENT_PERMISSIONS"
            )
        if self.config.booking_requires_verified_phone and not seeker.phone_verified:
            raise ForbiddenException(
                "Verify your phone number before requesting a booking",
                code="PHONE_NOT_VERIFIED",
                hint="Verify your phone number and try again",
            )

        requested = _to_amount(amount)
        if requested <= 0:
            raise ValidationException("Amount must be greater than zero", code="INVALID_PARAMETER")

        with self.transaction():
            room = self.room_repository.get_by_id(room_id, load_relationships=False)
            if room is None:
                raise NotFoundException("Room not found", code="ROOM_NOT_FOUND")
            if not room.is_available:
                raise ValidationException(
                    "Room is not available for booking", code="ROOM_NOT_AVAILABLE"
                )
            if room.owner_id == seeker.id:
                raise ValidationException(
                    "You cannot book your own room", code="CANNOT_BOOK_OWN_ROOM"
                )
            if requested != _to_amount(room.monthly_rent):
                raise ValidationException(
                    "Amount does not match the room's monthly rent",
                    code="AMOUNT_MISMATCH",
                    details={"expected": str(room.monthly_rent)},
                )
            if self.repository.get_active_for_seeker_and_room(seeker.id, room.id):
                raise _already_booked()

            try:
                with self.db.begin_nested():
                    booking = self.repository.create_with_payment(
                        amount=requested,
                        currency=self.config.stripe_currency,
                        room_id=room.id,
                        seeker_id=seeker.id,
                        owner_id=room.owner_id,
                        status=BookingStatus.PENDING.value,
                        message=message,
                    )
            except IntegrityError:
                self.logger.warning(f"Concurrent active booking for room {room.id}")
                raise _already_booked()

        self.logger.info(f"Created booking {booking.id} for room {room_id}")
        return booking

    def _load_for_participant(self, booking_id: str, requester_id: str) -> Booking:
        booking = self.repository.get_by_id(booking_id)
        if booking is None:
            raise NotFoundException("Booking not found", code="BOOKING_NOT_FOUND")
        if not booking.is_participant(requester_id):
            raise ForbiddenException("You do not have access to this booking")
        return booking

    @BaseService.measure_operation("get_booking")
    def get_booking(self, booking_id: str, requester_id: str) -> Booking:
        return self._load_for_participant(booking_id, requester_id)

    @BaseService.measure_operation("update_booking_status")
    def update_status(
        self,
        booking_id: str,
        requester_id: str,
        new_status: BookingStatus,
        message: Optional[str] = None,
    ) -> Booking:
        """
        Move a booking to ``new_status``.

        Raises:
            NotFoundException: Booking does not exist
            ForbiddenException: Requester is not a participant, or not the owner
                for owner-only transitions
            ValidationException: Transition not allowed from the current status,
                or confirmation before payment when that is required
        """
        handler = self._transitions.get(BookingStatus(new_status))
        if handler is None:
            raise ValidationException(
                f"Cannot move a booking to {BookingStatus(new_status).value}",
                code="INVALID_BOOKING_STATE",
            )

        with self.transaction():
            booking = self._load_for_participant(booking_id, requester_id)
            handler(booking, requester_id, message)

        self.logger.info(f"Booking {booking_id} is now {booking.status}")
        return booking

    def _require_owner(self, booking: Booking, requester_id: str, action: str) -> None:
        if booking.owner_id != requester_id:
            raise ForbiddenException(f"Only the room owner can {action} this booking")

    def _invalid_state(self, booking: Booking, target: BookingStatus) -> ValidationException:
        return ValidationException(
            f"Cannot change booking from {booking.status} to {target.value}",
            code="INVALID_BOOKING_STATE",
        )

    def _confirm(self, booking: Booking, requester_id: str, message: Optional[str]) -> None:
        self._require_owner(booking, requester_id, "confirm")
        if booking.status != BookingStatus.PENDING.value:
            raise self._invalid_state(booking, BookingStatus.CONFIRMED)
        if self.config.booking_confirm_requires_payment:
            payment_status = booking.payment.status if booking.payment else None
            if payment_status != PaymentStatus.PAID.value:
                raise ValidationException(
                    "Booking cannot be confirmed until payment is completed",
                    code="PAYMENT_NOT_COMPLETED",
                    hint="Wait for the seeker's payment to complete",
                )
        booking.confirm(message)

    def _cancel(self, booking: Booking, requester_id: str, message: Optional[str]) -> None:
        if not booking.is_cancellable:
            raise self._invalid_state(booking, BookingStatus.CANCELLED)
        booking.cancel(requester_id, message)

    def _complete(self, booking: Booking, requester_id: str, message: Optional[str]) -> None:
        self._require_owner(booking, requester_id, "complete")
        if booking.status != BookingStatus.CONFIRMED.value:
            raise self._invalid_state(booking, BookingStatus.COMPLETED)
        booking.complete()

    @BaseService.measure_operation("list_user_bookings")
    def list_user_bookings(
        self,
        requester_id: str,
        user_id: str,
        list_type: BookingListType,
        status: Optional[BookingStatus] = None,
        page: int = 1,
        limit: int = 10,
        sort_by: BookingSortField = BookingSortField.CREATED_AT,
        sort_order: SortOrder = SortOrder.DESC,
    ) -> Dict[str, Any]:
        """
        Paginated bookings where ``user_id`` is the owner or the seeker.

        Returns:
            ``{"bookings": [...], "pagination": {page, limit, total, totalPages}}``
        """
        if requester_id != user_id:
            raise ForbiddenException("You can only view your own bookings")
        if page < 1:
            raise ValidationException("page must be at least 1", code="INVALID_PARAMETER")
        if limit < 1 or limit > MAX_PAGE_SIZE:
            raise ValidationException(
                f"limit must be between 1 and {MAX_PAGE_SIZE}", code="INVALID_PARAMETER"
            )

        bookings, total = self.repository.list_for_user(
            BookingListType(list_type),
            user_id,
            status=BookingStatus(status) if status is not None else None,
            sort_by=BookingSortField(sort_by),
            sort_order=SortOrder(sort_order),
            offset=(page - 1) * limit,
            limit=limit,
        )
        return {
            "bookings": bookings,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "totalPages": math.ceil(total / limit) if total else 0,
            },
        }
