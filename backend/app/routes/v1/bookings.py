# backend/app/routes/v1/bookings.py
"""
Booking routes - API v1

Versioned booking endpoints under /api/v1/bookings.
All business logic delegated to BookingService and PaymentService.

Endpoints:
    POST / - Request a booking
    GET /user/{user_id} - Bookings where the user is owner or seeker (paginated)
    GET /{booking_id} - Booking details
    PUT /{booking_id}/status - Confirm, cancel or complete a booking
    GET /{booking_id}/payment-status - Payment state snapshot
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status

from ...api.dependencies import get_booking_service, get_current_active_user, get_payment_service
from ...core.enums import BookingListType, BookingSortField, SortOrder
from ...models.booking import BookingStatus
from ...models.user import User
from ...ratelimit.dependency import rate_limit
from ...schemas.base_responses import PaginatedResponse, create_paginated_response
from ...schemas.booking import BookingCreate, BookingResponse, BookingStatusUpdate
from ...schemas.payment_schemas import PaymentStatusResponse
from ...services.booking_service import MAX_PAGE_SIZE, BookingService
from ...services.payment_service import PaymentService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["bookings-v1"])


# ============================================================================
# SECTION 1: Static routes
# ============================================================================


@router.post(
    "",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("general"))],
    responses={
        403: {"description": "Not a seeker, or phone not verified"},
        404: {"description": "Room not found"},
        409: {"description": "Active booking already exists for this room"},
    },
)
async def create_booking(
    booking_data: BookingCreate = Body(...),
    current_user: User = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Request a room; the booking starts pending with an unpaid payment."""
    booking = await asyncio.to_thread(
        booking_service.create_booking,
        current_user,
        booking_data.room_id,
        booking_data.amount,
        booking_data.message,
    )
    return BookingResponse.model_validate(booking)


@router.get(
    "/user/{user_id}",
    response_model=PaginatedResponse[BookingResponse],
    dependencies=[Depends(rate_limit("general"))],
)
async def list_user_bookings(
    user_id: str,
    list_type: BookingListType = Query(BookingListType.SEEKER, alias="type"),
    booking_status: Optional[BookingStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    sort_by: BookingSortField = Query(BookingSortField.CREATED_AT, alias="sortBy"),
    sort_order: SortOrder = Query(SortOrder.DESC, alias="sortOrder"),
    current_user: User = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> PaginatedResponse[BookingResponse]:
    """List the caller's bookings as owner or as seeker."""
    result = await asyncio.to_thread(
        booking_service.list_user_bookings,
        requester_id=current_user.id,
        user_id=user_id,
        list_type=list_type,
        status=booking_status,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return create_paginated_response(
        items=[BookingResponse.model_validate(b) for b in result["bookings"]],
        total=result["pagination"]["total"],
        page=page,
        limit=limit,
    )


# ============================================================================
# SECTION 2: Dynamic routes (with path parameters - placed last)
# ============================================================================


@router.get(
    "/{booking_id}",
    response_model=BookingResponse,
    dependencies=[Depends(rate_limit("general"))],
)
async def get_booking(
    booking_id: str,
    current_user: User = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    booking = await asyncio.to_thread(booking_service.get_booking, booking_id, current_user.id)
    return BookingResponse.model_validate(booking)


@router.put(
    "/{booking_id}/status",
    response_model=BookingResponse,
    dependencies=[Depends(rate_limit("general"))],
    responses={
        400: {"description": "Transition not allowed or payment not completed"},
        403: {"description": "Not a participant, or owner-only transition"},
    },
)
async def update_booking_status(
    booking_id: str,
    update: BookingStatusUpdate = Body(...),
    current_user: User = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Move a booking to confirmed, cancelled or completed."""
    booking = await asyncio.to_thread(
        booking_service.update_status,
        booking_id,
        current_user.id,
        update.status,
        update.message,
    )
    return BookingResponse.model_validate(booking)


@router.get(
    "/{booking_id}/payment-status",
    response_model=PaymentStatusResponse,
    dependencies=[Depends(rate_limit("general"))],
)
async def get_payment_status(
    booking_id: str,
    current_user: User = Depends(get_current_active_user),
    payment_service: PaymentService = Depends(get_payment_service),
) -> PaymentStatusResponse:
    snapshot = await asyncio.to_thread(payment_service.get_status, booking_id, current_user.id)
    return PaymentStatusResponse(**snapshot)
