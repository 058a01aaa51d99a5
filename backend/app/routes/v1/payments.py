# backend/app/routes/v1/payments.py
"""
Payment routes - API v1

Endpoints:
    POST /create-intent - Create a gateway payment intent for a booking
    POST /refund - Refund a paid booking (seeker or owner)
    GET /history/{user_id} - The caller's payments as a seeker (paginated)
    POST /webhook - Gateway event delivery (signature verified, reconciled)
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, status

from ...api.dependencies import get_current_active_user, get_payment_gateway, get_payment_service
from ...models.booking_payment import PaymentStatus
from ...models.user import User
from ...ratelimit.dependency import rate_limit
from ...schemas.base_responses import PaginatedResponse, create_paginated_response
from ...schemas.payment_schemas import (
    CreatePaymentIntentRequest,
    CreatePaymentIntentResponse,
    PaymentHistoryItem,
    RefundRequest,
    RefundResponse,
    WebhookResponse,
)
from ...services.booking_service import MAX_PAGE_SIZE
from ...services.payment_service import PaymentService, parse_stripe_event
from ...services.stripe_service import InvalidSignatureError, PaymentGateway

logger = logging.getLogger(__name__)

router = APIRouter(tags=["payments-v1"])


@router.post(
    "/create-intent",
    response_model=CreatePaymentIntentResponse,
    dependencies=[Depends(rate_limit("payments"))],
    responses={
        400: {"description": "Booking closed, already paid, or amount mismatch"},
        403: {"description": "Only the booking's seeker can pay"},
        500: {"description": "Payment gateway error; safe to retry"},
    },
)
async def create_payment_intent(
    payload: CreatePaymentIntentRequest = Body(...),
    current_user: User = Depends(get_current_active_user),
    payment_service: PaymentService = Depends(get_payment_service),
) -> CreatePaymentIntentResponse:
    """Create a payment intent for the booking amount; returns the client secret."""
    result = await asyncio.to_thread(
        payment_service.create_intent,
        payload.booking_id,
        payload.amount,
        current_user.id,
    )
    return CreatePaymentIntentResponse(
        client_secret=result["clientSecret"], payment_intent_id=result["paymentIntentId"]
    )


@router.post(
    "/refund",
    response_model=RefundResponse,
    dependencies=[Depends(rate_limit("payments"))],
    responses={
        400: {"description": "Payment not completed, already refunded, or amount too large"},
        403: {"description": "Not a participant of the booking"},
        500: {"description": "Payment gateway error; safe to retry"},
    },
)
async def refund_payment(
    payload: RefundRequest = Body(...),
    current_user: User = Depends(get_current_active_user),
    payment_service: PaymentService = Depends(get_payment_service),
) -> RefundResponse:
    result = await asyncio.to_thread(
        payment_service.refund,
        payload.booking_id,
        current_user.id,
        payload.amount,
        payload.reason,
    )
    return RefundResponse(
        refund_id=result["refundId"],
        refund_amount=result["refundAmount"],
        refund_date=result["refundDate"],
        booking_id=result["bookingId"],
    )


@router.get(
    "/history/{user_id}",
    response_model=PaginatedResponse[PaymentHistoryItem],
    dependencies=[Depends(rate_limit("general"))],
)
async def get_payment_history(
    user_id: str,
    payment_status: Optional[PaymentStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_active_user),
    payment_service: PaymentService = Depends(get_payment_service),
) -> PaginatedResponse[PaymentHistoryItem]:
    result = await asyncio.to_thread(
        payment_service.payment_history,
        requester_id=current_user.id,
        user_id=user_id,
        status=payment_status,
        page=page,
        limit=limit,
    )
    return create_paginated_response(
        items=[PaymentHistoryItem(**entry) for entry in result["payments"]],
        total=result["pagination"]["total"],
        page=page,
        limit=limit,
    )


@router.post("/webhook", response_model=WebhookResponse)
async def handle_gateway_webhook(
    request: Request,
    gateway: PaymentGateway = Depends(get_payment_gateway),
    payment_service: PaymentService = Depends(get_payment_service),
) -> WebhookResponse:
    """
    Verify and reconcile a Stripe webhook delivery.

    Redeliveries and out-of-order events are acknowledged with 200 so the
    gateway stops retrying; only signature failures are rejected.
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    try:
        event = gateway.parse_webhook(payload, signature)
    except InvalidSignatureError as exc:
        logger.warning(f"Webhook rejected: {exc}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": str(exc), "code": "INVALID_SIGNATURE"},
        )

    gateway_event = parse_stripe_event(event)
    outcome = await asyncio.to_thread(payment_service.reconcile, gateway_event)
    return WebhookResponse(status="success", event_type=gateway_event.event_type, outcome=outcome)
