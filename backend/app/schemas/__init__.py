# backend/app/schemas/__init__.py
"""
Pydantic schemas for the Room Rental platform.

Request models forbid unknown fields; response models serialize with
camelCase aliases.
"""

from ._strict_base import StrictModel, StrictRequestModel
from .base_responses import (
    HealthCheckResponse,
    PaginatedResponse,
    PaginationMeta,
    create_paginated_response,
)

# Booking schemas
from .booking import BookingCreate, BookingResponse, BookingStatusUpdate

# Payment schemas
from .payment_schemas import (
    CreatePaymentIntentRequest,
    CreatePaymentIntentResponse,
    PaymentHistoryItem,
    PaymentStatusResponse,
    RefundRequest,
    RefundResponse,
    WebhookResponse,
)

# Phone verification schemas
from .phone import (
    PhoneVerificationRequest,
    PhoneVerificationSentResponse,
    PhoneVerifyConfirmRequest,
    PhoneVerifyResponse,
)

__all__ = [
    "StrictModel",
    "StrictRequestModel",
    # Shared responses
    "HealthCheckResponse",
    "PaginatedResponse",
    "PaginationMeta",
    "create_paginated_response",
    # Booking schemas
    "BookingCreate",
    "BookingStatusUpdate",
    "BookingResponse",
    # Payment schemas
    "CreatePaymentIntentRequest",
    "CreatePaymentIntentResponse",
    "PaymentHistoryItem",
    "PaymentStatusResponse",
    "RefundRequest",
    "RefundResponse",
    "WebhookResponse",
    # Phone verification schemas
    "PhoneVerificationRequest",
    "PhoneVerifyConfirmRequest",
    "PhoneVerificationSentResponse",
    "PhoneVerifyResponse",
]
