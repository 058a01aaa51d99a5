# backend/app/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected. The SMS sender and the
payment gateway are process-wide; tests replace them through
``app.dependency_overrides``.
"""

from functools import lru_cache
import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from ...core.config import settings
from ...services.booking_service import BookingService
from ...services.payment_service import PaymentService
from ...services.phone_verification_service import PhoneVerificationService
from ...services.sms_service import SMSSender, build_sms_sender
from ...services.stripe_service import PaymentGateway, StripeGateway
from .database import get_db

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_sms_sender() -> SMSSender:
    """Get the process-wide SMS sender."""
    return build_sms_sender(settings)


@lru_cache(maxsize=1)
def get_payment_gateway() -> PaymentGateway:
    """Get the process-wide payment gateway."""
    return StripeGateway(settings)


def get_phone_verification_service(
    db: Session = Depends(get_db),
    sms_sender: SMSSender = Depends(get_sms_sender),
) -> PhoneVerificationService:
    """Get PhoneVerificationService instance with proper dependencies."""
    return PhoneVerificationService(db, sms_sender)


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """
    Get booking service instance.

    Args:
        db: Database session

    Returns:
        BookingService instance
    """
    return BookingService(db)


def get_payment_service(
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> PaymentService:
    """Get PaymentService instance with the configured gateway."""
    return PaymentService(db, gateway)
