# backend/app/routes/v1/phone.py
"""
Phone verification routes - API v1

Endpoints:
    POST /verify-phone - Issue an OTP to a phone number
    POST /verify-phone/confirm - Verify the OTP and attach the phone to the caller

Both endpoints share the strict ``phone_verification`` rate-limit policy.
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, status

from ...api.dependencies import (
    get_current_active_user,
    get_current_active_user_optional,
    get_phone_verification_service,
)
from ...models.user import User
from ...ratelimit.dependency import rate_limit
from ...schemas.phone import (
    PhoneVerificationRequest,
    PhoneVerificationSentResponse,
    PhoneVerifyConfirmRequest,
    PhoneVerifyResponse,
)
from ...services.phone_verification_service import PhoneVerificationService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["phone-verification-v1"])


@router.post(
    "",
    response_model=PhoneVerificationSentResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(rate_limit("phone_verification"))],
    responses={
        400: {"description": "Invalid phone number"},
        409: {"description": "Phone already registered to another account"},
        429: {"description": "Too many requests or resend cooldown"},
    },
)
async def request_phone_verification(
    payload: PhoneVerificationRequest,
    current_user: Optional[User] = Depends(get_current_active_user_optional),
    service: PhoneVerificationService = Depends(get_phone_verification_service),
) -> PhoneVerificationSentResponse:
    """Send a verification code to the phone."""
    result = await asyncio.to_thread(
        service.issue,
        payload.phone,
        current_user.id if current_user else None,
    )
    return PhoneVerificationSentResponse(
        phone=result["phone"], expires_in_seconds=result["expires_in_seconds"]
    )


@router.post(
    "/confirm",
    response_model=PhoneVerifyResponse,
    dependencies=[Depends(rate_limit("phone_verification"))],
    responses={
        400: {"description": "Invalid, wrong or expired code"},
        404: {"description": "Account not found"},
        409: {"description": "Phone already registered to another account"},
        429: {"description": "Too many failed attempts"},
    },
)
async def confirm_phone_verification(
    payload: PhoneVerifyConfirmRequest,
    current_user: User = Depends(get_current_active_user),
    service: PhoneVerificationService = Depends(get_phone_verification_service),
) -> PhoneVerifyResponse:
    """Verify the code and mark the caller's phone as verified."""
    result = await asyncio.to_thread(service.verify, current_user.id, payload.phone, payload.code)
    return PhoneVerifyResponse(phone=result["phone"], verified=result["verified"])
