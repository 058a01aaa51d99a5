"""Schemas for phone number verification."""

from pydantic import Field

from ._strict_base import StrictModel, StrictRequestModel


class PhoneVerificationRequest(StrictRequestModel):
    phone: str = Field(..., min_length=10, max_length=20, description="Indian mobile number")


class PhoneVerifyConfirmRequest(StrictRequestModel):
    phone: str = Field(..., min_length=10, max_length=20)
    code: str = Field(..., min_length=6, max_length=6)


class PhoneVerificationSentResponse(StrictModel):
    success: bool = True
    message: str = "OTP sent successfully"
    phone: str
    expires_in_seconds: int


class PhoneVerifyResponse(StrictModel):
    phone: str
    verified: bool = True
