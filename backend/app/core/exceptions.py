# backend/app/core/exceptions.py
"""
Domain-specific exceptions for the Room Rental platform.

Every exception carries a stable machine-readable ``code``, a human-readable
``message`` and an optional remediation ``hint``. The API layer renders them
as problem+json documents (see ``app.errors``).
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code: str = "INTERNAL_SERVER_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        hint: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        self.hint = hint
        self.headers = headers
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        detail: Dict[str, Any] = {
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }
        if self.hint:
            detail["hint"] = self.hint
        return HTTPException(status_code=self.status_code, detail=detail, headers=self.headers)


class ValidationException(DomainException):
    """Raised when business validation fails (malformed phone, bad pagination...)."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "VALIDATION_ERROR"


class InvalidCodeException(ValidationException):
    """The supplied OTP did not match the active challenge."""

    default_code = "OTP_INVALID_CODE"

    def __init__(self, attempts_remaining: int):
        super().__init__(
            message=f"Invalid OTP. {attempts_remaining} attempt(s) remaining.",
            details={"attempts_remaining": attempts_remaining},
            hint="Check the code sent to your phone and try again",
        )
        self.attempts_remaining = attempts_remaining


class InvalidOrExpiredException(ValidationException):
    """No active challenge exists for the phone (never issued, consumed or expired)."""

    default_code = "OTP_INVALID_OR_EXPIRED"

    def __init__(self, message: str = "OTP not found or has expired"):
        super().__init__(message=message, hint="Please request a new OTP and try again")


class AuthenticationException(DomainException):
    """Raised when the caller is not authenticated."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_code = "UNAUTHORIZED"


class ForbiddenException(DomainException):
    """Raised when user lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN
    default_code = "FORBIDDEN"


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND
    default_code = "RESOURCE_NOT_FOUND"


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT
    default_code = "CONFLICT"


class RateLimitedException(DomainException):
    """Raised when a request-rate cap or an attempt cap is exceeded."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_code = "RATE_LIMIT_EXCEEDED"

    def __init__(
        self,
        message: str = "Too many requests",
        code: Optional[str] = None,
        retry_after: Optional[int] = None,
        hint: Optional[str] = None,
    ):
        headers = {"Retry-After": str(retry_after)} if retry_after is not None else None
        details = {"retry_after": retry_after} if retry_after is not None else None
        super().__init__(message=message, code=code, details=details, hint=hint, headers=headers)
        self.retry_after = retry_after


class PaymentGatewayException(DomainException):
    """Raised when the external payment gateway rejects or fails a call."""

    default_code = "PAYMENT_GATEWAY_ERROR"

    def __init__(
        self,
        message: str = "Payment gateway request failed",
        details: Optional[Dict[str, Any]] = None,
        code: Optional[str] = None,
    ):
        super().__init__(
            message=message, code=code, details=details, hint="Please try again in a moment"
        )


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    default_code = "INTERNAL_SERVER_ERROR"


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
