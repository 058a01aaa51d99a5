# backend/app/services/phone_verification_service.py
"""
Phone Verification Service for the Room Rental platform

Binds a phone number to an account through a one-time code:

- ``issue`` persists a fresh challenge for the canonical phone and texts the
  code through the configured ``SMSSender``.
- ``verify`` matches a code against the active challenge, counting failed
  attempts with a conditional UPDATE, and attaches the phone to the account.

At most one account may hold a phone as verified. The partial unique index
on ``users`` is authoritative; the holder lookup here is a fast path that
lets the caller see a Conflict before a code is spent.
"""

from datetime import datetime, timedelta, timezone
import hmac
import logging
import re
import secrets
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import Settings, settings as default_settings
from ..core.exceptions import (
    ConflictException,
    InvalidCodeException,
    InvalidOrExpiredException,
    NotFoundException,
    RateLimitedException,
    ServiceException,
    ValidationException,
)
from ..models.verification_challenge import VerificationChallenge
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .sms_service import SMSDeliveryError, SMSSender

logger = logging.getLogger(__name__)

_STRIP_PATTERN = re.compile(r"[^\d+]")
_VALID_PHONE = re.compile(r"^(\+91|91)?[6-9]\d{9}$")
_CODE_FORMAT = re.compile(r"^\d{6}$")

OTP_MESSAGE = (
    "Your Room Rental Platform verification code is: {code}. "
    "This code will expire in {minutes} minutes. Do not share this code with anyone."
)


def _strip(raw: str) -> str:
    return _STRIP_PATTERN.sub("", raw or "")


def normalize_phone(raw: str, country_code: str = "+91") -> str:
    """
    Canonical international form of a phone number.

    "9876543210", "919876543210" and "+91 98765-43210" all become
    "+919876543210". Anything else is returned stripped; ``is_valid_phone``
    rejects it.
    """
    cleaned = _strip(raw)
    country_digits = country_code.lstrip("+")
    if cleaned.startswith(country_code):
        return cleaned
    if cleaned.startswith(country_digits) and len(cleaned) == len(country_digits) + 10:
        return f"+{cleaned}"
    if len(cleaned) == 10 and cleaned.isdigit():
        return f"{country_code}{cleaned}"
    return cleaned


def is_valid_phone(raw: str) -> bool:
    return bool(_VALID_PHONE.match(_strip(raw)))


def generate_code() -> str:
    """Uniform 6-digit code from the OS CSPRNG."""
    return str(secrets.randbelow(900000) + 100000)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


class PhoneVerificationService(BaseService):
    """
    OTP issuance and verification.

    Collaborators are injected so routes and tests can swap the SMS channel
    and the clock.
    """

    def __init__(
        self,
        db: Session,
        sms_sender: SMSSender,
        config: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__(db)
        self.sms_sender = sms_sender
        self.config = config or default_settings
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.challenge_repository = RepositoryFactory.create_verification_challenge_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)

    @property
    def max_attempts(self) -> int:
        return self.config.otp_max_attempts

    def _canonical(self, raw_phone: str) -> str:
        if not is_valid_phone(raw_phone):
            raise ValidationException(
                "Invalid phone number format",
                code="INVALID_PHONE",
                hint="Please enter a valid 10-digit Indian mobile number",
            )
        return normalize_phone(raw_phone, self.config.default_country_code)

    def _ensure_not_claimed(self, phone: str, account_id: Optional[str]) -> None:
        holder = self.user_repository.get_verified_phone_holder(phone, exclude_user_id=account_id)
        if holder is not None:
            raise ConflictException(
                "Phone number already registered to another account",
                code="PHONE_ALREADY_REGISTERED",
                hint="Use a different phone number",
            )

    def _check_cooldown(self, phone: str, now: datetime) -> None:
        cooldown = self.config.otp_resend_cooldown_seconds
        if cooldown <= 0:
            return
        latest = self.challenge_repository.get_latest(phone)
        if latest is None or latest.created_at is None:
            return
        elapsed = (now - _as_utc(latest.created_at)).total_seconds()
        if elapsed < cooldown:
            wait = max(1, int(cooldown - elapsed))
            raise RateLimitedException(
                message=f"Please wait {wait} seconds before requesting a new OTP",
                code="OTP_COOLDOWN",
                retry_after=wait,
                hint="Use the code already sent or wait before requesting another",
            )

    @BaseService.measure_operation("issue_otp")
    def issue(self, phone: str, requester_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Issue a new OTP for ``phone``.

        Any pending challenge for the phone is discarded first so exactly one
        challenge is authoritative. An SMS failure is reported but the
        challenge stays persisted; re-issuing after the cooldown is safe.

        Returns:
            Canonical phone and the code lifetime in seconds
        """
        canonical = self._canonical(phone)
        now = self._clock()

        if requester_id:
            self._ensure_not_claimed(canonical, requester_id)
        self._check_cooldown(canonical, now)

        ttl = timedelta(minutes=self.config.otp_ttl_minutes)
        code = generate_code()
        with self.transaction():
            self.challenge_repository.purge_expired(now)
            self.challenge_repository.invalidate_for_phone(canonical)
            self.challenge_repository.create(
                phone=canonical,
                code=code,
                attempts=0,
                verified=False,
                created_at=now,
                expires_at=now + ttl,
            )

        message = OTP_MESSAGE.format(code=code, minutes=self.config.otp_ttl_minutes)
        try:
            self.sms_sender.send(canonical, message)
        except SMSDeliveryError as exc:
            prometheus_metrics.record_otp_event("issue", "sms_failed")
            self.logger.error("Failed to send OTP SMS to ***%s: %s", canonical[-4:], exc)
            raise ServiceException(
                "Failed to send verification code",
                code="SMS_SEND_FAILED",
                hint="Please try again in a moment",
            ) from exc

        prometheus_metrics.record_otp_event("issue", "sent")
        self.logger.info("Issued OTP for ***%s", canonical[-4:])
        return {"phone": canonical, "expires_in_seconds": int(ttl.total_seconds())}

    @BaseService.measure_operation("verify_otp")
    def verify(self, account_id: str, phone: str, code: str) -> Dict[str, Any]:
        """
        Verify ``code`` for ``phone`` and attach the phone to the account.

        Raises:
            ValidationException: Malformed phone or code
            InvalidOrExpiredException: No active challenge for the phone
            RateLimitedException: The challenge already used up its attempts
            InvalidCodeException: Wrong code; carries the attempts remaining
            NotFoundException: The account does not exist
            ConflictException: Another account holds the phone as verified
        """
        canonical = self._canonical(phone)
        supplied = (code or "").strip()
        if not _CODE_FORMAT.match(supplied):
            raise ValidationException(
                "Verification code must be 6 digits", code="INVALID_CODE_FORMAT"
            )

        now = self._clock()
        challenge = self.challenge_repository.get_active(canonical, now)
        if challenge is None:
            prometheus_metrics.record_otp_event("verify", "invalid_or_expired")
            raise InvalidOrExpiredException()

        if challenge.attempts >= self.max_attempts:
            with self.transaction():
                self.challenge_repository.remove(challenge)
            prometheus_metrics.record_otp_event("verify", "attempts_exceeded")
            raise self._attempts_exceeded()

        if not hmac.compare_digest(str(challenge.code), supplied):
            self._record_failed_attempt(challenge)

        self._claim_phone(challenge, account_id, canonical)
        prometheus_metrics.record_otp_event("verify", "verified")
        self.logger.info("Account %s verified phone ***%s", account_id, canonical[-4:])
        return {"phone": canonical, "verified": True}

    def _attempts_exceeded(self) -> RateLimitedException:
        return RateLimitedException(
            message="Too many failed attempts. Please request a new OTP.",
            code="OTP_ATTEMPTS_EXCEEDED",
            hint="Please request a new OTP and try again",
        )

    def _record_failed_attempt(self, challenge: VerificationChallenge) -> None:
        """Count a wrong code; the challenge is deleted once the cap is reached."""
        with self.transaction():
            attempts = self.challenge_repository.increment_attempts(
                challenge.id, self.max_attempts
            )
            if attempts is not None and attempts >= self.max_attempts:
                self.challenge_repository.remove(challenge)

        if attempts is None:
            # A concurrent caller used the last attempt
            prometheus_metrics.record_otp_event("verify", "attempts_exceeded")
            raise self._attempts_exceeded()

        prometheus_metrics.record_otp_event("verify", "invalid_code")
        raise InvalidCodeException(attempts_remaining=self.max_attempts - attempts)

    def _claim_phone(self, challenge: VerificationChallenge, account_id: str, phone: str) -> None:
        """
        Mark the challenge verified and move the phone onto the account.

        On a uniqueness conflict the verified challenge is committed but not
        consumed, so the same code can be retried once the conflict clears.
        """
        conflict = False
        with self.transaction():
            self.challenge_repository.mark_verified(challenge)
            user = self.user_repository.get_by_id(account_id)
            if user is None:
                raise NotFoundException("User not found", code="USER_NOT_FOUND")

            if self.user_repository.get_verified_phone_holder(phone, exclude_user_id=user.id):
                conflict = True
            else:
                try:
                    with self.db.begin_nested():
                        self.user_repository.set_verified_phone(user, phone)
                except IntegrityError:
                    self.logger.warning("Verified phone ***%s claimed concurrently", phone[-4:])
                    conflict = True
                else:
                    self.challenge_repository.remove(challenge)

        if conflict:
            prometheus_metrics.record_otp_event("verify", "conflict")
            raise ConflictException(
                "Phone number already registered to another account",
                code="PHONE_ALREADY_REGISTERED",
                hint="Use a different phone number",
            )
