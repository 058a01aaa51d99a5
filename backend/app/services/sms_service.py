"""SMS delivery for verification codes.

``SMSSender`` is the seam the phone verification service depends on.
``TwilioSMSSender`` delivers through Twilio; ``LoggingSMSSender`` stands in
when SMS is disabled (local development, tests) and only logs a masked copy.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import StrEnum
import logging
import math
import re
from typing import Any, Optional

from twilio.base.exceptions import TwilioRestException
from twilio.http.http_client import TwilioHttpClient
from twilio.rest import Client

from app.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

MAX_SMS_LENGTH = 1600
_CODE_PATTERN = re.compile(r"\b\d{6}\b")


class SMSStatus(StrEnum):
    SUCCESS = "success"
    DISABLED = "disabled"
    ERROR = "error"


class SMSDeliveryError(Exception):
    """The SMS provider rejected or failed to accept the message."""


def mask_phone(phone: str) -> str:
    return f"***{phone[-4:]}" if phone and len(phone) >= 4 else "***"


def count_sms_segments(message: str) -> int:
    if not message:
        return 1
    is_ascii = all(ord(ch) < 128 for ch in message)
    if is_ascii:
        if len(message) <= 160:
            return 1
        return math.ceil(len(message) / 153)
    if len(message) <= 70:
        return 1
    return math.ceil(len(message) / 67)


class SMSSender(ABC):
    """Outbound SMS channel."""

    @abstractmethod
    def send(self, to_number: str, message: str) -> dict[str, Any]:
        """
        Send a message.

        Args:
            to_number: Recipient phone number in E.164 format (+919876543210)
            message: Message body (truncated past 1600 chars)

        Raises:
            SMSDeliveryError: if the provider did not accept the message
        """


class TwilioSMSSender(SMSSender):
    """Send SMS via Twilio."""

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: Optional[str] = None,
        messaging_service_sid: Optional[str] = None,
        timeout_seconds: int = 8,
        client: Optional[Client] = None,
    ) -> None:
        if not (from_number or messaging_service_sid):
            raise ValueError("Twilio sender needs a from number or a messaging service SID")
        self.from_number = from_number
        self.messaging_service_sid = messaging_service_sid
        self.client = client or Client(
            account_sid,
            auth_token,
            http_client=TwilioHttpClient(timeout=timeout_seconds),
        )

    def send(self, to_number: str, message: str) -> dict[str, Any]:
        if not to_number or not to_number.startswith("+"):
            raise SMSDeliveryError(f"Invalid phone number format: {mask_phone(to_number)}")

        if len(message) > MAX_SMS_LENGTH:
            message = message[: MAX_SMS_LENGTH - 3] + "..."

        segments = count_sms_segments(message)
        if segments > 1:
            logger.info(
                "SMS to %s: %s chars, %s segments", mask_phone(to_number), len(message), segments
            )

        payload: dict[str, Any] = {"body": message, "to": to_number}
        if self.messaging_service_sid:
            payload["messaging_service_sid"] = self.messaging_service_sid
        else:
            payload["from_"] = self.from_number

        try:
            twilio_message = self.client.messages.create(**payload)
        except TwilioRestException as exc:
            logger.error("Twilio error sending SMS to %s: %s", mask_phone(to_number), exc)
            raise SMSDeliveryError(str(exc)) from exc

        logger.info("SMS sent to %s, SID: %s", mask_phone(to_number), twilio_message.sid)
        return {
            "sid": twilio_message.sid,
            "status": getattr(twilio_message, "status", None),
            "to": to_number,
            "messaging_service_sid": self.messaging_service_sid,
        }


class LoggingSMSSender(SMSSender):
    """Sender used when SMS is disabled; never logs the code itself."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    def send(self, to_number: str, message: str) -> dict[str, Any]:
        self.sent.append((to_number, message))
        logger.info(
            "SMS disabled, would send to %s: %s",
            mask_phone(to_number),
            _CODE_PATTERN.sub("******", message),
        )
        return {"sid": None, "status": SMSStatus.DISABLED.value, "to": to_number}


def build_sms_sender(config: Settings = default_settings) -> SMSSender:
    """Twilio when configured and enabled, otherwise the logging sender."""
    auth_token = config.twilio_auth_token.get_secret_value() if config.twilio_auth_token else ""
    enabled = bool(
        config.sms_enabled
        and not config.is_testing
        and config.twilio_account_sid
        and auth_token
        and (config.twilio_phone_number or config.twilio_messaging_service_sid)
    )
    if not enabled:
        logger.info("SMS service disabled - Twilio credentials not configured")
        return LoggingSMSSender()
    return TwilioSMSSender(
        account_sid=config.twilio_account_sid,
        auth_token=auth_token,
        from_number=config.twilio_phone_number or None,
        messaging_service_sid=config.twilio_messaging_service_sid or None,
        timeout_seconds=config.outbound_timeout_seconds,
    )
