# backend/app/core/config.py
import logging
import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


if os.getenv("CI") or os.getenv("is_testing", "").lower() == "true":
    _DEFAULT_SECRET_KEY = SecretStr("ci-test-secret-key-not-for-production")
else:
    _DEFAULT_SECRET_KEY = SecretStr("")


class Settings(BaseSettings):
    environment: str = Field(default="development", description="Deployment environment")
    log_level: str = Field(default="INFO", description="Root log level")

    database_url: str = Field(
        default="sqlite:///./roomrental.db",
        description="SQLAlchemy database URL",
    )

    secret_key: SecretStr = Field(
        default=_DEFAULT_SECRET_KEY,
        description="Secret key for JWT tokens",
    )
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 720  # 12 hours

    # Phone verification
    otp_ttl_minutes: int = Field(default=10, description="Minutes before an OTP expires")
    otp_max_attempts: int = Field(default=3, description="Wrong codes allowed per OTP")
    otp_resend_cooldown_seconds: int = Field(
        default=60, description="Minimum seconds between OTP issues for one phone"
    )
    default_country_code: str = Field(
        default="+91", description="Country prefix added to bare national numbers"
    )

    # Booking policy
    booking_confirm_requires_payment: bool = Field(
        default=True,
        description="Owner may only confirm a booking once its payment is paid",
    )
    booking_requires_verified_phone: bool = Field(
        default=True,
        description="Seekers must verify a phone number before requesting a booking",
    )

    # Stripe Configuration
    stripe_secret_key: SecretStr = Field(
        default=SecretStr(""),
        description="Stripe secret key for backend API calls",
    )
    stripe_webhook_secret: SecretStr = Field(
        default=SecretStr(""),
        description="Stripe webhook signing secret",
    )
    stripe_currency: str = Field(default="inr", description="Default currency for payments")
    outbound_timeout_seconds: int = Field(
        default=8, description="HTTP timeout for payment gateway and SMS calls"
    )

    # Twilio Configuration
    twilio_account_sid: str = Field(default="", description="Twilio account SID")
    twilio_auth_token: SecretStr = Field(default=SecretStr(""), description="Twilio auth token")
    twilio_phone_number: str = Field(default="", description="Sender number in E.164 format")
    twilio_messaging_service_sid: str = Field(
        default="", description="Optional Twilio messaging service SID"
    )
    sms_enabled: bool = Field(default=False, description="Send real SMS through Twilio")

    cors_origins: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    is_testing: bool = False  # Set to True when running tests

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,  # allows SECRET_KEY to match secret_key
        extra="ignore",
    )

    @field_validator("stripe_currency")
    @classmethod
    def _lower_currency(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("otp_max_attempts")
    @classmethod
    def _positive_attempts(cls, value: int) -> int:
        if value < 1:
            raise ValueError("otp_max_attempts must be at least 1")
        return value

    def get_database_url(self) -> str:
        """Return the database URL, refusing to run tests against a non-local database."""
        if self.is_testing and not self.database_url.startswith("sqlite"):
            if "test" not in self.database_url.lower():
                raise RuntimeError(
                    "Refusing to run tests against a database whose name does not contain 'test'"
                )
        return self.database_url


settings = Settings()
