# backend/app/services/stripe_service.py
"""
Stripe gateway adapter.

``PaymentGateway`` is what the payment service depends on; ``StripeGateway``
is the production implementation. Outbound calls use a bounded HTTP timeout
and a single network retry, and intent creation carries an idempotency key so
that retry cannot double-charge.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
import logging
from typing import Any, Dict, Mapping, Optional

import stripe

from ..core.config import Settings, settings as default_settings
from ..core.exceptions import PaymentGatewayException

logger = logging.getLogger(__name__)


class InvalidSignatureError(Exception):
    """Webhook payload did not carry a valid gateway signature."""


@dataclass(frozen=True)
class GatewayIntent:
    id: str
    client_secret: str
    status: Optional[str] = None


@dataclass(frozen=True)
class GatewayRefund:
    id: str
    amount_minor: int
    status: Optional[str] = None


class PaymentGateway(ABC):
    """External payment gateway."""

    @abstractmethod
    def create_intent(
        self,
        amount_minor: int,
        currency: str,
        metadata: Mapping[str, str],
        idempotency_key: str,
    ) -> GatewayIntent:
        """
        Create a payment intent.

        Raises:
            PaymentGatewayException: The gateway rejected or failed the call
        """

    @abstractmethod
    def create_refund(
        self,
        intent_id: str,
        amount_minor: int,
        metadata: Mapping[str, str],
        idempotency_key: str,
    ) -> GatewayRefund:
        """
        Refund all or part of a settled payment intent.

        Raises:
            PaymentGatewayException: The gateway rejected or failed the call
        """

    @abstractmethod
    def parse_webhook(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """
        Verify and decode a webhook delivery.

        Raises:
            InvalidSignatureError: Missing or invalid signature
        """


class StripeGateway(PaymentGateway):
    """PaymentGateway backed by the Stripe API."""

    def __init__(self, config: Settings = default_settings):
        self.config = config
        self.configured = bool(config.stripe_secret_key.get_secret_value())
        if self.configured:
            stripe.api_key = config.stripe_secret_key.get_secret_value()
            stripe.default_http_client = stripe.RequestsClient(
                timeout=config.outbound_timeout_seconds
            )
            stripe.max_network_retries = 1
            logger.info("Stripe gateway configured")
        else:
            logger.warning("Stripe secret key not configured - intent creation will fail")

    def create_intent(
        self,
        amount_minor: int,
        currency: str,
        metadata: Mapping[str, str],
        idempotency_key: str,
    ) -> GatewayIntent:
        if not self.configured:
            raise PaymentGatewayException("Payment gateway is not configured")
        try:
            intent = stripe.PaymentIntent.create(
                amount=amount_minor,
                currency=currency,
                automatic_payment_methods={"enabled": True},
                metadata=dict(metadata),
                idempotency_key=idempotency_key,
            )
        except stripe.StripeError as exc:
            logger.error(
                "Stripe PaymentIntent.create failed for booking %s: %s",
                metadata.get("booking_id"),
                exc,
            )
            raise PaymentGatewayException(
                "Payment gateway request failed",
                details={"gateway_error": getattr(exc, "user_message", None) or str(exc)},
            ) from exc

        return GatewayIntent(id=intent.id, client_secret=intent.client_secret, status=intent.status)

    def create_refund(
        self,
        intent_id: str,
        amount_minor: int,
        metadata: Mapping[str, str],
        idempotency_key: str,
    ) -> GatewayRefund:
        if not self.configured:
            raise PaymentGatewayException("Payment gateway is not configured")
        try:
            refund = stripe.Refund.create(
                payment_intent=intent_id,
                amount=amount_minor,
                metadata=dict(metadata),
                idempotency_key=idempotency_key,
            )
        except stripe.StripeError as exc:
            logger.error("Stripe Refund.create failed for intent %s: %s", intent_id, exc)
            raise PaymentGatewayException(
                "Refund request failed",
                code="REFUND_FAILED",
                details={"gateway_error": getattr(exc, "user_message", None) or str(exc)},
            ) from exc

        return GatewayRefund(id=refund.id, amount_minor=refund.amount, status=refund.status)

    def parse_webhook(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        secret = self.config.stripe_webhook_secret.get_secret_value()
        if not signature:
            raise InvalidSignatureError("No signature")
        if not secret:
            logger.error("No webhook secret configured")
            raise InvalidSignatureError("Webhook secret not configured")
        try:
            event = stripe.Webhook.construct_event(payload, signature, secret)
        except stripe.SignatureVerificationError as exc:
            raise InvalidSignatureError("Invalid signature") from exc
        except ValueError as exc:
            raise InvalidSignatureError("Invalid payload") from exc
        return event.to_dict() if hasattr(event, "to_dict") else dict(event)
