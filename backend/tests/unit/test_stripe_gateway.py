from unittest.mock import MagicMock

from pydantic import SecretStr
import pytest
import stripe

from app.core.config import Settings
from app.core.exceptions import PaymentGatewayException
from app.services.stripe_service import InvalidSignatureError, StripeGateway


@pytest.fixture
def gateway(monkeypatch) -> StripeGateway:
    monkeypatch.setattr(stripe, "api_key", None)
    monkeypatch.setattr(stripe, "default_http_client", None)
    monkeypatch.setattr(stripe, "max_network_retries", 0)
    config = Settings(
        stripe_secret_key=SecretStr("sk_test_123"),
        stripe_webhook_secret=SecretStr("whsec_123"),
    )
    return StripeGateway(config)


def test_configures_client(gateway):
    assert gateway.configured is True
    assert stripe.api_key == "sk_test_123"
    assert stripe.max_network_retries == 1


def test_create_intent_passes_idempotency_key(gateway, monkeypatch):
    create = MagicMock(
        return_value=MagicMock(id="pi_1", client_secret="pi_1_secret", status="requires_payment")
    )
    monkeypatch.setattr(stripe.PaymentIntent, "create", create)

    intent = gateway.create_intent(1500000, "inr", {"booking_id": "B1"}, "booking-B1-intent-1")

    assert intent.id == "pi_1"
    assert intent.client_secret == "pi_1_secret"
    kwargs = create.call_args.kwargs
    assert kwargs["amount"] == 1500000
    assert kwargs["currency"] == "inr"
    assert kwargs["metadata"] == {"booking_id": "B1"}
    assert kwargs["idempotency_key"] == "booking-B1-intent-1"


def test_create_intent_wraps_stripe_errors(gateway, monkeypatch):
    create = MagicMock(side_effect=stripe.APIConnectionError("network down"))
    monkeypatch.setattr(stripe.PaymentIntent, "create", create)

    with pytest.raises(PaymentGatewayException) as exc_info:
        gateway.create_intent(100, "inr", {"booking_id": "B1"}, "key")

    assert exc_info.value.code == "PAYMENT_GATEWAY_ERROR"


def test_create_refund_targets_the_intent(gateway, monkeypatch):
    create = MagicMock(return_value=MagicMock(id="re_1", amount=500000, status="succeeded"))
    monkeypatch.setattr(stripe.Refund, "create", create)

    refund = gateway.create_refund("pi_1", 500000, {"booking_id": "B1"}, "booking-B1-refund-500000")

    assert (refund.id, refund.amount_minor, refund.status) == ("re_1", 500000, "succeeded")
    kwargs = create.call_args.kwargs
    assert kwargs["payment_intent"] == "pi_1"
    assert kwargs["amount"] == 500000
    assert kwargs["idempotency_key"] == "booking-B1-refund-500000"


def test_create_refund_wraps_stripe_errors(gateway, monkeypatch):
    create = MagicMock(side_effect=stripe.InvalidRequestError("already refunded", "charge"))
    monkeypatch.setattr(stripe.Refund, "create", create)

    with pytest.raises(PaymentGatewayException) as exc_info:
        gateway.create_refund("pi_1", 100, {}, "key")

    assert exc_info.value.code == "REFUND_FAILED"


def test_unconfigured_gateway_refuses_intents(monkeypatch):
    monkeypatch.setattr(stripe, "api_key", None)
    unconfigured = StripeGateway(Settings(stripe_secret_key=SecretStr("")))

    with pytest.raises(PaymentGatewayException):
        unconfigured.create_intent(100, "inr", {}, "key")


def test_parse_webhook_requires_signature(gateway):
    with pytest.raises(InvalidSignatureError):
        gateway.parse_webhook(b"{}", None)


def test_parse_webhook_rejects_bad_signature(gateway, monkeypatch):
    construct = MagicMock(side_effect=stripe.SignatureVerificationError("bad", "sig"))
    monkeypatch.setattr(stripe.Webhook, "construct_event", construct)

    with pytest.raises(InvalidSignatureError):
        gateway.parse_webhook(b"{}", "t=1,v1=bad")


def test_parse_webhook_returns_event_dict(gateway, monkeypatch):
    event = {"id": "evt_1", "type": "payment_intent.succeeded"}
    construct = MagicMock(return_value=event)
    monkeypatch.setattr(stripe.Webhook, "construct_event", construct)

    assert gateway.parse_webhook(b"{}", "t=1,v1=ok") == event
    construct.assert_called_once_with(b"{}", "t=1,v1=ok", "whsec_123")
