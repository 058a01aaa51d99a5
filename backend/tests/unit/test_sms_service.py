from unittest.mock import MagicMock

from pydantic import SecretStr
import pytest
from twilio.base.exceptions import TwilioRestException

from app.core.config import Settings
from app.services.sms_service import (
    MAX_SMS_LENGTH,
    LoggingSMSSender,
    SMSDeliveryError,
    TwilioSMSSender,
    build_sms_sender,
    count_sms_segments,
    mask_phone,
)


@pytest.fixture
def twilio_client():
    client = MagicMock()
    client.messages.create.return_value = MagicMock(sid="SM123", status="queued")
    return client


def _twilio(client, **kwargs):
    kwargs.setdefault("from_number", "+15005550006")
    return TwilioSMSSender("AC123", "token", client=client, **kwargs)


def test_mask_phone():
    assert mask_phone("+919876543210") == "***3210"
    assert mask_phone("12") == "***"


def test_count_sms_segments():
    assert count_sms_segments("a" * 160) == 1
    assert count_sms_segments("a" * 161) == 2
    assert count_sms_segments("न" * 70) == 1
    assert count_sms_segments("न" * 71) == 2


def test_twilio_sends_from_number(twilio_client):
    result = _twilio(twilio_client).send("+919876543210", "Your code is 123456")

    twilio_client.messages.create.assert_called_once_with(
        body="Your code is 123456", to="+919876543210", from_="+15005550006"
    )
    assert result["sid"] == "SM123"
    assert result["status"] == "queued"


def test_twilio_prefers_messaging_service(twilio_client):
    _twilio(twilio_client, messaging_service_sid="MG1").send("+919876543210", "hi")

    kwargs = twilio_client.messages.create.call_args.kwargs
    assert kwargs["messaging_service_sid"] == "MG1"
    assert "from_" not in kwargs


def test_twilio_truncates_long_messages(twilio_client):
    _twilio(twilio_client).send("+919876543210", "x" * 2000)

    body = twilio_client.messages.create.call_args.kwargs["body"]
    assert len(body) == MAX_SMS_LENGTH
    assert body.endswith("...")


def test_twilio_rejects_non_e164_number(twilio_client):
    with pytest.raises(SMSDeliveryError):
        _twilio(twilio_client).send("9876543210", "hi")
    twilio_client.messages.create.assert_not_called()


def test_twilio_errors_become_delivery_errors(twilio_client):
    twilio_client.messages.create.side_effect = TwilioRestException(
        400, "https://api.twilio.com", msg="Invalid To number"
    )

    with pytest.raises(SMSDeliveryError):
        _twilio(twilio_client).send("+919876543210", "hi")


def test_twilio_requires_a_sender(twilio_client):
    with pytest.raises(ValueError):
        TwilioSMSSender("AC123", "token", client=twilio_client)


def test_logging_sender_records_without_leaking_code(caplog):
    sender = LoggingSMSSender()

    with caplog.at_level("INFO"):
        result = sender.send("+919876543210", "Your code is 123456")

    assert result["status"] == "disabled"
    assert sender.sent == [("+919876543210", "Your code is 123456")]
    assert "123456" not in caplog.text
    assert "***3210" in caplog.text


def test_build_sms_sender_without_credentials():
    assert isinstance(build_sms_sender(Settings(sms_enabled=True)), LoggingSMSSender)


def test_build_sms_sender_never_uses_twilio_in_tests():
    config = Settings(
        sms_enabled=True,
        is_testing=True,
        twilio_account_sid="AC123",
        twilio_auth_token=SecretStr("token"),
        twilio_phone_number="+15005550006",
    )
    assert isinstance(build_sms_sender(config), LoggingSMSSender)
