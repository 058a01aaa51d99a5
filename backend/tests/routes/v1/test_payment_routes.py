import json
from decimal import Decimal

from fastapi.testclient import TestClient

from app.core.exceptions import PaymentGatewayException
from app.models.booking_payment import PaymentStatus

URL = "/api/v1/payments"


def _deliver(client: TestClient, event, signature):
    headers = {"Content-Type": "application/json"}
    if signature is not None:
        headers["Stripe-Signature"] = signature
    return client.post(f"{URL}/webhook", content=json.dumps(event), headers=headers)


def test_create_intent(client: TestClient, booking, auth_headers_seeker, fake_gateway):
    res = client.post(
        f"{URL}/create-intent",
        json={"bookingId": booking.id, "amount": "15000"},
        headers=auth_headers_seeker,
    )

    assert res.status_code == 200
    assert res.json() == {"clientSecret": "pi_test_1_secret", "paymentIntentId": "pi_test_1"}
    assert fake_gateway.intents[0]["amount_minor"] == 1500000


def test_create_intent_by_owner_is_forbidden(client: TestClient, booking, auth_headers_owner):
    res = client.post(
        f"{URL}/create-intent",
        json={"bookingId": booking.id, "amount": "15000"},
        headers=auth_headers_owner,
    )
    assert res.status_code == 403


def test_create_intent_gateway_failure(
    client: TestClient, booking, auth_headers_seeker, fake_gateway
):
    fake_gateway.fail_with = PaymentGatewayException()

    res = client.post(
        f"{URL}/create-intent",
        json={"bookingId": booking.id, "amount": "15000"},
        headers=auth_headers_seeker,
    )

    assert res.status_code == 500
    assert res.json()["code"] == "PAYMENT_GATEWAY_ERROR"


def test_create_intent_rejects_mismatched_amount(
    client: TestClient, db, booking, auth_headers_seeker, fake_gateway
):
    res = client.post(
        f"{URL}/create-intent",
        json={"bookingId": booking.id, "amount": "1"},
        headers=auth_headers_seeker,
    )

    assert res.status_code == 400
    assert res.json()["code"] == "AMOUNT_MISMATCH"
    assert fake_gateway.intents == []
    db.refresh(booking)
    assert booking.payment.amount == Decimal("15000.00")


def test_create_intent_without_amount_charges_booking(
    client: TestClient, booking, auth_headers_seeker, fake_gateway
):
    res = client.post(
        f"{URL}/create-intent", json={"bookingId": booking.id}, headers=auth_headers_seeker
    )

    assert res.status_code == 200
    assert fake_gateway.intents[0]["amount_minor"] == 1500000

def test_webhook_rejects_missing_signature(client: TestClient, booking, make_stripe_event):
    res = _deliver(client, make_stripe_event("evt_1", "payment_intent.succeeded", booking.id), None)

    assert res.status_code == 400
    assert res.json()["code"] == "INVALID_SIGNATURE"


def test_webhook_rejects_bad_signature(
    client: TestClient, db, booking, make_stripe_event
):
    res = _deliver(
        client, make_stripe_event("evt_1", "payment_intent.succeeded", booking.id), "t=1,v1=forged"
    )

    assert res.status_code == 400
    assert res.json()["code"] == "INVALID_SIGNATURE"
    db.refresh(booking)
    assert booking.payment.status == PaymentStatus.UNPAID.value


def test_webhook_applies_and_deduplicates(
    client: TestClient, db, booking, make_stripe_event, fake_gateway
):
    event = make_stripe_event("evt_1", "payment_intent.succeeded", booking.id)

    first = _deliver(client, event, fake_gateway.valid_signature)
    second = _deliver(client, event, fake_gateway.valid_signature)

    assert first.status_code == 200
    assert first.json() == {
        "status": "success",
        "eventType": "payment_intent.succeeded",
        "outcome": "applied",
    }
    assert second.status_code == 200
    assert second.json()["outcome"] == "duplicate"
    db.expire_all()
    assert booking.payment.status == PaymentStatus.PAID.value


def test_webhook_ignores_out_of_order_events(
    client: TestClient, db, booking, make_stripe_event, fake_gateway
):
    paid = make_stripe_event("evt_2", "payment_intent.succeeded", booking.id, created=2_000_000_000)
    processing = make_stripe_event(
        "evt_1", "payment_intent.processing", booking.id, created=1_999_999_000
    )

    assert _deliver(client, paid, fake_gateway.valid_signature).json()["outcome"] == "applied"
    res = _deliver(client, processing, fake_gateway.valid_signature)

    assert res.status_code == 200
    assert res.json()["outcome"] == "stale"
    db.expire_all()
    assert booking.payment.status == PaymentStatus.PAID.value


def test_pay_then_confirm_end_to_end(
    client: TestClient,
    db,
    booking,
    auth_headers_seeker,
    auth_headers_owner,
    make_stripe_event,
    fake_gateway,
):
    intent = client.post(
        f"{URL}/create-intent",
        json={"bookingId": booking.id, "amount": "15000"},
        headers=auth_headers_seeker,
    ).json()

    status = client.get(
        f"/api/v1/bookings/{booking.id}/payment-status", headers=auth_headers_seeker
    )
    assert status.json()["status"] == "pending"
    assert status.json()["orderId"] == intent["paymentIntentId"]

    # No booking metadata on the event; it resolves through the intent id
    event = make_stripe_event(
        "evt_paid", "payment_intent.succeeded", None, intent_id=intent["paymentIntentId"]
    )
    assert _deliver(client, event, fake_gateway.valid_signature).json()["outcome"] == "applied"

    res = client.put(
        f"/api/v1/bookings/{booking.id}/status",
        json={"status": "confirmed"},
        headers=auth_headers_owner,
    )
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "confirmed"
    assert body["payment"]["status"] == "paid"
    assert body["payment"]["paymentDate"] is not None


def _pay(client: TestClient, booking, headers, fake_gateway, make_stripe_event):
    intent = client.post(
        f"{URL}/create-intent", json={"bookingId": booking.id}, headers=headers
    ).json()
    event = make_stripe_event(
        "evt_paid", "payment_intent.succeeded", booking.id, intent_id=intent["paymentIntentId"]
    )
    assert _deliver(client, event, fake_gateway.valid_signature).json()["outcome"] == "applied"


def test_refund_paid_booking(
    client: TestClient, db, booking, auth_headers_seeker, make_stripe_event, fake_gateway
):
    _pay(client, booking, auth_headers_seeker, fake_gateway, make_stripe_event)

    res = client.post(
        f"{URL}/refund",
        json={"bookingId": booking.id, "reason": "Found another place"},
        headers=auth_headers_seeker,
    )

    assert res.status_code == 200
    body = res.json()
    assert body["refundId"] == "re_test_1"
    assert body["bookingId"] == booking.id
    assert Decimal(str(body["refundAmount"])) == Decimal("15000")
    assert body["refundDate"]
    db.expire_all()
    assert booking.payment.status == PaymentStatus.REFUNDED.value
    assert booking.status == "cancelled"


def test_refund_unpaid_booking(client: TestClient, booking, auth_headers_owner):
    res = client.post(f"{URL}/refund", json={"bookingId": booking.id}, headers=auth_headers_owner)

    assert res.status_code == 400
    assert res.json()["code"] == "PAYMENT_NOT_COMPLETED"


def test_refund_by_outsider_is_forbidden(client: TestClient, booking, auth_headers_stranger):
    res = client.post(
        f"{URL}/refund", json={"bookingId": booking.id}, headers=auth_headers_stranger
    )
    assert res.status_code == 403


def test_refund_requires_auth(client: TestClient, booking):
    res = client.post(f"{URL}/refund", json={"bookingId": booking.id})
    assert res.status_code == 401


def test_payment_history(
    client: TestClient, seeker, booking, auth_headers_seeker, make_stripe_event, fake_gateway
):
    assert client.get(f"{URL}/history/{seeker.id}", headers=auth_headers_seeker).json()[
        "items"
    ] == []

    _pay(client, booking, auth_headers_seeker, fake_gateway, make_stripe_event)
    res = client.get(
        f"{URL}/history/{seeker.id}",
        params={"status": "paid", "limit": 5},
        headers=auth_headers_seeker,
    )

    assert res.status_code == 200
    body = res.json()
    (item,) = body["items"]
    assert item["bookingId"] == booking.id
    assert item["roomTitle"] == "Sunny room near metro"
    assert item["status"] == "paid"
    assert body["pagination"] == {"page": 1, "limit": 5, "total": 1, "totalPages": 1}


def test_payment_history_of_someone_else_is_forbidden(
    client: TestClient, owner, auth_headers_seeker
):
    res = client.get(f"{URL}/history/{owner.id}", headers=auth_headers_seeker)
    assert res.status_code == 403


def test_payment_history_rejects_unknown_status(client: TestClient, seeker, auth_headers_seeker):
    res = client.get(
        f"{URL}/history/{seeker.id}", params={"status": "lost"}, headers=auth_headers_seeker
    )
    assert res.status_code == 400
    assert res.json()["code"] == "VALIDATION_ERROR"
