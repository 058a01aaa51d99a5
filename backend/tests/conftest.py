# backend/tests/conftest.py
"""
Pytest configuration for the Room Rental backend tests.

Environment flags are set before any ``app`` import: settings and the rate
limiter read them at import time. Every test gets a fresh in-memory SQLite
database shared between the test and the app through a StaticPool.
"""

from datetime import datetime, timezone
from decimal import Decimal
import json
import os
from typing import Any, Dict, Generator, List, Mapping, Optional

os.environ["is_testing"] = "true"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-roomrental-at-least-32-chars")
os.environ["SMS_ENABLED"] = "false"

from fastapi.testclient import TestClient  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app import models  # noqa: E402,F401
from app.api.dependencies import get_db, get_payment_gateway, get_sms_sender  # noqa: E402
from app.auth import create_access_token  # noqa: E402
from app.database import Base  # noqa: E402
from app.main import app  # noqa: E402
from app.models.booking import Booking, BookingStatus  # noqa: E402
from app.models.booking_payment import BookingPayment, PaymentStatus  # noqa: E402
from app.models.room import Room  # noqa: E402
from app.models.user import User, UserRole  # noqa: E402
from app.ratelimit.dependency import set_store  # noqa: E402
from app.services.sms_service import LoggingSMSSender  # noqa: E402
from app.services.stripe_service import (  # noqa: E402
    GatewayIntent,
    GatewayRefund,
    InvalidSignatureError,
    PaymentGateway,
)

VALID_SIGNATURE = "t=1,v1=test-signature"


class FakeGateway(PaymentGateway):
    """In-memory gateway: records intents and refunds, accepts one webhook signature."""

    valid_signature = VALID_SIGNATURE

    def __init__(self) -> None:
        self.intents: List[Dict[str, Any]] = []
        self.refunds: List[Dict[str, Any]] = []
        self.intent_status = "requires_payment_method"
        self.fail_with: Optional[Exception] = None

    def create_intent(
        self,
        amount_minor: int,
        currency: str,
        metadata: Mapping[str, str],
        idempotency_key: str,
    ) -> GatewayIntent:
        if self.fail_with is not None:
            raise self.fail_with
        for existing in self.intents:
            if existing["idempotency_key"] == idempotency_key:
                return existing["intent"]
        intent_id = f"pi_test_{len(self.intents) + 1}"
        intent = GatewayIntent(
            id=intent_id, client_secret=f"{intent_id}_secret", status=self.intent_status
        )
        self.intents.append(
            {
                "amount_minor": amount_minor,
                "currency": currency,
                "metadata": dict(metadata),
                "idempotency_key": idempotency_key,
                "intent": intent,
            }
        )
        return intent

    def create_refund(
        self,
        intent_id: str,
        amount_minor: int,
        metadata: Mapping[str, str],
        idempotency_key: str,
    ) -> GatewayRefund:
        if self.fail_with is not None:
            raise self.fail_with
        for existing in self.refunds:
            if existing["idempotency_key"] == idempotency_key:
                return existing["refund"]
        refund = GatewayRefund(
            id=f"re_test_{len(self.refunds) + 1}", amount_minor=amount_minor, status="succeeded"
        )
        self.refunds.append(
            {
                "intent_id": intent_id,
                "amount_minor": amount_minor,
                "metadata": dict(metadata),
                "idempotency_key": idempotency_key,
                "refund": refund,
            }
        )
        return refund

    def parse_webhook(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        if not signature:
            raise InvalidSignatureError("No signature")
        if signature != VALID_SIGNATURE:
            raise InvalidSignatureError("Invalid signature")
        return json.loads(payload)


def stripe_event(
    event_id: str,
    event_type: str,
    booking_id: Optional[str],
    intent_id: str = "pi_test_1",
    created: Optional[int] = None,
    charge_id: str = "ch_test_1",
) -> Dict[str, Any]:
    """Minimal Stripe event body as delivered to the webhook."""
    if event_type.startswith("charge."):
        obj: Dict[str, Any] = {
            "id": charge_id,
            "object": "charge",
            "payment_intent": intent_id,
            "metadata": {"booking_id": booking_id} if booking_id else {},
        }
    else:
        obj = {
            "id": intent_id,
            "object": "payment_intent",
            "latest_charge": charge_id,
            "metadata": {"booking_id": booking_id} if booking_id else {},
        }
    if created is None:
        created = int(datetime.now(timezone.utc).timestamp())
    return {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "created": created,
        "data": {"object": obj},
    }


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Fresh schema per test on a single shared in-memory connection."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestSessionLocal()

    yield session

    session.rollback()
    session.close()
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def sms_sender() -> LoggingSMSSender:
    return LoggingSMSSender()


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def client(db: Session, sms_sender: LoggingSMSSender, fake_gateway: FakeGateway):
    """Create a test client bound to the test database and fake collaborators."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_sms_sender] = lambda: sms_sender
    app.dependency_overrides[get_payment_gateway] = lambda: fake_gateway

    # Don't use context manager - lifespan would try to create tables on the app engine
    test_client = TestClient(app)

    yield test_client

    app.dependency_overrides.clear()
    set_store(None)
    test_client.close()


def _make_user(db: Session, email: str, role: UserRole, **fields: Any) -> User:
    user = User(email=email, full_name=email.split("@")[0].title(), role=role.value, **fields)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def make_user(db: Session):
    def _factory(email: str, role: UserRole = UserRole.SEEKER, **fields: Any) -> User:
        return _make_user(db, email, role, **fields)

    return _factory


@pytest.fixture
def seeker(db: Session) -> User:
    """Seeker with an already verified phone."""
    return _make_user(
        db, "seeker@example.com", UserRole.SEEKER, phone="+919812345678", phone_verified=True
    )


@pytest.fixture
def owner(db: Session) -> User:
    return _make_user(db, "owner@example.com", UserRole.OWNER)


@pytest.fixture
def stranger(db: Session) -> User:
    return _make_user(db, "stranger@example.com", UserRole.SEEKER)


@pytest.fixture
def room(db: Session, owner: User) -> Room:
    room = Room(owner_id=owner.id, title="Sunny room near metro", monthly_rent=Decimal("15000.00"))
    db.add(room)
    db.commit()
    db.refresh(room)
    return room


@pytest.fixture
def booking(db: Session, seeker: User, owner: User, room: Room) -> Booking:
    """Pending booking with an unpaid payment."""
    booking = Booking(
        room_id=room.id,
        seeker_id=seeker.id,
        owner_id=owner.id,
        status=BookingStatus.PENDING.value,
        message="Looking to move in next month",
    )
    booking.payment = BookingPayment(
        amount=Decimal("15000.00"), currency="inr", status=PaymentStatus.UNPAID.value
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking


def auth_headers_for(user: User) -> Dict[str, str]:
    token = create_access_token(data={"sub": user.id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers_seeker(seeker: User) -> Dict[str, str]:
    return auth_headers_for(seeker)


@pytest.fixture
def auth_headers_owner(owner: User) -> Dict[str, str]:
    return auth_headers_for(owner)


@pytest.fixture
def auth_headers_stranger(stranger: User) -> Dict[str, str]:
    return auth_headers_for(stranger)


@pytest.fixture
def auth_headers():
    """Factory for bearer headers of an arbitrary user."""
    return auth_headers_for


@pytest.fixture
def make_stripe_event():
    return stripe_event
