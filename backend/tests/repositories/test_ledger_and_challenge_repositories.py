from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.orm import Session

from app.models.payment_event import PaymentEvent, PaymentEventStatus
from app.models.verification_challenge import VerificationChallenge
from app.repositories.factory import RepositoryFactory

NOW = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)
PHONE = "+919876543210"


@pytest.fixture
def challenges(db: Session):
    return RepositoryFactory.create_verification_challenge_repository(db)


@pytest.fixture
def ledger(db: Session):
    return RepositoryFactory.create_payment_event_repository(db)


def _challenge(db: Session, phone=PHONE, expires_in=timedelta(minutes=10), **fields):
    challenge = VerificationChallenge(
        phone=phone, code="123456", expires_at=NOW + expires_in, **fields
    )
    db.add(challenge)
    db.commit()
    return challenge


class TestVerificationChallengeRepository:
    def test_increment_attempts_stops_at_cap(self, db, challenges):
        challenge = _challenge(db)

        counts = [challenges.increment_attempts(challenge.id, 3) for _ in range(4)]

        assert counts == [1, 2, 3, None]
        db.refresh(challenge)
        assert challenge.attempts == 3

    def test_increment_attempts_on_missing_challenge(self, challenges):
        assert challenges.increment_attempts("missing", 3) is None

    def test_get_active_skips_expired(self, db, challenges):
        _challenge(db, expires_in=timedelta(minutes=-1))
        assert challenges.get_active(PHONE, NOW) is None

        fresh = _challenge(db)
        assert challenges.get_active(PHONE, NOW).id == fresh.id

    def test_invalidate_keeps_verified_challenges(self, db, challenges):
        _challenge(db)
        kept = _challenge(db, verified=True)

        assert challenges.invalidate_for_phone(PHONE) == 1
        db.commit()
        db.expire_all()
        remaining = db.query(VerificationChallenge).all()
        assert [c.id for c in remaining] == [kept.id]

    def test_purge_expired_is_global(self, db, challenges):
        _challenge(db, phone="+919811111111", expires_in=timedelta(seconds=-5))
        _challenge(db, phone="+919822222222", expires_in=timedelta(seconds=-5))
        live = _challenge(db)

        assert challenges.purge_expired(NOW) == 2
        db.commit()
        db.expire_all()
        assert [c.id for c in db.query(VerificationChallenge).all()] == [live.id]


class TestPaymentEventRepository:
    def test_record_if_new_deduplicates(self, db, ledger):
        first = ledger.record_if_new(
            source="stripe", event_id="evt_1", event_type="payment_intent.succeeded"
        )
        db.commit()

        again = ledger.record_if_new(
            source="stripe", event_id="evt_1", event_type="payment_intent.succeeded"
        )

        assert first is not None
        assert first.status == PaymentEventStatus.RECEIVED.value
        assert again is None
        assert db.query(PaymentEvent).count() == 1

    def test_same_event_id_from_another_source(self, db, ledger):
        ledger.record_if_new(source="stripe", event_id="evt_1", event_type="x")
        other = ledger.record_if_new(source="manual", event_id="evt_1", event_type="x")

        assert other is not None
        assert db.query(PaymentEvent).count() == 2

    def test_mark_sets_outcome(self, db, ledger):
        event = ledger.record_if_new(source="stripe", event_id="evt_1", event_type="x")

        ledger.mark(event, PaymentEventStatus.APPLIED, outcome="applied", booking_id="B1")

        assert event.status == PaymentEventStatus.APPLIED.value
        assert event.outcome == "applied"
        assert event.booking_id == "B1"
        assert event.processed_at is not None
