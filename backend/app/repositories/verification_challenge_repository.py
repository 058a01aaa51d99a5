# backend/app/repositories/verification_challenge_repository.py
"""
Verification Challenge Repository

Data access for phone OTP challenges. The attempt counter is only ever
advanced through ``increment_attempts``, a single conditional UPDATE, so
concurrent wrong guesses cannot push it past the cap.
"""

from datetime import datetime
import logging
from typing import Optional, cast

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.verification_challenge import VerificationChallenge
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class VerificationChallengeRepository(BaseRepository[VerificationChallenge]):
    """Repository for VerificationChallenge records."""

    def __init__(self, db: Session):
        super().__init__(db, VerificationChallenge)

    def get_active(self, phone: str, now: datetime) -> Optional[VerificationChallenge]:
        """
        Most recent unexpired challenge for the phone.

        A verified challenge that was not consumed (its phone was claimed by
        another account) is still returned so the owner of the code can retry.
        """
        try:
            return cast(
                Optional[VerificationChallenge],
                self.db.query(VerificationChallenge)
                .filter(
                    VerificationChallenge.phone == phone,
                    VerificationChallenge.expires_at > now,
                )
                .order_by(VerificationChallenge.created_at.desc())
                .first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading active challenge: {str(e)}")
            raise RepositoryException(f"Failed to load verification challenge: {str(e)}")

    def get_latest(self, phone: str) -> Optional[VerificationChallenge]:
        """Most recently issued challenge for the phone, expired or not."""
        try:
            return cast(
                Optional[VerificationChallenge],
                self.db.query(VerificationChallenge)
                .filter(VerificationChallenge.phone == phone)
                .order_by(VerificationChallenge.created_at.desc())
                .first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading latest challenge: {str(e)}")
            raise RepositoryException(f"Failed to load verification challenge: {str(e)}")

    def invalidate_for_phone(self, phone: str) -> int:
        """Delete every pending (unverified) challenge for the phone."""
        try:
            deleted = (
                self.db.query(VerificationChallenge)
                .filter(
                    VerificationChallenge.phone == phone,
                    VerificationChallenge.verified.is_(False),
                )
                .delete(synchronize_session=False)
            )
            return int(deleted or 0)
        except SQLAlchemyError as e:
            self.logger.error(f"Error invalidating challenges: {str(e)}")
            raise RepositoryException(f"Failed to invalidate challenges: {str(e)}")

    def purge_expired(self, now: datetime) -> int:
        """Garbage-collect challenges whose expiry has passed."""
        try:
            deleted = (
                self.db.query(VerificationChallenge)
                .filter(VerificationChallenge.expires_at <= now)
                .delete(synchronize_session=False)
            )
            if deleted:
                self.logger.debug("Purged %s expired verification challenges", deleted)
            return int(deleted or 0)
        except SQLAlchemyError as e:
            self.logger.error(f"Error purging expired challenges: {str(e)}")
            raise RepositoryException(f"Failed to purge challenges: {str(e)}")

    def increment_attempts(self, challenge_id: str, max_attempts: int) -> Optional[int]:
        """
        Atomically add one failed attempt while the counter is below the cap.

        Returns:
            The new attempt count, or None when the cap was already reached
            (or the challenge vanished) and nothing was updated.
        """
        try:
            result = self.db.execute(
                update(VerificationChallenge)
                .where(
                    VerificationChallenge.id == challenge_id,
                    VerificationChallenge.attempts < max_attempts,
                )
                .values(attempts=VerificationChallenge.attempts + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                return None
            challenge = self.db.get(VerificationChallenge, challenge_id)
            if challenge is None:
                return None
            # The bulk UPDATE bypassed the identity map
            self.db.refresh(challenge)
            return int(challenge.attempts)
        except SQLAlchemyError as e:
            self.logger.error(f"Error incrementing attempts for {challenge_id}: {str(e)}")
            raise RepositoryException(f"Failed to record attempt: {str(e)}")

    def mark_verified(self, challenge: VerificationChallenge) -> VerificationChallenge:
        challenge.verified = True
        self.db.flush()
        return challenge

    def remove(self, challenge: VerificationChallenge) -> None:
        """Delete a terminal challenge."""
        try:
            self.db.delete(challenge)
            self.db.flush()
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting challenge {challenge.id}: {str(e)}")
            raise RepositoryException(f"Failed to delete challenge: {str(e)}")
