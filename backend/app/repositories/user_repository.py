# backend/app/repositories/user_repository.py
"""
User Repository for the Room Rental platform

Handles account lookups used by authentication, phone verification and
booking authorization.
"""

import logging
from typing import Any, Optional, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.user import User
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    """Repository for User data access."""

    def __init__(self, db: Session):
        """Initialize with User model."""
        super().__init__(db, User)
        self.logger = logging.getLogger(__name__)

    def get_by_id(self, id: Any, load_relationships: bool = True) -> Optional[User]:
        """Get user by ID."""
        if id is None:
            return None
        try:
            return cast(
                Optional[User],
                self.db.query(User).filter(User.id == str(id)).first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting user by ID {id}: {str(e)}")
            raise RepositoryException(f"Failed to get user: {str(e)}")

    def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email."""
        try:
            return cast(
                Optional[User],
                self.db.query(User).filter(User.email == email).first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting user by email {email}: {str(e)}")
            raise RepositoryException(f"Failed to get user: {str(e)}")

    def get_verified_phone_holder(
        self, phone: str, exclude_user_id: Optional[str] = None
    ) -> Optional[User]:
        """
        Return the account that holds ``phone`` as its verified number.

        Args:
            phone: Canonical phone number
            exclude_user_id: Account to ignore (the one attempting verification)
        """
        try:
            query = self.db.query(User).filter(User.phone == phone, User.phone_verified.is_(True))
            if exclude_user_id:
                query = query.filter(User.id != exclude_user_id)
            return cast(Optional[User], query.first())
        except SQLAlchemyError as e:
            self.logger.error(f"Error checking verified phone holder: {str(e)}")
            raise RepositoryException(f"Failed to check phone ownership: {str(e)}")

    def set_verified_phone(self, user: User, phone: str) -> User:
        """Attach a verified phone to the account. Does not commit."""
        user.phone = phone
        user.phone_verified = True
        self.db.flush()
        return user
