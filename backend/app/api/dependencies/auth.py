# backend/app/api/dependencies/auth.py
"""
Account resolution for routes.

The token only carries an account id. The row is loaded in a worker
thread so the sync session never blocks the event loop; deactivated
accounts are treated as forbidden, unknown ones as unauthenticated.
"""

import asyncio
import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from ...auth import get_current_user as require_account_id
from ...auth import get_current_user_optional as optional_account_id
from ...models.user import User
from ...repositories.factory import RepositoryFactory
from .database import get_db

logger = logging.getLogger(__name__)


def _load_user(db: Session, user_id: str) -> Optional[User]:
    return RepositoryFactory.create_user_repository(db).get_by_id(user_id)


async def get_current_user(
    account_id: str = Depends(require_account_id),
    db: Session = Depends(get_db),
) -> User:
    user = await asyncio.to_thread(_load_user, db, account_id)
    if user is None:
        logger.warning("Token refers to unknown account %s", account_id)
        raise HTTPException(
            status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_current_active_user(user: User = Depends(get_current_user)) -> User:
    """Seekers and owners acting on bookings, payments or their own phone."""
    if not user.is_active:
        raise HTTPException(status.HTTP_403_FORBIDDEN, detail="Inactive user")
    return user


async def get_current_active_user_optional(
    account_id: Optional[str] = Depends(optional_account_id),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """OTP issuance also serves anonymous callers; they resolve to None."""
    if account_id is None:
        return None
    user = await asyncio.to_thread(_load_user, db, account_id)
    return user if user is not None and user.is_active else None
