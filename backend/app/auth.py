"""
Bearer-token handling.

Accounts sign in through the external identity service; this API only
verifies the HS256 token it issues and reads the account id from ``sub``.
``create_access_token`` mints compatible tokens for local use and tests.
"""

from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
import jwt
from jwt import PyJWTError

from .core.config import settings

logger = logging.getLogger(__name__)

# tokenUrl only feeds the OpenAPI "Authorize" button
bearer_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)

_BEARER_CHALLENGE = {"WWW-Authenticate": "Bearer"}


def _signing_key() -> str:
    return settings.secret_key.get_secret_value()


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Sign ``data`` (which must carry ``sub``) with the configured expiry."""
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    claims = {**data, "exp": datetime.now(timezone.utc) + lifetime}
    return jwt.encode(claims, _signing_key(), algorithm=settings.algorithm)


def account_id_from_token(token: str) -> Optional[str]:
    """Return the ``sub`` claim of a valid token, or None for a token without one."""
    claims = jwt.decode(
        token, _signing_key(), algorithms=[settings.algorithm], options={"verify_aud": False}
    )
    subject = claims.get("sub")
    return subject if isinstance(subject, str) and subject else None


async def get_current_user(token: Optional[str] = Depends(bearer_scheme)) -> str:
    """Account id of the caller; 401 when the token is missing or unusable."""
    if not token:
        raise HTTPException(
            status.HTTP_401_UNAUTHORIZED, detail="Not authenticated", headers=_BEARER_CHALLENGE
        )
    try:
        account_id = account_id_from_token(token)
    except PyJWTError as exc:
        logger.warning("Rejected bearer token: %s", exc)
        account_id = None
    if account_id is None:
        raise HTTPException(
            status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers=_BEARER_CHALLENGE,
        )
    return account_id


async def get_current_user_optional(
    token: Optional[str] = Depends(bearer_scheme),
) -> Optional[str]:
    """Like ``get_current_user`` but anonymous or broken tokens yield None."""
    if not token:
        return None
    try:
        return account_id_from_token(token)
    except PyJWTError:
        return None
