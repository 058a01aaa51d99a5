# backend/app/api/dependencies/database.py
"""Request-scoped database session."""

from typing import Generator

from sqlalchemy.orm import Session

from ...database import SessionLocal


def get_db() -> Generator[Session, None, None]:
    """
    One session per request.

    Services commit their own work; anything still pending when the
    handler raises is rolled back before the session is closed.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
