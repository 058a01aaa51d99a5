# backend/app/database.py
"""
Engine, session factory and declarative base.

Routes run sync repository code through ``asyncio.to_thread``, so SQLite
connections must be allowed to cross threads. Postgres gets a bounded
pool with pre-ping so stale connections are replaced transparently.
"""

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeMeta, declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool

from .core.config import settings

logger = logging.getLogger(__name__)

DATABASE_URL = settings.get_database_url()


def _build_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=20,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=3600,
        pool_pre_ping=True,
        connect_args={"connect_timeout": 10, "application_name": "roomrental_backend"},
    )


engine = _build_engine(DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)

Base: DeclarativeMeta = declarative_base()


def init_db() -> None:
    """Create all tables registered on ``Base``."""
    from . import models  # noqa: F401  (registers mappers)

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ensured on %s", engine.url.get_backend_name())
