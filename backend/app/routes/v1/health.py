# backend/app/routes/v1/health.py
"""
Health check endpoint for monitoring and load balancer probes.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.dependencies import get_db
from app.core.config import settings
from app.schemas.base_responses import HealthCheckResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

API_VERSION = "1.0.0"


@router.get("", response_model=HealthCheckResponse)
def health_check(response: Response, db: Session = Depends(get_db)) -> HealthCheckResponse:
    """
    Health check endpoint.

    Reports ``degraded`` when the database cannot be reached.
    """
    try:
        db.execute(text("SELECT 1"))
        database_ok = True
    except SQLAlchemyError as exc:
        logger.warning(f"Health check database probe failed: {exc}")
        database_ok = False

    response.headers["X-Environment"] = settings.environment
    return HealthCheckResponse(
        status="healthy" if database_ok else "degraded",
        version=API_VERSION,
        checks={"database": database_ok},
    )
