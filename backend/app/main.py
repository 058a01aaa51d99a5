# backend/app/main.py
"""
Room Rental API application.

Mounts the versioned routers under ``/api/v1`` and the Prometheus scrape
endpoint under ``/metrics``.
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import settings
from .database import init_db
from .errors import register_error_handlers
from .middleware.prometheus_middleware import PrometheusMiddleware
from .ratelimit import config as rl_config
from .routes.v1 import (
    bookings as bookings_v1,
    health as health_v1,
    payments as payments_v1,
    phone as phone_v1,
    prometheus as prometheus_v1,
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

API_TITLE = "Room Rental API"
API_VERSION = "1.0.0"
API_DESCRIPTION = "Phone verification, booking lifecycle and payment reconciliation."


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown."""
    logger.info(f"{API_TITLE} starting up...")
    logger.info(f"Environment: {settings.environment}")
    if not settings.is_testing:
        init_db()
    if rl_config.settings.enabled and not rl_config.settings.redis_url:
        logger.warning(
            "Rate limits are enforced per process; set RATE_LIMIT_REDIS_URL to share quotas "
            "across instances"
        )
    yield
    logger.info(f"{API_TITLE} shutting down...")


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=app_lifespan,
    )

    # Register unified error envelope handlers
    register_error_handlers(fastapi_app)

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "HEAD", "OPTIONS", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["*"],
    )
    fastapi_app.add_middleware(PrometheusMiddleware)

    api_v1 = APIRouter(prefix="/api/v1")
    api_v1.include_router(phone_v1.router, prefix="/verify-phone")
    api_v1.include_router(bookings_v1.router, prefix="/bookings")
    api_v1.include_router(payments_v1.router, prefix="/payments")
    api_v1.include_router(health_v1.router, prefix="/health")

    fastapi_app.include_router(api_v1)
    fastapi_app.include_router(prometheus_v1.router, prefix="/metrics")
    return fastapi_app


app = create_app()
