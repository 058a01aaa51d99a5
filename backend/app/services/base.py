# backend/app/services/base.py
"""
Common ground for the Room Rental services.

Every service owns its unit of work: repositories flush, services commit.
Operations decorated with ``measure_operation`` feed the
``roomrental_service_operation_*`` Prometheus series and log a warning
when they run slowly.
"""

from contextlib import contextmanager
from functools import wraps
import logging
import time
from typing import Any, Callable, Iterator, Optional, TypeVar, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import ServiceException
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

SLOW_OPERATION_SECONDS = 1.0


class BaseService:
    """Holds the request session and a per-service logger."""

    def __init__(self, db: Session):
        self.db = db
        self.logger = logging.getLogger(self.__class__.__name__)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Commit on clean exit, roll back on any error.

        Domain errors raised inside the block propagate unchanged; driver
        errors are wrapped in ServiceException so routes render a 500.
        """
        try:
            yield self.db
            self.db.commit()
        except SQLAlchemyError as exc:
            self.logger.error("Transaction failed, rolling back: %s", exc)
            self.db.rollback()
            raise ServiceException(f"Database operation failed: {exc}") from exc
        except Exception as exc:
            self.logger.debug("Rolling back after %s", type(exc).__name__)
            self.db.rollback()
            raise

    @staticmethod
    def measure_operation(operation_name: str) -> Callable[[F], F]:
        """Time the wrapped method and record it under ``operation_name``."""

        def decorator(func: F) -> F:
            @wraps(func)
            def wrapper(self, *args, **kwargs):
                started = time.perf_counter()
                error_type: Optional[str] = None
                try:
                    return func(self, *args, **kwargs)
                except Exception as exc:
                    error_type = type(exc).__name__
                    raise
                finally:
                    _observe(self, operation_name, time.perf_counter() - started, error_type)

            return cast(F, wrapper)

        return decorator


def _observe(
    service: BaseService, operation: str, elapsed: float, error_type: Optional[str]
) -> None:
    if elapsed > SLOW_OPERATION_SECONDS:
        service.logger.warning("Slow operation %s took %.2fs", operation, elapsed)

    try:
        prometheus_metrics.record_service_operation(
            service=service.__class__.__name__,
            operation=operation,
            duration=elapsed,
            status="error" if error_type else "success",
            error_type=error_type,
        )
    except ValueError as exc:
        logger.debug("Could not record metrics for %s: %s", operation, exc)
