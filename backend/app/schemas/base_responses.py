"""
Base response schemas for standardized API responses.

These schemas keep list and status payloads in one shape across endpoints.
"""

from datetime import datetime, timezone
from typing import Dict, Generic, List, TypeVar

from pydantic import ConfigDict, Field

from ._strict_base import StrictModel

T = TypeVar("T")


class PaginationMeta(StrictModel):
    """Pagination metadata returned with every list endpoint."""

    page: int = Field(description="Current page number", ge=1)
    limit: int = Field(description="Items per page", ge=1, le=100)
    total: int = Field(description="Total number of matching items", ge=0)
    total_pages: int = Field(description="ceil(total / limit)", ge=0)


class PaginatedResponse(StrictModel, Generic[T]):
    """Standard paginated response for list endpoints."""

    items: List[T] = Field(description="List of items")
    pagination: PaginationMeta

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "items": ["..."],
                "pagination": {"page": 1, "limit": 10, "total": 42, "totalPages": 5},
            }
        }
    )


class HealthCheckResponse(StrictModel):
    """Standard health check response."""

    status: str = Field(
        description="Service health status", pattern="^(healthy|degraded|unhealthy)$"
    )
    service: str = Field(default="Room Rental API", description="Service name")
    version: str = Field(description="API version")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="Check timestamp"
    )
    checks: Dict[str, bool] = Field(description="Individual component health checks")


def create_paginated_response(
    items: List[T], total: int, page: int, limit: int
) -> PaginatedResponse[T]:
    """
    Helper function to create a paginated response.

    Args:
        items: List of items for current page
        total: Total count of all items
        page: Current page number
        limit: Items per page
    """
    return PaginatedResponse(
        items=items,
        pagination=PaginationMeta(
            page=page, limit=limit, total=total, total_pages=-(-total // limit) if total else 0
        ),
    )
