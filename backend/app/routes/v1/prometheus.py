"""
Scrape endpoint, mounted at ``/metrics/prometheus``.

Unauthenticated, like any Prometheus target; it only exposes aggregate
counters and timings, never booking or phone data.
"""

from fastapi import APIRouter, Response
from prometheus_client import Counter

from app.monitoring.prometheus_metrics import REGISTRY, prometheus_metrics

router = APIRouter()

scrapes_total = Counter(
    "roomrental_prometheus_scrapes_total",
    "Times the scrape endpoint was hit",
    registry=REGISTRY,
)


@router.get("/prometheus", include_in_schema=False, response_class=Response, response_model=None)
async def scrape() -> Response:
    scrapes_total.inc()
    return Response(
        content=prometheus_metrics.exposition(),
        media_type=prometheus_metrics.content_type,
        headers={"Cache-Control": "no-store"},
    )
