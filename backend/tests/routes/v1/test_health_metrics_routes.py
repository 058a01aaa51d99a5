from fastapi.testclient import TestClient
import pytest

from app.middleware.prometheus_middleware import normalize_endpoint


def test_health_check(client: TestClient):
    res = client.get("/api/v1/health")

    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "healthy"
    assert body["checks"] == {"database": True}
    assert res.headers["X-Environment"]


def test_prometheus_endpoint_exposes_domain_metrics(client: TestClient):
    client.get("/api/v1/health")

    res = client.get("/metrics/prometheus")

    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/plain")
    assert "roomrental_http_requests_total" in res.text
    assert "roomrental_prometheus_scrapes_total" in res.text


@pytest.mark.parametrize(
    "path,expected",
    [
        ("/api/v1/bookings/01HV4Z3T5X9Q8R7P6N5M4K3J2H", "/api/v1/bookings/:id"),
        (
            "/api/v1/bookings/01HV4Z3T5X9Q8R7P6N5M4K3J2H/payment-status",
            "/api/v1/bookings/:id/payment-status",
        ),
        ("/api/v1/bookings/user/42", "/api/v1/bookings/user/:id"),
        ("/api/v1/verify-phone/confirm", "/api/v1/verify-phone/confirm"),
    ],
)
def test_normalize_endpoint(path, expected):
    assert normalize_endpoint(path) == expected
