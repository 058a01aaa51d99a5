from starlette.requests import Request

from app.ratelimit.identity import UNKNOWN_CLIENT, resolve_client_key


def _make_request(headers=None, client=None):
    headers = headers or {}
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/dummy",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
    }
    if client is not None:
        scope["client"] = client
    return Request(scope)


def test_forwarded_for_first_entry_wins():
    req = _make_request(
        headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1", "X-Real-IP": "198.51.100.2"},
        client=("10.0.0.9", 1234),
    )
    assert resolve_client_key(req) == "203.0.113.7"


def test_real_ip_before_cf_connecting_ip():
    req = _make_request(
        headers={"X-Real-IP": "198.51.100.2", "CF-Connecting-IP": "192.0.2.5"},
        client=("10.0.0.9", 1234),
    )
    assert resolve_client_key(req) == "198.51.100.2"


def test_cf_connecting_ip_when_no_other_proxy_header():
    req = _make_request(headers={"CF-Connecting-IP": "192.0.2.5"}, client=("10.0.0.9", 1234))
    assert resolve_client_key(req) == "192.0.2.5"


def test_blank_forwarded_for_falls_through():
    req = _make_request(headers={"X-Forwarded-For": " , 10.0.0.1"}, client=("10.0.0.9", 1234))
    assert resolve_client_key(req) == "10.0.0.9"


def test_peer_host_used_without_proxy_headers():
    req = _make_request(client=("10.0.0.9", 1234))
    assert resolve_client_key(req) == "10.0.0.9"


def test_unknown_bucket_when_nothing_identifies_the_client():
    assert resolve_client_key(_make_request()) == UNKNOWN_CLIENT
