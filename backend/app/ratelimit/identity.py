from fastapi import Request

UNKNOWN_CLIENT = "unknown"

# Checked in order; the first non-empty value wins
_PROXY_HEADERS = ("x-real-ip", "cf-connecting-ip")


def resolve_client_key(req: Request) -> str:
    """
    Precedence:
    1) first entry of X-Forwarded-For
    2) X-Real-IP, then CF-Connecting-IP
    3) the connection's peer host
    4) the shared "unknown" bucket
    """
    forwarded = req.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    for header in _PROXY_HEADERS:
        value = (req.headers.get(header) or "").strip()
        if value:
            return value

    client = getattr(req, "client", None)
    host = getattr(client, "host", None) if client else None
    if host:
        return str(host)
    return UNKNOWN_CLIENT
