from fastapi import Response


def set_policy_headers(res: Response, policy_name: str, limit: int, window_s: int) -> None:
    res.headers["X-RateLimit-Policy"] = policy_name
    res.headers["X-RateLimit-Limit"] = str(limit)
    res.headers["X-RateLimit-Window"] = str(window_s)
