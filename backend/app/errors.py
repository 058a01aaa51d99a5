"""
RFC 7807 problem+json rendering for every error the API can return.

Each body carries ``type``, ``title``, ``status``, ``detail`` and
``instance`` plus a machine-readable ``code`` (``OTP_INVALID_CODE``,
``BOOKING_OVERLAP``, ``RATE_LIMIT_EXCEEDED`` ...). Clients branch on
``code``; ``detail`` is for humans.
"""

from http import HTTPStatus
import logging
from typing import Any, Dict, Mapping, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.exceptions import DomainException, RepositoryException

logger = logging.getLogger(__name__)

PROBLEM_MEDIA_TYPE = "application/problem+json"

_DEFAULT_CODES = {
    400: "VALIDATION_ERROR",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "RESOURCE_NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    429: "RATE_LIMIT_EXCEEDED",
    500: "INTERNAL_SERVER_ERROR",
}


def _title(status: int) -> str:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return "Error"


def problem_response(
    request: Request,
    status: int,
    *,
    detail: Optional[str] = None,
    code: Optional[str] = None,
    hint: Optional[str] = None,
    errors: Any = None,
    headers: Optional[Mapping[str, str]] = None,
) -> JSONResponse:
    body: Dict[str, Any] = {
        "type": "about:blank",
        "title": _title(status),
        "status": status,
        "detail": detail or "",
        "instance": request.url.path,
        "code": code or _DEFAULT_CODES.get(status, "ERROR"),
    }
    if hint:
        body["hint"] = hint
    if errors:
        body["errors"] = jsonable_encoder(errors)
    return JSONResponse(
        body, status_code=status, media_type=PROBLEM_MEDIA_TYPE, headers=dict(headers or {})
    )


def _unpack_http_detail(detail: Any) -> Dict[str, Any]:
    """HTTPException.detail may be a plain string or a ``{code, message, ...}`` dict."""
    if isinstance(detail, dict):
        message = detail.get("message") or detail.get("detail")
        return {
            "detail": message if isinstance(message, str) else None,
            "code": detail.get("code") if isinstance(detail.get("code"), str) else None,
            "hint": detail.get("hint") if isinstance(detail.get("hint"), str) else None,
            "errors": detail.get("details") or detail.get("errors"),
        }
    if detail is None:
        return {}
    return {"detail": str(detail)}


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainException)
    async def on_domain_error(request: Request, exc: DomainException) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s on %s: %s", exc.code, request.url.path, exc.message)
        return problem_response(
            request,
            exc.status_code,
            detail=exc.message,
            code=exc.code,
            hint=exc.hint,
            errors=exc.details,
            headers=exc.headers,
        )

    # Also catches fastapi.HTTPException, which subclasses Starlette's.
    @app.exception_handler(StarletteHTTPException)
    async def on_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return problem_response(
            request,
            exc.status_code,
            headers=getattr(exc, "headers", None),
            **_unpack_http_detail(exc.detail),
        )

    async def on_invalid_request(request: Request, exc: Exception) -> JSONResponse:
        return problem_response(
            request,
            400,
            detail="Request validation failed",
            code="VALIDATION_ERROR",
            hint="Please check your input data",
            errors=exc.errors(),
        )

    app.add_exception_handler(RequestValidationError, on_invalid_request)
    app.add_exception_handler(ValidationError, on_invalid_request)

    @app.exception_handler(RepositoryException)
    async def on_repository_error(request: Request, exc: RepositoryException) -> JSONResponse:
        logger.error("Repository failure on %s: %s", request.url.path, exc)
        return problem_response(request, 500, detail="A database error occurred")

    @app.exception_handler(Exception)
    async def on_unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s", request.url.path)
        return problem_response(request, 500, detail="Internal Server Error")
