"""JSON envelope shared by every API response, and the exception handlers
that render errors into it.

Envelope: ``{success, message?, data?, errors?, meta?, links?}``. Keys
with a ``None`` value are omitted, except ``data`` when explicitly given.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .errors import ContactsError, ValidationError

logger = logging.getLogger(__name__)

_MISSING = object()


def envelope(
    data: Any = _MISSING,
    message: str | None = None,
    status_code: int = status.HTTP_200_OK,
    success: bool | None = None,
    errors: dict | None = None,
    meta: dict | None = None,
    links: dict | None = None,
    headers: dict | None = None,
) -> JSONResponse:
    """
    Build an enveloped JSON response.

    ``success`` defaults to ``True`` for 2xx/3xx status codes. Starlette's
    JSON renderer keeps non-ASCII characters unescaped.
    """
    if success is None:
        success = status_code < 400
    body: dict[str, Any] = {"success": success}
    if message is not None:
        body["message"] = message
    if data is not _MISSING:
        body["data"] = data
    if errors is not None:
        body["errors"] = errors
    if meta is not None:
        body["meta"] = meta
    if links is not None:
        body["links"] = links
    return JSONResponse(
        content=jsonable_encoder(body), status_code=status_code, headers=headers
    )


async def contacts_error_handler(request: Request, exc: ContactsError) -> JSONResponse:
    headers = None
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    if isinstance(exc, ValidationError):
        return envelope(
            message=exc.message,
            errors=exc.errors,
            status_code=exc.status_code,
        )
    return envelope(message=exc.message, status_code=exc.status_code, headers=headers)


async def http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return envelope(
        message=str(exc.detail),
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        loc = [str(part) for part in error["loc"] if part not in ("body", "query", "path")]
        errors.setdefault(".".join(loc) or "__root__", []).append(error["msg"])
    return envelope(
        message=ValidationError.default_message,
        errors=errors,
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return envelope(
        message="Internal server error",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the envelope-rendering exception handlers on ``app``."""
    app.add_exception_handler(ContactsError, contacts_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
