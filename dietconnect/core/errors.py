"""Application errors and the exception handlers that render them.

Every error response has the shape ``{"detail": str, "code": str}`` with an
optional ``details`` payload, so clients can branch on ``code`` while
``detail`` stays compatible with FastAPI's own errors.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)

STATUS_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    429: "RATE_LIMITED",
    500: "INTERNAL_ERROR",
}


class AppError(Exception):
    """An expected failure with an HTTP status and a machine-readable code."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        code: Optional[str] = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code or STATUS_CODES.get(status_code, "ERROR")
        self.details = details


def bad_request(message: str, code: str = "BAD_REQUEST") -> AppError:
    return AppError(message, 400, code)


def unauthorized(message: str = "Unauthorized", code: str = "UNAUTHORIZED") -> AppError:
    return AppError(message, 401, code)


def forbidden(message: str = "Forbidden", code: str = "FORBIDDEN") -> AppError:
    return AppError(message, 403, code)


def not_found(resource: str = "Resource", code: str = "NOT_FOUND") -> AppError:
    return AppError(f"{resource} not found", 404, code)


def conflict(message: str, code: str = "CONFLICT") -> AppError:
    return AppError(message, 409, code)


def too_many_requests(message: str, code: str = "RATE_LIMITED") -> AppError:
    return AppError(message, 429, code)


def _error_body(message: str, code: str, details: Any = None) -> dict:
    body = {"detail": message, "code": code}
    if details is not None:
        body["details"] = details
    return body


async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.message, exc.code, exc.details),
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    code = STATUS_CODES.get(exc.status_code, "ERROR")
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(str(exc.detail), code),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg"),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content=_error_body("Validation failed", "VALIDATION_ERROR", details),
    )


async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return JSONResponse(
        status_code=409,
        content=_error_body("A record with this value already exists", "CONFLICT"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
