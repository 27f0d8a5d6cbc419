"""Error taxonomy and FastAPI exception handlers.

Every handled error renders as `{"error": {"type", "message", "details"?}}`.
"""

import logging
import re
from enum import Enum
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from . import config

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred"


class ErrorType(str, Enum):
    """Error categories and the HTTP status each renders with."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    AUTHORIZATION_ERROR = "AUTHORIZATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    RATE_LIMIT = "RATE_LIMIT"
    PAYMENT_ERROR = "PAYMENT_ERROR"
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    @property
    def status_code(self) -> int:
        return ERROR_STATUS_CODES[self]


ERROR_STATUS_CODES = {
    ErrorType.VALIDATION_ERROR: 400,
    ErrorType.AUTHENTICATION_ERROR: 401,
    ErrorType.AUTHORIZATION_ERROR: 403,
    ErrorType.NOT_FOUND: 404,
    ErrorType.CONFLICT: 409,
    ErrorType.RATE_LIMIT: 429,
    ErrorType.PAYMENT_ERROR: 402,
    ErrorType.EXTERNAL_SERVICE_ERROR: 503,
    ErrorType.DATABASE_ERROR: 500,
    ErrorType.INTERNAL_ERROR: 500,
}


class ApiError(Exception):
    """Base class for errors that map onto an HTTP response."""

    error_type: ErrorType = ErrorType.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        error_type: Optional[ErrorType] = None,
        status_code: Optional[int] = None,
        headers: Optional[dict[str, str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details
        self.type = error_type or self.error_type
        self.status_code = status_code or self.type.status_code
        self.headers = headers

    def to_dict(self) -> dict:
        error: dict[str, Any] = {"type": self.type.value, "message": self.message}
        if self.details:
            error["details"] = self.details
        return {"error": error}


class ValidationError(ApiError):
    error_type = ErrorType.VALIDATION_ERROR


class AuthenticationError(ApiError):
    error_type = ErrorType.AUTHENTICATION_ERROR

    def __init__(self, message: str = "Authentication required", details: Optional[dict] = None):
        super().__init__(message, details, headers={"WWW-Authenticate": "Bearer"})


class AuthorizationError(ApiError):
    error_type = ErrorType.AUTHORIZATION_ERROR

    def __init__(self, message: str = "Access denied", details: Optional[dict] = None):
        super().__init__(message, details)


class NotFoundError(ApiError):
    error_type = ErrorType.NOT_FOUND

    def __init__(self, resource: str = "Resource", details: Optional[dict] = None):
        super().__init__(f"{resource} not found", details)


class ConflictError(ApiError):
    error_type = ErrorType.CONFLICT


class RateLimitError(ApiError):
    error_type = ErrorType.RATE_LIMIT

    def __init__(self, message: str = "Too many requests", details: Optional[dict] = None):
        super().__init__(message, details)


class PaymentError(ApiError):
    error_type = ErrorType.PAYMENT_ERROR


class ExternalServiceError(ApiError):
    error_type = ErrorType.EXTERNAL_SERVICE_ERROR

    def __init__(self, service: str, message: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message or f"{service} service is unavailable", {"service": service, **(details or {})})


class DatabaseError(ApiError):
    error_type = ErrorType.DATABASE_ERROR


class GenerationAuthRequired(AuthenticationError):
    """Generation without a session; the web client looks for `requiresAuth`."""

    def __init__(self):
        super().__init__("Authentication required")

    def to_dict(self) -> dict:
        return {"error": self.message, "requiresAuth": True}


class StoryLimitReached(AuthorizationError):
    """Monthly story allowance used up; the body drives the upgrade prompt."""

    def __init__(self, current_plan: str, used: int, limit: int):
        super().__init__(f"You've reached your monthly limit of {limit} stories")
        self.current_plan = current_plan
        self.used = used
        self.limit = limit

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "limitReached": True,
            "currentPlan": self.current_plan,
            "usage": {"used": self.used, "limit": self.limit},
            "upgradeUrl": "/pricing",
        }


def error_body(error_type: ErrorType, message: str, details: Optional[dict] = None) -> dict:
    return ApiError(message, details, error_type).to_dict()


def _field_path(loc) -> str:
    """`("body", "customerInfo", "email")` becomes `customerInfo.email`."""
    parts = [str(p) for p in loc]
    if parts and parts[0] in ("body", "query", "path", "header", "cookie"):
        parts = parts[1:]
    return ".".join(parts)


_UNIQUE_FIELD_PATTERNS = (
    re.compile(r"Key \((?P<field>[^)]+)\)=", re.IGNORECASE),  # PostgreSQL
    re.compile(r"UNIQUE constraint failed: \w+\.(?P<field>\w+)", re.IGNORECASE),  # SQLite
)


def unique_violation_field(exc: IntegrityError) -> Optional[str]:
    message = str(exc.orig) if exc.orig is not None else str(exc)
    for pattern in _UNIQUE_FIELD_PATTERNS:
        match = pattern.search(message)
        if match:
            return match.group("field")
    return None


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            f"{exc.type.value} on {request.url.path}: {exc.message}",
            extra={"error_type": exc.type.value},
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [{"path": _field_path(e.get("loc", ())), "message": e.get("msg", "")} for e in exc.errors()]
    body = error_body(ErrorType.VALIDATION_ERROR, "Validation failed", {"errors": errors})
    return JSONResponse(status_code=400, content=body)


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    field = unique_violation_field(exc)
    logger.warning(f"Integrity error on {request.url.path}: {exc.orig}", extra={"error_type": "IntegrityError"})
    message = f"A record with this {field} already exists" if field else "Resource already exists"
    body = error_body(ErrorType.CONFLICT, message, {"field": field} if field else None)
    return JSONResponse(status_code=409, content=body)


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error(
        f"Database error on {request.url.path}: {exc}",
        extra={"error_type": type(exc).__name__},
        exc_info=exc,
    )
    message = "A database error occurred" if config.IS_PRODUCTION else str(exc)
    return JSONResponse(status_code=500, content=error_body(ErrorType.DATABASE_ERROR, message))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled error on {request.url.path}: {exc}",
        extra={"error_type": type(exc).__name__},
        exc_info=exc,
    )
    message = GENERIC_ERROR_MESSAGE if config.IS_PRODUCTION else (str(exc) or GENERIC_ERROR_MESSAGE)
    return JSONResponse(status_code=500, content=error_body(ErrorType.INTERNAL_ERROR, message))


def register_exception_handlers(app: FastAPI) -> None:
    """Install the error handlers on `app`."""
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
