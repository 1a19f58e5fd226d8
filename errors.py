"""
Centralized Error Handling for the FleetGuard API

Business outcomes (NO_SCHEDULE, ALREADY_RECORDED, RATE_LIMITED, ...) are
returned as status enums by the orchestrator and never raised. Everything
in this module is the *error* channel: bad input, missing role, storage
failure.

Every error leaves the API in the same shape:

    {"error": true, "category": "...", "message": "...",
     "status_code": 503, "timestamp": "...", "details": {...}}
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Error Categories
# =============================================================================


class ErrorCategory(str, Enum):
    DATABASE = "database"
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    INTERNAL = "internal"


# =============================================================================
# Custom Exceptions
# =============================================================================


class FleetGuardError(Exception):
    """Base exception; subclasses fix the category and HTTP status"""

    category = ErrorCategory.INTERNAL
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.timestamp = utc_now().isoformat()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": True,
            "category": self.category.value,
            "message": self.message,
            "status_code": self.status_code,
            "timestamp": self.timestamp,
            "details": self.details,
        }


class DatabaseError(FleetGuardError):
    """
    Datastore unavailable or a query failed (timeouts included).
    `operation` names the repository call, e.g. "insert_arrival_log".
    """

    category = ErrorCategory.DATABASE
    status_code = 503

    def __init__(self, message: str, operation: Optional[str] = None):
        super().__init__(message, {"operation": operation} if operation else None)
        self.operation = operation


class ValidationError(FleetGuardError):
    """Rejected input (vehicle_id, coordinates, speed, payload shape)"""

    category = ErrorCategory.VALIDATION
    status_code = 400

    def __init__(self, message: str, field: str = None, details: Optional[Dict] = None):
        details = dict(details or {})
        if field:
            details["field"] = field
        super().__init__(message, details)


class AuthenticationError(FleetGuardError):
    """Missing x-role header"""

    category = ErrorCategory.AUTHENTICATION
    status_code = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class AuthorizationError(FleetGuardError):
    """Role not allowed, or a device reporting for another vehicle"""

    category = ErrorCategory.AUTHORIZATION
    status_code = 403

    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message)


# =============================================================================
# Error Response Builder
# =============================================================================


def build_error_response(error: Exception, request_id: Optional[str] = None) -> Dict[str, Any]:
    """Standard error body for any exception (500 for unknown ones)."""
    if isinstance(error, FleetGuardError):
        response = error.to_dict()
    elif isinstance(error, HTTPException):
        response = {
            "error": True,
            "category": "http",
            "message": error.detail,
            "status_code": error.status_code,
            "timestamp": utc_now().isoformat(),
            "details": {},
        }
    else:
        response = {
            "error": True,
            "category": ErrorCategory.INTERNAL.value,
            "message": str(error) or "An unexpected error occurred",
            "status_code": 500,
            "timestamp": utc_now().isoformat(),
            "details": {},
        }

    if request_id:
        response["request_id"] = request_id
    return response


# =============================================================================
# Exception Handlers for FastAPI
# =============================================================================


async def fleetguard_exception_handler(request: Request, exc: FleetGuardError) -> JSONResponse:
    log = logger.warning if exc.status_code < 500 else logger.error
    log(f"[{exc.category.value}] {exc.message} ({request.url.path})")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed request bodies use the same error shape as ValidationError"""
    error = ValidationError(
        "Invalid request payload",
        details={
            "errors": [
                {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
                for e in exc.errors()
            ]
        },
    )
    logger.warning(f"[validation] invalid payload for {request.url.path}")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unexpected error on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content=build_error_response(exc))


def register_exception_handlers(app):
    """Attach the handlers above to a FastAPI app."""
    app.add_exception_handler(FleetGuardError, fleetguard_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
    logger.info("Exception handlers registered")


__all__ = [
    "ErrorCategory",
    "FleetGuardError",
    "DatabaseError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "build_error_response",
    "register_exception_handlers",
]
