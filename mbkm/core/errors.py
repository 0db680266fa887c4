"""
Service-layer errors and their HTTP mapping.

Routes and services raise these; `register_exception_handlers` turns them
(and FastAPI's own errors) into the common error body:

    {"success": false, "message": "...", "errors": {...} | null}
"""

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from mbkm.core.logging import get_logger

logger = get_logger(__name__)


class ServiceError(Exception):
    """Base class for service-layer errors."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, errors: Any = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class ValidationError(ServiceError):
    """Raised when input payload is invalid."""

    status_code = 400
    default_message = "Validation failed"


class InvalidTransitionError(ValidationError):
    """Raised when a status change is not allowed from the current status."""


class NotFoundError(ServiceError):
    status_code = 404
    default_message = "Resource not found"


class UnauthorizedError(ServiceError):
    status_code = 401
    default_message = "Unauthorized"


class PermissionDeniedError(ServiceError):
    """Raised when actor is not allowed to access resource."""

    status_code = 403
    default_message = "403 Forbidden"


def error_body(message: str, errors: Any = None) -> dict:
    return {"success": False, "message": message, "errors": errors}


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.errors), headers=headers)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if isinstance(exc.detail, dict):
        message = exc.detail.get("message", "Request failed")
        errors = exc.detail.get("errors")
    else:
        message, errors = str(exc.detail), None
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message, errors),
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = {}
    for err in exc.errors():
        # loc looks like ("body", "field") or ("query", "page")
        field = ".".join(str(part) for part in err.get("loc", ())[1:]) or "request"
        errors[field] = err.get("msg", "Invalid value")
    return JSONResponse(status_code=400, content=error_body("Validation failed", errors))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=error_body("Internal server error"))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
