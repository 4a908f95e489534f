import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from app.config import settings
from app.utils.responses import error_response

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Any = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.details = details


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"


class UnauthorizedError(AppError):
    status_code = 401
    code = "UNAUTHORIZED"


class ForbiddenError(AppError):
    status_code = 403
    code = "ACCESS_DENIED"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT"


class GatewayError(AppError):
    """Payment gateway unreachable or answered with an error. Safe to retry."""

    status_code = 502
    code = "PAYMENT_GATEWAY_ERROR"


class PersistenceError(AppError):
    status_code = 500
    code = "DATABASE_ERROR"


class QueueUnavailableError(AppError):
    status_code = 503
    code = "QUEUE_UNAVAILABLE"


class TransientJobError(Exception):
    """Worker-side failure that a redelivery may fix (missing row, render or SMTP error)."""


class PermanentJobError(Exception):
    """Worker-side failure no redelivery can fix (undecodable job body)."""


_HTTP_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "ACCESS_DENIED",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    413: "FILE_TOO_LARGE",
}


def _json(status_code: int, body: dict, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body, headers=headers)


async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
    details = exc.details
    if exc.status_code >= 500 and not settings.DEBUG and not isinstance(exc, GatewayError):
        details = None
    return _json(exc.status_code, error_response(exc.message, exc.code, details))


async def http_exception_handler(request: Request, exc: HTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    code = _HTTP_CODES.get(exc.status_code, "HTTP_ERROR")
    return _json(
        exc.status_code,
        error_response(message, code),
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(p) for p in err.get("loc", ())[1:]), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return _json(400, error_response("Invalid request data", "VALIDATION_ERROR", errors))


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    details = repr(exc) if settings.DEBUG else None
    return _json(500, error_response("Internal server error", "INTERNAL_ERROR", details))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
