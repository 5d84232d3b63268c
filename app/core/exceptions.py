# app/core/exceptions.py
"""
Domain error taxonomy.

Services raise these; the API layer turns them into JSON responses with the
matching HTTP status (see register_exception_handlers). ``code`` is a stable,
machine-readable reason so callers (UI, assistant) can react to the specific
precondition that failed.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "internal_error"

    def __init__(self, message: str, code: Optional[str] = None, **details: Any):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details: Dict[str, Any] = details

    def to_dict(self) -> Dict[str, Any]:
        body = {"detail": self.message, "code": self.code}
        body.update(self.details)
        return body


class ValidationError(AppError):
    """Malformed input: bad date/time, non-positive duration, missing field"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "validation_error"


class NotFoundError(AppError):
    """Target missing or not visible to the actor"""
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "not_found"


class AuthorizationError(AppError):
    """Actor lacks the role or ownership for the target"""
    status_code = status.HTTP_403_FORBIDDEN
    default_code = "forbidden"


class ConflictError(AppError):
    """Slot or worker no longer available, or status transition not allowed"""
    status_code = status.HTTP_409_CONFLICT
    default_code = "conflict"


class InternalError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "internal_error"


def slot_conflict(message: str, code: str, **details: Any) -> ConflictError:
    """Conflict raised by booking paths; slots may have just been taken"""
    return ConflictError(message, code=code, retry_hint="refresh_slots", **details)


async def app_error_handler(request: Request, exc: AppError):
    if isinstance(exc, InternalError):
        logger.error(f"Internal error on {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": "Internal server error", "code": exc.code},
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def unhandled_error_handler(request: Request, exc: Exception):
    correlation_id = getattr(request.state, "correlation_id", "unknown")
    logger.error(
        f"Unhandled error on {request.method} {request.url.path}: {exc}",
        exc_info=exc,
        extra={"correlation_id": correlation_id},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "code": "internal_error"},
    )


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
