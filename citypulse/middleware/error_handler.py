"""
Error handling middleware for the CityPulse ticketing service.
"""

import logging
import traceback
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from sqlalchemy.exc import IntegrityError, OperationalError, TimeoutError as SQLTimeoutError
from pydantic import ValidationError as PydanticValidationError

from ..utils.clock import utcnow
from ..utils.exceptions import (
    CityPulseError,
    ErrorCode,
    ValidationError,
    BusinessLogicError,
    DuplicateResourceError,
    ExternalServiceError,
)

logger = logging.getLogger(__name__)

STATUS_MAP = {
    ErrorCode.VALIDATION_ERROR: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorCode.DUPLICATE_RESOURCE: status.HTTP_409_CONFLICT,
    ErrorCode.DUPLICATE_COUPON_CODE: status.HTTP_409_CONFLICT,
    ErrorCode.CAPACITY_EXCEEDED: status.HTTP_400_BAD_REQUEST,
    ErrorCode.EVENT_NOT_BOOKABLE: status.HTTP_400_BAD_REQUEST,
    ErrorCode.ALREADY_CANCELLED: status.HTTP_400_BAD_REQUEST,
    ErrorCode.EVENT_ALREADY_STARTED: status.HTTP_400_BAD_REQUEST,
    ErrorCode.NOT_CANCELLABLE: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_COUPON: status.HTTP_400_BAD_REQUEST,
    ErrorCode.COUPON_EXPIRED: status.HTTP_400_BAD_REQUEST,
    ErrorCode.USAGE_LIMIT_REACHED: status.HTTP_400_BAD_REQUEST,
    ErrorCode.COUPON_NOT_VALID_FOR_EVENT: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_EVENT_STATE: status.HTTP_400_BAD_REQUEST,
    ErrorCode.EXTERNAL_SERVICE_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCode.EMAIL_SERVICE_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def get_status_code_for_error(exc: CityPulseError) -> int:
    """Map error codes to HTTP status codes."""
    return STATUS_MAP.get(exc.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR)


def error_response(
    error: CityPulseError,
    error_id: str,
    status_code: Optional[int] = None,
    headers: Optional[Dict[str, str]] = None,
    debug_info: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    """Envelope shared by every error the API returns."""
    content: Dict[str, Any] = {
        "error": error.to_dict(),
        "error_id": error_id,
        "timestamp": utcnow().isoformat(),
    }
    if debug_info:
        content["debug"] = debug_info
    return JSONResponse(
        status_code=status_code or get_status_code_for_error(error),
        content=content,
        headers=headers,
    )


def validation_error_for(exc: PydanticValidationError) -> ValidationError:
    field_errors: Dict[str, list] = {}
    for item in exc.errors():
        field_errors.setdefault(".".join(str(loc) for loc in item["loc"]), []).append(item["msg"])
    return ValidationError("Request validation failed", field_errors=field_errors)


def integrity_error_for(exc: IntegrityError) -> CityPulseError:
    """Translate a constraint violation the services did not catch first."""
    reason = str(getattr(exc, "orig", exc)).lower()
    if "unique" in reason:
        return DuplicateResourceError(
            "A record with this information already exists",
            details={"constraint_type": "unique"},
        )
    constraint = "foreign_key" if "foreign key" in reason else "unknown"
    message = "Referenced resource does not exist" if constraint == "foreign_key" else "Data integrity constraint violation"
    return ValidationError(message, details={"constraint_type": constraint})


def log_level_for(exc: Exception) -> int:
    if not isinstance(exc, CityPulseError) or isinstance(exc, ExternalServiceError):
        return logging.ERROR
    if isinstance(exc, BusinessLogicError):
        return logging.INFO
    return logging.WARNING


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Turns exceptions raised by route handlers into structured JSON errors."""

    def __init__(self, app, debug: bool = False):
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            error_id = str(uuid4())
            self._log_error(request, exc, error_id)
            return self._to_response(exc, error_id)

    def _to_response(self, exc: Exception, error_id: str) -> JSONResponse:
        if isinstance(exc, CityPulseError):
            return error_response(exc, error_id)
        if isinstance(exc, PydanticValidationError):
            return error_response(validation_error_for(exc), error_id)
        if isinstance(exc, IntegrityError):
            return error_response(integrity_error_for(exc), error_id, status.HTTP_409_CONFLICT)
        if isinstance(exc, (OperationalError, SQLTimeoutError)):
            unavailable = ExternalServiceError(
                "database",
                "Database service temporarily unavailable",
                details={"error_type": type(exc).__name__},
            )
            return error_response(unavailable, error_id, headers={"Retry-After": "30"})

        internal = CityPulseError(
            "An unexpected error occurred",
            details={"error_type": type(exc).__name__} if self.debug else None,
        )
        debug_info = {"exception": str(exc), "traceback": traceback.format_exc()} if self.debug else None
        return error_response(internal, error_id, status.HTTP_500_INTERNAL_SERVER_ERROR, debug_info=debug_info)

    def _log_error(self, request: Request, exc: Exception, error_id: str) -> None:
        extra = {
            "error_id": error_id,
            "method": request.method,
            "url": str(request.url),
            "client_ip": request.client.host if request.client else None,
        }
        if isinstance(exc, CityPulseError):
            extra.update(error_code=exc.error_code.value, details=exc.details)
            logger.log(log_level_for(exc), f"{exc.error_code.value} [{error_id}]: {exc.message}", extra=extra)
        else:
            logger.exception(f"Unexpected error [{error_id}]: {exc}", extra=extra)
