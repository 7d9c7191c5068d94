"""
Request/response logging middleware.

Every request gets an id (taken from ``X-Request-ID`` when the caller sends
one) that is echoed on the response and attached to every log record
emitted while the request is handled.
"""

import contextvars
import logging
import time
from typing import Dict, Iterable, Optional
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

# Read by RequestIDFilter so every log line carries the request id
request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar('request_id', default='no-request-id')

SLOW_REQUEST_SECONDS = 2.0
QUIET_PATHS = {"/", "/health", "/docs", "/redoc", "/openapi.json"}
DEFAULT_SENSITIVE_HEADERS = ("authorization", "cookie", "x-api-key", "x-auth-token")


def client_ip(request: Request) -> str:
    """First hop of X-Forwarded-For, then X-Real-IP, then the socket peer."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.headers.get("x-real-ip") or (request.client.host if request.client else "unknown")


def mask_headers(headers: Dict[str, str], sensitive: Iterable[str]) -> Dict[str, str]:
    """Copy of ``headers`` with credentials masked; bearer tokens keep their last 4 characters."""
    sensitive = {name.lower() for name in sensitive}
    masked = {}
    for key, value in headers.items():
        if key.lower() not in sensitive:
            masked[key] = value
        elif value.startswith("Bearer "):
            masked[key] = f"Bearer ***{value[-4:]}"
        else:
            masked[key] = "***MASKED***"
    return masked


def route_area(path: str) -> str:
    """Coarse label for the part of the API a path belongs to, e.g. ``bookings``."""
    parts = path.strip("/").split("/")
    if len(parts) >= 3 and parts[0] == "api":
        return parts[2]
    return "service"


class LoggingMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id and logs it together with its outcome."""

    def __init__(
        self,
        app,
        log_requests: bool = True,
        log_responses: bool = True,
        sensitive_headers: Optional[Iterable[str]] = None,
    ):
        super().__init__(app)
        self.log_requests = log_requests
        self.log_responses = log_responses
        self.sensitive_headers = tuple(sensitive_headers or DEFAULT_SENSITIVE_HEADERS)

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid4())
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        quiet = request.url.path in QUIET_PATHS
        start_time = time.time()

        if self.log_requests:
            self._log_request(request, request_id, quiet)

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                f"Request exception: {type(exc).__name__}",
                extra={
                    "request_id": request_id,
                    "exception_type": type(exc).__name__,
                    "process_time": time.time() - start_time,
                    "method": request.method,
                    "path": request.url.path,
                },
                exc_info=True,
            )
            raise
        else:
            process_time = time.time() - start_time
            response.headers["X-Request-ID"] = request_id
            response.headers["X-Process-Time"] = f"{process_time:.4f}"
            if self.log_responses:
                self._log_response(request, response, request_id, process_time, quiet)
            return response
        finally:
            request_id_var.reset(token)

    def _log_request(self, request: Request, request_id: str, quiet: bool) -> None:
        extra = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "area": route_area(request.url.path),
            "query_params": dict(request.query_params),
            "client_ip": client_ip(request),
            "user_agent": request.headers.get("user-agent"),
            "headers": mask_headers(dict(request.headers), self.sensitive_headers),
        }
        level = logging.DEBUG if quiet else logging.INFO
        logger.log(level, f"{request.method} {request.url.path}", extra=extra)

    def _log_response(
        self,
        request: Request,
        response: Response,
        request_id: str,
        process_time: float,
        quiet: bool,
    ) -> None:
        extra = {
            "request_id": request_id,
            "status_code": response.status_code,
            "process_time": process_time,
            "area": route_area(request.url.path),
            "response_size": response.headers.get("content-length"),
        }
        summary = f"{request.method} {request.url.path} -> {response.status_code} ({process_time:.4f}s)"

        if response.status_code >= 500:
            logger.error(summary, extra=extra)
        elif response.status_code >= 400:
            logger.warning(summary, extra=extra)
        else:
            logger.log(logging.DEBUG if quiet else logging.INFO, summary, extra=extra)

        if process_time > SLOW_REQUEST_SECONDS:
            logger.warning(
                f"Slow request: {request.method} {request.url.path} took {process_time:.4f}s",
                extra={"request_id": request_id, "slow_request": True, "process_time": process_time},
            )
