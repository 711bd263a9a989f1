"""
Middleware for request logging and security headers.
"""

import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from readnext.core.logging import get_logger, request_id_var

logger = get_logger(__name__)

# Load-balancer probes; logged at DEBUG only
QUIET_PATHS = ("/health", "/health/ready")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tags every request with an ID and logs its outcome and duration."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        token = request_id_var.set(request_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                f"Unhandled error on {request.method} {request.url.path}",
                extra={"extra_fields": {"duration_ms": _elapsed_ms(started)}},
            )
            raise
        finally:
            request_id_var.reset(token)

        duration_ms = _elapsed_ms(started)
        if request.url.path in QUIET_PATHS:
            level = logging.DEBUG
        elif response.status_code >= 500:
            level = logging.WARNING
        else:
            level = logging.INFO

        logger.log(
            level,
            f"{request.method} {request.url.path} {response.status_code}",
            extra={
                "extra_fields": {
                    "request_id": request_id,
                    "query": str(request.query_params) or None,
                    "duration_ms": duration_ms,
                }
            },
        )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    HEADERS = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Referrer-Policy": "strict-origin-when-cross-origin",
    }

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        for name, value in self.HEADERS.items():
            response.headers.setdefault(name, value)

        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
