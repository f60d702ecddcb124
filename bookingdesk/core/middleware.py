"""HTTP middleware for the booking desk API."""

import logging
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from bookingdesk.config import settings

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id and reports how long it took.

    Desk actions wait on the booking backend, so anything slower than
    ``slow_request_seconds`` is logged as a warning with its request id.
    """

    def __init__(self, app, slow_request_seconds: float | None = None):
        super().__init__(app)
        self.slow_request_seconds = (
            slow_request_seconds if slow_request_seconds is not None else settings.slow_request_seconds
        )

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.state.request_id = request_id
        started = time.perf_counter()

        response = await call_next(request)

        elapsed = time.perf_counter() - started
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{elapsed:.3f}s"

        line = f"[{request_id}] {request.method} {request.url.path} -> {response.status_code} in {elapsed:.3f}s"
        if elapsed > self.slow_request_seconds:
            logger.warning(f"Slow desk request {line}")
        else:
            logger.debug(line)
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Hardening headers; API responses carry guest details and are never cached."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        if request.url.path.startswith(settings.api_prefix):
            response.headers["Cache-Control"] = "no-store"
        if not settings.debug:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response
