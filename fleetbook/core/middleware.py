"""HTTP middleware: request logging and response security headers."""

import logging
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from fleetbook.config import settings

logger = logging.getLogger(__name__)

SLOW_REQUEST_SECONDS = 1.0
_MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log each request with its caller, outcome and duration.

    State-changing requests are logged at INFO so booking activity can be
    followed per user; reads are logged at DEBUG. Anything slower than
    ``SLOW_REQUEST_SECONDS`` is a WARNING.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.state.request_id = request_id
        caller = request.headers.get("X-User-Id", "anonymous")

        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{elapsed:.3f}s"

        message = (
            f"{request.method} {request.url.path} -> {response.status_code} "
            f"in {elapsed:.3f}s (user={caller}, request_id={request_id})"
        )
        if elapsed > SLOW_REQUEST_SECONDS:
            logger.warning(f"SLOW REQUEST: {message}")
        elif request.method in _MUTATING_METHODS:
            logger.info(message)
        else:
            logger.debug(message)
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Attach standard security headers; API responses are never cached."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        headers = response.headers
        headers["X-Content-Type-Options"] = "nosniff"
        headers["X-Frame-Options"] = "DENY"
        headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if request.url.path.startswith(settings.api_prefix):
            headers["Cache-Control"] = "no-store"
        if settings.environment == "production":
            headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response
