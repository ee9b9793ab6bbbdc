"""
Request middleware: correlation IDs, actor context, access logging.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from admission.core.logging import get_logger

logger = get_logger(__name__)

# Scraped every few seconds; not worth an access log line each
QUIET_PATHS = frozenset({"/health", "/metrics"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Binds request_id, method, path and the calling actor to structlog's
    context so every log line emitted while serving the request carries
    them, then logs one access line with the outcome and duration.

    An incoming X-Request-ID is kept so traces line up with the gateway.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]
        started = time.perf_counter()

        structlog.contextvars.clear_contextvars()
        context = {"request_id": request_id, "method": request.method, "path": request.url.path}
        actor_id = request.headers.get("X-Actor-Id")
        if actor_id:
            context["actor_id"] = actor_id
        structlog.contextvars.bind_contextvars(**context)

        try:
            response = await call_next(request)
        except Exception:
            logger.exception("request_failed", duration_ms=_elapsed_ms(started))
            raise

        duration_ms = _elapsed_ms(started)
        if request.url.path not in QUIET_PATHS:
            log = logger.error if response.status_code >= 500 else logger.info
            log("request_completed", status_code=response.status_code, duration_ms=duration_ms)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms}ms"
        return response


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
