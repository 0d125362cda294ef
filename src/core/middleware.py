"""
Request tracing for the recommendation API.

Every request gets a short request_id bound into the structlog context, so
the per-generator lines a single For You request emits can be grouped.
Probe endpoints (/health, /ready, /live) are logged at debug only; the
orchestrator hits them every few seconds.
"""

import time
import uuid
from typing import Callable, FrozenSet

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from core.logging import bind_context, clear_context, get_logger


logger = get_logger(__name__)

PROBE_PATHS: FrozenSet[str] = frozenset({"/health", "/ready", "/live"})


class RequestTracingMiddleware(BaseHTTPMiddleware):
    """
    Binds ``request_id`` for the request's log lines and reports its timing.

    Response headers:
        X-Request-ID         echoed from the client or generated
        X-Response-Time-Ms   wall time spent in the app
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]
        path = request.url.path
        log = logger.debug if path in PROBE_PATHS else logger.info

        bind_context(request_id=request_id, method=request.method, path=path)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Unhandled error",
                error=str(e),
                error_type=type(e).__name__,
                elapsed_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            raise
        else:
            elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
            log("Request handled", status_code=response.status_code, elapsed_ms=elapsed_ms)
            response.headers["X-Request-ID"] = request_id
            response.headers["X-Response-Time-Ms"] = str(elapsed_ms)
            return response
        finally:
            clear_context()
