"""Correlation ID and request logging middleware."""

import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "x-correlation-id"


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """Propagate x-correlation-id and log each request with it."""

    async def dispatch(self, request: Request, call_next):
        """Process request with correlation ID."""
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        started = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        response.headers[CORRELATION_HEADER] = correlation_id
        if request.url.path not in ("/health", "/metrics"):
            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f} ms)",
                extra={"correlation_id": correlation_id, "status_code": response.status_code},
            )
        return response
