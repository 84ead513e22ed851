# backend/networth/middleware/correlation.py
"""
Correlation ID middleware for request tracing.

Every request gets an ID taken from X-Correlation-ID, then X-Request-ID,
or a fresh UUID. The ID is stored in context (so every log line emitted
while serving the request carries it, including lines logged from
concurrent per-ticker tasks) and echoed back in the X-Correlation-ID
response header.

Usage:
    app.add_middleware(CorrelationIdMiddleware)

    curl -H "X-Correlation-ID: refresh-42" -X POST http://localhost:8000/prices/refresh
"""

import logging
import uuid
from typing import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from networth.utils.context import clear_correlation_id, set_correlation_id

logger = logging.getLogger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Binds a correlation ID to the request context and the response headers."""

    async def dispatch(
            self,
            request: Request,
            call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        correlation_id = self._get_correlation_id(request)
        set_correlation_id(correlation_id)
        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = correlation_id
            return response
        finally:
            clear_correlation_id()

    @staticmethod
    def _get_correlation_id(request: Request) -> str:
        for header in (CORRELATION_ID_HEADER, REQUEST_ID_HEADER):
            value = request.headers.get(header)
            if value:
                return value
        return str(uuid.uuid4())
