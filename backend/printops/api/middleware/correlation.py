"""
Correlation ID Middleware

Every request runs under a correlation ID taken from X-Correlation-Id or
freshly generated. The ID is put in the logging context, echoed back on the
response and attached to one access log line per request.
"""

import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from ...utils.logger import get_logger, set_correlation_id
from ...utils.idgen import generate_correlation_id

logger = get_logger(__name__)

HEADER_NAME = "X-Correlation-Id"


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Sets the request correlation ID and logs method, path, status and duration"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        correlation_id = request.headers.get(HEADER_NAME) or generate_correlation_id()
        set_correlation_id(correlation_id)

        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - started) * 1000

        response.headers[HEADER_NAME] = correlation_id
        if request.url.path != "/health":
            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code} ({duration_ms:.0f}ms)",
                extra={"action": "http_request", "status": response.status_code}
            )
        return response
