"""
Request ID Middleware

Generates and propagates correlation IDs for request tracing.

Features:
    - Generate unique request ID
    - Attach it to every log record emitted while the request runs
    - Return in response headers

Headers:
    - X-Request-ID: Unique request identifier
"""

import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from campaign_engine.core.observability.logging import LogContext
from campaign_engine.core.observability.metrics import record_http_request


logger = logging.getLogger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Request ID middleware

    Flow:
        1. Reuse a valid X-Request-ID header or generate a new UUID
        2. Store it on request state
        3. Tag log records with it for the duration of the request
        4. Echo it in the response headers
    """

    REQUEST_ID_HEADER = "X-Request-ID"

    async def dispatch(self, request: Request, call_next):
        """Add request ID to request"""
        request_id = self._get_or_generate_request_id(request)
        request.state.request_id = request_id
        started = time.perf_counter()

        with LogContext(request_id=request_id):
            logger.debug(f"Request started: {request.method} {request.url.path}")

            response = await call_next(request)

            response.headers[self.REQUEST_ID_HEADER] = request_id

            duration = time.perf_counter() - started
            route = request.scope.get("route")
            endpoint = getattr(route, "path", request.url.path)
            record_http_request(request.method, endpoint, response.status_code, duration)

            logger.info(
                f"Request completed: {request.method} {request.url.path} "
                f"(status={response.status_code}, {duration * 1000:.1f}ms)"
            )

            return response

    def _get_or_generate_request_id(self, request: Request) -> str:
        """
        Get request ID from header or generate new one

        Args:
            request: FastAPI request

        Returns:
            Request ID string
        """
        request_id = request.headers.get(self.REQUEST_ID_HEADER)

        if request_id:
            try:
                uuid.UUID(request_id)
                return request_id
            except ValueError:
                logger.warning(f"Invalid request ID format: {request_id}")

        return str(uuid.uuid4())
