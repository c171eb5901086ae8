"""
Request logging middleware.

Logs one line per request (method, path, client) and one per response
(status, duration). Bodies are never logged — deposit requests carry bank
references and auth requests carry passwords.
"""

import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging requests and responses."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"

        logger.info("Request: %s %s from %s", request.method, request.url.path, client_ip)

        try:
            response = await call_next(request)
        except Exception:
            logger.error(
                "Error processing %s %s", request.method, request.url.path,
                exc_info=True,
            )
            raise

        process_time = time.perf_counter() - start_time
        logger.info(
            "Response: %s %s status=%s time=%.4fs",
            request.method, request.url.path, response.status_code, process_time,
        )
        response.headers["X-Process-Time"] = f"{process_time:.4f}"
        return response
