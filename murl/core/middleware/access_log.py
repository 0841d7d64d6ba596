"""
Access log middleware.

Logs every HTTP request with its method, path, status code and duration,
and exposes the processing time in the ``X-Process-Time`` response header.
"""

import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from murl.config.logging import StructuredLogger

access_logger = StructuredLogger("murl.access")


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Middleware to log requests."""

    async def dispatch(self, request: Request, call_next):
        """
        Process HTTP request and log it.

        Args:
            request: The incoming HTTP request
            call_next: The next middleware/handler in the chain

        Returns:
            Response: The HTTP response with the processing time header
        """
        start_time = time.perf_counter()

        response = await call_next(request)

        process_time = time.perf_counter() - start_time

        access_logger.log_request(
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            response_time=round(process_time * 1000, 3),
            client_ip=request.client.host if request.client else None
        )

        response.headers["X-Process-Time"] = str(round(process_time, 6))

        return response
