"""
Request timeout middleware so a slow upstream cannot hold a request open indefinitely.
"""

import logging
import asyncio
from typing import Dict, Optional
from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware

from dentalhub.utils.error_responses import error_json_response

logger = logging.getLogger(__name__)

# Dashboards fan out to several paginated upstream collections.
DEFAULT_LONG_TIMEOUT_ENDPOINTS = {
    "/api/dashboard": 60.0,
}


class TimeoutMiddleware(BaseHTTPMiddleware):
    """
    Request timeout middleware.

    Cancels requests that exceed the configured timeout and answers 504.
    """

    def __init__(
        self,
        app,
        timeout_seconds: float = 30.0,
        enabled: bool = True,
        long_timeout_endpoints: Optional[Dict[str, float]] = None,
    ):
        """
        Args:
            app: FastAPI application
            timeout_seconds: Maximum request duration in seconds
            enabled: Enable/disable timeout middleware
            long_timeout_endpoints: Path prefixes with their own timeout
        """
        super().__init__(app)
        self.timeout_seconds = timeout_seconds
        self.enabled = enabled
        self.long_timeout_endpoints = (
            DEFAULT_LONG_TIMEOUT_ENDPOINTS
            if long_timeout_endpoints is None
            else long_timeout_endpoints
        )

    def _get_timeout_for_path(self, path: str) -> float:
        """Get timeout for specific endpoint."""
        for endpoint, timeout in self.long_timeout_endpoints.items():
            if path.startswith(endpoint):
                return timeout
        return self.timeout_seconds

    async def dispatch(self, request: Request, call_next):
        """Process request with timeout."""
        if not self.enabled or request.url.path == "/health":
            return await call_next(request)

        timeout = self._get_timeout_for_path(request.url.path)

        try:
            return await asyncio.wait_for(call_next(request), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Request timeout for %s %s (timeout: %.1fs)",
                request.method,
                request.url.path,
                timeout,
            )
            return error_json_response(
                request,
                f"Request timeout: operation exceeded {timeout} seconds",
                status.HTTP_504_GATEWAY_TIMEOUT,
                error_type="timeout",
                headers={"Retry-After": "30"},
            )
