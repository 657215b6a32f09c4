"""
Correlation-aware logging for request handling.

Messages are prefixed with the request's correlation id, set by the
correlation middleware in ``dentalhub.main``, so one dashboard request can be
followed through its upstream NexHealth calls and its error response.
"""

import logging
from typing import Any, Optional

from fastapi import Request

logger = logging.getLogger("dentalhub.requests")


def correlation_id_of(request: Optional[Request]) -> str:
    if request is None:
        return ""
    return getattr(request.state, "correlation_id", "") or ""


def with_correlation(message: str, request: Optional[Request] = None, **context: Any) -> str:
    """Prefix ``message`` with the correlation id and append ``key=value`` context."""
    correlation_id = correlation_id_of(request)
    if correlation_id:
        message = f"[{correlation_id}] {message}"
    if context:
        message = f"{message} ({', '.join(f'{k}={v}' for k, v in context.items())})"
    return message


def log_request(request: Request, status_code: int, duration_ms: float) -> None:
    """One access line per request; 4xx at WARNING and 5xx at ERROR."""
    if status_code >= 500:
        level = logging.ERROR
    elif status_code >= 400:
        level = logging.WARNING
    else:
        level = logging.INFO
    logger.log(
        level,
        with_correlation(
            f"{request.method} {request.url.path}",
            request,
            status=status_code,
            duration_ms=f"{duration_ms:.1f}",
        ),
    )


def log_warning(message: str, request: Optional[Request] = None, **context: Any) -> None:
    logger.warning(with_correlation(message, request, **context))


def log_error(
    message: str,
    request: Optional[Request] = None,
    exc_info: Any = False,
    **context: Any,
) -> None:
    logger.error(with_correlation(message, request, **context), exc_info=exc_info)
