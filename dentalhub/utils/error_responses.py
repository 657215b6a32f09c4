"""
The JSON error envelope shared by every failing DentalHub response.

Dashboard clients read ``error``; older clients read ``message``. Both carry
the same text, alongside the correlation id that also appears in the logs.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from dentalhub.utils.logging_utils import log_error

STATUS_HINTS = {
    400: "Bad request. Please check your input parameters.",
    403: "Origin not allowed. Check the CORS configuration.",
    404: "The requested resource was not found. Check the URL and resource ID.",
    405: "Method not allowed for this resource.",
    409: "Resource conflict. The resource may already exist.",
    429: "Upstream rate limit exceeded. Please try again later.",
    500: "Internal server error. Please try again later or contact support.",
    503: "Service temporarily unavailable. Please try again in a moment.",
    504: "The request took too long. Please try again.",
}


def get_hint_for_status_code(status_code: int) -> Optional[str]:
    return STATUS_HINTS.get(status_code)


def create_error_response(
    message: str,
    status_code: int = 500,
    correlation_id: Optional[str] = None,
    error_type: Optional[str] = None,
    hint: Optional[str] = None,
    path: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build the error envelope.

    Optional keys (``error_type``, ``hint``, ``path``) are omitted when unset.
    """
    body: Dict[str, Any] = {
        "status": "error",
        "error": message,
        "message": message,
        "status_code": status_code,
        "correlation_id": correlation_id or uuid.uuid4().hex,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    optional = {"error_type": error_type, "hint": hint, "path": path}
    body.update({key: value for key, value in optional.items() if value})
    return body


def get_correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", None) or uuid.uuid4().hex


def error_json_response(
    request: Request,
    message: str,
    status_code: int,
    error_type: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Render the envelope for ``request`` with the hint for ``status_code``."""
    body = create_error_response(
        message,
        status_code,
        correlation_id=get_correlation_id(request),
        error_type=error_type,
        hint=get_hint_for_status_code(status_code),
        path=request.url.path,
    )
    return JSONResponse(status_code=status_code, content=body, headers=headers)


def format_validation_error(errors: Iterable[Any]) -> str:
    """Flatten FastAPI validation errors into ``field: msg`` pairs."""
    parts = []
    for error in errors:
        if isinstance(error, dict):
            location = error.get("loc") or ["unknown"]
            parts.append(f"{location[-1]}: {error.get('msg', 'Validation error')}")
        else:
            parts.append(str(error))
    return "Validation failed: " + "; ".join(parts)


def internal_error_response(request: Request, exc: Exception) -> JSONResponse:
    """Log an unhandled exception with its traceback and render the 500 envelope."""
    log_error(
        f"Unhandled exception at {request.method} {request.url.path}: {exc}",
        request=request,
        exc_info=exc,
    )
    return error_json_response(request, str(exc) or type(exc).__name__, 500, "internal_error")
