"""
CORS for the DentalHub API.

Header emission and preflight checks are Starlette's ``CORSMiddleware``. The
origin policy wraps it: allowed origins are exact literals plus https hosts
ending in one of the configured suffixes, any other ``Origin`` is rejected
with 403, requests without an ``Origin`` are answered for the first allowed
origin, and unhandled errors still leave with CORS headers.
"""

import logging
import re
from typing import Dict, Iterable, Optional
from urllib.parse import urlsplit

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from dentalhub.utils.error_responses import error_json_response, internal_error_response

logger = logging.getLogger(__name__)

ALLOW_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
ALLOW_HEADERS = ["Content-Type", "Authorization", "X-Correlation-ID", "X-Requested-With"]


def origin_regex(suffixes: Iterable[str]) -> Optional[str]:
    """Regex matching https origins whose host ends in one of ``suffixes``."""
    escaped = [re.escape(suffix) for suffix in suffixes if suffix]
    if not escaped:
        return None
    return r"https://[^/:]*(?:" + "|".join(escaped) + r")(?::\d+)?"


class OriginPolicyMiddleware(BaseHTTPMiddleware):
    """Deny unknown origins and fill in CORS headers the library leaves off."""

    def __init__(
        self,
        app,
        allowed_origins: Iterable[str] = (),
        allowed_suffixes: Iterable[str] = (".netlify.app",),
    ):
        super().__init__(app)
        self.allowed_origins = [origin.rstrip("/") for origin in allowed_origins]
        self.allowed_suffixes = tuple(allowed_suffixes)

    def is_allowed(self, origin: str) -> bool:
        if origin.rstrip("/") in self.allowed_origins:
            return True
        parts = urlsplit(origin)
        host = parts.hostname or ""
        return parts.scheme == "https" and any(
            host.endswith(suffix) for suffix in self.allowed_suffixes
        )

    @property
    def default_origin(self) -> str:
        return self.allowed_origins[0] if self.allowed_origins else "*"

    def cors_headers(self, origin: Optional[str]) -> Dict[str, str]:
        return {
            "Access-Control-Allow-Origin": origin or self.default_origin,
            "Access-Control-Allow-Methods": ", ".join(ALLOW_METHODS),
            "Access-Control-Allow-Headers": ", ".join(ALLOW_HEADERS),
            "Access-Control-Allow-Credentials": "true",
            "Vary": "Origin",
        }

    @staticmethod
    def is_preflight(request: Request) -> bool:
        return (
            request.method == "OPTIONS"
            and "origin" in request.headers
            and "access-control-request-method" in request.headers
        )

    def preflight_reply(self, request: Request, response: Response) -> Response:
        """Turn the library's preflight answer into a 204, or a JSON 400 when refused."""
        if response.status_code == 200:
            headers = {
                key: value
                for key, value in response.headers.items()
                if key not in ("content-length", "content-type")
            }
            return Response(status_code=204, headers=headers)
        logger.warning(
            "Rejected preflight for %s %s",
            request.headers.get("access-control-request-method"),
            request.url.path,
        )
        return error_json_response(
            request,
            "Preflight request not allowed",
            400,
            error_type="cors_denied",
            headers=self.cors_headers(request.headers.get("origin")),
        )

    async def dispatch(self, request: Request, call_next):
        origin = request.headers.get("origin")

        if origin and not self.is_allowed(origin):
            logger.warning("Rejected request from disallowed origin %s", origin)
            return error_json_response(
                request,
                f"Origin not allowed: {origin}",
                403,
                error_type="cors_denied",
                headers=self.cors_headers(None),
            )

        if request.method == "OPTIONS" and not self.is_preflight(request):
            return Response(status_code=204, headers=self.cors_headers(origin))

        try:
            response = await call_next(request)
        except Exception as exc:
            response = internal_error_response(request, exc)

        if self.is_preflight(request):
            return self.preflight_reply(request, response)
        if "access-control-allow-origin" not in response.headers:
            response.headers.update(self.cors_headers(origin))
        return response


def add_cors(app: FastAPI, allowed_origins: Iterable[str], allowed_suffixes: Iterable[str]) -> None:
    """Install the library CORS middleware with the origin policy around it."""
    allowed_origins = [origin.rstrip("/") for origin in allowed_origins]
    allowed_suffixes = list(allowed_suffixes)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_origin_regex=origin_regex(allowed_suffixes),
        allow_credentials=True,
        allow_methods=ALLOW_METHODS,
        allow_headers=ALLOW_HEADERS,
    )
    app.add_middleware(
        OriginPolicyMiddleware,
        allowed_origins=allowed_origins,
        allowed_suffixes=allowed_suffixes,
    )
