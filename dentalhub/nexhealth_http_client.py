"""Low-level NexHealth HTTP client handling token auth, rate-limit retries and scoping."""

import asyncio
import logging
import random
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx
from jose import jwt
from jose.exceptions import JWTError

from dentalhub.errors import DentalHubError

logger = logging.getLogger(__name__)

NEXHEALTH_ACCEPT = "application/vnd.Nexhealth+json;version=2"
NEXHEALTH_API_VERSION = "v2"

# Tokens are refreshed this long before their decoded expiry.
TOKEN_REFRESH_MARGIN = timedelta(minutes=5)
DEFAULT_TOKEN_LIFETIME = timedelta(hours=1)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NexHealthError(DentalHubError):
    """Failure talking to the NexHealth API; carries the upstream status when known."""

    error_type = "nexhealth_error"

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        error_type: str = "nexhealth_error",
        correlation_id: str = "",
    ) -> None:
        super().__init__(message, status_code=status_code or 500, error_type=error_type)
        self.upstream_status = status_code
        self.correlation_id = correlation_id

    def __str__(self) -> str:  # pragma: no cover - simple representation
        parts = [f"{self.error_type}: {self.message}"]
        if self.upstream_status is not None:
            parts.append(f"status={self.upstream_status}")
        if self.correlation_id:
            parts.append(f"correlation_id={self.correlation_id}")
        return "; ".join(parts)


class RetriesExhaustedError(NexHealthError):
    """Raised once every attempt of a request was rejected with HTTP 429.

    The final attempt's rate-limit error is chained as ``__cause__``.
    """

    def __init__(self, message: str, *, attempts: int, correlation_id: str = "") -> None:
        super().__init__(
            message,
            status_code=429,
            error_type="retries_exhausted",
            correlation_id=correlation_id,
        )
        self.attempts = attempts


class TokenCache:
    """In-memory bearer token holder shared by every request of one process."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._clock = clock or _utcnow
        self.token: Optional[str] = None
        self.expires_at: Optional[datetime] = None

    def now(self) -> datetime:
        return self._clock()

    def get(self) -> Optional[str]:
        """Return the cached token unless it is within the refresh margin of expiry."""

        if not self.token or not self.expires_at:
            return None
        if self.now() < self.expires_at - TOKEN_REFRESH_MARGIN:
            return self.token
        return None

    def store(self, token: str, expires_at: datetime) -> None:
        self.token = token
        self.expires_at = expires_at

    def clear(self) -> None:
        self.token = None
        self.expires_at = None


def token_expiry(token: str, now: datetime) -> datetime:
    """Read the ``exp`` claim of a JWT without verifying it."""

    try:
        claims = jwt.get_unverified_claims(token)
        exp = claims.get("exp")
        if exp is not None:
            return datetime.fromtimestamp(int(exp), tz=timezone.utc)
    except (JWTError, TypeError, ValueError) as exc:
        logger.warning("Could not decode NexHealth token expiry: %s", exc)
    return now + DEFAULT_TOKEN_LIFETIME


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or "no response body"
    if isinstance(payload, dict):
        errors = payload.get("error")
        if isinstance(errors, list) and errors:
            return ", ".join(str(error) for error in errors)
        return str(payload.get("description") or payload.get("message") or errors or payload)
    return str(payload)


class NexHealthClient:
    """Authenticated NexHealth client with 429 backoff and common scoping parameters."""

    def __init__(
        self,
        base_url: str,
        *,
        auth_url: Optional[str] = None,
        api_key: str = "",
        subdomain: Optional[str] = None,
        location_id: Optional[str] = None,
        token_cache: Optional[TokenCache] = None,
        session: Optional[Any] = None,
        max_attempts: int = 5,
        timeout: float = 30.0,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.base_url = base_url.rstrip("/")
        self.auth_url = (auth_url or base_url).rstrip("/")
        self.api_key = api_key
        self.subdomain = subdomain
        self.location_id = location_id
        self.token_cache = token_cache or TokenCache()
        self.max_attempts = max_attempts
        self._owns_session = session is None
        self.session = session or httpx.AsyncClient(timeout=timeout)
        self._sleep = sleep or asyncio.sleep
        self._rng = rng or random.Random()

        logger.info("NexHealth client initialized for %s", self.base_url)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return await self._request_with_retry("GET", path, params=params)

    async def post(
        self,
        path: str,
        body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        return await self._request_with_retry("POST", path, params=params, body=body or {})

    async def patch(
        self,
        path: str,
        body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        return await self._request_with_retry("PATCH", path, params=params, body=body or {})

    async def aclose(self) -> None:
        if self._owns_session and not self.session.is_closed:
            await self.session.aclose()

    def common_params(self, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Merge the account and location scoping identifiers into ``params``."""

        merged = {key: value for key, value in (params or {}).items() if value is not None}
        if self.subdomain:
            merged["subdomain"] = self.subdomain
        if self.location_id:
            merged["location_id"] = self.location_id
        return merged

    def backoff_delay(self, attempt: int) -> float:
        """Seconds to wait after the zero-based ``attempt`` was rate limited."""

        milliseconds = (2 ** attempt) * 1000 + self._rng.uniform(0, 1000)
        return milliseconds / 1000.0

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------
    async def get_token(self) -> str:
        cached = self.token_cache.get()
        if cached:
            return cached

        try:
            response = await self.session.request(
                "POST",
                f"{self.auth_url}/authenticates",
                headers={
                    "Accept": NEXHEALTH_ACCEPT,
                    "Authorization": self.api_key,
                    "Nex-Api-Version": NEXHEALTH_API_VERSION,
                },
            )
        except httpx.RequestError as exc:
            raise NexHealthError(
                f"Authentication failed: {exc}", error_type="auth_failed"
            ) from exc

        if response.status_code >= 400:
            raise NexHealthError(
                f"Authentication failed ({response.status_code}): {_error_detail(response)}",
                status_code=response.status_code,
                error_type="auth_failed",
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise NexHealthError(
                "Authentication failed: invalid authentication response",
                error_type="auth_failed",
            ) from exc

        token = ((payload or {}).get("data") or {}).get("token")
        if payload.get("code") is not True or not token:
            raise NexHealthError(
                "Authentication failed: invalid authentication response",
                error_type="auth_failed",
            )

        expires_at = token_expiry(token, self.token_cache.now())
        self.token_cache.store(token, expires_at)
        logger.info("Obtained NexHealth token valid until %s", expires_at.isoformat())
        return token

    def _headers(self, token: str) -> Dict[str, str]:
        return {
            "Accept": NEXHEALTH_ACCEPT,
            "Authorization": f"Bearer {token}",
            "Nex-Api-Version": NEXHEALTH_API_VERSION,
        }

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    async def _request_with_retry(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
        correlation_context: str = "",
    ) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        query = self.common_params(params)
        last_error: Optional[NexHealthError] = None

        for attempt in range(self.max_attempts):
            token = await self.get_token()
            try:
                response = await self.session.request(
                    method,
                    url,
                    params=query,
                    json=body,
                    headers=self._headers(token),
                )
            except httpx.RequestError as exc:
                raise NexHealthError(
                    f"Request to {path} failed: {exc}",
                    error_type="request_failed",
                    correlation_id=correlation_context,
                ) from exc

            if response.status_code != 429:
                return self._decode(response, path, correlation_context)

            last_error = NexHealthError(
                f"NexHealth rate limit hit for {method} {path}",
                status_code=429,
                error_type="rate_limited",
                correlation_id=correlation_context,
            )
            if attempt + 1 >= self.max_attempts:
                break

            delay = self.backoff_delay(attempt)
            logger.info(
                "Rate limited on %s %s, retrying in %.0fms (attempt %s/%s)",
                method,
                path,
                delay * 1000,
                attempt + 2,
                self.max_attempts,
            )
            await self._sleep(delay)

        logger.warning(
            "Max attempts reached for %s %s (correlation=%s)",
            method,
            path,
            correlation_context,
        )
        raise RetriesExhaustedError(
            f"Request to {path} still rate limited after {self.max_attempts} attempts",
            attempts=self.max_attempts,
            correlation_id=correlation_context,
        ) from last_error

    def _decode(
        self, response: httpx.Response, path: str, correlation_context: str
    ) -> Dict[str, Any]:
        if response.status_code >= 400:
            raise NexHealthError(
                f"NexHealth request to {path} failed ({response.status_code}): "
                f"{_error_detail(response)}",
                status_code=response.status_code,
                error_type="upstream_error",
                correlation_id=correlation_context,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise NexHealthError(
                f"NexHealth returned a non-JSON response for {path}",
                error_type="invalid_response",
                correlation_id=correlation_context,
            ) from exc

        if not isinstance(payload, dict) or payload.get("code") is not True:
            errors = payload.get("error") if isinstance(payload, dict) else None
            if isinstance(errors, list) and errors:
                detail = ", ".join(str(error) for error in errors)
            else:
                detail = (payload.get("description") if isinstance(payload, dict) else None) or "Unknown error"
            raise NexHealthError(
                f"API Error: {detail}",
                error_type="api_error",
                correlation_id=correlation_context,
            )

        return payload
