"""Component probes behind ``GET /api/health-check``."""

import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

import anyio
import httpx

from .config import Settings
from .database import connection

logger = logging.getLogger(__name__)

OPERATIONAL = "operational"
DEGRADED = "degraded"
MISCONFIGURED = "misconfigured"

AI_PROBE_TIMEOUT_SECONDS = 5.0
AI_PROBE_MODEL = "deepseek-chat"

COMPONENT_FAILURE_MESSAGES = {
    "database": "Database connection issue",
    "ai": "AI service unavailable",
}


class HealthService:
    """Probes the relational store and the AI provider concurrently."""

    def __init__(
        self,
        settings: Settings,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        database_probe: Optional[Callable[[], Awaitable[None]]] = None,
    ) -> None:
        self.settings = settings
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(timeout=AI_PROBE_TIMEOUT_SECONDS)
        self._database_probe = database_probe or connection.ping_database

    async def check_database(self) -> str:
        if not connection.is_initialized() and self._database_probe is connection.ping_database:
            return MISCONFIGURED
        try:
            await self._database_probe()
        except Exception as exc:
            logger.warning("Database health check failed: %s", exc)
            return DEGRADED
        return OPERATIONAL

    async def check_ai(self) -> str:
        api_key = self.settings.deepseek_api_key
        if not api_key:
            return MISCONFIGURED
        try:
            response = await self.http_client.post(
                self.settings.deepseek_api_url,
                json={
                    "model": AI_PROBE_MODEL,
                    "messages": [{"role": "user", "content": "Health check"}],
                    "max_tokens": 5,
                },
                headers={"Authorization": f"Bearer {api_key}"},
                timeout=AI_PROBE_TIMEOUT_SECONDS,
            )
        except httpx.HTTPError as exc:
            logger.warning("AI service health check failed: %s", exc)
            return DEGRADED
        return OPERATIONAL if response.status_code == 200 else DEGRADED

    async def run(self) -> Tuple[int, Dict[str, Any]]:
        """Return ``(status_code, body)``; 503 when any component has issues."""

        results: Dict[str, str] = {}
        async with anyio.create_task_group() as tg:
            tg.start_soon(self._probe, "database", self.check_database, results)
            tg.start_soon(self._probe, "ai", self.check_ai, results)

        components: Dict[str, Dict[str, Any]] = {"api": {"status": OPERATIONAL}}
        for name in ("database", "ai"):
            component: Dict[str, Any] = {"status": results[name]}
            if results[name] != OPERATIONAL:
                component["message"] = COMPONENT_FAILURE_MESSAGES[name]
            components[name] = component

        has_issues = any(c["status"] != OPERATIONAL for c in components.values())
        body = {
            "service": "DentalHub API",
            "status": DEGRADED if has_issues else OPERATIONAL,
            "version": self.settings.commit_ref,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "components": components,
        }
        return (503 if has_issues else 200), body

    async def _probe(
        self,
        name: str,
        check: Callable[[], Awaitable[str]],
        results: Dict[str, str],
    ) -> None:
        results[name] = await check()

    async def aclose(self) -> None:
        if self._owns_client and not self.http_client.is_closed:
            await self.http_client.aclose()
