"""Dashboard orchestration: concurrent NexHealth fetches feeding the report builders."""

from __future__ import annotations

import logging
import random
from datetime import date
from typing import Any, Awaitable, Callable, Dict, List, Optional

import anyio

from .errors import ValidationError
from .nexhealth_resource_service import NexHealthResourceService, ResourceCollection
from .reports import (
    build_active_patients_report,
    build_daily_huddle_report,
    build_monthly_report,
    build_patient_satisfaction_report,
    build_revenue_report,
    build_treatment_success_report,
)
from .reports.common import LONG_PERIODS, period_block, rolling_window
from .reports.daily_huddle import huddle_date
from .reports.monthly_report import month_bounds, resolve_month
from .reports.revenue import normalize_timeframe, revenue_date_range

logger = logging.getLogger(__name__)

Fetcher = Callable[[], Awaitable[ResourceCollection]]


class DashboardService:
    """Builds dashboard reports from freshly fetched NexHealth collections."""

    def __init__(
        self,
        resources: NexHealthResourceService,
        *,
        annual_goal: float = 1_200_000.0,
        today: Optional[Callable[[], date]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.resources = resources
        self.annual_goal = annual_goal
        self._today = today or date.today
        self._rng = rng or random.Random()

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------
    async def revenue(self, timeframe: Optional[str], year: Optional[str]) -> Dict[str, Any]:
        today = self._today()
        timeframe = normalize_timeframe(timeframe)
        try:
            resolved_year = int(year) if year not in (None, "") else today.year
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid year: {year}")
        if not 1 <= resolved_year <= 9999:
            raise ValidationError(f"Invalid year: {year}")
        start, end = revenue_date_range(timeframe, resolved_year, today)
        logger.info("Building revenue report for %s to %s", start, end)

        collections = await self._gather(
            payments=lambda: self.resources.payments(start, end),
            charges=lambda: self.resources.charges(start, end),
        )
        report = build_revenue_report(
            collections["payments"].records,
            collections["charges"].records,
            timeframe=timeframe,
            year=resolved_year,
            today=today,
            annual_goal=self.annual_goal,
            rng=self._rng,
        )
        return self._with_meta(report, collections)

    async def daily_huddle(self, requested: Optional[str]) -> Dict[str, Any]:
        day = huddle_date(requested, self._today())
        collections = await self._gather(
            appointments=lambda: self.resources.appointments(day, day),
            procedures=lambda: self.resources.procedures(),
            providers=lambda: self.resources.providers(),
        )
        report = build_daily_huddle_report(
            collections["appointments"].records,
            collections["procedures"].records,
            collections["providers"].records,
            day=day,
        )
        return self._with_meta(report, collections)

    async def monthly_report(self, year: Optional[str], month: Optional[str]) -> Dict[str, Any]:
        resolved_year, resolved_month = resolve_month(year, month, self._today())
        start, end = month_bounds(resolved_year, resolved_month)
        collections = await self._gather(
            payments=lambda: self.resources.payments(start, end),
            appointments=lambda: self.resources.appointments(start, end),
            procedures=lambda: self.resources.procedures(start, end),
        )
        report = build_monthly_report(
            collections["payments"].records,
            collections["appointments"].records,
            collections["procedures"].records,
            year=resolved_year,
            month=resolved_month,
        )
        return self._with_meta(report, collections)

    async def active_patients(self, period: Optional[str]) -> Dict[str, Any]:
        today = self._today()
        label, start, end = rolling_window(period, today)
        collections = await self._gather(
            patients=lambda: self.resources.patients(start, end),
            appointments=lambda: self.resources.appointments(start, end),
            providers=lambda: self.resources.providers(),
        )
        report = build_active_patients_report(
            collections["patients"].records,
            collections["appointments"].records,
            collections["providers"].records,
            today=today,
        )
        report["period"] = period_block(label, start, end)
        return self._with_meta(report, collections)

    async def treatment_success(self, period: Optional[str]) -> Dict[str, Any]:
        label, start, end = rolling_window(period, self._today(), allowed=LONG_PERIODS)
        collections = await self._gather(
            appointments=lambda: self.resources.appointments(start, end),
            procedures=lambda: self.resources.procedures(),
        )
        report = build_treatment_success_report(
            collections["appointments"].records,
            collections["procedures"].records,
            start=start,
            end=end,
        )
        report["period"] = period_block(label, start, end)
        return self._with_meta(report, collections)

    async def patient_satisfaction(self, period: Optional[str]) -> Dict[str, Any]:
        label, start, end = rolling_window(period, self._today(), allowed=LONG_PERIODS)
        collections = await self._gather(
            documents=lambda: self.resources.patient_documents(start, end),
            appointments=lambda: self.resources.appointments(start, end),
            providers=lambda: self.resources.providers(),
        )
        report = build_patient_satisfaction_report(
            collections["documents"].records,
            collections["appointments"].records,
            collections["providers"].records,
            rng=self._rng,
        )
        report["period"] = period_block(label, start, end)
        return self._with_meta(report, collections)

    # ------------------------------------------------------------------
    # Fan-out helpers
    # ------------------------------------------------------------------
    async def _gather(self, **fetchers: Fetcher) -> Dict[str, ResourceCollection]:
        """Run every fetcher concurrently; the first failure cancels the rest."""

        results: Dict[str, ResourceCollection] = {}
        failures: List[Exception] = []
        async with anyio.create_task_group() as tg:
            for key, fetcher in fetchers.items():
                tg.start_soon(self._fetch_and_store, fetcher, results, key, failures, tg.cancel_scope)

        if failures:
            raise failures[0]
        return results

    async def _fetch_and_store(
        self,
        fetcher: Fetcher,
        store: Dict[str, ResourceCollection],
        key: str,
        failures: List[Exception],
        cancel_scope: anyio.CancelScope,
    ) -> None:
        try:
            store[key] = await fetcher()
        except Exception as exc:
            logger.error("Fetching %s failed: %s", key, exc)
            failures.append(exc)
            cancel_scope.cancel()

    @staticmethod
    def _with_meta(
        report: Dict[str, Any], collections: Dict[str, ResourceCollection]
    ) -> Dict[str, Any]:
        report["meta"] = {
            "truncated": sorted(name for name, c in collections.items() if c.truncated),
        }
        return report
