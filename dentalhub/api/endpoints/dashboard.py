from fastapi import APIRouter, Depends
from typing import Any, Dict, Optional

from dentalhub.dashboard_service import DashboardService
from dentalhub.di import get_dashboard_service, require_nexhealth_env

router = APIRouter(dependencies=[Depends(require_nexhealth_env)])


@router.get("/revenue")
async def revenue_dashboard(
    timeframe: Optional[str] = None,
    year: Optional[str] = None,
    dashboard: DashboardService = Depends(get_dashboard_service),
) -> Dict[str, Any]:
    """Revenue against the annual goal, bucketed by month, quarter or year."""
    return {"data": await dashboard.revenue(timeframe, year)}


@router.get("/daily-huddle")
async def daily_huddle_dashboard(
    date: Optional[str] = None,
    dashboard: DashboardService = Depends(get_dashboard_service),
) -> Dict[str, Any]:
    return {"data": await dashboard.daily_huddle(date)}


@router.get("/monthly-report")
async def monthly_report_dashboard(
    year: Optional[str] = None,
    month: Optional[str] = None,
    dashboard: DashboardService = Depends(get_dashboard_service),
) -> Dict[str, Any]:
    """The monthly report body is returned without the ``data`` envelope."""
    return await dashboard.monthly_report(year, month)


@router.get("/active-patients")
async def active_patients_dashboard(
    period: Optional[str] = None,
    dashboard: DashboardService = Depends(get_dashboard_service),
) -> Dict[str, Any]:
    return {"data": await dashboard.active_patients(period)}


@router.get("/treatment-success")
async def treatment_success_dashboard(
    period: Optional[str] = None,
    dashboard: DashboardService = Depends(get_dashboard_service),
) -> Dict[str, Any]:
    return {"data": await dashboard.treatment_success(period)}


@router.get("/patient-satisfaction")
async def patient_satisfaction_dashboard(
    period: Optional[str] = None,
    dashboard: DashboardService = Depends(get_dashboard_service),
) -> Dict[str, Any]:
    """Simulated satisfaction scores; the payload is flagged ``synthetic``."""
    return {"data": await dashboard.patient_satisfaction(period)}
