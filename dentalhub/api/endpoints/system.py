from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
import logging

from dentalhub.di import get_health_service
from dentalhub.health_service import HealthService
from dentalhub.models import HealthCheckResponse

logger = logging.getLogger(__name__)

router = APIRouter()

NO_CACHE_HEADERS = {"Cache-Control": "no-cache, no-store, must-revalidate"}


@router.get("/health-check", response_model=HealthCheckResponse)
async def health_check(health: HealthService = Depends(get_health_service)):
    """
    Component health check.

    Probes the relational store and the AI provider. Answers 503 when any
    component is degraded or misconfigured.
    """
    status_code, body = await health.run()
    if status_code != 200:
        logger.warning("Health check reports issues: %s", body["components"])

    payload = HealthCheckResponse(**body).model_dump(exclude_none=True)
    return JSONResponse(status_code=status_code, content=payload, headers=NO_CACHE_HEADERS)
