from fastapi import Depends, Request

from dentalhub.config import NEXHEALTH_REQUIRED_VARS, require_env
from dentalhub.dashboard_service import DashboardService
from dentalhub.database import CrudRegistry
from dentalhub.health_service import HealthService
from dentalhub.nexhealth_resource_service import NexHealthResourceService
from .container import ServiceContainer


def get_container(request: Request) -> ServiceContainer:
    container = getattr(request.app.state, "container", None)
    if not container:
        raise RuntimeError("Service container not initialized")
    return container


def require_nexhealth_env() -> None:
    """Fail with 500 naming the unset scoping variables before any upstream call."""
    require_env(NEXHEALTH_REQUIRED_VARS)


def get_dashboard_service(
    container: ServiceContainer = Depends(get_container),
) -> DashboardService:
    service = container.dashboard_service
    if service is None:
        raise RuntimeError("Dashboard service not initialized")
    return service


def get_resource_service(
    container: ServiceContainer = Depends(get_container),
) -> NexHealthResourceService:
    service = container.resource_service
    if service is None:
        raise RuntimeError("NexHealth resource service not initialized")
    return service


def get_crud_registry(
    container: ServiceContainer = Depends(get_container),
) -> CrudRegistry:
    registry = container.crud_registry
    if registry is None:
        raise RuntimeError("CRUD registry not initialized")
    return registry


def get_health_service(
    container: ServiceContainer = Depends(get_container),
) -> HealthService:
    service = container.health_service
    if service is None:
        raise RuntimeError("Health service not initialized")
    return service
