from .container import ServiceContainer
from .deps import (
    get_container,
    get_crud_registry,
    get_dashboard_service,
    get_health_service,
    get_resource_service,
    require_nexhealth_env,
)

__all__ = [
    "ServiceContainer",
    "get_container",
    "get_crud_registry",
    "get_dashboard_service",
    "get_health_service",
    "get_resource_service",
    "require_nexhealth_env",
]
