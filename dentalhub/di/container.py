import logging
from typing import Optional

from dentalhub.config import Settings
from dentalhub.dashboard_service import DashboardService
from dentalhub.database import CrudRegistry, close_database, init_database
from dentalhub.health_service import HealthService
from dentalhub.nexhealth_http_client import NexHealthClient, TokenCache
from dentalhub.nexhealth_resource_service import NexHealthResourceService

logger = logging.getLogger(__name__)


class ServiceContainer:
    """Centralized application service container for shared singletons."""

    def __init__(self, settings: Settings, *, init_db: bool = True) -> None:
        self.settings = settings
        self.init_db = init_db

        self.token_cache: Optional[TokenCache] = None
        self.nexhealth_client: Optional[NexHealthClient] = None
        self.resource_service: Optional[NexHealthResourceService] = None
        self.dashboard_service: Optional[DashboardService] = None
        self.crud_registry: Optional[CrudRegistry] = None
        self.health_service: Optional[HealthService] = None

    async def startup(self) -> None:
        settings = self.settings

        logger.info("Loading NexHealth HTTP client and resource service...")
        self.token_cache = TokenCache()
        self.nexhealth_client = NexHealthClient(
            settings.nexhealth_api_base_url,
            auth_url=settings.nexhealth_api_url,
            api_key=settings.nexhealth_api_key,
            subdomain=settings.nexhealth_subdomain,
            location_id=settings.nexhealth_location_id,
            token_cache=self.token_cache,
            timeout=settings.request_timeout_seconds,
        )
        self.resource_service = NexHealthResourceService(
            self.nexhealth_client,
            max_pages=settings.nexhealth_max_pages,
            default_provider_id=settings.nexhealth_default_provider_id,
        )
        self.dashboard_service = DashboardService(
            self.resource_service,
            annual_goal=settings.revenue_annual_goal,
        )

        if self.init_db:
            logger.info("Initializing relational store...")
            await init_database(settings.database_url, echo=settings.debug)
        self.crud_registry = CrudRegistry()

        self.health_service = HealthService(settings)

        logger.info("Service container initialized successfully")

    async def shutdown(self) -> None:
        if self.nexhealth_client:
            await self.nexhealth_client.aclose()
        if self.health_service:
            await self.health_service.aclose()
        if self.init_db:
            await close_database()
