import pytest

from dentalhub.config import NEXHEALTH_REQUIRED_VARS, Settings, require_env
from dentalhub.database.connection import get_database_url
from dentalhub.di import ServiceContainer
from dentalhub.errors import ConfigurationError


def test_from_env_reads_scoping_and_lists(monkeypatch):
    monkeypatch.setenv("NEXHEALTH_API_URL", "https://nex.example/")
    monkeypatch.delenv("NEXHEALTH_API_BASE_URL", raising=False)
    monkeypatch.setenv("NEXHEALTH_SUBDOMAIN", "smile-dental")
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example,")
    monkeypatch.setenv("NEXHEALTH_MAX_PAGES", "3")

    settings = Settings.from_env()

    assert settings.nexhealth_api_url == "https://nex.example"
    assert settings.nexhealth_api_base_url == "https://nex.example"
    assert settings.nexhealth_subdomain == "smile-dental"
    assert settings.cors_origins == ["https://a.example", "https://b.example"]
    assert settings.nexhealth_max_pages == 3


def test_from_env_rejects_non_positive_page_cap(monkeypatch):
    monkeypatch.setenv("NEXHEALTH_MAX_PAGES", "0")

    with pytest.raises(ValueError):
        Settings.from_env()


def test_require_env_lists_every_missing_name(monkeypatch):
    for name in NEXHEALTH_REQUIRED_VARS:
        monkeypatch.delenv(name, raising=False)

    with pytest.raises(ConfigurationError) as exc_info:
        require_env(NEXHEALTH_REQUIRED_VARS)

    assert exc_info.value.missing == list(NEXHEALTH_REQUIRED_VARS)


def test_database_url_is_made_async(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)

    assert get_database_url("postgres://u:p@db/app") == "postgresql+asyncpg://u:p@db/app"
    assert get_database_url("postgresql://u:p@db/app") == "postgresql+asyncpg://u:p@db/app"
    assert get_database_url().startswith("sqlite+aiosqlite:///")


@pytest.mark.anyio
async def test_container_wires_services_without_database():
    container = ServiceContainer(
        Settings(nexhealth_max_pages=4, revenue_annual_goal=500_000), init_db=False
    )

    await container.startup()
    try:
        assert container.resource_service.max_pages == 4
        assert container.dashboard_service.annual_goal == 500_000
        assert container.resource_service.client is container.nexhealth_client
        assert "prospect-tags" in container.crud_registry.names
    finally:
        await container.shutdown()
