"""
Tests for the component health check.
"""

from contextlib import asynccontextmanager

import httpx
import pytest
from fastapi.testclient import TestClient

from dentalhub.config import Settings
from dentalhub.di import get_health_service
from dentalhub.health_service import HealthService
from dentalhub.main import app


class FakeResponse:
    def __init__(self, status_code):
        self.status_code = status_code


class FakeHttpClient:
    def __init__(self, status_code=200, error=None):
        self.status_code = status_code
        self.error = error
        self.requests = []

    async def post(self, url, **kwargs):
        self.requests.append((url, kwargs))
        if self.error:
            raise self.error
        return FakeResponse(self.status_code)


async def healthy_database():
    return None


async def broken_database():
    raise RuntimeError("connection refused")


def make_service(*, api_key="sk-test", http_client=None, database_probe=healthy_database):
    settings = Settings(deepseek_api_key=api_key, commit_ref="abc123")
    return HealthService(
        settings,
        http_client=http_client or FakeHttpClient(),
        database_probe=database_probe,
    )


@pytest.mark.anyio
async def test_all_components_operational():
    http_client = FakeHttpClient()
    status_code, body = await make_service(http_client=http_client).run()

    assert status_code == 200
    assert body["status"] == "operational"
    assert body["service"] == "DentalHub API"
    assert body["version"] == "abc123"
    assert body["components"] == {
        "api": {"status": "operational"},
        "database": {"status": "operational"},
        "ai": {"status": "operational"},
    }
    url, kwargs = http_client.requests[0]
    assert kwargs["json"]["max_tokens"] == 5
    assert kwargs["headers"]["Authorization"] == "Bearer sk-test"


@pytest.mark.anyio
async def test_missing_ai_key_is_misconfigured():
    http_client = FakeHttpClient()
    status_code, body = await make_service(api_key=None, http_client=http_client).run()

    assert status_code == 503
    assert body["status"] == "degraded"
    assert body["components"]["ai"] == {
        "status": "misconfigured",
        "message": "AI service unavailable",
    }
    assert http_client.requests == []


@pytest.mark.anyio
async def test_failures_degrade_components():
    status_code, body = await make_service(
        http_client=FakeHttpClient(error=httpx.ConnectError("unreachable")),
        database_probe=broken_database,
    ).run()

    assert status_code == 503
    assert body["components"]["database"]["status"] == "degraded"
    assert body["components"]["database"]["message"] == "Database connection issue"
    assert body["components"]["ai"]["status"] == "degraded"


@pytest.mark.anyio
async def test_non_200_ai_response_is_degraded():
    _, body = await make_service(http_client=FakeHttpClient(status_code=401)).run()

    assert body["components"]["ai"]["status"] == "degraded"


def test_health_check_endpoint_sets_status_and_no_cache(dependency_overrides_guard):
    original_lifespan = app.router.lifespan_context

    @asynccontextmanager
    async def noop_lifespan(_app):
        yield

    app.router.lifespan_context = noop_lifespan
    dependency_overrides_guard[get_health_service] = lambda: make_service(
        database_probe=broken_database
    )
    try:
        with TestClient(app) as client:
            response = client.get("/api/health-check")
    finally:
        app.router.lifespan_context = original_lifespan

    assert response.status_code == 503
    assert response.headers["Cache-Control"] == "no-cache, no-store, must-revalidate"
    body = response.json()
    assert body["components"]["api"] == {"status": "operational"}
    assert body["components"]["database"]["status"] == "degraded"


def test_liveness_endpoint(noop_lifespan):
    with TestClient(app) as client:
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
