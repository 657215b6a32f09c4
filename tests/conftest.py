from contextlib import asynccontextmanager

import pytest

from dentalhub.main import app


@pytest.fixture(scope="session")
def anyio_backend():
    """Restrict anyio tests to the asyncio backend."""

    yield "asyncio"


@pytest.fixture
def dependency_overrides_guard():
    """Save and restore FastAPI dependency overrides for each test."""

    original_overrides = dict(app.dependency_overrides)

    try:
        yield app.dependency_overrides
    finally:
        app.dependency_overrides = original_overrides


@pytest.fixture
def nexhealth_env(monkeypatch):
    """Scope identifiers required by the NexHealth-backed routes."""

    monkeypatch.setenv("NEXHEALTH_SUBDOMAIN", "smile-dental")
    monkeypatch.setenv("NEXHEALTH_LOCATION_ID", "101")


@pytest.fixture
def noop_lifespan():
    """Run the app without building the service container."""

    original_lifespan = app.router.lifespan_context

    @asynccontextmanager
    async def _noop(_app):
        yield

    app.router.lifespan_context = _noop
    try:
        yield
    finally:
        app.router.lifespan_context = original_lifespan
