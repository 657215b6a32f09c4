from fastapi.testclient import TestClient

from dentalhub.di import get_crud_registry, get_dashboard_service
from dentalhub.errors import ConflictError, ConfigurationError, NotFoundError
from dentalhub.main import app, settings
from dentalhub.utils.error_responses import create_error_response, format_validation_error
from dentalhub.utils.logging_utils import with_correlation


def test_error_body_shape():
    body = create_error_response(
        "Tag not found",
        404,
        correlation_id="abc",
        error_type="not_found",
        hint="Check the id",
        path="/api/database/tags/x",
    )

    assert body["error"] == body["message"] == "Tag not found"
    assert body["status_code"] == 404
    assert body["correlation_id"] == "abc"
    assert body["path"] == "/api/database/tags/x"


def test_domain_errors_carry_status():
    assert NotFoundError("x").status_code == 404
    assert ConflictError("x").status_code == 409
    error = ConfigurationError(["A", "B"])
    assert error.status_code == 500
    assert error.message == "Missing required environment variables: A, B"


def test_format_validation_error_names_fields():
    message = format_validation_error(
        [{"loc": ["query", "page"], "msg": "value is not a valid integer"}]
    )

    assert message == "Validation failed: page: value is not a valid integer"


def test_unknown_path_returns_standard_404(noop_lifespan):
    with TestClient(app) as client:
        response = client.get("/api/not-a-route/a/b/c")

    assert response.status_code == 404
    assert response.json()["status"] == "error"
    assert response.json()["path"] == "/api/not-a-route/a/b/c"


def test_unknown_dashboard_report_is_not_found(noop_lifespan):
    with TestClient(app) as client:
        response = client.get("/api/dashboard/churn")

    assert response.status_code == 404


def test_correlation_id_is_echoed(noop_lifespan, dependency_overrides_guard):
    class MissingRegistry:
        def get(self, name):
            raise NotFoundError(f"Unknown database resource: {name}")

    dependency_overrides_guard[get_crud_registry] = lambda: MissingRegistry()

    with TestClient(app) as client:
        response = client.get("/api/database/widgets", headers={"X-Correlation-ID": "req-42"})

    assert response.status_code == 404
    assert response.headers["X-Correlation-ID"] == "req-42"
    assert response.json()["correlation_id"] == "req-42"


def test_unhandled_exception_returns_500(noop_lifespan, nexhealth_env, dependency_overrides_guard):
    class ExplodingDashboard:
        async def revenue(self, timeframe, year):
            raise RuntimeError("boom")

    dependency_overrides_guard[get_dashboard_service] = lambda: ExplodingDashboard()
    origin = settings.cors_origins[0]

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get(
            "/api/dashboard/revenue",
            headers={"Origin": origin, "X-Correlation-ID": "req-500"},
        )

    assert response.status_code == 500
    assert response.json()["error"] == "boom"
    assert response.json()["error_type"] == "internal_error"
    assert response.json()["correlation_id"] == "req-500"
    assert response.headers["Access-Control-Allow-Origin"] == origin
    assert response.headers["X-Correlation-ID"] == "req-500"


def test_log_lines_carry_correlation_id():
    class _State:
        correlation_id = "req-7"

    class _Request:
        state = _State()

    assert with_correlation("Tag not found", _Request(), resource="tags") == (
        "[req-7] Tag not found (resource=tags)"
    )
    assert with_correlation("plain") == "plain"
