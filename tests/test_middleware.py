import asyncio

from fastapi import FastAPI
from fastapi.testclient import TestClient

from dentalhub.middleware import TimeoutMiddleware, add_cors


def build_app():
    app = FastAPI()

    @app.get("/api/ping")
    async def ping():
        return {"ok": True}

    @app.get("/api/slow")
    async def slow():
        await asyncio.sleep(2)
        return {"ok": True}

    @app.get("/api/broken")
    async def broken():
        raise RuntimeError("store offline")

    @app.get("/api/dashboard/slow")
    async def slow_dashboard():
        await asyncio.sleep(0.8)
        return {"ok": True}

    app.add_middleware(TimeoutMiddleware, timeout_seconds=0.5, long_timeout_endpoints={"/api/dashboard": 5.0})
    add_cors(app, ["http://localhost:3000", "https://app.dentalhub.example"], [".netlify.app"])
    return app


def test_allowed_origin_is_echoed():
    with TestClient(build_app()) as client:
        response = client.get("/api/ping", headers={"Origin": "https://app.dentalhub.example"})

    assert response.status_code == 200
    assert response.headers["Access-Control-Allow-Origin"] == "https://app.dentalhub.example"
    assert response.headers["Access-Control-Allow-Credentials"] == "true"


def test_suffix_origins_require_https():
    with TestClient(build_app()) as client:
        preview = client.get("/api/ping", headers={"Origin": "https://deploy-preview-4--clinic.netlify.app"})
        insecure = client.get("/api/ping", headers={"Origin": "http://clinic.netlify.app"})

    assert preview.status_code == 200
    assert insecure.status_code == 403
    assert insecure.json()["error_type"] == "cors_denied"


def test_disallowed_origin_is_rejected():
    with TestClient(build_app()) as client:
        response = client.get("/api/ping", headers={"Origin": "https://evil.example"})

    assert response.status_code == 403
    assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:3000"


def test_requests_without_origin_get_first_allowed_origin():
    with TestClient(build_app()) as client:
        response = client.get("/api/ping")

    assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:3000"


def test_preflight_answers_204():
    with TestClient(build_app()) as client:
        response = client.options(
            "/api/ping",
            headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "POST"},
        )

    assert response.status_code == 204
    assert "POST" in response.headers["Access-Control-Allow-Methods"]


def test_preflight_for_unlisted_method_is_refused():
    with TestClient(build_app()) as client:
        response = client.options(
            "/api/ping",
            headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "TRACE"},
        )

    assert response.status_code == 400
    assert response.json()["error_type"] == "cors_denied"


def test_plain_options_answers_204():
    with TestClient(build_app()) as client:
        response = client.options("/api/anything/at/all")

    assert response.status_code == 204
    assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:3000"


def test_unhandled_error_keeps_cors_headers():
    with TestClient(build_app(), raise_server_exceptions=False) as client:
        response = client.get("/api/broken", headers={"Origin": "https://clinic.netlify.app"})

    assert response.status_code == 500
    assert response.headers["Access-Control-Allow-Origin"] == "https://clinic.netlify.app"
    assert response.json()["error"] == "store offline"


def test_slow_request_times_out_with_504():
    with TestClient(build_app()) as client:
        response = client.get("/api/slow")

    assert response.status_code == 504
    assert response.headers["Retry-After"] == "30"
    assert response.json()["error_type"] == "timeout"


def test_dashboard_paths_get_the_long_timeout():
    with TestClient(build_app()) as client:
        response = client.get("/api/dashboard/slow")

    assert response.status_code == 200
