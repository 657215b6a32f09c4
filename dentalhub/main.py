"""
DentalHub API - Main Application Entry Point
Aggregates NexHealth practice data into dashboards and serves the marketing CRUD API.
"""

# Load environment variables
import os
from dotenv import load_dotenv
load_dotenv()

from contextlib import asynccontextmanager
import logging
import time
import uuid

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from dentalhub import __version__
from dentalhub.api.api import api_router
from dentalhub.config import Settings
from dentalhub.di import ServiceContainer
from dentalhub.errors import DentalHubError
from dentalhub.middleware import TimeoutMiddleware, add_cors
from dentalhub.models import LivenessResponse
from dentalhub.utils.error_responses import (
    error_json_response,
    format_validation_error,
    internal_error_response,
)
from dentalhub.utils.logging_utils import log_error, log_request, log_warning

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

settings = Settings.from_env()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifecycle management - startup and shutdown
    """
    logger.info("Initializing DentalHub API...")
    container = ServiceContainer(settings)
    try:
        await container.startup()
    except Exception as e:
        logger.error("Failed to initialize services: %s", e, exc_info=True)
        raise
    app.state.container = container

    yield

    logger.info("Shutting down DentalHub API...")
    await container.shutdown()


app = FastAPI(
    title="DentalHub API",
    description="Dashboards over NexHealth practice data and CRUD over the marketing store",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(api_router, prefix="/api")

# Innermost first: each add wraps the previous ones.
app.add_middleware(
    TimeoutMiddleware,
    timeout_seconds=settings.request_timeout_seconds,
    enabled=os.getenv("ENABLE_REQUEST_TIMEOUT", "true").lower() == "true",
)

add_cors(app, settings.cors_origins, settings.cors_origin_suffixes)


@app.middleware("http")
async def add_correlation_id(request: Request, call_next):
    """
    Attach a correlation id to every request and echo it on the response.
    """
    correlation_id = request.headers.get("X-Correlation-ID") or uuid.uuid4().hex
    request.state.correlation_id = correlation_id
    started = time.perf_counter()

    response = await call_next(request)
    response.headers["X-Correlation-ID"] = correlation_id
    log_request(request, response.status_code, (time.perf_counter() - started) * 1000)
    return response


@app.get("/health", include_in_schema=False, response_model=LivenessResponse)
async def root_health():
    """
    Lightweight liveness check for container orchestration.
    """
    return {
        "status": "healthy",
        "service": "DentalHub API",
        "version": settings.commit_ref,
    }


# ==================== ERROR HANDLERS ====================

@app.exception_handler(DentalHubError)
async def dentalhub_exception_handler(request: Request, exc: DentalHubError):
    """
    Domain errors carry their own status code and error type.
    """
    if exc.status_code >= 500:
        log_error(
            f"{type(exc).__name__} at {request.method} {request.url.path}: {exc.message}",
            request=request,
        )
    else:
        log_warning(
            f"{type(exc).__name__} at {request.method} {request.url.path}: {exc.message}",
            request=request,
        )
    return error_json_response(request, exc.message, exc.status_code, exc.error_type)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Invalid query or path parameters are a client error (400).
    """
    message = format_validation_error(exc.errors())
    log_warning(message, request=request)
    return error_json_response(request, message, 400, "validation_error")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    HTTP exceptions raised by routing (unknown path, wrong method).
    """
    if exc.status_code >= 500:
        log_error(f"HTTPException {exc.status_code}: {exc.detail}", request=request)
    else:
        log_warning(f"HTTPException {exc.status_code}: {exc.detail}", request=request)
    return error_json_response(
        request,
        str(exc.detail) if exc.detail else "Request failed",
        exc.status_code,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler for unhandled exceptions.
    The traceback is logged; only the message is returned.
    """
    return internal_error_response(request, exc)


if __name__ == "__main__":
    uvicorn.run(
        "dentalhub.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=settings.debug,
    )
