"""
Environment-driven settings for the DentalHub API.

All upstream credentials and account scoping identifiers come from the
environment (optionally via a ``.env`` file loaded at startup).
"""

import os
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from dentalhub.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Variables every clinical-records route needs before it may call upstream.
NEXHEALTH_REQUIRED_VARS = ("NEXHEALTH_SUBDOMAIN", "NEXHEALTH_LOCATION_ID")


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class Settings:
    """
    Runtime configuration.

    Attributes:
        nexhealth_api_url: Base URL of the authentication endpoint
        nexhealth_api_base_url: Base URL for resource requests
        nexhealth_api_key: API key exchanged for bearer tokens
        nexhealth_subdomain: Account scoping identifier merged into requests
        nexhealth_location_id: Location scoping identifier merged into requests
        nexhealth_default_provider_id: Provider assigned to new patients
        nexhealth_max_pages: Page cap for collection traversal
        database_url: SQLAlchemy URL of the relational store
        deepseek_api_key: AI provider key, probed by the health check
        deepseek_api_url: AI provider chat completion endpoint
        revenue_annual_goal: Annual revenue target for the revenue dashboard
        cors_origins: Exact origins allowed to call the API
        cors_origin_suffixes: Hostname suffixes allowed over https
        request_timeout_seconds: Default request timeout
        commit_ref: Deployed revision, reported by the health check
        debug: Enables SQL echo
    """

    nexhealth_api_url: str = "https://nexhealth.info"
    nexhealth_api_base_url: str = "https://nexhealth.info"
    nexhealth_api_key: str = ""
    nexhealth_subdomain: Optional[str] = None
    nexhealth_location_id: Optional[str] = None
    nexhealth_default_provider_id: Optional[str] = None
    nexhealth_max_pages: int = 10
    database_url: Optional[str] = None
    deepseek_api_key: Optional[str] = None
    deepseek_api_url: str = "https://api.deepseek.com/v1/chat/completions"
    revenue_annual_goal: float = 1_200_000.0
    cors_origins: List[str] = field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"]
    )
    cors_origin_suffixes: List[str] = field(default_factory=lambda: [".netlify.app"])
    request_timeout_seconds: float = 30.0
    commit_ref: str = "development"
    debug: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        api_url = os.getenv("NEXHEALTH_API_URL", "https://nexhealth.info").rstrip("/")
        max_pages = int(os.getenv("NEXHEALTH_MAX_PAGES", "10"))
        if max_pages <= 0:
            raise ValueError("NEXHEALTH_MAX_PAGES must be a positive integer")

        return cls(
            nexhealth_api_url=api_url,
            nexhealth_api_base_url=os.getenv("NEXHEALTH_API_BASE_URL", api_url).rstrip("/"),
            nexhealth_api_key=os.getenv("NEXHEALTH_API_KEY", ""),
            nexhealth_subdomain=os.getenv("NEXHEALTH_SUBDOMAIN") or None,
            nexhealth_location_id=os.getenv("NEXHEALTH_LOCATION_ID") or None,
            nexhealth_default_provider_id=os.getenv("NEXHEALTH_DEFAULT_PROVIDER_ID") or None,
            nexhealth_max_pages=max_pages,
            database_url=os.getenv("DATABASE_URL") or None,
            deepseek_api_key=os.getenv("DEEPSEEK_API_KEY") or None,
            deepseek_api_url=os.getenv(
                "DEEPSEEK_API_URL", "https://api.deepseek.com/v1/chat/completions"
            ),
            revenue_annual_goal=float(os.getenv("REVENUE_ANNUAL_GOAL", "1200000")),
            cors_origins=_split_csv(
                os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173")
            ),
            cors_origin_suffixes=_split_csv(os.getenv("CORS_ORIGIN_SUFFIXES", ".netlify.app")),
            request_timeout_seconds=float(os.getenv("REQUEST_TIMEOUT_SECONDS", "30.0")),
            commit_ref=os.getenv("COMMIT_REF", "development"),
            debug=_env_flag("DEBUG"),
        )


def require_env(names: Sequence[str]) -> None:
    """Raise :class:`ConfigurationError` naming every unset variable in ``names``."""

    missing = [name for name in names if not os.getenv(name)]
    if missing:
        logger.error("Missing required environment variables: %s", ", ".join(missing))
        raise ConfigurationError(missing)
