"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict

from dotenv import load_dotenv

from crm_integrations.models import Provider

logger = logging.getLogger(__name__)

PROVIDER_ENV_VARS: Dict[Provider, str] = {
    Provider.APOLLO: "APOLLO_API_KEY",
    Provider.GOOGLE_MAPS: "GOOGLE_MAPS_API_KEY",
    Provider.FOURSQUARE: "FOURSQUARE_API_KEY",
    Provider.PIPEDRIVE: "PIPEDRIVE_API_KEY",
    Provider.TWENTY_CRM: "TWENTY_CRM_API_KEY",
}


@dataclass(frozen=True)
class Settings:
    provider_api_keys: Dict[Provider, str] = field(default_factory=dict, repr=False)
    database_url: str = ""
    worker_port: int = 8080
    rate_limit_max_requests: int = 60
    rate_limit_window_seconds: float = 60.0
    search_cache_ttl_seconds: float = 900.0
    provider_request_timeout: float = 10.0
    sync_max_workers: int = 4

    def api_key_for(self, provider: Provider) -> str:
        return self.provider_api_keys.get(provider, "")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    provider_api_keys = {}
    for provider, env_var in PROVIDER_ENV_VARS.items():
        value = os.getenv(env_var, "").strip()
        if value:
            provider_api_keys[provider] = value

    database_url = os.getenv("DATABASE_URL", "")
    worker_port = int(os.getenv("WORKER_PORT") or os.getenv("PORT") or "8080")
    rate_limit_max_requests = int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "60"))
    rate_limit_window_seconds = float(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))
    search_cache_ttl_seconds = float(os.getenv("SEARCH_CACHE_TTL_SECONDS", "900"))
    provider_request_timeout = float(os.getenv("PROVIDER_REQUEST_TIMEOUT", "10"))
    sync_max_workers = int(os.getenv("SYNC_MAX_WORKERS", "4"))

    if not database_url:
        logger.warning("DATABASE_URL is not set; using the in-memory store.")
    missing = [env_var for provider, env_var in PROVIDER_ENV_VARS.items() if provider not in provider_api_keys]
    if missing:
        logger.warning(
            "No environment credentials for %s; those providers rely on user tokens or sample data.",
            ", ".join(missing),
        )

    return Settings(
        provider_api_keys=provider_api_keys,
        database_url=database_url,
        worker_port=worker_port,
        rate_limit_max_requests=rate_limit_max_requests,
        rate_limit_window_seconds=rate_limit_window_seconds,
        search_cache_ttl_seconds=search_cache_ttl_seconds,
        provider_request_timeout=provider_request_timeout,
        sync_max_workers=sync_max_workers,
    )
