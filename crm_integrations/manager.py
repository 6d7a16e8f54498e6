"""Single entry point that fans requests out to provider clients."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from crm_integrations.core.config import Settings, get_settings
from crm_integrations.core.credentials import CredentialResolver
from crm_integrations.core.db import connect_store
from crm_integrations.core.fingerprint import canonical_params, fingerprint
from crm_integrations.core.memory_store import MemoryStore
from crm_integrations.core.rate_limiter import FixedWindowRateLimiter, RateLimiter
from crm_integrations.core.search_cache import SearchCache
from crm_integrations.core.store import IntegrationStore
from crm_integrations.errors import (
    ForbiddenError,
    InvalidRequestError,
    JobNotFoundError,
    ProviderNotConfiguredError,
    RateLimitedError,
    classify_error,
)
from crm_integrations.etl.normalize import normalize
from crm_integrations.jobs.sync_runner import SyncJobRunner
from crm_integrations.jobs.tracker import SyncJobTracker
from crm_integrations.models import Credential, Provider, ProviderStatus, SearchResponse, SyncJob
from crm_integrations.providers import get_client_class
from crm_integrations.providers.base import ProviderClient

logger = logging.getLogger(__name__)


class IntegrationManager:
    def __init__(
        self,
        store: IntegrationStore,
        settings: Optional[Settings] = None,
        rate_limiter: Optional[RateLimiter] = None,
        cache: Optional[SearchCache] = None,
        resolver: Optional[CredentialResolver] = None,
        tracker: Optional[SyncJobTracker] = None,
        runner: Optional[SyncJobRunner] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.store = store
        self.rate_limiter = rate_limiter or FixedWindowRateLimiter(
            max_requests=self.settings.rate_limit_max_requests,
            window_seconds=self.settings.rate_limit_window_seconds,
        )
        self.cache = cache or SearchCache(store, ttl_seconds=self.settings.search_cache_ttl_seconds)
        self.resolver = resolver or CredentialResolver(self.settings, store)
        self.tracker = tracker or SyncJobTracker(store)
        self.runner = runner or SyncJobRunner(
            self.tracker,
            self.resolver,
            self.build_client,
            max_workers=self.settings.sync_max_workers,
        )

    def build_client(self, provider: Provider, credential: Optional[Credential]) -> ProviderClient:
        client_class = get_client_class(provider)
        return client_class(credential, timeout=self.settings.provider_request_timeout)

    # ---------- Search ----------

    def search(
        self,
        provider: Any,
        query: Optional[str],
        filters: Optional[Dict[str, Any]] = None,
        location: Optional[Dict[str, Any]] = None,
        caller_id: Optional[str] = None,
    ) -> SearchResponse:
        provider = Provider.parse(provider)
        if query is not None and not isinstance(query, str):
            raise InvalidRequestError("query must be a string", provider.value)
        if not query and not filters:
            raise InvalidRequestError("Query or filters required", provider.value)

        key = fingerprint(provider, query, filters, location)
        cached = self.cache.get(provider, key)
        if cached is not None:
            logger.info("Cache hit for %s: %s", provider.value, key[:16])
            return SearchResponse(
                data=cached.result_data,
                source=provider,
                cached=True,
                using_mock_data=cached.using_mock_data,
                message=cached.message,
                timestamp=cached.created_at,
            )

        if not self.rate_limiter.allow(provider.value, caller_id):
            raise RateLimitedError("Too many requests. Please try again later.", provider.value)

        credential = self.resolver.resolve(provider, caller_id)
        client = self.build_client(provider, credential)
        try:
            raw_results = client.search(query or "", filters, location)
        except Exception as exc:  # noqa: BLE001
            error = classify_error(exc, provider.value)
            logger.error(
                "[Integration Error] Provider: %s, Type: %s, Message: %s",
                provider.value,
                type(error).__name__,
                exc,
            )
            raise error from exc

        results = normalize(provider, raw_results)
        using_mock_data = credential is None or client.used_sample_data
        message = _sample_data_hint(provider, credential) if using_mock_data else None
        self.cache.put(
            provider,
            key,
            canonical_params(provider, query, filters, location),
            results,
            using_mock_data=using_mock_data,
            message=message,
        )

        logger.info("%s search completed: %d results (sample=%s)", provider.value, len(results), using_mock_data)
        return SearchResponse(
            data=results,
            source=provider,
            cached=False,
            using_mock_data=using_mock_data,
            message=message,
        )

    # ---------- Status ----------

    def status(self, provider: Any, caller_id: Optional[str] = None) -> ProviderStatus:
        provider = Provider.parse(provider)
        return ProviderStatus(
            provider=provider,
            configured=self.resolver.validate_credentials(provider, caller_id),
            has_environment_key=self.resolver.has_environment_key(provider),
            has_user_token=self.resolver.has_user_token(provider, caller_id),
        )

    # ---------- Sync jobs ----------

    def start_sync(
        self,
        provider: Any,
        caller_id: str,
        job_type: str = "sync",
        filters: Optional[Dict[str, Any]] = None,
    ) -> SyncJob:
        provider = Provider.parse(provider)
        if not self.resolver.validate_credentials(provider, caller_id):
            raise ProviderNotConfiguredError(
                f"No API credentials found for {provider.value}. "
                "Please configure API keys or connect your account.",
                provider.value,
            )

        job = self.tracker.create(caller_id, provider, job_type or "sync")
        self.runner.submit(job, filters)
        return job

    def list_jobs(
        self,
        caller_id: str,
        provider: Optional[Any] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[SyncJob]:
        parsed = Provider.parse(provider) if provider else None
        return self.tracker.list(caller_id, parsed, limit, offset)

    def get_job(self, job_id: str, caller_id: str) -> SyncJob:
        job = self.tracker.get(job_id)
        if job is None:
            raise JobNotFoundError("Sync job not found")
        if job.caller_id != caller_id:
            raise ForbiddenError("Forbidden", job.provider.value)
        return job

    def shutdown(self) -> None:
        self.runner.shutdown(wait=True)


def _sample_data_hint(provider: Provider, credential: Optional[Credential]) -> str:
    if credential is None:
        return f"Showing sample data. Configure {provider.value} API credentials to see real results."
    return f"Showing sample data. The live {provider.value} request could not be completed."


def build_manager(settings: Optional[Settings] = None) -> IntegrationManager:
    """Wire a manager against Postgres when DATABASE_URL is set, else the in-memory store."""
    settings = settings or get_settings()
    if settings.database_url:
        store = connect_store()
    else:
        store = MemoryStore()
    return IntegrationManager(store, settings=settings)
