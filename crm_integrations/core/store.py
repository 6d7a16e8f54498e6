"""Datastore contract consumed by the integration layer."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from crm_integrations.models import CacheEntry, Provider, SyncJob, UserToken


class IntegrationStore(Protocol):
    def get_user_provider_token(self, caller_id: str, provider: Provider) -> Optional[UserToken]:
        ...

    def save_user_provider_token(self, token: UserToken) -> UserToken:
        ...

    def touch_token_last_used(self, token_id: str, used_at: datetime) -> None:
        ...

    def get_cached_search(self, provider: Provider, fingerprint: str) -> Optional[CacheEntry]:
        ...

    def save_cached_search(self, entry: CacheEntry) -> CacheEntry:
        ...

    def purge_expired_searches(self, now: datetime) -> int:
        ...

    def create_sync_job(self, job: SyncJob) -> SyncJob:
        ...

    def update_sync_job(self, job_id: str, fields: Dict[str, Any]) -> Optional[SyncJob]:
        ...

    def get_sync_job(self, job_id: str) -> Optional[SyncJob]:
        ...

    def list_sync_jobs(
        self,
        caller_id: str,
        provider: Optional[Provider] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[SyncJob]:
        ...
