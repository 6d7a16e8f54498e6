"""Thread-safe in-process implementation of the datastore contract."""

from __future__ import annotations

import copy
import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from crm_integrations.models import CacheEntry, Provider, SyncJob, UserToken

logger = logging.getLogger(__name__)


class MemoryStore:
    """Single-process store; records are copied in and out so callers never share state."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tokens: Dict[Tuple[str, Provider], UserToken] = {}
        self._searches: Dict[Tuple[Provider, str], CacheEntry] = {}
        self._jobs: Dict[str, SyncJob] = {}

    # ---------- Tokens ----------

    def get_user_provider_token(self, caller_id: str, provider: Provider) -> Optional[UserToken]:
        with self._lock:
            token = self._tokens.get((caller_id, provider))
            return copy.deepcopy(token) if token else None

    def save_user_provider_token(self, token: UserToken) -> UserToken:
        with self._lock:
            self._tokens[(token.caller_id, token.provider)] = copy.deepcopy(token)
        return token

    def touch_token_last_used(self, token_id: str, used_at: datetime) -> None:
        with self._lock:
            for token in self._tokens.values():
                if token.id == token_id:
                    token.last_used_at = used_at
                    return
        logger.debug("touch_token_last_used: unknown token %s", token_id)

    # ---------- Search cache ----------

    def get_cached_search(self, provider: Provider, fingerprint: str) -> Optional[CacheEntry]:
        with self._lock:
            entry = self._searches.get((provider, fingerprint))
            return copy.deepcopy(entry) if entry else None

    def save_cached_search(self, entry: CacheEntry) -> CacheEntry:
        with self._lock:
            self._searches[(entry.provider, entry.fingerprint)] = copy.deepcopy(entry)
        return entry

    def purge_expired_searches(self, now: datetime) -> int:
        with self._lock:
            expired = [key for key, entry in self._searches.items() if entry.expires_at <= now]
            for key in expired:
                del self._searches[key]
        return len(expired)

    # ---------- Sync jobs ----------

    def create_sync_job(self, job: SyncJob) -> SyncJob:
        with self._lock:
            self._jobs[job.id] = replace(job)
        return replace(job)

    def update_sync_job(self, job_id: str, fields: Dict[str, Any]) -> Optional[SyncJob]:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return None
            updated = replace(job, **fields)
            self._jobs[job_id] = updated
            return replace(updated)

    def get_sync_job(self, job_id: str) -> Optional[SyncJob]:
        with self._lock:
            job = self._jobs.get(job_id)
            return replace(job) if job else None

    def list_sync_jobs(
        self,
        caller_id: str,
        provider: Optional[Provider] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[SyncJob]:
        with self._lock:
            jobs = [
                replace(job)
                for job in self._jobs.values()
                if job.caller_id == caller_id and (provider is None or job.provider == provider)
            ]
        jobs.sort(key=lambda job: job.created_at.timestamp() if job.created_at else 0.0, reverse=True)
        return jobs[offset:offset + limit]
