"""TTL cache of normalized search results."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from crm_integrations.core.store import IntegrationStore
from crm_integrations.models import CacheEntry, NormalizedResult, Provider

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SearchCache:
    """Cache over the datastore's search table.

    Entries past ``expires_at`` are treated as misses whether or not they have
    been purged yet. Expired rows are swept every ``cleanup_interval`` seconds
    from inside ``put``.
    """

    def __init__(
        self,
        store: IntegrationStore,
        ttl_seconds: float = 900.0,
        cleanup_interval: float = 300.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._ttl = timedelta(seconds=ttl_seconds)
        self._cleanup_interval = timedelta(seconds=cleanup_interval)
        self._clock = clock
        self._lock = threading.Lock()
        self._last_cleanup = clock()
        self._hits = 0
        self._misses = 0

    def get(self, provider: Provider, fingerprint: str) -> Optional[CacheEntry]:
        entry = self._store.get_cached_search(provider, fingerprint)
        with self._lock:
            if entry is None or entry.expires_at <= self._clock():
                self._misses += 1
                return None
            self._hits += 1
        logger.debug("Cache hit for %s: %s", provider.value, fingerprint[:16])
        return entry

    def put(
        self,
        provider: Provider,
        fingerprint: str,
        query_params: Dict[str, Any],
        results: List[NormalizedResult],
        using_mock_data: bool = False,
        message: Optional[str] = None,
    ) -> CacheEntry:
        now = self._clock()
        entry = CacheEntry(
            provider=provider,
            fingerprint=fingerprint,
            query_params=query_params,
            result_data=list(results),
            created_at=now,
            expires_at=now + self._ttl,
            using_mock_data=using_mock_data,
            message=message,
        )
        self._store.save_cached_search(entry)
        self._maybe_cleanup(now)
        return entry

    def _maybe_cleanup(self, now: datetime) -> None:
        with self._lock:
            if now - self._last_cleanup < self._cleanup_interval:
                return
            self._last_cleanup = now
        removed = self._store.purge_expired_searches(now)
        if removed:
            logger.debug("Purged %d expired search cache entries", removed)

    def get_status(self) -> Dict[str, Any]:
        with self._lock:
            total = self._hits + self._misses
            return {
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": round(self._hits / total, 3) if total else 0.0,
                "ttl_seconds": self._ttl.total_seconds(),
            }
