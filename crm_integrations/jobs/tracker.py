"""Bookkeeping for asynchronous provider sync jobs."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional

from crm_integrations.core.store import IntegrationStore
from crm_integrations.errors import JobNotFoundError
from crm_integrations.models import JobStatus, Provider, SyncJob

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = {"progress", "processed_records", "total_records", "error_message"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _clamp_progress(value: Any) -> int:
    return max(0, min(100, int(value)))


class SyncJobTracker:
    """Records job state. Callers decide when transitions happen."""

    def __init__(self, store: IntegrationStore, clock: Callable[[], datetime] = _utcnow) -> None:
        self._store = store
        self._clock = clock

    def create(self, caller_id: str, provider: Provider, job_type: str) -> SyncJob:
        now = self._clock()
        job = SyncJob(
            id=str(uuid.uuid4()),
            caller_id=caller_id,
            provider=provider,
            job_type=job_type,
            status=JobStatus.QUEUED,
            progress=0,
            processed_records=0,
            created_at=now,
            updated_at=now,
        )
        created = self._store.create_sync_job(job)
        logger.info("Created %s sync job %s for caller=%s", provider.value, job.id, caller_id)
        return created

    def set_status(self, job_id: str, status: JobStatus, error: Optional[str] = None) -> SyncJob:
        status = JobStatus(status)
        fields: dict = {"status": status, "updated_at": self._clock()}

        if status is JobStatus.FAILED:
            if not error or not str(error).strip():
                raise ValueError("A failed sync job requires a non-empty error message")
            fields["error_message"] = str(error)
        elif status is JobStatus.COMPLETED:
            fields["progress"] = 100

        job = self._store.update_sync_job(job_id, fields)
        if job is None:
            raise JobNotFoundError("Sync job not found")
        logger.info("Sync job %s -> %s", job_id, status.value)
        return job

    def update(self, job_id: str, **fields: Any) -> SyncJob:
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update sync job fields: {', '.join(sorted(unknown))}")
        if "progress" in fields:
            fields["progress"] = _clamp_progress(fields["progress"])
        fields["updated_at"] = self._clock()

        job = self._store.update_sync_job(job_id, fields)
        if job is None:
            raise JobNotFoundError("Sync job not found")
        return job

    def get(self, job_id: str) -> Optional[SyncJob]:
        return self._store.get_sync_job(job_id)

    def list(
        self,
        caller_id: str,
        provider: Optional[Provider] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[SyncJob]:
        return self._store.list_sync_jobs(caller_id, provider, limit, offset)
