"""Background execution of sync jobs on a worker pool."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, Optional

from crm_integrations.core.credentials import CredentialResolver
from crm_integrations.jobs.tracker import SyncJobTracker
from crm_integrations.models import Credential, JobStatus, Provider, SyncJob
from crm_integrations.providers.base import ProviderClient

logger = logging.getLogger(__name__)

SAMPLE_DATA_NOTE = "Live provider request failed; sample records were recorded instead."

ClientFactory = Callable[[Provider, Optional[Credential]], ProviderClient]


class SyncJobRunner:
    """Runs each submitted job once, detached from the request that queued it."""

    def __init__(
        self,
        tracker: SyncJobTracker,
        resolver: CredentialResolver,
        client_factory: ClientFactory,
        max_workers: int = 4,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> None:
        self._tracker = tracker
        self._resolver = resolver
        self._client_factory = client_factory
        self._executor = executor or ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="sync-job")
        self._futures: Dict[str, Future] = {}
        self._lock = threading.Lock()

    def submit(self, job: SyncJob, filters: Optional[Dict[str, Any]] = None) -> Future:
        logger.info("Queueing sync job %s (%s/%s)", job.id, job.provider.value, job.job_type)
        future = self._executor.submit(self._run_job_safe, job, filters)
        with self._lock:
            self._futures[job.id] = future
        future.add_done_callback(lambda _: self._forget(job.id))
        return future

    def wait(self, job_id: str, timeout: Optional[float] = None) -> Optional[SyncJob]:
        """Block until a submitted job has finished; returns its final record."""
        with self._lock:
            future = self._futures.get(job_id)
        if future is not None:
            future.result(timeout=timeout)
        return self._tracker.get(job_id)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _forget(self, job_id: str) -> None:
        with self._lock:
            self._futures.pop(job_id, None)

    def _run_job_safe(self, job: SyncJob, filters: Optional[Dict[str, Any]]) -> None:
        try:
            self._tracker.set_status(job.id, JobStatus.RUNNING)
            credential = self._resolver.resolve(job.provider, job.caller_id)
            client = self._client_factory(job.provider, credential)
            records = client.sync_records(filters)

            fields: Dict[str, Any] = {
                "total_records": len(records),
                "processed_records": len(records),
                "progress": 100,
            }
            if getattr(client, "used_sample_data", False):
                logger.warning("Sync job %s fell back to %s sample data", job.id, job.provider.value)
                fields["error_message"] = SAMPLE_DATA_NOTE
            self._tracker.update(job.id, **fields)
            self._tracker.set_status(job.id, JobStatus.COMPLETED)
            logger.info("Sync job %s completed: %d records", job.id, len(records))
        except Exception as exc:  # noqa: BLE001
            logger.exception("Sync job %s failed: %s", job.id, exc)
            try:
                self._tracker.set_status(job.id, JobStatus.FAILED, str(exc) or exc.__class__.__name__)
            except Exception as mark_exc:  # noqa: BLE001
                logger.error("Could not mark sync job %s as failed: %s", job.id, mark_exc)
