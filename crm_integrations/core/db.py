"""PostgreSQL implementation of the integration datastore contract."""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional

import psycopg2
from psycopg2 import extras, pool

from crm_integrations.core.config import get_settings
from crm_integrations.models import CacheEntry, JobStatus, NormalizedResult, Provider, SyncJob, UserToken

logger = logging.getLogger(__name__)

_connection_pool: Optional[pool.SimpleConnectionPool] = None


def init_pool(minconn: int = 1, maxconn: int = 5) -> pool.SimpleConnectionPool:
    """Initialise and return the shared connection pool."""
    global _connection_pool
    if _connection_pool is None:
        settings = get_settings()
        if not settings.database_url:
            raise RuntimeError("DATABASE_URL is required for database connections")
        _connection_pool = pool.SimpleConnectionPool(
            minconn,
            maxconn,
            dsn=settings.database_url,
            connect_timeout=10,
        )
        logger.info("Database connection pool initialised")
    return _connection_pool


@contextmanager
def get_connection():
    """Context manager yielding a pooled connection."""
    pg_pool = init_pool()
    conn = pg_pool.getconn()
    try:
        yield conn
    finally:
        pg_pool.putconn(conn)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS user_provider_tokens (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    provider TEXT NOT NULL,
    token_data JSONB NOT NULL DEFAULT '{}'::jsonb,
    is_active BOOLEAN NOT NULL DEFAULT TRUE,
    last_used_at TIMESTAMPTZ,
    UNIQUE (user_id, provider)
);

CREATE TABLE IF NOT EXISTS api_search_cache (
    provider TEXT NOT NULL,
    query_key TEXT NOT NULL,
    query_params JSONB NOT NULL DEFAULT '{}'::jsonb,
    result_data JSONB NOT NULL DEFAULT '[]'::jsonb,
    created_at TIMESTAMPTZ NOT NULL,
    expires_at TIMESTAMPTZ NOT NULL,
    using_mock_data BOOLEAN NOT NULL DEFAULT FALSE,
    message TEXT,
    PRIMARY KEY (provider, query_key)
);

ALTER TABLE api_search_cache ADD COLUMN IF NOT EXISTS using_mock_data BOOLEAN NOT NULL DEFAULT FALSE;
ALTER TABLE api_search_cache ADD COLUMN IF NOT EXISTS message TEXT;

CREATE TABLE IF NOT EXISTS external_sync_jobs (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    provider TEXT NOT NULL,
    job_type TEXT NOT NULL,
    status TEXT NOT NULL,
    progress INTEGER NOT NULL DEFAULT 0,
    processed_records INTEGER NOT NULL DEFAULT 0,
    total_records INTEGER,
    error_message TEXT,
    created_at TIMESTAMPTZ NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL
);

CREATE INDEX IF NOT EXISTS external_sync_jobs_user_idx
    ON external_sync_jobs (user_id, provider, created_at DESC);
"""

_UPSERT_TOKEN = """
INSERT INTO user_provider_tokens (id, user_id, provider, token_data, is_active, last_used_at)
VALUES (%(id)s, %(user_id)s, %(provider)s, %(token_data)s, %(is_active)s, %(last_used_at)s)
ON CONFLICT (user_id, provider) DO UPDATE SET
    token_data = EXCLUDED.token_data,
    is_active = EXCLUDED.is_active,
    last_used_at = EXCLUDED.last_used_at;
"""

_UPSERT_SEARCH = """
INSERT INTO api_search_cache (
    provider, query_key, query_params, result_data, created_at, expires_at, using_mock_data, message
) VALUES (
    %(provider)s, %(query_key)s, %(query_params)s, %(result_data)s, %(created_at)s, %(expires_at)s,
    %(using_mock_data)s, %(message)s
)
ON CONFLICT (provider, query_key) DO UPDATE SET
    query_params = EXCLUDED.query_params,
    result_data = EXCLUDED.result_data,
    created_at = EXCLUDED.created_at,
    expires_at = EXCLUDED.expires_at,
    using_mock_data = EXCLUDED.using_mock_data,
    message = EXCLUDED.message;
"""

_INSERT_JOB = """
INSERT INTO external_sync_jobs (
    id, user_id, provider, job_type, status, progress, processed_records,
    total_records, error_message, created_at, updated_at
) VALUES (
    %(id)s, %(user_id)s, %(provider)s, %(job_type)s, %(status)s, %(progress)s, %(processed_records)s,
    %(total_records)s, %(error_message)s, %(created_at)s, %(updated_at)s
);
"""

_JOB_COLUMNS = {
    "status": "status",
    "progress": "progress",
    "processed_records": "processed_records",
    "total_records": "total_records",
    "error_message": "error_message",
    "updated_at": "updated_at",
}


def _token_from_row(row: Dict[str, Any]) -> UserToken:
    return UserToken(
        id=row["id"],
        caller_id=row["user_id"],
        provider=Provider(row["provider"]),
        token_payload=row.get("token_data") or {},
        is_active=bool(row.get("is_active")),
        last_used_at=row.get("last_used_at"),
    )


def _job_from_row(row: Dict[str, Any]) -> SyncJob:
    return SyncJob(
        id=row["id"],
        caller_id=row["user_id"],
        provider=Provider(row["provider"]),
        job_type=row["job_type"],
        status=JobStatus(row["status"]),
        progress=row.get("progress") or 0,
        processed_records=row.get("processed_records") or 0,
        total_records=row.get("total_records"),
        error_message=row.get("error_message"),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def _job_params(job: SyncJob) -> Dict[str, Any]:
    return {
        "id": job.id,
        "user_id": job.caller_id,
        "provider": job.provider.value,
        "job_type": job.job_type,
        "status": job.status.value,
        "progress": job.progress,
        "processed_records": job.processed_records,
        "total_records": job.total_records,
        "error_message": job.error_message,
        "created_at": job.created_at,
        "updated_at": job.updated_at,
    }


class PostgresStore:
    """Datastore backed by the shared psycopg2 pool."""

    def init_schema(self) -> None:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(SCHEMA_SQL)
            conn.commit()
        logger.info("Integration tables ensured")

    def _fetch_one(self, sql: str, params: Any) -> Optional[Dict[str, Any]]:
        with get_connection() as conn:
            with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                cur.execute(sql, params)
                return cur.fetchone()

    def _execute(self, sql: str, params: Any) -> None:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, params)
            conn.commit()

    # ---------- Tokens ----------

    def get_user_provider_token(self, caller_id: str, provider: Provider) -> Optional[UserToken]:
        row = self._fetch_one(
            "SELECT * FROM user_provider_tokens WHERE user_id = %s AND provider = %s",
            (caller_id, provider.value),
        )
        return _token_from_row(row) if row else None

    def save_user_provider_token(self, token: UserToken) -> UserToken:
        self._execute(
            _UPSERT_TOKEN,
            {
                "id": token.id,
                "user_id": token.caller_id,
                "provider": token.provider.value,
                "token_data": extras.Json(token.token_payload or {}),
                "is_active": token.is_active,
                "last_used_at": token.last_used_at,
            },
        )
        return token

    def touch_token_last_used(self, token_id: str, used_at: datetime) -> None:
        self._execute(
            "UPDATE user_provider_tokens SET last_used_at = %s WHERE id = %s",
            (used_at, token_id),
        )

    # ---------- Search cache ----------

    def get_cached_search(self, provider: Provider, fingerprint: str) -> Optional[CacheEntry]:
        row = self._fetch_one(
            "SELECT * FROM api_search_cache WHERE provider = %s AND query_key = %s",
            (provider.value, fingerprint),
        )
        if not row:
            return None
        return CacheEntry(
            provider=Provider(row["provider"]),
            fingerprint=row["query_key"],
            query_params=row.get("query_params") or {},
            result_data=[NormalizedResult.from_dict(item) for item in row.get("result_data") or []],
            created_at=row["created_at"],
            expires_at=row["expires_at"],
            using_mock_data=bool(row.get("using_mock_data")),
            message=row.get("message"),
        )

    def save_cached_search(self, entry: CacheEntry) -> CacheEntry:
        self._execute(
            _UPSERT_SEARCH,
            {
                "provider": entry.provider.value,
                "query_key": entry.fingerprint,
                "query_params": extras.Json(entry.query_params or {}),
                "result_data": extras.Json([item.to_dict() for item in entry.result_data]),
                "created_at": entry.created_at,
                "expires_at": entry.expires_at,
                "using_mock_data": entry.using_mock_data,
                "message": entry.message,
            },
        )
        return entry

    def purge_expired_searches(self, now: datetime) -> int:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM api_search_cache WHERE expires_at <= %s", (now,))
                removed = cur.rowcount
            conn.commit()
        return removed or 0

    # ---------- Sync jobs ----------

    def create_sync_job(self, job: SyncJob) -> SyncJob:
        self._execute(_INSERT_JOB, _job_params(job))
        return job

    def update_sync_job(self, job_id: str, fields: Dict[str, Any]) -> Optional[SyncJob]:
        assignments = []
        params: Dict[str, Any] = {"id": job_id}
        for name, value in fields.items():
            column = _JOB_COLUMNS.get(name)
            if column is None:
                raise ValueError(f"Unknown sync job field: {name}")
            if isinstance(value, JobStatus):
                value = value.value
            assignments.append(f"{column} = %({name})s")
            params[name] = value
        if not assignments:
            return self.get_sync_job(job_id)

        sql = f"UPDATE external_sync_jobs SET {', '.join(assignments)} WHERE id = %(id)s RETURNING *"
        with get_connection() as conn:
            with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                cur.execute(sql, params)
                row = cur.fetchone()
            conn.commit()
        return _job_from_row(row) if row else None

    def get_sync_job(self, job_id: str) -> Optional[SyncJob]:
        row = self._fetch_one("SELECT * FROM external_sync_jobs WHERE id = %s", (job_id,))
        return _job_from_row(row) if row else None

    def list_sync_jobs(
        self,
        caller_id: str,
        provider: Optional[Provider] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[SyncJob]:
        sql = "SELECT * FROM external_sync_jobs WHERE user_id = %s"
        params: List[Any] = [caller_id]
        if provider is not None:
            sql += " AND provider = %s"
            params.append(provider.value)
        sql += " ORDER BY created_at DESC LIMIT %s OFFSET %s"
        params.extend([limit, offset])

        with get_connection() as conn:
            with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                cur.execute(sql, params)
                rows = cur.fetchall()
        return [_job_from_row(row) for row in rows]


def connect_store() -> PostgresStore:
    """Return a PostgresStore after verifying connectivity and tables."""
    store = PostgresStore()
    try:
        store.init_schema()
    except psycopg2.Error as exc:
        logger.error("Failed to prepare integration tables: %s", exc)
        raise
    return store
