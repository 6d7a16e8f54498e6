"""HTTP entrypoint exposing provider search, status and sync jobs."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Any, Dict, Optional, Tuple

from flask import Flask, jsonify, request

from crm_integrations.errors import IntegrationError, InvalidRequestError
from crm_integrations.manager import IntegrationManager, build_manager

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Set by the upstream authentication middleware.
CALLER_HEADER = "X-User-Id"
DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200

app = Flask(__name__)


@lru_cache(maxsize=1)
def get_manager() -> IntegrationManager:
    return build_manager()


def _caller_id() -> Optional[str]:
    value = request.headers.get(CALLER_HEADER, "").strip()
    return value or None


def _error_response(error: IntegrationError, provider: Optional[str] = None) -> Tuple[Any, int]:
    envelope = error.to_envelope()
    if envelope["provider"] is None:
        envelope["provider"] = provider
    return jsonify(envelope), error.status_code


def _unauthorized() -> Tuple[Any, int]:
    return jsonify({"error": "Unauthorized"}), 401


def _json_body() -> Optional[Dict[str, Any]]:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    return payload if isinstance(payload, dict) else None


def _parse_page(name: str, default: int) -> int:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise InvalidRequestError(f"{name} must be numeric") from None
    if value < 0:
        raise InvalidRequestError(f"{name} must not be negative")
    return value


# ---------- Routes ----------


@app.get("/")
def root() -> Any:
    return "ok", 200


@app.get("/healthz")
def healthcheck() -> Any:
    return jsonify({"status": "ok", "cache": get_manager().cache.get_status()}), 200


@app.post("/integrations/<provider>/search")
def search(provider: str) -> Any:
    payload = _json_body()
    if payload is None:
        return _error_response(InvalidRequestError("body must be a JSON object"), provider)
    query = payload.get("query")
    filters = payload.get("filters")
    location = payload.get("location")

    if query is not None and not isinstance(query, str):
        return _error_response(InvalidRequestError("query must be a string"), provider)
    if filters is not None and not isinstance(filters, dict):
        return _error_response(InvalidRequestError("filters must be an object"), provider)
    if location is not None and not isinstance(location, dict):
        return _error_response(InvalidRequestError("location must be an object with lat and lng"), provider)

    try:
        response = get_manager().search(provider, query, filters, location, caller_id=_caller_id())
    except IntegrationError as exc:
        return _error_response(exc, provider)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Integration search failed for %s: %s", provider, exc)
        return jsonify({"success": False, "error": "Internal server error", "provider": provider, "data": []}), 500

    return jsonify(response.to_dict()), 200


@app.get("/integrations/<provider>/status")
def provider_status(provider: str) -> Any:
    try:
        status = get_manager().status(provider, _caller_id())
    except IntegrationError as exc:
        return _error_response(exc, provider)
    return jsonify(status.to_dict()), 200


@app.post("/integrations/<provider>/sync")
def start_sync(provider: str) -> Any:
    caller_id = _caller_id()
    if not caller_id:
        return _unauthorized()

    payload = _json_body()
    if payload is None:
        return _error_response(InvalidRequestError("body must be a JSON object"), provider)
    job_type = str(payload.get("jobType") or "sync")
    filters = payload.get("filters")
    if filters is not None and not isinstance(filters, dict):
        return _error_response(InvalidRequestError("filters must be an object"), provider)

    try:
        job = get_manager().start_sync(provider, caller_id, job_type=job_type, filters=filters)
    except IntegrationError as exc:
        return _error_response(exc, provider)

    body = {
        "success": True,
        "message": "Sync job queued",
        "job": {
            "id": job.id,
            "provider": job.provider.value,
            "status": job.status.value,
            "createdAt": job.created_at.isoformat() if job.created_at else None,
        },
    }
    return jsonify(body), 202


@app.get("/integrations/sync-jobs")
def list_sync_jobs() -> Any:
    caller_id = _caller_id()
    if not caller_id:
        return _unauthorized()

    try:
        limit = min(_parse_page("limit", DEFAULT_PAGE_SIZE), MAX_PAGE_SIZE)
        offset = _parse_page("offset", 0)
        jobs = get_manager().list_jobs(caller_id, request.args.get("provider") or None, limit, offset)
    except IntegrationError as exc:
        return _error_response(exc)

    return jsonify({"success": True, "jobs": [job.to_dict() for job in jobs], "count": len(jobs)}), 200


@app.get("/integrations/sync-jobs/<job_id>")
def get_sync_job(job_id: str) -> Any:
    caller_id = _caller_id()
    if not caller_id:
        return _unauthorized()

    try:
        job = get_manager().get_job(job_id, caller_id)
    except IntegrationError as exc:
        return jsonify({"error": exc.message}), exc.status_code

    return jsonify({"success": True, "job": job.to_dict()}), 200


def main() -> None:
    settings = get_manager().settings
    port = int(os.getenv("PORT") or settings.worker_port)
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
