"""Canonical cache keys for search requests."""

import hashlib
import json
from typing import Any, Dict, Optional


def canonical_params(
    provider: str,
    query: Optional[str],
    filters: Optional[Dict[str, Any]] = None,
    location: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    return {
        "provider": str(getattr(provider, "value", provider)),
        "query": (query or "").strip().lower(),
        "filters": filters or {},
        "location": location or None,
    }


def fingerprint(
    provider: str,
    query: Optional[str],
    filters: Optional[Dict[str, Any]] = None,
    location: Optional[Dict[str, Any]] = None,
) -> str:
    """Hash the logical identity of a request; key order never changes the result."""
    params = canonical_params(provider, query, filters, location)
    encoded = json.dumps(params, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()
