"""Shared plumbing for provider clients."""

from __future__ import annotations

import copy
import logging
from typing import Any, Callable, Dict, List, Optional

import requests

from crm_integrations.errors import ProviderResponseError
from crm_integrations.models import Credential, Provider

logger = logging.getLogger(__name__)
_SESSION = requests.Session()

DEFAULT_TIMEOUT = 10.0


class ProviderClient:
    """Base class for one external provider.

    Subclasses translate ``search`` into the provider's wire format. Without an
    API key, or when a live call fails at the transport or HTTP level, they
    return the provider's fixed sample records instead.
    """

    provider: Provider
    base_url: str = ""

    def __init__(
        self,
        credential: Optional[Credential] = None,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.credential = credential
        self.session = session or _SESSION
        self.timeout = timeout
        self.used_sample_data = False

    @property
    def api_key(self) -> Optional[str]:
        return self.credential.api_key if self.credential else None

    def search(
        self,
        query: str,
        filters: Optional[Dict[str, Any]] = None,
        location: Optional[Dict[str, float]] = None,
    ) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def sync_records(self, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Records fetched by a bulk sync job; providers without a sync feed return nothing."""
        self.used_sample_data = False
        return []

    def _call(
        self,
        operation: str,
        fetch: Callable[[], List[Dict[str, Any]]],
        sample: List[Dict[str, Any]],
    ) -> List[Dict[str, Any]]:
        if not self.api_key:
            self.used_sample_data = True
            return copy.deepcopy(sample)

        try:
            results = fetch()
        except (requests.RequestException, ProviderResponseError, ValueError) as exc:
            logger.error("%s %s failed, serving sample data: %s", self.provider.value, operation, exc)
            self.used_sample_data = True
            return copy.deepcopy(sample)

        self.used_sample_data = False
        return results

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None, headers: Optional[Dict[str, str]] = None) -> Any:
        response = self.session.get(f"{self.base_url}{path}", params=params, headers=headers, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def _post(self, path: str, payload: Dict[str, Any], headers: Optional[Dict[str, str]] = None) -> Any:
        response = self.session.post(f"{self.base_url}{path}", json=payload, headers=headers, timeout=self.timeout)
        response.raise_for_status()
        return response.json()


def location_param(location: Optional[Dict[str, Any]]) -> Optional[str]:
    if not location:
        return None
    lat = location.get("lat")
    lng = location.get("lng")
    if lat is None or lng is None:
        return None
    return f"{lat},{lng}"


def request_type(filters: Optional[Dict[str, Any]]) -> Optional[str]:
    if not filters:
        return None
    value = filters.get("type")
    return str(value) if value else None
