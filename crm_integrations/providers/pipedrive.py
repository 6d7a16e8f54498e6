"""Pipedrive deal and person search."""

from __future__ import annotations

from typing import Any, Dict, List

from crm_integrations.models import Provider
from crm_integrations.providers.base import ProviderClient, request_type

SAMPLE_DEALS: List[Dict[str, Any]] = [
    {
        "item": {
            "id": 1,
            "title": "Solar Panel Installation - Community Center",
            "value": 45000,
            "currency": "USD",
            "status": "open",
            "org_name": "Bright Future Solar",
            "person_name": "Emma Watson",
            "email": "emma@brightfuturesolar.example.com",
            "phone": "+1-555-0400",
        }
    },
    {
        "item": {
            "id": 2,
            "title": "Regenerative Farm Consulting",
            "value": 15000,
            "currency": "USD",
            "status": "open",
            "org_name": "Living Soil Consulting",
            "person_name": "James Green",
            "email": "james@livingsoil.example.com",
            "phone": "+1-555-0401",
        }
    },
]

SAMPLE_PERSONS: List[Dict[str, Any]] = [
    {
        "item": {
            "id": 101,
            "name": "Emma Watson",
            "email": [{"value": "emma@brightfuturesolar.example.com", "primary": True}],
            "phone": [{"value": "+1-555-0400", "primary": True}],
            "organization": {"id": 201, "name": "Bright Future Solar"},
        }
    },
    {
        "item": {
            "id": 102,
            "name": "James Green",
            "email": [{"value": "james@livingsoil.example.com", "primary": True}],
            "phone": [{"value": "+1-555-0401", "primary": True}],
            "organization": {"id": 202, "name": "Living Soil Consulting"},
        }
    },
]


class PipedriveClient(ProviderClient):
    provider = Provider.PIPEDRIVE
    base_url = "https://api.pipedrive.com/v1"

    def search(self, query, filters=None, location=None):
        if request_type(filters) == "deals":
            return self.search_deals(query)
        return self.search_persons(query)

    def search_deals(self, query: str) -> List[Dict[str, Any]]:
        return self._call("search_deals", lambda: self._search_items("/deals/search", query), SAMPLE_DEALS)

    def search_persons(self, query: str) -> List[Dict[str, Any]]:
        return self._call("search_persons", lambda: self._search_items("/persons/search", query), SAMPLE_PERSONS)

    def sync_records(self, filters=None):
        return self.search_deals("")

    def _search_items(self, path: str, query: str) -> List[Dict[str, Any]]:
        payload = self._get(path, params={"term": query, "api_token": self.api_key})
        return (payload.get("data") or {}).get("items") or []
