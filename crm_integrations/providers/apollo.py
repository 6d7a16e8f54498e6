"""Apollo people and organization search."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from crm_integrations.models import Provider
from crm_integrations.providers.base import ProviderClient, request_type

SAMPLE_CONTACTS: List[Dict[str, Any]] = [
    {
        "id": "apollo-contact-1",
        "first_name": "Sarah",
        "last_name": "Green",
        "email": "sarah.green@example.com",
        "title": "Sustainability Director",
        "organization": {
            "name": "EcoVentures Inc",
            "website_url": "https://ecoventures.example.com",
        },
        "city": "Portland",
        "state": "OR",
        "phone": "+1-555-0100",
    },
    {
        "id": "apollo-contact-2",
        "first_name": "Michael",
        "last_name": "Rivers",
        "email": "michael@greentech.example.com",
        "title": "Co-Founder",
        "organization": {
            "name": "GreenTech Solutions",
            "website_url": "https://greentech.example.com",
        },
        "city": "Austin",
        "state": "TX",
        "phone": "+1-555-0101",
    },
]

SAMPLE_COMPANIES: List[Dict[str, Any]] = [
    {
        "id": "apollo-org-1",
        "name": "Regenerative Agriculture Co",
        "website_url": "https://regenag.example.com",
        "phone": "+1-555-0200",
        "city": "Boulder",
        "state": "CO",
        "country": "US",
        "industry": "Agriculture",
        "estimated_num_employees": 50,
    },
    {
        "id": "apollo-org-2",
        "name": "Clean Energy Partners",
        "website_url": "https://cleanenergypartners.example.com",
        "phone": "+1-555-0201",
        "city": "San Francisco",
        "state": "CA",
        "country": "US",
        "industry": "Renewable Energy",
        "estimated_num_employees": 120,
    },
]


class ApolloClient(ProviderClient):
    provider = Provider.APOLLO
    base_url = "https://api.apollo.io/v1"

    def _headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json", "X-Api-Key": self.api_key or ""}

    def search(self, query, filters=None, location=None):
        if request_type(filters) == "companies":
            return self.search_companies(query, filters)
        return self.search_contacts(query, filters)

    def search_contacts(self, query: str, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        def fetch():
            payload = {"q_keywords": query, **_provider_filters(filters)}
            return self._post("/people/search", payload, headers=self._headers()).get("people") or []

        return self._call("search_contacts", fetch, SAMPLE_CONTACTS)

    def search_companies(self, query: str, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        def fetch():
            payload = {"q_organization_name": query, **_provider_filters(filters)}
            return self._post("/organizations/search", payload, headers=self._headers()).get("organizations") or []

        return self._call("search_companies", fetch, SAMPLE_COMPANIES)

    def sync_records(self, filters=None):
        return self.search_companies("", filters)


def _provider_filters(filters: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    return {key: value for key, value in (filters or {}).items() if key != "type"}
