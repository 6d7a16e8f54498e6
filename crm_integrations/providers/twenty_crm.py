"""Twenty CRM GraphQL client."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from crm_integrations.errors import ProviderResponseError
from crm_integrations.models import Provider
from crm_integrations.providers.base import ProviderClient, request_type

COMPANIES_QUERY = """
query Companies($filter: CompanyFilterInput) {
  companies(filter: $filter) {
    edges {
      node { id name domainName address employees idealCustomerProfile createdAt }
    }
  }
}
"""

PEOPLE_QUERY = """
query People($filter: PersonFilterInput) {
  people(filter: $filter) {
    edges {
      node {
        id firstName lastName email phone city
        company { id name domainName }
        createdAt
      }
    }
  }
}
"""

SAMPLE_COMPANIES: List[Dict[str, Any]] = [
    {
        "id": "twenty-company-1",
        "name": "EarthWise Technologies",
        "domainName": "earthwise.tech",
        "address": "100 Green Street, Seattle, WA 98101",
        "employees": 85,
        "idealCustomerProfile": True,
        "createdAt": "2024-01-01T00:00:00+00:00",
    },
    {
        "id": "twenty-company-2",
        "name": "Circular Economy Solutions",
        "domainName": "circulareconomy.co",
        "address": "250 Sustainability Blvd, San Francisco, CA 94102",
        "employees": 120,
        "idealCustomerProfile": True,
        "createdAt": "2024-01-01T00:00:00+00:00",
    },
]

SAMPLE_PEOPLE: List[Dict[str, Any]] = [
    {
        "id": "twenty-person-1",
        "firstName": "Alice",
        "lastName": "Chen",
        "email": "alice@earthwise.tech",
        "phone": "+1-555-0500",
        "city": "Seattle",
        "company": {"id": "twenty-company-1", "name": "EarthWise Technologies", "domainName": "earthwise.tech"},
        "createdAt": "2024-01-01T00:00:00+00:00",
    },
    {
        "id": "twenty-person-2",
        "firstName": "David",
        "lastName": "Park",
        "email": "david@circulareconomy.co",
        "phone": "+1-555-0501",
        "city": "San Francisco",
        "company": {"id": "twenty-company-2", "name": "Circular Economy Solutions", "domainName": "circulareconomy.co"},
        "createdAt": "2024-01-01T00:00:00+00:00",
    },
]


class TwentyCrmClient(ProviderClient):
    provider = Provider.TWENTY_CRM
    base_url = "https://api.twenty.com/graphql"

    def search(self, query, filters=None, location=None):
        if request_type(filters) == "companies":
            return self.fetch_companies(filters)
        return self.fetch_people(filters)

    def fetch_companies(self, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        return self._call("fetch_companies", lambda: self._query(COMPANIES_QUERY, "companies", filters), SAMPLE_COMPANIES)

    def fetch_people(self, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        return self._call("fetch_people", lambda: self._query(PEOPLE_QUERY, "people", filters), SAMPLE_PEOPLE)

    def sync_records(self, filters=None):
        return self.fetch_companies(filters)

    def _query(self, document: str, collection: str, filters: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
        graphql_filter = {key: value for key, value in (filters or {}).items() if key != "type"}
        headers = {"Content-Type": "application/json", "Authorization": f"Bearer {self.api_key}"}
        payload = self._post("", {"query": document, "variables": {"filter": graphql_filter}}, headers=headers)
        if payload.get("errors"):
            raise ProviderResponseError(str(payload["errors"][0].get("message", payload["errors"][0])))
        edges = ((payload.get("data") or {}).get(collection) or {}).get("edges") or []
        return [edge["node"] for edge in edges if isinstance(edge, dict) and edge.get("node")]
