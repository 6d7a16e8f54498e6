"""Foursquare Places search."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from crm_integrations.models import Provider
from crm_integrations.providers.base import ProviderClient, location_param

SAMPLE_PLACES: List[Dict[str, Any]] = [
    {
        "fsq_id": "4sq-place-1",
        "name": "Permaculture Design Studio",
        "location": {
            "formatted_address": "789 Regeneration Rd, Boulder, CO 80301",
            "locality": "Boulder",
            "region": "CO",
        },
        "categories": [
            {
                "id": 13000,
                "name": "Design Studio",
                "icon": {"prefix": "https://ss3.4sqi.net/img/categories_v2/building/", "suffix": ".png"},
            }
        ],
        "geocodes": {"main": {"latitude": 40.015, "longitude": -105.2705}},
    },
    {
        "fsq_id": "4sq-place-2",
        "name": "Organic Food Cooperative",
        "location": {
            "formatted_address": "321 Local Farm Lane, Boulder, CO 80302",
            "locality": "Boulder",
            "region": "CO",
        },
        "categories": [
            {
                "id": 17000,
                "name": "Food & Drink",
                "icon": {"prefix": "https://ss3.4sqi.net/img/categories_v2/food/", "suffix": ".png"},
            }
        ],
        "geocodes": {"main": {"latitude": 40.02, "longitude": -105.28}},
    },
]


class FoursquareClient(ProviderClient):
    provider = Provider.FOURSQUARE
    base_url = "https://api.foursquare.com/v3"

    def search(self, query, filters=None, location=None):
        return self.search_places(query, location)

    def search_places(self, query: str, location: Optional[Dict[str, float]] = None) -> List[Dict[str, Any]]:
        def fetch():
            params: Dict[str, Any] = {"query": query}
            ll = location_param(location)
            if ll:
                params["ll"] = ll
                params["radius"] = 5000
            headers = {"Authorization": self.api_key or "", "Accept": "application/json"}
            return self._get("/places/search", params=params, headers=headers).get("results") or []

        return self._call("search_places", fetch, SAMPLE_PLACES)
