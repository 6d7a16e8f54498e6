"""Client for the Google Places web service."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from crm_integrations.errors import ProviderResponseError
from crm_integrations.models import Provider
from crm_integrations.providers.base import ProviderClient, location_param, request_type

logger = logging.getLogger(__name__)

SEARCH_RADIUS_METERS = 5000

SAMPLE_PLACES: List[Dict[str, Any]] = [
    {
        "place_id": "gmaps-place-1",
        "name": "Earth Care Community Center",
        "formatted_address": "123 Sustainability Ave, Portland, OR 97201",
        "geometry": {"location": {"lat": 45.5152, "lng": -122.6784}},
        "formatted_phone_number": "+1-555-0300",
        "website": "https://earthcare-center.example.com",
        "rating": 4.8,
        "types": ["community_center", "point_of_interest"],
    },
    {
        "place_id": "gmaps-place-2",
        "name": "Green Building Supply",
        "formatted_address": "456 Eco Way, Portland, OR 97202",
        "geometry": {"location": {"lat": 45.52, "lng": -122.67}},
        "formatted_phone_number": "+1-555-0301",
        "website": "https://greenbuilding.example.com",
        "rating": 4.5,
        "types": ["store", "point_of_interest"],
    },
]


def _results(payload: Dict[str, Any], operation: str) -> List[Dict[str, Any]]:
    status = payload.get("status")
    if status not in {"OK", "ZERO_RESULTS"}:
        logger.error("%s failed: status=%s, error_message=%s", operation, status, payload.get("error_message"))
        raise ProviderResponseError(payload.get("error_message") or status)
    return payload.get("results") or []


class GoogleMapsClient(ProviderClient):
    provider = Provider.GOOGLE_MAPS
    base_url = "https://maps.googleapis.com/maps/api"

    def search(self, query, filters=None, location=None):
        if request_type(filters) == "nearby" and location_param(location):
            return self.nearby_search(location, place_type=(filters or {}).get("place_type"))
        return self.text_search(query, location)

    def text_search(self, query: str, location: Optional[Dict[str, float]] = None) -> List[Dict[str, Any]]:
        def fetch():
            params: Dict[str, Any] = {"query": query, "key": self.api_key}
            ll = location_param(location)
            if ll:
                params["location"] = ll
                params["radius"] = SEARCH_RADIUS_METERS
            return _results(self._get("/place/textsearch/json", params=params), "text_search")

        return self._call("text_search", fetch, SAMPLE_PLACES)

    def nearby_search(
        self,
        location: Dict[str, float],
        radius: int = SEARCH_RADIUS_METERS,
        place_type: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        def fetch():
            params: Dict[str, Any] = {"location": location_param(location), "radius": radius, "key": self.api_key}
            if place_type:
                params["type"] = place_type
            return _results(self._get("/place/nearbysearch/json", params=params), "nearby_search")

        return self._call("nearby_search", fetch, SAMPLE_PLACES)
