"""Utilities for mapping provider responses into NormalizedResult records."""

import copy
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from crm_integrations.models import NormalizedResult, Provider

logger = logging.getLogger(__name__)

_IGNORE_TYPES = {"point_of_interest", "establishment", "political", "premise"}
_PASSTHROUGH_FIELDS = ("id", "name", "email", "company", "location", "address", "phone", "website", "category")


def _str_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    value_str = str(value).strip()
    return value_str or None


def _full_name(first: Any, last: Any) -> str:
    return f"{first or ''} {last or ''}".strip()


def _pair(first: Any, second: Any) -> Optional[str]:
    if first is None or second is None or first == "" or second == "":
        return None
    return f"{first}, {second}"


def _first_value(value: Any) -> Optional[str]:
    """Pipedrive returns contact fields either as a string or a list of {value: ...}."""
    if isinstance(value, list):
        for entry in value:
            if isinstance(entry, dict) and entry.get("value"):
                return _str_or_none(entry["value"])
            if isinstance(entry, str) and entry.strip():
                return entry.strip()
        return None
    return _str_or_none(value)


def _extract_primary_type(types: Iterable[str]) -> Optional[str]:
    for type_name in types or []:
        if type_name not in _IGNORE_TYPES:
            return type_name
    return None


def _apollo(raw: Dict[str, Any]) -> Dict[str, Any]:
    organization = raw.get("organization") or {}
    return {
        "id": _str_or_none(raw.get("id")),
        "name": raw.get("name") or _full_name(raw.get("first_name"), raw.get("last_name")),
        "email": _str_or_none(raw.get("email")),
        "company": organization.get("name") or raw.get("company"),
        "location": _pair(raw.get("city"), raw.get("state")) or _str_or_none(raw.get("location")),
        "phone": _str_or_none(raw.get("phone")),
        "website": organization.get("website_url") or raw.get("website_url"),
        "category": _str_or_none(raw.get("industry")),
    }


def _google_maps(raw: Dict[str, Any]) -> Dict[str, Any]:
    geometry = (raw.get("geometry") or {}).get("location") or {}
    return {
        "id": _str_or_none(raw.get("place_id")),
        "name": raw.get("name") or "",
        "address": raw.get("formatted_address") or raw.get("vicinity"),
        "phone": _str_or_none(raw.get("formatted_phone_number")),
        "website": _str_or_none(raw.get("website")),
        "location": _pair(geometry.get("lat"), geometry.get("lng")),
        "category": _extract_primary_type(raw.get("types", [])),
    }


def _foursquare(raw: Dict[str, Any]) -> Dict[str, Any]:
    place = raw.get("location") or {}
    geocode = (raw.get("geocodes") or {}).get("main") or {}
    categories = raw.get("categories") or []
    return {
        "id": _str_or_none(raw.get("fsq_id")),
        "name": raw.get("name") or "",
        "address": _str_or_none(place.get("formatted_address")),
        "category": _str_or_none(categories[0].get("name")) if categories and isinstance(categories[0], dict) else None,
        "location": _pair(geocode.get("latitude"), geocode.get("longitude"))
        or _pair(place.get("locality"), place.get("region")),
    }


def _pipedrive(raw: Dict[str, Any]) -> Dict[str, Any]:
    record = raw.get("item") if isinstance(raw.get("item"), dict) else raw
    organization = record.get("organization") or {}
    return {
        "id": _str_or_none(record.get("id")),
        "name": record.get("title") or record.get("name") or "",
        "email": _first_value(record.get("email")),
        "company": record.get("org_name") or organization.get("name"),
        "phone": _first_value(record.get("phone")),
    }


def _twenty_crm(raw: Dict[str, Any]) -> Dict[str, Any]:
    company = raw.get("company") or {}
    domain = raw.get("domainName")
    return {
        "id": _str_or_none(raw.get("id")),
        "name": raw.get("name") or _full_name(raw.get("firstName"), raw.get("lastName")),
        "email": _str_or_none(raw.get("email")),
        "company": company.get("name") or raw.get("companyName"),
        "phone": _str_or_none(raw.get("phone")),
        "website": raw.get("website") or company.get("website") or (f"https://{domain}" if domain else None),
        "location": _str_or_none(raw.get("city")),
        "address": _str_or_none(raw.get("address")),
    }


def _passthrough(raw: Dict[str, Any]) -> Dict[str, Any]:
    fields = {name: raw.get(name) for name in _PASSTHROUGH_FIELDS}
    fields["name"] = fields["name"] or ""
    return fields


_MAPPERS: Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    Provider.APOLLO.value: _apollo,
    Provider.GOOGLE_MAPS.value: _google_maps,
    Provider.FOURSQUARE.value: _foursquare,
    Provider.PIPEDRIVE.value: _pipedrive,
    Provider.TWENTY_CRM.value: _twenty_crm,
}


def normalize(provider: Any, raw_results: Optional[Iterable[Any]]) -> List[NormalizedResult]:
    """Map raw provider records into the common shape. Pure: no I/O, input untouched."""
    if not raw_results:
        return []

    source = str(getattr(provider, "value", provider))
    mapper = _MAPPERS.get(source, _passthrough)

    results: List[NormalizedResult] = []
    for raw in raw_results:
        if not isinstance(raw, dict):
            logger.debug("Skipping non-dict %s record: %r", source, raw)
            continue
        fields = mapper(raw)
        results.append(NormalizedResult(source=source, raw_data=copy.deepcopy(raw), **fields))
    return results
