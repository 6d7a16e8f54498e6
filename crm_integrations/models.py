"""Core data models shared by the integration layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from crm_integrations.errors import InvalidProviderError


class Provider(str, Enum):
    APOLLO = "apollo"
    GOOGLE_MAPS = "google_maps"
    FOURSQUARE = "foursquare"
    PIPEDRIVE = "pipedrive"
    TWENTY_CRM = "twenty_crm"

    @classmethod
    def parse(cls, value: Any) -> "Provider":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value))
        except ValueError:
            supported = ", ".join(p.value for p in cls)
            raise InvalidProviderError(
                f"Provider must be one of: {supported}", str(value)
            ) from None


class JobStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


ENVIRONMENT = "environment"
USER_TOKEN = "user_token"


@dataclass(slots=True)
class UserToken:
    """Per-caller provider token created by the onboarding flow."""

    id: str
    caller_id: str
    provider: Provider
    token_payload: Dict[str, Any] = field(default_factory=dict, repr=False)
    is_active: bool = True
    last_used_at: Optional[datetime] = None


@dataclass(frozen=True)
class Credential:
    provider: Provider
    kind: str
    api_key: Optional[str] = field(default=None, repr=False)
    token_payload: Dict[str, Any] = field(default_factory=dict, repr=False)
    token_id: Optional[str] = None


_RESULT_FIELDS = ("id", "name", "email", "company", "location", "address", "phone", "website", "category")


@dataclass(slots=True)
class NormalizedResult:
    """Common record shape every provider result is mapped into."""

    name: str
    source: str
    id: Optional[str] = None
    email: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    category: Optional[str] = None
    raw_data: Optional[Dict[str, Any]] = field(default=None, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        for name in _RESULT_FIELDS:
            value = getattr(self, name)
            if value is not None:
                payload[name] = value
        payload["source"] = self.source
        payload["rawData"] = self.raw_data
        return payload

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "NormalizedResult":
        kwargs = {name: payload.get(name) for name in _RESULT_FIELDS}
        kwargs["name"] = kwargs["name"] or ""
        return cls(source=payload.get("source", ""), raw_data=payload.get("rawData"), **kwargs)


@dataclass(slots=True)
class CacheEntry:
    provider: Provider
    fingerprint: str
    query_params: Dict[str, Any]
    result_data: List[NormalizedResult]
    created_at: datetime
    expires_at: datetime
    using_mock_data: bool = False
    message: Optional[str] = None


@dataclass(slots=True)
class SyncJob:
    id: str
    caller_id: str
    provider: Provider
    job_type: str
    status: JobStatus = JobStatus.QUEUED
    progress: int = 0
    processed_records: int = 0
    total_records: Optional[int] = None
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "callerId": self.caller_id,
            "provider": self.provider.value,
            "jobType": self.job_type,
            "status": self.status.value,
            "progress": self.progress,
            "processedRecords": self.processed_records,
            "totalRecords": self.total_records,
            "errorMessage": self.error_message,
            "createdAt": _isoformat(self.created_at),
            "updatedAt": _isoformat(self.updated_at),
        }


@dataclass(slots=True)
class SearchResponse:
    data: List[NormalizedResult]
    source: Provider
    cached: bool
    using_mock_data: bool = False
    message: Optional[str] = None
    timestamp: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "success": True,
            "data": [item.to_dict() for item in self.data],
            "source": self.source.value,
            "cached": self.cached,
            "count": len(self.data),
        }
        if self.cached:
            payload["timestamp"] = _isoformat(self.timestamp)
        payload["usingMockData"] = self.using_mock_data
        if self.message:
            payload["message"] = self.message
        return payload


@dataclass(slots=True)
class ProviderStatus:
    provider: Provider
    configured: bool
    has_environment_key: bool
    has_user_token: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider.value,
            "configured": self.configured,
            "hasEnvironmentKey": self.has_environment_key,
            "hasUserToken": self.has_user_token,
            "status": "active" if self.configured else "not_configured",
        }


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None
