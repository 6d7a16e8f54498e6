"""Error types raised by the integration layer."""

from __future__ import annotations

from typing import Any, Dict, Optional


class IntegrationError(RuntimeError):
    """Base class for errors surfaced to callers of the integration layer."""

    status_code = 500

    def __init__(self, message: str, provider: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.provider = provider

    def to_envelope(self) -> Dict[str, Any]:
        return {
            "success": False,
            "error": self.message,
            "message": self.message,
            "provider": self.provider,
            "data": [],
        }


class InvalidProviderError(IntegrationError):
    status_code = 400


class InvalidRequestError(IntegrationError):
    status_code = 400


class ProviderNotConfiguredError(IntegrationError):
    """Raised by pre-flight checks when no credential can be resolved."""

    status_code = 400


class UnauthorizedError(IntegrationError):
    """The provider rejected the credential; retry after reconfiguring it."""

    status_code = 424


class RateLimitedError(IntegrationError):
    status_code = 429

    def __init__(self, message: str, provider: Optional[str] = None, source: str = "limiter") -> None:
        super().__init__(message, provider)
        # "limiter" for our own window, "provider" when the upstream answered 429.
        self.source = source


class ProviderError(IntegrationError):
    status_code = 424


class JobNotFoundError(IntegrationError):
    status_code = 404


class ForbiddenError(IntegrationError):
    status_code = 403


class ProviderResponseError(RuntimeError):
    """Raised inside provider clients when a 2xx payload reports an error."""


def _extract_status(error: BaseException) -> Optional[int]:
    status = getattr(error, "status_code", None)
    if status is None:
        response = getattr(error, "response", None)
        status = getattr(response, "status_code", None)
    try:
        return int(status) if status is not None else None
    except (TypeError, ValueError):
        return None


def classify_error(error: BaseException, provider: str) -> IntegrationError:
    """Translate an exception raised by a provider client into a typed error."""
    if isinstance(error, IntegrationError):
        return error

    status = _extract_status(error)
    detail = str(error) or error.__class__.__name__

    if status in (401, 403):
        return UnauthorizedError(
            f"{provider} integration requires valid API credentials. "
            "Please configure your API keys in settings or connect your account.",
            provider,
        )
    if status == 429:
        return RateLimitedError(f"Rate limit exceeded for {provider}", provider, source="provider")
    return ProviderError(f"{provider} API error: {detail}", provider)
