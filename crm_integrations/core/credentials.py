"""Per-request credential resolution."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from crm_integrations.core.config import Settings
from crm_integrations.core.store import IntegrationStore
from crm_integrations.models import ENVIRONMENT, USER_TOKEN, Credential, Provider, UserToken

logger = logging.getLogger(__name__)

_TOKEN_KEY_FIELDS = ("api_key", "apiKey", "access_token")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _api_key_from_token(token: UserToken) -> Optional[str]:
    payload = token.token_payload or {}
    for name in _TOKEN_KEY_FIELDS:
        value = payload.get(name)
        if value:
            return str(value)
    return None


class CredentialResolver:
    """Resolve the environment secret, else the caller's active token, else nothing."""

    def __init__(
        self,
        settings: Settings,
        store: IntegrationStore,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._settings = settings
        self._store = store
        self._clock = clock

    def resolve(self, provider: Provider, caller_id: Optional[str] = None, touch: bool = True) -> Optional[Credential]:
        api_key = self._settings.api_key_for(provider)
        if api_key:
            return Credential(provider=provider, kind=ENVIRONMENT, api_key=api_key)

        if not caller_id:
            return None

        token = self._load_token(provider, caller_id)
        if token is None or not token.is_active:
            return None

        if touch:
            try:
                self._store.touch_token_last_used(token.id, self._clock())
            except Exception as exc:  # noqa: BLE001
                logger.warning("Failed to touch token %s for %s: %s", token.id, provider.value, exc)

        return Credential(
            provider=provider,
            kind=USER_TOKEN,
            api_key=_api_key_from_token(token),
            token_payload=dict(token.token_payload or {}),
            token_id=token.id,
        )

    def validate_credentials(self, provider: Provider, caller_id: Optional[str] = None) -> bool:
        """Report whether a credential would resolve, without touching the token."""
        return self.resolve(provider, caller_id, touch=False) is not None

    def has_environment_key(self, provider: Provider) -> bool:
        return bool(self._settings.api_key_for(provider))

    def has_user_token(self, provider: Provider, caller_id: Optional[str]) -> bool:
        if not caller_id:
            return False
        return self._load_token(provider, caller_id) is not None

    def _load_token(self, provider: Provider, caller_id: str) -> Optional[UserToken]:
        try:
            return self._store.get_user_provider_token(caller_id, provider)
        except Exception as exc:  # noqa: BLE001
            logger.error("Failed to load %s token for caller %s: %s", provider.value, caller_id, exc)
            return None
