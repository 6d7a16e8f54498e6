from crm_integrations.core.config import Settings
from crm_integrations.core.credentials import CredentialResolver
from crm_integrations.models import ENVIRONMENT, USER_TOKEN, Provider, UserToken


class ExplodingStore:
    def get_user_provider_token(self, caller_id, provider):
        raise RuntimeError("database down")


def _token(caller_id="user-1", provider=Provider.APOLLO, active=True, payload=None):
    return UserToken(
        id=f"tok-{caller_id}",
        caller_id=caller_id,
        provider=provider,
        token_payload=payload if payload is not None else {"api_key": "user-key"},
        is_active=active,
    )


def test_environment_secret_wins_over_user_token(store, clock):
    store.save_user_provider_token(_token())
    resolver = CredentialResolver(Settings(provider_api_keys={Provider.APOLLO: "env-key"}), store, clock=clock)

    credential = resolver.resolve(Provider.APOLLO, "user-1")

    assert credential.kind == ENVIRONMENT
    assert credential.api_key == "env-key"
    assert credential.token_id is None
    assert store.get_user_provider_token("user-1", Provider.APOLLO).last_used_at is None


def test_active_user_token_is_used_and_touched(store, clock):
    store.save_user_provider_token(_token())
    resolver = CredentialResolver(Settings(), store, clock=clock)

    credential = resolver.resolve(Provider.APOLLO, "user-1")

    assert credential.kind == USER_TOKEN
    assert credential.api_key == "user-key"
    assert credential.token_id == "tok-user-1"
    assert store.get_user_provider_token("user-1", Provider.APOLLO).last_used_at == clock.now


def test_inactive_token_and_missing_caller_resolve_to_none(store, clock):
    store.save_user_provider_token(_token(active=False))
    resolver = CredentialResolver(Settings(), store, clock=clock)

    assert resolver.resolve(Provider.APOLLO, "user-1") is None
    assert resolver.resolve(Provider.APOLLO, None) is None
    assert resolver.resolve(Provider.APOLLO, "someone-else") is None


def test_token_payload_access_token_is_extracted(store, clock):
    store.save_user_provider_token(_token(provider=Provider.TWENTY_CRM, payload={"access_token": "oauth"}))
    resolver = CredentialResolver(Settings(), store, clock=clock)

    assert resolver.resolve(Provider.TWENTY_CRM, "user-1").api_key == "oauth"


def test_validate_credentials_has_no_side_effects(store, clock):
    store.save_user_provider_token(_token())
    resolver = CredentialResolver(Settings(), store, clock=clock)

    assert resolver.validate_credentials(Provider.APOLLO, "user-1") is True
    assert resolver.validate_credentials(Provider.PIPEDRIVE, "user-1") is False
    assert store.get_user_provider_token("user-1", Provider.APOLLO).last_used_at is None


def test_status_helpers(store, clock):
    store.save_user_provider_token(_token(active=False))
    resolver = CredentialResolver(Settings(provider_api_keys={Provider.FOURSQUARE: "k"}), store, clock=clock)

    assert resolver.has_environment_key(Provider.FOURSQUARE) is True
    assert resolver.has_environment_key(Provider.APOLLO) is False
    assert resolver.has_user_token(Provider.APOLLO, "user-1") is True
    assert resolver.has_user_token(Provider.APOLLO, None) is False


def test_store_failure_is_treated_as_absent(caplog):
    resolver = CredentialResolver(Settings(), ExplodingStore())

    with caplog.at_level("ERROR"):
        assert resolver.resolve(Provider.APOLLO, "user-1") is None

    assert "database down" in " ".join(caplog.messages)
