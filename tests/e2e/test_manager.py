"""Composition root wiring: environment base, cache wrapping, remote sources."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from lib_layered_properties import (
    SECRET_REFERENCE_CONTENT_TYPE,
    CachingPropertyResolver,
    ConfigurationError,
    ConfigurationManager,
    CredentialCache,
    EnvironmentSource,
    InvalidFormat,
    MatchPolicy,
    NotFound,
    PropertyResolver,
    RemoteConfigurationSource,
    SettingResponse,
    read_property_settings,
)
from lib_layered_properties.testing import CountingSource, FakeClock, InMemorySecretClient, InMemorySettingClient


class RecordingClientFactory:
    """Client factory handing out prepared in-memory clients per url."""

    def __init__(self, settings: dict[str, InMemorySettingClient], secrets: InMemorySecretClient | None = None) -> None:
        self._settings = settings
        self._secrets = secrets
        self.created: list[tuple[str, str, Any]] = []

    def setting_client(self, url: str, credential: Any) -> InMemorySettingClient:
        self.created.append(("setting", url, credential))
        return self._settings[url]

    def secret_client(self, url: str, credential: Any) -> InMemorySecretClient:
        self.created.append(("secret", url, credential))
        assert self._secrets is not None
        return self._secrets


def _remote_document(*, cache: bool = True, follow: bool = True) -> dict[str, Any]:
    return {
        "cacheControls": {"cache": cache, "maxAge": "1m", "overrides": [{"name": "rotating-token", "cache": False}]},
        "remoteConfig": {
            "enabled": True,
            "endpoints": [
                {"url": "https://config-a.example", "identity": "id-a"},
                {"url": "https://config-b.example", "identity": "id-a"},
            ],
            "secretVault": {"followReferences": follow, "endpoint": {"url": "https://vault.example", "identity": "id-v"}},
        },
    }


def _factory() -> RecordingClientFactory:
    reference = SettingResponse(json.dumps({"uri": "https://vault.example/secrets/db"}), SECRET_REFERENCE_CONTENT_TYPE)
    return RecordingClientFactory(
        {
            "https://config-a.example": InMemorySettingClient({"feature": "a", "only-a": "from-a"}),
            "https://config-b.example": InMemorySettingClient({"feature": "b", "db-password": reference}),
        },
        InMemorySecretClient({"https://vault.example/secrets/db": "s3cret"}),
    )


def test_default_chain_is_environment_only() -> None:
    manager = ConfigurationManager(environ={})
    assert isinstance(manager.properties, PropertyResolver)
    assert [type(source) for source in manager.sources] == [EnvironmentSource]


@pytest.mark.asyncio
async def test_remote_settings_build_cached_chain_with_secret_dereference() -> None:
    factory = _factory()
    manager = ConfigurationManager(environment="production", environ={"feature": "env"}, clock=FakeClock())
    manager.start(_remote_document(), credentials=CredentialCache(lambda identity: f"cred:{identity}"), clients=factory)

    assert isinstance(manager.properties, CachingPropertyResolver)
    assert [type(source) for source in manager.sources] == [EnvironmentSource, RemoteConfigurationSource]
    assert factory.created == [
        ("setting", "https://config-a.example", "cred:id-a"),
        ("setting", "https://config-b.example", "cred:id-a"),
        ("secret", "https://vault.example", "cred:id-v"),
    ]

    assert await manager.properties.get_property("feature") == "env"
    assert await manager.properties.get_property("only-a") == "from-a"
    assert await manager.properties.get_property("db-password") == "s3cret"

    remote = manager.sources[1]
    assert isinstance(remote, RemoteConfigurationSource)
    assert remote.label == "production"


@pytest.mark.asyncio
async def test_last_remote_endpoint_wins_by_default() -> None:
    manager = ConfigurationManager(environ={})
    manager.start(_remote_document(), credentials=CredentialCache(str), clients=_factory())
    assert await manager.properties.get_property("feature") == "b"


@pytest.mark.asyncio
async def test_first_match_policy_can_be_selected() -> None:
    manager = ConfigurationManager(environ={}, policy=MatchPolicy.FIRST_MATCH)
    manager.start(_remote_document(), credentials=CredentialCache(str), clients=_factory())
    assert await manager.properties.get_property("feature") == "a"


@pytest.mark.asyncio
async def test_secret_vault_is_skipped_unless_references_are_followed() -> None:
    factory = _factory()
    manager = ConfigurationManager(environ={})
    manager.start(_remote_document(follow=False), credentials=CredentialCache(str), clients=factory)
    assert [kind for kind, _, _ in factory.created] == ["setting", "setting"]
    assert "uri" in json.loads(await manager.properties.get_property("db-password"))


def test_overrides_are_registered_on_the_cache() -> None:
    manager = ConfigurationManager(environ={})
    manager.start(_remote_document(), credentials=CredentialCache(str), clients=_factory())
    entry = manager.properties.get_cache("rotating-token")
    assert entry is not None and entry.cache is False and entry.value is None


def test_cache_disabled_keeps_plain_resolver() -> None:
    manager = ConfigurationManager(environ={})
    manager.start(_remote_document(cache=False), credentials=CredentialCache(str), clients=_factory())
    assert isinstance(manager.properties, PropertyResolver)
    assert len(manager.sources) == 2


def test_local_environment_ignores_settings() -> None:
    manager = ConfigurationManager(environment="local", environ={})
    assert manager.local
    manager.start(_remote_document())
    assert isinstance(manager.properties, PropertyResolver)
    assert len(manager.sources) == 1


def test_missing_settings_keep_defaults() -> None:
    manager = ConfigurationManager(environ={})
    manager.start(None)
    assert isinstance(manager.properties, PropertyResolver)


def test_remote_without_collaborators_is_a_configuration_error() -> None:
    manager = ConfigurationManager(environ={})
    with pytest.raises(ConfigurationError):
        manager.start(_remote_document())


def test_remote_without_endpoints_adds_nothing() -> None:
    manager = ConfigurationManager(environ={})
    manager.start({"remoteConfig": {"enabled": True, "endpoints": []}})
    assert len(manager.sources) == 1


def test_malformed_settings_are_surfaced() -> None:
    manager = ConfigurationManager(environ={})
    with pytest.raises(InvalidFormat):
        manager.start({"cacheControls": {"cache": True, "maxAge": "later"}})


@pytest.mark.asyncio
async def test_add_source_appends_after_existing_sources() -> None:
    manager = ConfigurationManager(environ={"shared": "env"})
    manager.start({"cacheControls": {"cache": True}})
    manager.add_source(CountingSource({"shared": "memory", "extra": "memory"}))
    assert await manager.properties.get_property("shared") == "env"
    assert await manager.properties.get_property("extra") == "memory"


@pytest.mark.asyncio
async def test_namespace_views_share_the_cache() -> None:
    source = CountingSource({"jwt-issuer": "auth.example"})
    manager = ConfigurationManager(environ={}, clock=FakeClock())
    manager.start({"cacheControls": {"cache": True}})
    manager.add_source(source)
    first, second = manager.namespace("jwt"), manager.namespace("jwt")
    assert await first.get_property("issuer") == "auth.example"
    assert await second.get_property("issuer") == "auth.example"
    assert source.call_count == 1


def test_read_property_settings_from_yaml(tmp_path: Path) -> None:
    path = tmp_path / "properties.yml"
    path.write_text("cacheControls:\n  cache: true\n  maxAge: 2m\n", encoding="utf-8")
    settings = read_property_settings(path)
    assert settings.cache_controls.cache is True
    assert settings.cache_controls.max_age.total_seconds() == 120


def test_read_property_settings_errors(tmp_path: Path) -> None:
    with pytest.raises(NotFound):
        read_property_settings(tmp_path / "missing.toml")
    unsupported = tmp_path / "settings.ini"
    unsupported.write_text("[x]\n", encoding="utf-8")
    with pytest.raises(InvalidFormat):
        read_property_settings(unsupported)
