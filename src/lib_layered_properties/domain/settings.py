"""Configuration manager settings document.

Purpose
-------
Turn the manager's input document (cache controls plus remote configuration)
into immutable dataclasses with validated durations. Keys follow the camelCase
spelling of the published document; snake_case aliases are accepted so TOML and
YAML files can use their native style.

Contents
--------
* :class:`CacheOverride` / :class:`CacheControls`
* :class:`Endpoint` / :class:`SecretVaultSettings` / :class:`RemoteConfigSettings`
* :class:`PropertySettings` – root object with :meth:`PropertySettings.from_mapping`
  and :meth:`PropertySettings.to_dict`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Mapping

from .cache import DEFAULT_MAX_AGE, parse_duration
from .errors import InvalidFormat


@dataclass(frozen=True, slots=True)
class CacheOverride:
    """Caching policy registered for one property before its first lookup."""

    name: str
    cache: bool = True
    max_age: timedelta = DEFAULT_MAX_AGE


@dataclass(frozen=True, slots=True)
class CacheControls:
    cache: bool = False
    max_age: timedelta = DEFAULT_MAX_AGE
    overrides: tuple[CacheOverride, ...] = ()


@dataclass(frozen=True, slots=True)
class Endpoint:
    url: str
    identity: str | None = None


@dataclass(frozen=True, slots=True)
class SecretVaultSettings:
    follow_references: bool = False
    endpoint: Endpoint | None = None


@dataclass(frozen=True, slots=True)
class RemoteConfigSettings:
    enabled: bool = False
    endpoints: tuple[Endpoint, ...] = ()
    secret_vault: SecretVaultSettings | None = None


@dataclass(frozen=True, slots=True)
class PropertySettings:
    """Root settings object consumed by :class:`lib_layered_properties.core.ConfigurationManager`.

    Examples
    --------
    >>> settings = PropertySettings.from_mapping(
    ...     {"cacheControls": {"cache": True, "maxAge": "30s",
    ...                        "overrides": [{"name": "token", "cache": False}]}}
    ... )
    >>> settings.cache_controls.max_age.total_seconds()
    30.0
    >>> settings.cache_controls.overrides[0].cache
    False
    >>> settings.remote_config.enabled
    False
    """

    cache_controls: CacheControls = field(default_factory=CacheControls)
    remote_config: RemoteConfigSettings = field(default_factory=RemoteConfigSettings)

    @classmethod
    def from_mapping(cls, document: Mapping[str, Any] | None) -> PropertySettings:
        """Validate *document* and build the settings tree.

        Raises
        ------
        InvalidFormat
            When a section has the wrong shape, an override lacks a name, an
            endpoint lacks a url, or a duration cannot be parsed.
        """

        if document is None:
            return cls()
        root = _ensure_mapping(document, "settings")
        controls = _parse_cache_controls(_section(root, "cacheControls", "cache_controls"))
        remote = _parse_remote_config(_section(root, "remoteConfig", "remote_config"))
        return cls(cache_controls=controls, remote_config=remote)

    def to_dict(self) -> dict[str, Any]:
        """Return the canonical camelCase document (durations as seconds).

        Examples
        --------
        >>> PropertySettings().to_dict()["cacheControls"]
        {'cache': False, 'maxAge': 300.0, 'overrides': []}
        """

        controls = self.cache_controls
        remote = self.remote_config
        vault = remote.secret_vault
        return {
            "cacheControls": {
                "cache": controls.cache,
                "maxAge": controls.max_age.total_seconds(),
                "overrides": [
                    {"name": item.name, "cache": item.cache, "maxAge": item.max_age.total_seconds()}
                    for item in controls.overrides
                ],
            },
            "remoteConfig": {
                "enabled": remote.enabled,
                "endpoints": [_endpoint_dict(endpoint) for endpoint in remote.endpoints],
                "secretVault": None
                if vault is None
                else {
                    "followReferences": vault.follow_references,
                    "endpoint": _endpoint_dict(vault.endpoint) if vault.endpoint else None,
                },
            },
        }


def _parse_cache_controls(section: Mapping[str, Any] | None) -> CacheControls:
    if section is None:
        return CacheControls()
    max_age = _duration(section, DEFAULT_MAX_AGE)
    overrides = tuple(
        _parse_override(item, max_age) for item in _sequence(section.get("overrides"), "cacheControls.overrides")
    )
    return CacheControls(cache=_flag(section, "cache"), max_age=max_age, overrides=overrides)


def _parse_override(item: Any, fallback: timedelta) -> CacheOverride:
    entry = _ensure_mapping(item, "cacheControls.overrides[]")
    name = entry.get("name")
    if not isinstance(name, str) or not name:
        raise InvalidFormat("Cache override requires a non-empty 'name'")
    return CacheOverride(name=name, cache=_flag(entry, "cache", default=True), max_age=_duration(entry, fallback))


def _parse_remote_config(section: Mapping[str, Any] | None) -> RemoteConfigSettings:
    if section is None:
        return RemoteConfigSettings()
    endpoints = tuple(_parse_endpoint(item) for item in _sequence(section.get("endpoints"), "remoteConfig.endpoints"))
    vault_section = _section(section, "secretVault", "secret_vault")
    vault = None
    if vault_section is not None:
        raw_endpoint = vault_section.get("endpoint")
        vault = SecretVaultSettings(
            follow_references=_flag(vault_section, "followReferences", "follow_references"),
            endpoint=_parse_endpoint(raw_endpoint) if raw_endpoint is not None else None,
        )
    return RemoteConfigSettings(enabled=_flag(section, "enabled"), endpoints=endpoints, secret_vault=vault)


def _parse_endpoint(item: Any) -> Endpoint:
    entry = _ensure_mapping(item, "endpoint")
    url = entry.get("url")
    if not isinstance(url, str) or not url:
        raise InvalidFormat("Endpoint requires a non-empty 'url'")
    identity = entry.get("identity")
    if identity is not None and not isinstance(identity, str):
        raise InvalidFormat(f"Endpoint identity must be a string: {identity!r}")
    return Endpoint(url=url, identity=identity)


def _endpoint_dict(endpoint: Endpoint) -> dict[str, Any]:
    return {"url": endpoint.url, "identity": endpoint.identity}


def _section(mapping: Mapping[str, Any], *keys: str) -> Mapping[str, Any] | None:
    for key in keys:
        if key in mapping and mapping[key] is not None:
            return _ensure_mapping(mapping[key], key)
    return None


def _flag(mapping: Mapping[str, Any], *keys: str, default: bool = False) -> bool:
    for key in keys:
        if key in mapping:
            value = mapping[key]
            if not isinstance(value, bool):
                raise InvalidFormat(f"Setting '{key}' must be a boolean, got {value!r}")
            return value
    return default


def _duration(mapping: Mapping[str, Any], default: timedelta) -> timedelta:
    for key in ("maxAge", "max_age"):
        if key in mapping and mapping[key] is not None:
            return parse_duration(mapping[key])
    return default


def _sequence(value: Any, label: str) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (str, bytes, Mapping)) or not hasattr(value, "__iter__"):
        raise InvalidFormat(f"Setting '{label}' must be a list")
    return list(value)


def _ensure_mapping(value: Any, label: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise InvalidFormat(f"Setting '{label}' must be a mapping")
    return value
