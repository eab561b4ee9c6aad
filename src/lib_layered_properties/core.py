"""Composition root for ``lib_layered_properties``.

Purpose
-------
Assemble the property resolution chain from a settings document: environment
variables first, an optional caching layer around the whole chain, and an
optional remote configuration source (with secret dereferencing) appended as
the last link.

Contents
--------
* :class:`ConfigurationManager` – owns the resolver and hands out namespaced
  views.
* :func:`read_property_settings` – load a settings document from a TOML, JSON,
  or YAML file.

System Role
-----------
This is the only module that knows about credentials and client construction.
Everything it builds is reachable through :attr:`ConfigurationManager.properties`
and the narrow ``get_property(name)`` contract.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Mapping

from .adapters.file_loaders.structured import FILE_LOADERS
from .adapters.sources.base import PropertySource
from .adapters.sources.environment import EnvironmentSource
from .adapters.sources.remote import MatchPolicy, RemoteConfigurationSource
from .application.caching import CachingPropertyResolver, Clock
from .application.ports import CredentialProvider, RemoteClientFactory
from .application.resolver import DEFAULT_DELIMITER, NamespacedPropertyResolver, PropertyResolver
from .domain.errors import ConfigurationError, InvalidFormat
from .domain.settings import CacheControls, PropertySettings, RemoteConfigSettings
from .observability import log_debug, log_info, make_event

LOCAL_ENVIRONMENT = "local"
DEFAULT_ENVIRONMENT = "development"


class ConfigurationManager:
    """Build and own the property resolver for one host process.

    Parameters
    ----------
    environment:
        Deployment environment name. It labels remote lookups; ``"local"``
        keeps the environment-only chain regardless of settings.
    environ:
        Environment table for the base source (defaults to :data:`os.environ`).
    policy:
        Accumulation policy for the remote source.
    clock:
        Monotonic seconds source handed to the caching layer.
    logger:
        Logger injected into every component the manager builds.

    Examples
    --------
    >>> import asyncio
    >>> manager = ConfigurationManager(environ={"jwt-issuer": "auth.example"})
    >>> manager.start({"cacheControls": {"cache": True, "maxAge": "1m"}})
    >>> async def lookup():
    ...     return await manager.namespace("jwt").get_property("issuer")
    >>> asyncio.run(lookup())
    'auth.example'
    """

    def __init__(
        self,
        *,
        environment: str = DEFAULT_ENVIRONMENT,
        environ: Mapping[str, str] | None = None,
        policy: MatchPolicy = MatchPolicy.LAST_MATCH,
        clock: Clock = time.monotonic,
        logger: logging.Logger | None = None,
    ) -> None:
        self._environment = environment
        self._policy = policy
        self._clock = clock
        self._logger = logger
        self._properties: PropertyResolver | CachingPropertyResolver = PropertyResolver(
            EnvironmentSource(environ=environ, logger=logger), logger=logger
        )

    @property
    def environment(self) -> str:
        return self._environment

    @property
    def local(self) -> bool:
        return self._environment == LOCAL_ENVIRONMENT

    @property
    def properties(self) -> PropertyResolver | CachingPropertyResolver:
        return self._properties

    @property
    def sources(self) -> tuple[PropertySource, ...]:
        """Chain nodes in lookup order."""

        resolver = self._properties
        if isinstance(resolver, CachingPropertyResolver):
            resolver = resolver.inner
        return tuple(resolver.source)

    def start(
        self,
        settings: PropertySettings | Mapping[str, Any] | None,
        *,
        credentials: CredentialProvider | None = None,
        clients: RemoteClientFactory | None = None,
    ) -> None:
        """Apply *settings*: wrap the chain in a cache and append remote sources as configured.

        Raises
        ------
        InvalidFormat
            When *settings* is a malformed document.
        ConfigurationError
            When remote configuration is enabled without *credentials* and
            *clients*.
        """

        if self.local:
            log_debug("settings_skipped", logger=self._logger, **make_event("manager", None, {"reason": "local"}))
            return
        if settings is None:
            log_debug("settings_skipped", logger=self._logger, **make_event("manager", None, {"reason": "missing"}))
            return
        if not isinstance(settings, PropertySettings):
            settings = PropertySettings.from_mapping(settings)
        log_info("settings_loaded", logger=self._logger, **make_event("manager", None, {"environment": self._environment}))
        self._load_cache_controls(settings.cache_controls)
        self._load_remote_config(settings.remote_config, credentials, clients)

    def add_source(self, source: PropertySource) -> None:
        """Append an already constructed *source* to the chain."""

        self._properties.add_source(source)

    def namespace(self, name: str, delimiter: str = DEFAULT_DELIMITER) -> NamespacedPropertyResolver:
        return NamespacedPropertyResolver(self._properties, name, delimiter)

    def _load_cache_controls(self, controls: CacheControls) -> None:
        if not controls.cache:
            log_debug("cache_disabled", logger=self._logger, **make_event("manager", None))
            return
        if isinstance(self._properties, CachingPropertyResolver):
            cached = self._properties
        else:
            cached = CachingPropertyResolver(self._properties, controls.max_age, clock=self._clock, logger=self._logger)
        for override in controls.overrides:
            cached.set_cache(override.name, cache=override.cache, max_age=override.max_age)
        self._properties = cached

    def _load_remote_config(
        self,
        remote: RemoteConfigSettings,
        credentials: CredentialProvider | None,
        clients: RemoteClientFactory | None,
    ) -> None:
        if not remote.enabled:
            return
        if not remote.endpoints:
            log_debug("remote_endpoints_missing", logger=self._logger, **make_event("manager", None))
            return
        if credentials is None or clients is None:
            raise ConfigurationError("Remote configuration requires a credential provider and a client factory")

        source = RemoteConfigurationSource(label=self._environment, policy=self._policy, logger=self._logger)
        for endpoint in remote.endpoints:
            log_debug("remote_endpoint_added", logger=self._logger, **make_event("manager", None, {"url": endpoint.url}))
            source.add_client(clients.setting_client(endpoint.url, credentials.get_credential(endpoint.identity)))

        vault = remote.secret_vault
        if vault is not None and vault.follow_references and vault.endpoint is not None:
            log_debug("secret_vault_added", logger=self._logger, **make_event("manager", None, {"url": vault.endpoint.url}))
            source.set_secret_client(clients.secret_client(vault.endpoint.url, credentials.get_credential(vault.endpoint.identity)))
        self.add_source(source)


def read_property_settings(path: str | Path) -> PropertySettings:
    """Load and validate a settings document from *path*.

    The parser is chosen by suffix (``.toml``, ``.json``, ``.yaml``, ``.yml``).

    Raises
    ------
    NotFound
        When the file does not exist.
    InvalidFormat
        For unsupported suffixes, unparseable files, or invalid settings.
    """

    file_path = Path(path)
    loader = FILE_LOADERS.get(file_path.suffix.lower())
    if loader is None:
        raise InvalidFormat(f"Unsupported settings format: {file_path.suffix or file_path.name}")
    document = loader.load(str(file_path))
    return PropertySettings.from_mapping(document)


__all__ = [
    "ConfigurationManager",
    "DEFAULT_ENVIRONMENT",
    "LOCAL_ENVIRONMENT",
    "read_property_settings",
]
