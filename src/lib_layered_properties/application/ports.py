"""Application-layer ports describing external collaborators.

Purpose
-------
Define the structural contracts the resolution engine consumes so remote
configuration services, secret stores, and credential providers can be swapped
without touching sources or resolvers.

Contents
--------
* :class:`SettingResponse` / :class:`SecretResponse` – payloads returned by
  remote clients.
* :class:`RemoteSettingClient` – label-scoped key/value lookups.
* :class:`SecretClient` – dereferences secret URIs.
* :class:`CredentialProvider` – hands out credentials per identity.
* :class:`RemoteClientFactory` – builds clients from endpoint urls.

System Role
-----------
The remote source depends on the first two protocols; only the composition root
uses the credential provider and client factory.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True, slots=True)
class SettingResponse:
    """A remote setting value together with its content-type tag."""

    value: str | None
    content_type: str | None = None


@dataclass(frozen=True, slots=True)
class SecretResponse:
    value: str | None


class RemoteSettingClient(Protocol):
    """Fetch label-scoped settings from a remote configuration service.

    Why
    ----
    The remote source iterates every registered client; each returns a
    response or ``None`` and may raise on transport failure.
    """

    async def fetch_setting(self, key: str, label: str | None) -> SettingResponse | None:
        """Return the setting stored under *key*/*label* or ``None``."""


class SecretClient(Protocol):
    """Resolve secret references to their current value."""

    async def fetch_secret(self, uri: str) -> SecretResponse:
        """Return the secret addressed by *uri*."""


class CredentialProvider(Protocol):
    """Supply a token credential for a named identity."""

    def get_credential(self, identity: str | None) -> Any:
        """Return an opaque credential handle usable by remote clients."""


class RemoteClientFactory(Protocol):
    """Construct remote clients for the endpoints listed in the settings document."""

    def setting_client(self, url: str, credential: Any) -> RemoteSettingClient:
        """Return a client talking to the configuration service at *url*."""

    def secret_client(self, url: str, credential: Any) -> SecretClient:
        """Return a client talking to the secret store at *url*."""
