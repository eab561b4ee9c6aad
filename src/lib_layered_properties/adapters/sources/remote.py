"""Remote configuration source with secret dereferencing.

Purpose
-------
Resolve properties from one or more remote configuration services, optionally
following secret references into a dedicated secret store.

Key behaviours
--------------
* Every registered client is queried, in registration order, for a setting
  scoped by ``label``. With :attr:`MatchPolicy.LAST_MATCH` (the default) each
  non-empty answer overwrites the previous one, so the last client with a value
  decides the result. :attr:`MatchPolicy.FIRST_MATCH` stops at the first hit.
* A response tagged with :data:`SECRET_REFERENCE_CONTENT_TYPE` carries a JSON
  body ``{"uri": ...}``; when a secret client is configured the secret's value
  replaces the reference.
* A failing client is logged and skipped; it never aborts the loop or reaches
  the caller.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Final

from ...application.ports import RemoteSettingClient, SecretClient, SettingResponse
from ...domain.errors import InvalidFormat
from ...domain.request import has_value
from ...observability import log_debug, log_info, make_event
from .base import PropertySource

SECRET_REFERENCE_CONTENT_TYPE: Final[str] = "application/vnd.microsoft.appconfig.keyvaultref+json;charset=utf-8"


class MatchPolicy(str, Enum):
    """How answers from several remote clients are combined."""

    LAST_MATCH = "last-match"
    FIRST_MATCH = "first-match"


class RemoteConfigurationSource(PropertySource):
    """Query remote configuration clients and dereference secret references.

    Parameters
    ----------
    label:
        Label passed with every lookup (the deployment environment name).
    policy:
        Accumulation policy across clients; see :class:`MatchPolicy`.
    logger:
        Logger used for diagnostics; defaults to the package logger.
    """

    source_name = "remote"

    def __init__(
        self,
        *,
        label: str | None = None,
        policy: MatchPolicy = MatchPolicy.LAST_MATCH,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(logger=logger)
        self._label = label
        self._policy = MatchPolicy(policy)
        self._clients: list[RemoteSettingClient] = []
        self._secret_client: SecretClient | None = None

    @property
    def label(self) -> str | None:
        return self._label

    @property
    def policy(self) -> MatchPolicy:
        return self._policy

    @property
    def clients(self) -> tuple[RemoteSettingClient, ...]:
        return tuple(self._clients)

    @property
    def secret_client(self) -> SecretClient | None:
        return self._secret_client

    def add_client(self, client: RemoteSettingClient) -> None:
        """Register another remote client; it is queried after the existing ones."""

        self._clients.append(client)

    def set_secret_client(self, client: SecretClient) -> None:
        self._secret_client = client

    async def _resolve_local(self, name: str) -> str | None:
        value: str | None = None
        for index, client in enumerate(self._clients):
            try:
                response = await client.fetch_setting(name, self._label)
                if response is None or not has_value(response.value):
                    continue
                log_debug(
                    "remote_setting_found",
                    logger=self._logger,
                    **make_event(self.source_name, name, {"client": index, "content_type": response.content_type}),
                )
                value = await self._dereference(name, response)
            except Exception as exc:  # noqa: BLE001 - a failing client must not stop the others
                log_info(
                    "remote_client_failed",
                    logger=self._logger,
                    **make_event(self.source_name, name, {"client": index, "error": str(exc)}),
                )
                continue
            if self._policy is MatchPolicy.FIRST_MATCH and has_value(value):
                break

        if not has_value(value):
            log_info("property_not_found", logger=self._logger, **make_event(self.source_name, name))
        return value

    async def _dereference(self, name: str, response: SettingResponse) -> str | None:
        """Return the secret behind *response* when it is a reference, else its raw value."""

        if response.content_type != SECRET_REFERENCE_CONTENT_TYPE or self._secret_client is None:
            return response.value
        uri = _secret_uri(response.value)
        log_debug(
            "secret_reference_followed",
            logger=self._logger,
            **make_event(self.source_name, name, {"uri": uri}),
        )
        secret = await self._secret_client.fetch_secret(uri)
        return secret.value


def _secret_uri(payload: str | None) -> str:
    """Extract the ``uri`` field from a secret reference payload.

    Examples
    --------
    >>> _secret_uri('{"uri": "https://vault.example/secrets/db"}')
    'https://vault.example/secrets/db'
    >>> _secret_uri('{}')
    Traceback (most recent call last):
    ...
    lib_layered_properties.domain.errors.InvalidFormat: Secret reference has no 'uri' field
    """

    try:
        reference = json.loads(payload or "")
    except json.JSONDecodeError as exc:
        raise InvalidFormat(f"Secret reference is not valid JSON: {exc}") from exc
    uri = reference.get("uri") if isinstance(reference, dict) else None
    if not isinstance(uri, str) or not uri:
        raise InvalidFormat("Secret reference has no 'uri' field")
    return uri
