"""Credential provider adapter.

Purpose
-------
Memoise one credential handle per identity so every remote client built for the
same identity shares it. Construction of the actual credential is delegated to a
caller-supplied factory (for example a managed-identity credential class).
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from ..observability import log_debug, make_event


class CredentialCache:
    """Implement :class:`~lib_layered_properties.application.ports.CredentialProvider` with memoisation.

    Examples
    --------
    >>> created = []
    >>> cache = CredentialCache(lambda identity: created.append(identity) or f"cred:{identity}")
    >>> cache.get_credential("app-id"), cache.get_credential("app-id")
    ('cred:app-id', 'cred:app-id')
    >>> created
    ['app-id']
    """

    def __init__(self, factory: Callable[[str | None], Any], *, logger: logging.Logger | None = None) -> None:
        self._factory = factory
        self._logger = logger
        self._credentials: dict[str | None, Any] = {}

    def get_credential(self, identity: str | None) -> Any:
        log_debug("credential_requested", logger=self._logger, **make_event("credentials", None, {"identity": identity}))
        if identity not in self._credentials:
            self._credentials[identity] = self._factory(identity)
        return self._credentials[identity]

    def __len__(self) -> int:
        return len(self._credentials)
