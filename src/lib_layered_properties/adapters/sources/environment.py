"""Environment variable source.

Purpose
-------
Resolve properties straight from the process environment. It is the base of
every chain the configuration manager builds, so local overrides always win
over remote services.

Key behaviours
--------------
* Reads an injectable ``environ`` mapping (defaults to :data:`os.environ`) so
  tests never mutate the real process environment.
* Optional ``prefix`` is prepended verbatim to every lookup
  (``prefix="APP_"`` turns ``db-host`` into ``APP_db-host``).
* Names are matched exactly; no case folding or type coercion is applied.
"""

from __future__ import annotations

import logging
import os
from typing import Mapping

from ...observability import log_debug, make_event
from .base import PropertySource


class EnvironmentSource(PropertySource):
    """Look properties up in an environment-variable table.

    Examples
    --------
    >>> import asyncio
    >>> source = EnvironmentSource(environ={"DB_HOST": "db.internal"})
    >>> asyncio.run(source.resolve("DB_HOST"))
    'db.internal'
    >>> asyncio.run(source.resolve("DB_PORT")) is None
    True
    """

    source_name = "env"

    def __init__(
        self,
        *,
        environ: Mapping[str, str] | None = None,
        prefix: str = "",
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(logger=logger)
        self._environ = environ if environ is not None else os.environ
        self._prefix = prefix

    @property
    def prefix(self) -> str:
        return self._prefix

    async def _resolve_local(self, name: str) -> str | None:
        key = f"{self._prefix}{name}"
        value = self._environ.get(key)
        log_debug(
            "environment_lookup",
            logger=self._logger,
            **make_event(self.source_name, name, {"variable": key, "found": value is not None}),
        )
        return value
