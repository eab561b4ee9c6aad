"""Property source chain.

Purpose
-------
Provide the chain-of-responsibility node every concrete source derives from.
A source answers "do I have a value for this name"; when it does not, the
lookup moves to the next source in registration order.

Contents
--------
* :class:`PropertySource` – chain node with :meth:`resolve` and
  :meth:`add_link`; subclasses implement :meth:`_resolve_local`.

Invariants
----------
The chain is a singly linked list built by :meth:`add_link`. Each node is added
once and the chain is acyclic; this is guaranteed by how callers assemble it and
is not checked at runtime.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator

from ...domain.request import has_value
from ...observability import log_debug, make_event


class PropertySource:
    """Base class for one node in the property resolution chain.

    Parameters
    ----------
    logger:
        Logger used for diagnostics; defaults to the package logger.

    Examples
    --------
    >>> import asyncio
    >>> class Static(PropertySource):
    ...     def __init__(self, values):
    ...         super().__init__()
    ...         self._values = values
    ...     async def _resolve_local(self, name):
    ...         return self._values.get(name)
    >>> first = Static({})
    >>> first.add_link(Static({"port": "8080"}))
    >>> asyncio.run(first.resolve("port"))
    '8080'
    """

    source_name = "source"

    def __init__(self, *, logger: logging.Logger | None = None) -> None:
        self._next: PropertySource | None = None
        self._logger = logger

    @property
    def next_source(self) -> PropertySource | None:
        return self._next

    @property
    def logger(self) -> logging.Logger | None:
        return self._logger

    def add_link(self, source: PropertySource) -> None:
        """Attach *source* at the tail of the chain.

        An occupied slot is never replaced; the call walks down the chain until
        it finds the last node, so earlier sources keep precedence.
        """

        if self._next is None:
            log_debug(
                "source_linked",
                logger=self._logger,
                **make_event(self.source_name, None, {"next": source.source_name}),
            )
            self._next = source
        else:
            self._next.add_link(source)

    async def resolve(self, name: str) -> Any:
        """Return the first value produced by this node or any later node, else ``None``."""

        value = await self._resolve_local(name)
        if has_value(value):
            return value
        if self._next is not None:
            return await self._next.resolve(name)
        return None

    async def _resolve_local(self, name: str) -> Any:
        """Look *name* up in this source only."""

        raise NotImplementedError

    def __iter__(self) -> Iterator[PropertySource]:
        """Iterate over this node and every linked successor in lookup order."""

        node: PropertySource | None = self
        while node is not None:
            yield node
            node = node._next
