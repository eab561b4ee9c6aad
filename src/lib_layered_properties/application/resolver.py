"""Resolver facade and namespaced views.

Purpose
-------
Expose typed accessors over a :class:`PropertySource` chain and a decorator that
scopes every lookup under a namespace prefix.

Contents
--------
* :class:`PropertyResolver` – raw, JSON-object, and timestamp accessors.
* :class:`NamespacedPropertyResolver` – prefixes names before delegating.
* :func:`decode_object` / :func:`decode_timestamp` – shared value decoders.

System Role
-----------
Accessors validate their request synchronously and return an awaitable, so an
empty name fails at the call site before any source is consulted. The caching
layer in :mod:`lib_layered_properties.application.caching` follows the same
calling convention and can wrap either class.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable

from ..adapters.sources.base import PropertySource
from ..domain.errors import InvalidFormat, ValidationError
from ..domain.request import ConfigurationRequest, Reviver, has_value
from ..observability import log_debug, make_event

DEFAULT_DELIMITER = "-"


class PropertyResolver:
    """Public facade wrapping a property source chain.

    Examples
    --------
    >>> import asyncio
    >>> from lib_layered_properties.adapters.sources.environment import EnvironmentSource
    >>> resolver = PropertyResolver(EnvironmentSource(environ={"limits": '{"rps": 5}'}))
    >>> asyncio.run(resolver.get_object("limits"))
    {'rps': 5}
    >>> asyncio.run(resolver.get_property("missing", "fallback"))
    'fallback'
    """

    def __init__(self, source: PropertySource, *, logger: logging.Logger | None = None) -> None:
        self._source = source
        self._logger = logger

    @property
    def source(self) -> PropertySource:
        return self._source

    @property
    def logger(self) -> logging.Logger | None:
        return self._logger

    def add_source(self, source: PropertySource) -> None:
        """Append *source* to the end of the chain (lowest precedence)."""

        if not isinstance(source, PropertySource):
            raise ValidationError("Parameter 'source' must be an instance of PropertySource.")
        self._source.add_link(source)

    def get_property(self, name: str, default: Any = None) -> Awaitable[Any]:
        """Return an awaitable resolving to the raw value of *name* or *default*."""

        return self._get_property(ConfigurationRequest(name, default))

    def get_object(self, name: str, default: Any = None, reviver: Reviver | None = None) -> Awaitable[Any]:
        """Return an awaitable resolving to *name* decoded as JSON, or *default* when absent."""

        return self._get_object(ConfigurationRequest(name, default, reviver))

    def get_timestamp(self, name: str, default: datetime | None = None) -> Awaitable[datetime]:
        """Return an awaitable resolving to *name* parsed as an ISO-8601 timestamp.

        When the property is absent the result is *default*, or the current UTC
        time when no default is given.
        """

        return self._get_timestamp(ConfigurationRequest(name, default))

    def namespace(self, namespace: str, delimiter: str = DEFAULT_DELIMITER) -> NamespacedPropertyResolver:
        return NamespacedPropertyResolver(self, namespace, delimiter)

    async def _get_property(self, request: ConfigurationRequest) -> Any:
        log_debug("property_requested", logger=self._logger, **make_event("resolver", request.name))
        value = await self._source.resolve(request.name)
        return value if has_value(value) else request.default

    async def _get_object(self, request: ConfigurationRequest) -> Any:
        value = await self._source.resolve(request.name)
        if not has_value(value):
            return request.default
        return decode_object(value, request.reviver, name=request.name)

    async def _get_timestamp(self, request: ConfigurationRequest) -> datetime:
        value = await self._source.resolve(request.name)
        if not has_value(value):
            return default_timestamp(request.default)
        return decode_timestamp(value, name=request.name)


class NamespacedPropertyResolver:
    """Resolver decorator that prepends ``"{namespace}{delimiter}"`` to every name.

    Parameters
    ----------
    parent:
        Any resolver exposing the typed accessors (plain, cached, or another
        namespaced view).
    namespace:
        Scope identifier, typically a plugin name.
    delimiter:
        Separator between namespace and local name, ``"-"`` by default.

    Examples
    --------
    >>> import asyncio
    >>> from lib_layered_properties.adapters.sources.environment import EnvironmentSource
    >>> root = PropertyResolver(EnvironmentSource(environ={"jwt-issuer": "auth.example"}))
    >>> asyncio.run(root.namespace("jwt").get_property("issuer"))
    'auth.example'
    """

    def __init__(self, parent: Any, namespace: str, delimiter: str = DEFAULT_DELIMITER) -> None:
        if not isinstance(namespace, str) or not namespace:
            raise ValidationError("Parameter 'namespace' cannot be empty.")
        self._parent = parent
        self._namespace = namespace
        self._delimiter = delimiter
        self._prefix = f"{namespace}{delimiter}"

    @property
    def parent(self) -> Any:
        return self._parent

    @property
    def namespace_name(self) -> str:
        return self._namespace

    @property
    def delimiter(self) -> str:
        return self._delimiter

    @property
    def prefix(self) -> str:
        return self._prefix

    def qualify(self, name: str) -> str:
        """Return the fully qualified name for local *name*."""

        return f"{self._prefix}{ConfigurationRequest(name).name}"

    def get_property(self, name: str, default: Any = None) -> Awaitable[Any]:
        return self._parent.get_property(self.qualify(name), default)

    def get_object(self, name: str, default: Any = None, reviver: Reviver | None = None) -> Awaitable[Any]:
        return self._parent.get_object(self.qualify(name), default, reviver)

    def get_timestamp(self, name: str, default: datetime | None = None) -> Awaitable[datetime]:
        return self._parent.get_timestamp(self.qualify(name), default)

    def namespace(self, namespace: str, delimiter: str = DEFAULT_DELIMITER) -> NamespacedPropertyResolver:
        return NamespacedPropertyResolver(self, namespace, delimiter)


def decode_object(value: Any, reviver: Reviver | None = None, *, name: str | None = None) -> Any:
    """Decode a JSON property value.

    Examples
    --------
    >>> decode_object('{"a": [1, 2]}')
    {'a': [1, 2]}
    >>> decode_object('{"a": 1}', reviver=lambda obj: sorted(obj))
    ['a']
    """

    try:
        return json.loads(value, object_hook=reviver)
    except (TypeError, ValueError) as exc:
        raise InvalidFormat(f"Property {name!r} is not valid JSON: {exc}") from exc


def decode_timestamp(value: Any, *, name: str | None = None) -> datetime:
    """Parse an ISO-8601 timestamp; a trailing ``Z`` is read as UTC.

    Examples
    --------
    >>> decode_timestamp("2024-05-01T12:30:00Z")
    datetime.datetime(2024, 5, 1, 12, 30, tzinfo=datetime.timezone.utc)
    """

    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise InvalidFormat(f"Property {name!r} is not a timestamp: {value!r}")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = f"{text[:-1]}+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError as exc:
        raise InvalidFormat(f"Property {name!r} is not a timestamp: {value!r}") from exc


def default_timestamp(default: datetime | None) -> datetime:
    return default if default is not None else datetime.now(timezone.utc)
