"""Caching layer with per-key TTL entries and request coalescing.

Purpose
-------
Decorate a resolver so repeated lookups are served from memory until their
max-age elapses, and so concurrent lookups of the same key share one origin
fetch.

Contents
--------
* :class:`CachingPropertyResolver` – cached ``get_property`` / ``get_object`` /
  ``get_timestamp`` plus :meth:`~CachingPropertyResolver.set_cache` overrides.

Concurrency
-----------
All state is mutated on a single asyncio event loop. Each accessor checks the
in-flight registry and registers its task before returning, with no ``await``
in between, so at most one resolution per ``(name, kind)`` key exists at any
instant. The shared task resolves without any default; every caller gets its
own future, settled from the shared task with that caller's default applied.
The task removes itself from the registry when it finishes, successfully or
not. Origin fetches carry no timeout: a stalled origin keeps every coalesced
caller waiting.

Decoded values
--------------
Typed accessors store the decoded value on the entry next to the raw string
(per accessor kind, and per reviver for JSON objects), so ``get_property``
keeps returning the raw string while later typed reads skip decoding until the
next refresh.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Coroutine, Hashable

from ..adapters.sources.base import PropertySource
from ..domain.cache import DEFAULT_MAX_AGE, CacheEntry, parse_duration
from ..domain.errors import ConfigurationError, OriginError, PropertyError
from ..domain.request import ConfigurationRequest, Reviver, has_value
from ..observability import log_debug, log_error, make_event
from .resolver import DEFAULT_DELIMITER, NamespacedPropertyResolver, default_timestamp, decode_object, decode_timestamp

Clock = Callable[[], float]
LoadKey = tuple[str, Hashable]

_OBJECT = "object"
_TIMESTAMP = "timestamp"
_MISSING = object()


class CachingPropertyResolver:
    """Resolver decorator adding TTL caching and in-flight coalescing.

    Parameters
    ----------
    inner:
        Wrapped resolver (plain or namespaced).
    max_age:
        Default lifetime for lazily created entries; anything accepted by
        :func:`~lib_layered_properties.domain.cache.parse_duration`.
    clock:
        Monotonic seconds source, :func:`time.monotonic` by default.
    logger:
        Logger used for diagnostics; defaults to the package logger.
    """

    def __init__(
        self,
        inner: Any,
        max_age: timedelta | str | float = DEFAULT_MAX_AGE,
        *,
        clock: Clock = time.monotonic,
        logger: logging.Logger | None = None,
    ) -> None:
        self._inner = inner
        self._max_age = parse_duration(max_age)
        self._clock = clock
        self._logger = logger if logger is not None else getattr(inner, "logger", None)
        self._cache: dict[str, CacheEntry] = {}
        self._loading: dict[LoadKey, asyncio.Task[Any]] = {}

    @property
    def inner(self) -> Any:
        return self._inner

    @property
    def max_age(self) -> timedelta:
        return self._max_age

    @property
    def logger(self) -> logging.Logger | None:
        return self._logger

    @property
    def in_flight(self) -> tuple[LoadKey, ...]:
        """``(name, kind)`` keys with an outstanding resolution, in registration order.

        ``kind`` is ``None`` for raw lookups, ``"timestamp"`` for timestamps, and
        ``"object"`` (or ``("object", reviver)``) for JSON objects.
        """

        return tuple(self._loading)

    def add_source(self, source: PropertySource) -> None:
        """Append *source* to the wrapped resolver's chain."""

        add_source = getattr(self._inner, "add_source", None)
        if add_source is None:
            raise ConfigurationError(f"{type(self._inner).__name__} does not accept additional sources")
        add_source(source)

    def set_cache(
        self,
        name: str,
        value: Any = None,
        cache: bool = True,
        max_age: timedelta | str | float | None = None,
        raw: bool = True,
    ) -> CacheEntry:
        """Register (or replace) the cache entry for *name*.

        Without a value this pre-registers an override: the caching policy is
        known before the first lookup, and the entry stays stale until an origin
        fetch refreshes it.
        """

        request = ConfigurationRequest(name)
        entry = CacheEntry(
            cache=cache,
            max_age=self._max_age if max_age is None else parse_duration(max_age),
            value=value,
            raw=raw,
        )
        log_debug(
            "cache_override_registered",
            logger=self._logger,
            **make_event("cache", request.name, {"cache": cache, "max_age": entry.max_age.total_seconds()}),
        )
        self._cache[request.name] = entry
        return entry

    def get_cache(self, name: str) -> CacheEntry | None:
        return self._cache.get(name)

    def get_property(self, name: str, default: Any = None) -> Awaitable[Any]:
        request = ConfigurationRequest(name, default)
        shared = self._coalesce((request.name, None), lambda: self._load_property(request.name))
        return self._deliver(shared, lambda value: value if has_value(value) else request.default)

    def get_object(self, name: str, default: Any = None, reviver: Reviver | None = None) -> Awaitable[Any]:
        request = ConfigurationRequest(name, default, reviver)
        kind = _object_kind(reviver)
        shared = self._coalesce(
            (request.name, kind),
            lambda: self._load_decoded(request.name, kind, lambda raw: decode_object(raw, reviver, name=name)),
        )
        return self._deliver(shared, lambda value: request.default if value is _MISSING else value)

    def get_timestamp(self, name: str, default: datetime | None = None) -> Awaitable[datetime]:
        request = ConfigurationRequest(name, default)
        shared = self._coalesce(
            (request.name, _TIMESTAMP),
            lambda: self._load_decoded(request.name, _TIMESTAMP, lambda raw: decode_timestamp(raw, name=name)),
        )
        return self._deliver(shared, lambda value: default_timestamp(request.default) if value is _MISSING else value)

    def namespace(self, namespace: str, delimiter: str = DEFAULT_DELIMITER) -> NamespacedPropertyResolver:
        return NamespacedPropertyResolver(self, namespace, delimiter)

    def _coalesce(self, key: LoadKey, factory: Callable[[], Coroutine[Any, Any, Any]]) -> asyncio.Task[Any]:
        """Return the in-flight task for *key*, creating and registering it when absent."""

        task = self._loading.get(key)
        if task is None:
            log_debug("property_loading", logger=self._logger, **make_event("cache", key[0], {"kind": _kind_label(key[1])}))
            task = asyncio.get_running_loop().create_task(self._run(key, factory()))
            task.add_done_callback(_retrieve_exception)
            self._loading[key] = task
        return task

    @staticmethod
    def _deliver(shared: asyncio.Task[Any], finish: Callable[[Any], Any]) -> asyncio.Future[Any]:
        """Return a per-caller future settled from *shared*, with *finish* applied to its result.

        Cancelling the returned future leaves the shared task running for the
        other callers.
        """

        caller = shared.get_loop().create_future()
        caller.add_done_callback(_retrieve_exception)

        def settle(task: asyncio.Task[Any]) -> None:
            if caller.done():
                return
            if task.cancelled():
                caller.cancel()
            elif task.exception() is not None:
                caller.set_exception(task.exception())
            else:
                caller.set_result(finish(task.result()))

        shared.add_done_callback(settle)
        return caller

    async def _run(self, key: LoadKey, work: Coroutine[Any, Any, Any]) -> Any:
        try:
            return await work
        finally:
            self._loading.pop(key, None)

    async def _load_property(self, name: str) -> Any:
        entry = self._cache.get(name)
        if entry is not None and entry.cache and not entry.is_expired(self._clock()):
            log_debug("cache_hit", logger=self._logger, **make_event("cache", name))
            return entry.value

        log_debug("cache_miss", logger=self._logger, **make_event("cache", name))
        try:
            origin = await self._inner.get_property(name, None)
        except Exception as exc:
            log_error("origin_failed", logger=self._logger, **make_event("cache", name, {"error": str(exc)}))
            if isinstance(exc, OriginError):
                raise
            raise OriginError(f"Error getting property {name} from origin: {exc}") from exc

        if not has_value(origin):
            return None
        if entry is None:
            entry = CacheEntry(cache=True, max_age=self._max_age)
            self._cache[name] = entry
            entry.refresh(origin, now=self._clock())
            log_debug("cache_stored", logger=self._logger, **make_event("cache", name, {"created": True}))
        elif entry.cache:
            entry.refresh(origin, now=self._clock())
            log_debug("cache_stored", logger=self._logger, **make_event("cache", name, {"created": False}))
        else:
            log_debug("cache_disabled", logger=self._logger, **make_event("cache", name))
        return origin

    async def _load_decoded(self, name: str, kind: Hashable, decode: Callable[[Any], Any]) -> Any:
        raw = await self.get_property(name, None)
        if not has_value(raw):
            return _MISSING

        entry = self._cache.get(name)
        if entry is None or not entry.cache:
            return self._decode(name, kind, decode, raw)
        found, decoded = entry.decoded(kind)
        if not found:
            decoded = self._decode(name, kind, decode, raw)
            entry.store_decoded(kind, decoded)
        return decoded

    def _decode(self, name: str, kind: Hashable, decode: Callable[[Any], Any], raw: Any) -> Any:
        try:
            return decode(raw)
        except PropertyError as exc:
            log_error(
                "decode_failed",
                logger=self._logger,
                **make_event("cache", name, {"kind": _kind_label(kind), "error": str(exc)}),
            )
            raise


def _object_kind(reviver: Reviver | None) -> Hashable:
    # Each reviver gets its own decoded slot and its own in-flight task.
    return _OBJECT if reviver is None else (_OBJECT, reviver)


def _kind_label(kind: Hashable) -> str:
    if kind is None:
        return "raw"
    return kind if isinstance(kind, str) else kind[0]


def _retrieve_exception(future: asyncio.Future[Any]) -> None:
    # Marks the failure as observed even when nobody awaits the future.
    if not future.cancelled():
        future.exception()
