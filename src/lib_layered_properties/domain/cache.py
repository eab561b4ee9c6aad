"""Cache entry model and duration parsing.

Purpose
-------
Model the per-property cache state owned by
:class:`lib_layered_properties.application.caching.CachingPropertyResolver`.
The module is pure: time is always passed in by the caller, so the caching layer
can run against a fake clock in tests.

Contents
--------
* :data:`DEFAULT_MAX_AGE` – five minutes, used when no max-age is configured.
* :func:`parse_duration` – accept ``timedelta``, seconds, or ``"1h30m"`` text.
* :class:`CacheEntry` – caching flag, max-age, raw value, decoded forms, expiry.

Lifecycle
---------
Entries are created lazily after the first successful origin fetch or eagerly as
overrides (policy known, value absent). :meth:`CacheEntry.refresh` replaces the
value and advances expiry; :meth:`CacheEntry.update` replaces the value and
keeps the expiry untouched. Entries live exactly as long as the caching layer.
"""

from __future__ import annotations

import re
from datetime import timedelta
from typing import Any, Final, Hashable

from .errors import InvalidFormat

DEFAULT_MAX_AGE: Final[timedelta] = timedelta(minutes=5)

_UNIT_SECONDS: Final[dict[str, float]] = {
    "ms": 0.001,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
    "d": 86400.0,
    "w": 604800.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)\s*(ms|s|m|h|d|w)", re.IGNORECASE)
_DURATION_FULL = re.compile(r"^(?:\s*\d+(?:\.\d+)?\s*(?:ms|s|m|h|d|w)\s*)+$", re.IGNORECASE)


def parse_duration(value: object) -> timedelta:
    """Convert *value* into a non-negative :class:`timedelta`.

    Why
    ----
    Settings documents express max-age as short strings (``"5m"``) while code
    prefers ``timedelta``; both must reach the cache entry in one shape.

    Parameters
    ----------
    value:
        ``timedelta``, a number of seconds, a numeric string, or a compound
        duration such as ``"1h30m"`` (units ``ms``, ``s``, ``m``, ``h``, ``d``,
        ``w``).

    Raises
    ------
    InvalidFormat
        For negative, empty, or unparseable values.

    Examples
    --------
    >>> parse_duration("5m")
    datetime.timedelta(seconds=300)
    >>> parse_duration("1h30m").total_seconds()
    5400.0
    >>> parse_duration(45)
    datetime.timedelta(seconds=45)
    >>> parse_duration("soon")
    Traceback (most recent call last):
    ...
    lib_layered_properties.domain.errors.InvalidFormat: Invalid duration: 'soon'
    """

    if isinstance(value, timedelta):
        result = value
    elif isinstance(value, bool):
        raise InvalidFormat(f"Invalid duration: {value!r}")
    elif isinstance(value, (int, float)):
        result = timedelta(seconds=value)
    elif isinstance(value, str):
        result = _parse_text(value)
    else:
        raise InvalidFormat(f"Invalid duration: {value!r}")
    if result < timedelta(0):
        raise InvalidFormat(f"Duration must not be negative: {value!r}")
    return result


def _parse_text(text: str) -> timedelta:
    stripped = text.strip()
    try:
        return timedelta(seconds=float(stripped))
    except ValueError:
        pass
    if not stripped or not _DURATION_FULL.match(stripped):
        raise InvalidFormat(f"Invalid duration: {text!r}")
    seconds = sum(float(amount) * _UNIT_SECONDS[unit.lower()] for amount, unit in _DURATION_PART.findall(stripped))
    return timedelta(seconds=seconds)


class CacheEntry:
    """Cached state for a single property name.

    Parameters
    ----------
    cache:
        When ``False`` the entry never stores a value; every read goes to
        origin. Used by overrides that opt a property out of caching.
    max_age:
        Lifetime granted by each :meth:`refresh`.
    value:
        Initial raw value. Seeding a value does not make the entry fresh; only
        :meth:`refresh` sets an expiry.
    raw:
        ``False`` marks a seeded value as already decoded.

    Examples
    --------
    >>> entry = CacheEntry(max_age=timedelta(seconds=10))
    >>> entry.is_expired(0.0)
    True
    >>> entry.refresh("v1", now=0.0)
    >>> entry.value, entry.is_expired(5.0), entry.is_expired(10.0)
    ('v1', False, True)
    """

    __slots__ = ("_cache", "_max_age", "_value", "_raw", "_decoded", "_expires")

    def __init__(
        self,
        cache: bool = True,
        max_age: timedelta = DEFAULT_MAX_AGE,
        value: Any = None,
        raw: bool = True,
    ) -> None:
        self._cache = cache
        self._max_age = max_age
        self._value = value
        self._raw = raw
        self._decoded: dict[Hashable, Any] = {}
        self._expires: float | None = None

    @property
    def cache(self) -> bool:
        return self._cache

    @property
    def max_age(self) -> timedelta:
        return self._max_age

    @property
    def value(self) -> Any:
        return self._value

    @property
    def raw(self) -> bool:
        """``True`` while no decoded form of the value is cached."""

        return self._raw and not self._decoded

    @property
    def expires(self) -> float | None:
        """Clock reading at which the value goes stale, ``None`` when never refreshed."""

        return self._expires

    def is_expired(self, now: float) -> bool:
        if self._expires is None:
            return True
        return now >= self._expires

    def refresh(self, value: Any, *, now: float) -> None:
        """Store *value* and advance the expiry by ``max_age`` (no-op when caching is off)."""

        if not self._cache:
            return
        self._value = value
        self._raw = True
        self._decoded.clear()
        self._expires = now + self._max_age.total_seconds()

    def update(self, value: Any) -> None:
        """Replace the value without touching the expiry (no-op when caching is off)."""

        if not self._cache:
            return
        self._value = value
        self._raw = True
        self._decoded.clear()

    def decoded(self, kind: Hashable) -> tuple[bool, Any]:
        """Return ``(found, value)`` for the decoded form cached under *kind*.

        A value seeded with ``raw=False`` counts as decoded for every kind.
        """

        if kind in self._decoded:
            return True, self._decoded[kind]
        if not self._raw:
            return True, self._value
        return False, None

    def store_decoded(self, kind: Hashable, value: Any) -> None:
        """Cache a decoded form of the raw value; expiry is left untouched."""

        if self._cache:
            self._decoded[kind] = value

    def __repr__(self) -> str:
        return (
            f"CacheEntry(cache={self._cache!r}, max_age={self._max_age!r}, "
            f"raw={self.raw!r}, expires={self._expires!r})"
        )
