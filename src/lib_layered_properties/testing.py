"""Test doubles for hosts and the library's own suites.

Purpose
    Provide deterministic stand-ins for the collaborators the resolution engine
    talks to, so caching, coalescing, and remote accumulation can be exercised
    without network access or wall-clock sleeps.

Contents
    - ``FakeClock``: manually advanced monotonic clock.
    - ``InMemorySettingClient`` / ``InMemorySecretClient``: remote client doubles
      with call logs and optional failures.
    - ``CountingSource``: dictionary-backed source counting origin calls.
    - ``StalledSource``: source that blocks until released.
    - ``FAILURE_MESSAGE`` / ``i_should_fail``: deterministic failure helper used
      by the CLI ``fail`` command.
"""

from __future__ import annotations

import asyncio
from typing import Any, Final, Mapping

from .adapters.sources.base import PropertySource
from .application.ports import SecretResponse, SettingResponse

FAILURE_MESSAGE: Final[str] = "i should fail"


def i_should_fail() -> None:
    """Raise a deterministic :class:`RuntimeError` for failure-path testing.

    Examples
    --------
    >>> i_should_fail()
    Traceback (most recent call last):
    ...
    RuntimeError: i should fail
    """

    raise RuntimeError(FAILURE_MESSAGE)


class FakeClock:
    """Callable clock returning a manually advanced number of seconds.

    Examples
    --------
    >>> clock = FakeClock()
    >>> clock.advance(30)
    >>> clock()
    30.0
    """

    def __init__(self, start: float = 0.0) -> None:
        self.now = float(start)

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class InMemorySettingClient:
    """Remote setting client backed by a dictionary keyed by ``(key, label)``.

    ``settings`` values are either plain strings or :class:`SettingResponse`
    instances. Keys stored with label ``None`` match any label. ``error`` makes
    every fetch raise it.
    """

    def __init__(
        self,
        settings: Mapping[Any, str | SettingResponse] | None = None,
        *,
        error: Exception | None = None,
    ) -> None:
        self._settings = dict(settings or {})
        self._error = error
        self.calls: list[tuple[str, str | None]] = []

    async def fetch_setting(self, key: str, label: str | None) -> SettingResponse | None:
        self.calls.append((key, label))
        await asyncio.sleep(0)
        if self._error is not None:
            raise self._error
        found = self._settings.get((key, label), self._settings.get(key))
        if found is None:
            return None
        if isinstance(found, SettingResponse):
            return found
        return SettingResponse(value=found)


class InMemorySecretClient:
    """Secret client mapping secret URIs to values."""

    def __init__(self, secrets: Mapping[str, str] | None = None) -> None:
        self._secrets = dict(secrets or {})
        self.calls: list[str] = []

    async def fetch_secret(self, uri: str) -> SecretResponse:
        self.calls.append(uri)
        await asyncio.sleep(0)
        if uri not in self._secrets:
            raise KeyError(uri)
        return SecretResponse(value=self._secrets[uri])


class CountingSource(PropertySource):
    """Dictionary-backed source that records every local lookup.

    Values may be changed between lookups through :attr:`values`; ``error``
    makes every lookup raise it.
    """

    source_name = "memory"

    def __init__(self, values: Mapping[str, Any] | None = None, *, error: Exception | None = None) -> None:
        super().__init__()
        self.values = dict(values or {})
        self.error = error
        self.calls: list[str] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def _resolve_local(self, name: str) -> Any:
        self.calls.append(name)
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.values.get(name)


class StalledSource(PropertySource):
    """Source whose lookups wait until :meth:`release` is called.

    Lookups carry no timeout, so callers coalesced onto a stalled lookup stay
    pending until the source is released.
    """

    source_name = "stalled"

    def __init__(self, value: Any = None) -> None:
        super().__init__()
        self.value = value
        self.calls: list[str] = []
        self._gate = asyncio.Event()

    def release(self) -> None:
        self._gate.set()

    async def _resolve_local(self, name: str) -> Any:
        self.calls.append(name)
        await self._gate.wait()
        return self.value
