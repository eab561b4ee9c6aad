"""Structured logging helpers shared by sources, resolvers, and the manager.

Purpose
    Keep every emission of lookup diagnostics predictable and contextual without
    forcing applications to adopt a specific logging backend.

Contents
    - ``TRACE_ID``: context variable storing the active trace identifier.
    - ``get_logger``: returns the shared package logger (quiet by default).
    - ``bind_trace_id``: binds or clears the active trace identifier.
    - ``log_debug`` / ``log_info`` / ``log_error``: emit structured entries via a
      single private emitter, optionally through an injected logger.
    - ``make_event``: convenience builder for structured event payloads.

System Integration
    Every component accepts a ``logger`` at construction and forwards it to the
    helpers here, so hosts can route a single resolver chain to its own logger
    without touching process-wide state.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any, Final, Mapping

TRACE_ID: ContextVar[str | None] = ContextVar("lib_layered_properties_trace_id", default=None)
"""Current trace identifier propagated through logging helpers."""

_LOGGER: Final[logging.Logger] = logging.getLogger("lib_layered_properties")
_LOGGER.addHandler(logging.NullHandler())


def get_logger() -> logging.Logger:
    """Expose the package logger so applications may attach handlers.

    Why
        Leaves the library silent by default while giving host applications full
        control over handler and formatter configuration.
    """

    return _LOGGER


def bind_trace_id(trace_id: str | None) -> None:
    """Bind or clear the active trace identifier.

    Examples
    --------
    >>> bind_trace_id('req-42')
    >>> TRACE_ID.get()
    'req-42'
    >>> bind_trace_id(None)
    >>> TRACE_ID.get() is None
    True
    """

    TRACE_ID.set(trace_id)


def log_debug(message: str, *, logger: logging.Logger | None = None, **fields: Any) -> None:
    """Emit a structured debug log entry that includes the trace context."""

    _emit(logger, logging.DEBUG, message, fields)


def log_info(message: str, *, logger: logging.Logger | None = None, **fields: Any) -> None:
    """Emit a structured info log entry that includes the trace context."""

    _emit(logger, logging.INFO, message, fields)


def log_error(message: str, *, logger: logging.Logger | None = None, **fields: Any) -> None:
    """Emit a structured error log entry that includes the trace context."""

    _emit(logger, logging.ERROR, message, fields)


def make_event(
    source: str,
    name: str | None,
    payload: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a structured logging payload for property lifecycle events.

    What
        Returns a dictionary with ``source`` and ``property`` keys and any
        optional payload fields.
    Inputs
        source: Short name of the component observing the event (``"env"``,
            ``"remote"``, ``"cache"`` ...).
        name: Property name involved, if any.
        payload: Optional mapping with extra diagnostic detail.

    Examples
    --------
    >>> make_event('cache', 'db-host', {'hit': True})
    {'source': 'cache', 'property': 'db-host', 'hit': True}
    """

    event = {"source": source, "property": name}
    if payload:
        event |= dict(payload)
    return event


def _emit(logger: logging.Logger | None, level: int, message: str, fields: Mapping[str, Any]) -> None:
    """Send a log entry through *logger* (or the package logger) with contextual metadata."""

    target = logger if logger is not None else _LOGGER
    target.log(level, message, extra={"context": _with_trace(fields)})


def _with_trace(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Attach the current trace identifier to the provided structured fields."""

    context = {"trace_id": TRACE_ID.get()}
    context.update(fields)
    return context
