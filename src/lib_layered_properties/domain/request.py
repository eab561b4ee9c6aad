"""Lookup request value object.

Purpose
-------
Capture one property lookup (name, default, optional JSON reviver) and validate
it before any asynchronous work begins.

Contents
--------
* :class:`ConfigurationRequest` – frozen request with eager name validation.
* :func:`has_value` – the single definition of "a source produced something".
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from .errors import ValidationError

Reviver = Callable[[dict[str, Any]], Any]
"""Hook applied to every decoded JSON object (``json.loads(object_hook=...)``)."""


@dataclass(frozen=True, slots=True)
class ConfigurationRequest:
    """A validated request for the current value of one named property.

    Examples
    --------
    >>> ConfigurationRequest("db-host").name
    'db-host'
    >>> ConfigurationRequest("")
    Traceback (most recent call last):
    ...
    lib_layered_properties.domain.errors.ValidationError: Parameter 'name' cannot be empty.
    """

    name: str
    default: Any = None
    reviver: Reviver | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise ValidationError("Parameter 'name' cannot be empty.")


def has_value(value: Any) -> bool:
    """Return ``True`` when *value* is neither ``None`` nor an empty string.

    Examples
    --------
    >>> has_value("x"), has_value(""), has_value(None), has_value(0)
    (True, False, False, True)
    """

    return value is not None and value != ""
