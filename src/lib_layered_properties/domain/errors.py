"""Domain-level exception hierarchy.

Purpose
-------
Expose the stable error taxonomy shared by property sources, resolvers, the
caching layer, and the composition root. The hierarchy lives in the domain
layer so every outer layer may raise it without import cycles.

Contents
--------
* :class:`PropertyError` – umbrella base class for all library failures.
* :class:`ValidationError` – invalid call arguments (empty property names).
* :class:`InvalidFormat` – malformed settings, durations, JSON, or timestamps.
* :class:`NotFound` – a settings document could not be located.
* :class:`OriginError` – the wrapped resolver failed during a cached lookup.
* :class:`ConfigurationError` – the composition root is missing collaborators.

System Role
-----------
Absent properties are not errors; they resolve to ``None`` or the caller's
default. Callers catch :class:`PropertyError` to handle all library failures
uniformly.
"""

from __future__ import annotations


class PropertyError(Exception):
    """Base type for all exceptions emitted by ``lib_layered_properties``."""


class ValidationError(PropertyError):
    """Raised before any lookup starts when a request is malformed.

    Typical Sources
    ---------------
    Empty or non-string property names handed to any accessor.
    """


class InvalidFormat(PropertyError):
    """Raised when an input value cannot be parsed into structured data.

    Typical Sources
    ---------------
    Settings documents, duration strings, JSON property payloads, and ISO-8601
    timestamps.
    """


class NotFound(PropertyError):
    """Represents a missing settings document or file."""


class OriginError(PropertyError):
    """Raised by the caching layer when the wrapped resolver fails as a whole.

    Why
    ----
    Every caller coalesced onto the failed lookup receives the same instance;
    the original exception stays reachable through ``__cause__``.
    """


class ConfigurationError(PropertyError):
    """Signifies that the composition root cannot wire the requested sources.

    Current Usage
    -------------
    Remote configuration enabled without a client factory or credential
    provider.
    """
