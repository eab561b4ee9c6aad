"""Layered property resolution with TTL caching and request coalescing.

The public surface re-exports the composition root, the resolver facades, the
built-in sources, and the error taxonomy so hosts can ``import
lib_layered_properties`` and reach everything they wire together.
"""

from __future__ import annotations

from .adapters.credentials import CredentialCache
from .adapters.sources.base import PropertySource
from .adapters.sources.environment import EnvironmentSource
from .adapters.sources.remote import SECRET_REFERENCE_CONTENT_TYPE, MatchPolicy, RemoteConfigurationSource
from .application.caching import CachingPropertyResolver
from .application.ports import SecretResponse, SettingResponse
from .application.resolver import NamespacedPropertyResolver, PropertyResolver
from .core import ConfigurationManager, read_property_settings
from .domain.cache import CacheEntry, parse_duration
from .domain.errors import ConfigurationError, InvalidFormat, NotFound, OriginError, PropertyError, ValidationError
from .domain.request import ConfigurationRequest
from .domain.settings import PropertySettings
from .observability import bind_trace_id, get_logger

__all__ = [
    "CacheEntry",
    "CachingPropertyResolver",
    "ConfigurationError",
    "ConfigurationManager",
    "ConfigurationRequest",
    "CredentialCache",
    "EnvironmentSource",
    "InvalidFormat",
    "MatchPolicy",
    "NamespacedPropertyResolver",
    "NotFound",
    "OriginError",
    "PropertyError",
    "PropertyResolver",
    "PropertySettings",
    "PropertySource",
    "RemoteConfigurationSource",
    "SECRET_REFERENCE_CONTENT_TYPE",
    "SecretResponse",
    "SettingResponse",
    "ValidationError",
    "bind_trace_id",
    "get_logger",
    "parse_duration",
    "read_property_settings",
]
