"""PropertyResolver facade and namespaced views."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from hypothesis import given
from hypothesis import strategies as st

from lib_layered_properties.adapters.sources.environment import EnvironmentSource
from lib_layered_properties.application.resolver import (
    NamespacedPropertyResolver,
    PropertyResolver,
    decode_object,
    decode_timestamp,
)
from lib_layered_properties.domain.errors import InvalidFormat, ValidationError
from lib_layered_properties.testing import CountingSource


def _resolver(values: dict[str, str]) -> tuple[PropertyResolver, CountingSource]:
    source = CountingSource(values)
    return PropertyResolver(source), source


@pytest.mark.asyncio
async def test_get_property_returns_value_or_default() -> None:
    resolver, _ = _resolver({"region": "eu-west"})
    assert await resolver.get_property("region") == "eu-west"
    assert await resolver.get_property("zone") is None
    assert await resolver.get_property("zone", "a") == "a"


@pytest.mark.asyncio
async def test_empty_value_resolves_to_default() -> None:
    resolver, _ = _resolver({"region": ""})
    assert await resolver.get_property("region", "fallback") == "fallback"


@pytest.mark.parametrize("accessor", ["get_property", "get_object", "get_timestamp"])
def test_empty_name_fails_before_any_lookup(accessor: str) -> None:
    resolver, source = _resolver({})
    with pytest.raises(ValidationError):
        getattr(resolver, accessor)("")
    assert source.calls == []


@pytest.mark.asyncio
async def test_get_object_decodes_json_with_reviver() -> None:
    resolver, _ = _resolver({"limits": '{"rps": 5, "burst": {"size": 10}}'})
    assert await resolver.get_object("limits") == {"rps": 5, "burst": {"size": 10}}
    seen: list[dict] = []
    await resolver.get_object("limits", reviver=lambda obj: seen.append(obj) or obj)
    assert seen == [{"size": 10}, {"rps": 5, "burst": {"size": 10}}]


@pytest.mark.asyncio
async def test_get_object_absent_returns_default() -> None:
    resolver, _ = _resolver({})
    assert await resolver.get_object("limits", {"rps": 1}) == {"rps": 1}


@pytest.mark.asyncio
async def test_get_object_invalid_json_raises() -> None:
    resolver, _ = _resolver({"limits": "{nope"})
    with pytest.raises(InvalidFormat):
        await resolver.get_object("limits")


@pytest.mark.asyncio
async def test_get_timestamp_parses_iso_values() -> None:
    resolver, _ = _resolver({"launch": "2024-05-01T12:30:00Z"})
    assert await resolver.get_timestamp("launch") == datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_get_timestamp_absent_defaults_to_now_or_given_default() -> None:
    resolver, _ = _resolver({})
    fixed = datetime(2020, 1, 1, tzinfo=timezone.utc)
    assert await resolver.get_timestamp("launch", fixed) == fixed
    before = datetime.now(timezone.utc)
    result = await resolver.get_timestamp("launch")
    assert before - timedelta(seconds=1) <= result <= datetime.now(timezone.utc)


def test_decode_timestamp_rejects_garbage() -> None:
    with pytest.raises(InvalidFormat):
        decode_timestamp("yesterday", name="launch")
    with pytest.raises(InvalidFormat):
        decode_timestamp(42, name="launch")


def test_decode_object_rejects_non_text() -> None:
    with pytest.raises(InvalidFormat):
        decode_object(object(), name="limits")


@pytest.mark.asyncio
async def test_add_source_appends_to_chain() -> None:
    resolver = PropertyResolver(EnvironmentSource(environ={}))
    resolver.add_source(CountingSource({"token": "remote"}))
    assert await resolver.get_property("token") == "remote"


def test_add_source_rejects_non_sources() -> None:
    resolver, _ = _resolver({})
    with pytest.raises(ValidationError):
        resolver.add_source("not a source")  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_namespace_prefixes_every_accessor() -> None:
    resolver, source = _resolver(
        {"jwt-issuer": "auth.example", "jwt-claims": '{"aud": "api"}', "jwt-rotated": "2024-01-02T00:00:00+00:00"}
    )
    view = resolver.namespace("jwt")
    assert await view.get_property("issuer") == "auth.example"
    assert await view.get_object("claims") == {"aud": "api"}
    assert (await view.get_timestamp("rotated")).year == 2024
    assert source.calls == ["jwt-issuer", "jwt-claims", "jwt-rotated"]


@pytest.mark.asyncio
async def test_nested_namespaces_and_custom_delimiter() -> None:
    resolver, _ = _resolver({"plugins.jwt.issuer": "auth.example"})
    view = resolver.namespace("plugins", ".").namespace("jwt", ".")
    assert view.prefix == "jwt."
    assert await view.get_property("issuer") == "auth.example"


def test_namespace_requires_a_name() -> None:
    resolver, _ = _resolver({})
    with pytest.raises(ValidationError):
        NamespacedPropertyResolver(resolver, "")


def test_namespaced_view_rejects_empty_local_name() -> None:
    resolver, source = _resolver({})
    with pytest.raises(ValidationError):
        resolver.namespace("jwt").get_property("")
    assert source.calls == []


@given(
    namespace=st.text(alphabet="abcdefgh", min_size=1, max_size=6),
    name=st.text(alphabet="xyz_", min_size=1, max_size=6),
    delimiter=st.sampled_from(["-", ".", "__", ":"]),
)
def test_namespaced_lookup_uses_qualified_name(namespace: str, name: str, delimiter: str) -> None:
    resolver, source = _resolver({f"{namespace}{delimiter}{name}": "value"})
    view = resolver.namespace(namespace, delimiter)
    assert view.qualify(name) == f"{namespace}{delimiter}{name}"
    assert asyncio.run(view.get_property(name)) == "value"
