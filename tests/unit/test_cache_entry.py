"""Cache entry lifecycle and duration parsing."""

from __future__ import annotations

from datetime import timedelta

import pytest
from hypothesis import given
from hypothesis import strategies as st

from lib_layered_properties.domain.cache import DEFAULT_MAX_AGE, CacheEntry, parse_duration
from lib_layered_properties.domain.errors import InvalidFormat


@pytest.mark.parametrize(
    ("text", "seconds"),
    [
        ("5m", 300),
        ("30s", 30),
        ("250ms", 0.25),
        ("1h30m", 5400),
        ("2d", 172800),
        ("1w", 604800),
        ("90", 90),
        (" 1H 5S ", 3605),
    ],
)
def test_parse_duration_text(text: str, seconds: float) -> None:
    assert parse_duration(text).total_seconds() == pytest.approx(seconds)


@pytest.mark.parametrize("value", ["", "soon", "5 minutes", "-5s", -1, True, None, [1]])
def test_parse_duration_rejects_invalid(value: object) -> None:
    with pytest.raises(InvalidFormat):
        parse_duration(value)


@given(st.integers(min_value=0, max_value=10_000), st.sampled_from(["s", "m", "h"]))
def test_parse_duration_units_scale(amount: int, unit: str) -> None:
    factor = {"s": 1, "m": 60, "h": 3600}[unit]
    assert parse_duration(f"{amount}{unit}") == timedelta(seconds=amount * factor)


def test_new_entry_is_expired_until_refreshed() -> None:
    entry = CacheEntry()
    assert entry.max_age == DEFAULT_MAX_AGE
    assert entry.is_expired(0.0)
    assert entry.expires is None


def test_refresh_advances_expiry() -> None:
    entry = CacheEntry(max_age=timedelta(seconds=10))
    entry.refresh("v1", now=100.0)
    assert entry.value == "v1"
    assert entry.expires == 110.0
    assert not entry.is_expired(109.9)
    assert entry.is_expired(110.0)


def test_update_keeps_expiry() -> None:
    entry = CacheEntry(max_age=timedelta(seconds=10))
    entry.refresh("v1", now=0.0)
    entry.update("v2")
    assert entry.value == "v2"
    assert entry.expires == 10.0


def test_disabled_entry_never_stores() -> None:
    entry = CacheEntry(cache=False)
    entry.refresh("v1", now=0.0)
    entry.update("v2")
    entry.store_decoded("object", {"a": 1})
    assert entry.value is None
    assert entry.is_expired(0.0)
    assert entry.decoded("object") == (False, None)


def test_decoded_forms_are_dropped_on_refresh() -> None:
    entry = CacheEntry()
    entry.refresh('{"a": 1}', now=0.0)
    assert entry.raw
    entry.store_decoded("object", {"a": 1})
    assert not entry.raw
    assert entry.decoded("object") == (True, {"a": 1})
    assert entry.value == '{"a": 1}'
    entry.refresh('{"a": 2}', now=1.0)
    assert entry.raw
    assert entry.decoded("object") == (False, None)


def test_seeded_decoded_value_counts_for_every_kind() -> None:
    entry = CacheEntry(value={"a": 1}, raw=False)
    assert entry.decoded("object") == (True, {"a": 1})
    assert entry.decoded("timestamp") == (True, {"a": 1})
