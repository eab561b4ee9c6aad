"""Contract tests for the test doubles and adapters against the application ports.

The remote source only relies on the protocol methods, so any implementation
that passes these checks can be plugged into the chain.
"""

from __future__ import annotations

import inspect

import pytest

from lib_layered_properties.adapters.credentials import CredentialCache
from lib_layered_properties.application import ports
from lib_layered_properties.testing import InMemorySecretClient, InMemorySettingClient


def _protocol_methods(protocol: type) -> list[str]:
    return [name for name, member in vars(protocol).items() if inspect.isfunction(member) and not name.startswith("_")]


@pytest.mark.parametrize(
    ("implementation", "protocol"),
    [
        (InMemorySettingClient, ports.RemoteSettingClient),
        (InMemorySecretClient, ports.SecretClient),
        (CredentialCache, ports.CredentialProvider),
    ],
)
def test_implementation_provides_protocol_methods(implementation: type, protocol: type) -> None:
    for name in _protocol_methods(protocol):
        method = getattr(implementation, name)
        expected = getattr(protocol, name)
        assert inspect.iscoroutinefunction(method) == inspect.iscoroutinefunction(expected)
        assert list(inspect.signature(method).parameters) == list(inspect.signature(expected).parameters)


@pytest.mark.asyncio
async def test_setting_client_scopes_by_label() -> None:
    client = InMemorySettingClient({("db", "prod"): "prod-db", "db": "any-db"})
    assert (await client.fetch_setting("db", "prod")).value == "prod-db"
    assert (await client.fetch_setting("db", "test")).value == "any-db"
    assert await client.fetch_setting("missing", "prod") is None
    assert client.calls == [("db", "prod"), ("db", "test"), ("missing", "prod")]


@pytest.mark.asyncio
async def test_secret_client_returns_response() -> None:
    client = InMemorySecretClient({"vault://db": "s3cret"})
    response = await client.fetch_secret("vault://db")
    assert response == ports.SecretResponse(value="s3cret")
