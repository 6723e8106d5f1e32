from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any

import pytest

from signal_console.core import database
from signal_console.core.database import ConnectionProvider, affected_rows
from signal_console.core.errors import ConfigurationError, UpstreamFailureError


class FakePool:
    def __init__(self) -> None:
        self.closed = False
        self.conn = object()

    def is_closing(self) -> bool:
        return self.closed

    @asynccontextmanager
    async def acquire(self):
        yield self.conn

    async def close(self) -> None:
        self.closed = True


class FakeToken:
    def __init__(self, token: str) -> None:
        self.token = token


class FakeCredential:
    def __init__(self, token: str) -> None:
        self.token = token
        self.scopes: list[str] = []
        self.closed = False

    async def get_token(self, scope: str) -> FakeToken:
        self.scopes.append(scope)
        return FakeToken(self.token)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def created_pools(monkeypatch: pytest.MonkeyPatch) -> list[tuple[FakePool, dict[str, Any]]]:
    pools: list[tuple[FakePool, dict[str, Any]]] = []

    async def fake_create_pool(**kwargs: Any) -> FakePool:
        await asyncio.sleep(0)
        pool = FakePool()
        pools.append((pool, kwargs))
        return pool

    monkeypatch.setattr(database.asyncpg, "create_pool", fake_create_pool)
    return pools


def _provider(**overrides: Any) -> ConnectionProvider:
    options: dict[str, Any] = {
        "host": "warehouse.postgres.example.test",
        "port": 5432,
        "database": "growth",
        "user": "console",
        "password": "pw",
    }
    options.update(overrides)
    return ConnectionProvider(**options)


def test_password_mode_requires_connection_settings() -> None:
    provider = _provider(host=None, password=None)
    with pytest.raises(ConfigurationError) as exc_info:
        asyncio.run(provider.open())
    assert str(exc_info.value) == "GSC_DATABASE_HOST / GSC_DATABASE_PASSWORD are not set"


def test_client_secret_mode_requires_service_principal() -> None:
    provider = _provider(auth_mode="client_secret", password=None, tenant_id="tenant")
    with pytest.raises(ConfigurationError) as exc_info:
        asyncio.run(provider.open())
    assert str(exc_info.value) == "GSC_AZURE_CLIENT_ID / GSC_AZURE_CLIENT_SECRET are not set"


def test_unknown_auth_mode_is_configuration_error() -> None:
    with pytest.raises(ConfigurationError, match="unsupported database auth mode"):
        asyncio.run(_provider(auth_mode="kerberos").open())


def test_open_reuses_live_pool_and_reopens_after_close(created_pools) -> None:
    provider = _provider()

    async def scenario() -> None:
        first = await provider.open()
        assert await provider.open() is first
        assert provider.is_open
        await provider.close()
        assert not provider.is_open
        second = await provider.open()
        assert second is not first

    asyncio.run(scenario())
    assert len(created_pools) == 2
    _, kwargs = created_pools[0]
    assert kwargs["password"] == "pw"
    assert kwargs["ssl"] == "require"


def test_concurrent_cold_opens_share_one_pool(created_pools) -> None:
    provider = _provider()

    async def scenario() -> list[object]:
        return await asyncio.gather(*(provider.open() for _ in range(5)))

    pools = asyncio.run(scenario())

    assert len(created_pools) == 1
    assert all(pool is created_pools[0][0] for pool in pools)


def test_token_mode_passes_token_callable_as_password(created_pools) -> None:
    provider = _provider(auth_mode="managed_identity", password=None)
    credential = FakeCredential("bearer-token")
    provider._credential = credential

    asyncio.run(provider.open())
    _, kwargs = created_pools[0]
    assert kwargs["password"] == provider._fetch_token

    assert asyncio.run(provider._fetch_token()) == "bearer-token"
    assert credential.scopes == ["https://ossrdbms-aad.database.windows.net/.default"]

    asyncio.run(provider.close())
    assert credential.closed


def test_empty_token_is_configuration_error() -> None:
    provider = _provider(auth_mode="default", password=None)
    provider._credential = FakeCredential("")
    with pytest.raises(ConfigurationError, match="Failed to acquire access token for SQL"):
        asyncio.run(provider._fetch_token())


def test_acquire_wraps_driver_errors(created_pools) -> None:
    provider = _provider()

    async def scenario() -> None:
        async with provider.acquire():
            raise OSError("connection reset by peer")

    with pytest.raises(UpstreamFailureError, match="connection reset by peer"):
        asyncio.run(scenario())


def test_acquire_yields_pool_connection(created_pools) -> None:
    provider = _provider()

    async def scenario() -> object:
        async with provider.acquire() as conn:
            return conn

    conn = asyncio.run(scenario())
    pool, _ = created_pools[0]
    assert conn is pool.conn


@pytest.mark.parametrize(
    ("command_status", "expected"),
    [("UPDATE 1", 1), ("UPDATE 0", 0), ("INSERT 0 3", 3), ("", 0), (None, 0), ("SELECT", 0)],
)
def test_affected_rows(command_status: str | None, expected: int) -> None:
    assert affected_rows(command_status) == expected
