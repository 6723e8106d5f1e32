from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Any

import asyncpg  # type: ignore[import-untyped]
from azure.identity.aio import ClientSecretCredential, DefaultAzureCredential, ManagedIdentityCredential

from signal_console.core.config import get_settings
from signal_console.core.errors import ConfigurationError, ConsoleError, UpstreamFailureError

logger = logging.getLogger(__name__)

TOKEN_AUTH_MODES = {"client_secret", "managed_identity", "default"}


class ConnectionProvider:
    """Owns the asyncpg pool for the warehouse.

    The pool is opened on first use and reused while it is live. Token auth
    modes hand asyncpg a password coroutine, so every physical connection the
    pool opens requests a fresh bearer token from the identity provider.
    """

    def __init__(
        self,
        *,
        host: str | None,
        port: int,
        database: str | None,
        user: str | None,
        password: str | None = None,
        auth_mode: str = "password",
        tenant_id: str | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
        token_scope: str = "https://ossrdbms-aad.database.windows.net/.default",
        ssl: str | None = "require",
        min_pool_size: int = 1,
        max_pool_size: int = 10,
        command_timeout: float = 15.0,
    ) -> None:
        self.host = host
        self.port = port
        self.database = database
        self.user = user
        self.password = password
        self.auth_mode = auth_mode
        self.tenant_id = tenant_id
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_scope = token_scope
        self.ssl = ssl
        self.min_pool_size = max(0, min_pool_size)
        self.max_pool_size = max(1, max_pool_size)
        self.command_timeout = command_timeout
        self._pool: asyncpg.Pool | None = None
        self._credential: Any | None = None
        self._open_lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return self._pool is not None and not self._pool.is_closing()

    async def open(self) -> asyncpg.Pool:
        if self.is_open:
            return self._pool

        async with self._open_lock:
            if self.is_open:
                return self._pool
            self._pool = await self._create_pool()
        return self._pool

    async def _create_pool(self) -> asyncpg.Pool:
        self._validate()
        password: Any = self.password
        if self.auth_mode in TOKEN_AUTH_MODES:
            password = self._fetch_token

        try:
            pool = await asyncpg.create_pool(
                host=self.host,
                port=self.port,
                database=self.database,
                user=self.user,
                password=password,
                ssl=self.ssl or None,
                min_size=self.min_pool_size,
                max_size=self.max_pool_size,
                command_timeout=self.command_timeout,
            )
        except ConsoleError:
            raise
        except Exception as exc:  # pragma: no cover - depends on environment
            logger.error("database pool open failed host=%s database=%s error=%s", self.host, self.database, exc)
            raise UpstreamFailureError(str(exc) or "database unavailable") from exc

        logger.info(
            "database pool opened host=%s database=%s auth_mode=%s",
            self.host,
            self.database,
            self.auth_mode,
        )
        return pool

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
        if self._credential is not None:
            await self._credential.close()
            self._credential = None

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        pool = await self.open()
        try:
            async with pool.acquire() as conn:
                yield conn
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as exc:
            logger.error("database statement failed error=%s", exc)
            raise UpstreamFailureError(str(exc) or "database request failed") from exc

    def _validate(self) -> None:
        missing: list[str] = []
        if not self.host:
            missing.append("GSC_DATABASE_HOST")
        if not self.database:
            missing.append("GSC_DATABASE_NAME")
        if not self.user:
            missing.append("GSC_DATABASE_USER")

        if self.auth_mode == "password":
            if not self.password:
                missing.append("GSC_DATABASE_PASSWORD")
        elif self.auth_mode == "client_secret":
            if not self.tenant_id:
                missing.append("GSC_AZURE_TENANT_ID")
            if not self.client_id:
                missing.append("GSC_AZURE_CLIENT_ID")
            if not self.client_secret:
                missing.append("GSC_AZURE_CLIENT_SECRET")
        elif self.auth_mode not in TOKEN_AUTH_MODES:
            raise ConfigurationError(f"unsupported database auth mode: {self.auth_mode}")

        if missing:
            raise ConfigurationError(f"{' / '.join(missing)} are not set")

    def _get_credential(self) -> Any:
        if self._credential is not None:
            return self._credential

        if self.auth_mode == "client_secret":
            self._credential = ClientSecretCredential(
                tenant_id=self.tenant_id,
                client_id=self.client_id,
                client_secret=self.client_secret,
            )
        elif self.auth_mode == "managed_identity":
            if self.client_id:
                self._credential = ManagedIdentityCredential(client_id=self.client_id)
            else:
                self._credential = ManagedIdentityCredential()
        else:
            self._credential = DefaultAzureCredential()
        return self._credential

    async def _fetch_token(self) -> str:
        credential = self._get_credential()
        token = await credential.get_token(self.token_scope)
        if not token or not token.token:
            raise ConfigurationError("Failed to acquire access token for SQL")
        return token.token


def affected_rows(command_status: str | None) -> int:
    """Parse the row count out of an asyncpg command status such as ``UPDATE 1``."""
    if not command_status:
        return 0
    tail = command_status.rsplit(" ", maxsplit=1)[-1]
    try:
        return int(tail)
    except ValueError:
        return 0


@lru_cache
def get_connection_provider() -> ConnectionProvider:
    settings = get_settings()
    return ConnectionProvider(
        host=settings.database_host,
        port=settings.database_port,
        database=settings.database_name,
        user=settings.database_user,
        password=settings.database_password,
        auth_mode=settings.database_auth_mode,
        tenant_id=settings.azure_tenant_id,
        client_id=settings.azure_client_id,
        client_secret=settings.azure_client_secret,
        token_scope=settings.database_token_scope,
        ssl=settings.database_ssl,
        min_pool_size=settings.database_pool_min_size,
        max_pool_size=settings.database_pool_max_size,
        command_timeout=settings.database_command_timeout_seconds,
    )
