"""
PostgreSQL Client Wrapper for the SuperMart platform

Centralized asyncpg pool wrapper with an explicit unit-of-work API.
Every write the order service performs goes through ``begin()``, which hands
out a ``PostgresTransaction`` bound to one pooled connection. Leaving the
block normally commits; leaving it with an exception (including cancellation
by a timeout) rolls every statement back.

Usage:
    from core.postgres_client import get_postgres_client

    db = await get_postgres_client("order_service")

    async with db.begin() as tx:
        row = await tx.fetchrow("SELECT * FROM store.products WHERE product_id = $1 FOR UPDATE", product_id)
        await tx.execute("UPDATE store.products SET current_stock = $1 WHERE product_id = $2", stock, product_id)
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

import asyncpg

from core.config import InfraConfig, get_settings

logger = logging.getLogger(__name__)


class PostgresTransaction:
    """
    Handle for one open transaction.

    Thin pass-through to the underlying asyncpg connection so that
    repositories never touch the pool directly.
    """

    def __init__(self, connection: asyncpg.Connection):
        self.connection = connection

    async def fetch(self, sql: str, *args: Any) -> List[Dict[str, Any]]:
        rows = await self.connection.fetch(sql, *args)
        return [dict(row) for row in rows]

    async def fetchrow(self, sql: str, *args: Any) -> Optional[Dict[str, Any]]:
        row = await self.connection.fetchrow(sql, *args)
        return dict(row) if row is not None else None

    async def fetchval(self, sql: str, *args: Any) -> Any:
        return await self.connection.fetchval(sql, *args)

    async def execute(self, sql: str, *args: Any) -> str:
        return await self.connection.execute(sql, *args)


class PostgresClientWrapper:
    """
    PostgreSQL pool wrapper.

    Provides:
    - Lazy pool creation from InfraConfig
    - Transaction scopes (``begin``) for multi-row atomic writes
    - Read helpers for queries that do not need a transaction
    """

    def __init__(
        self,
        service_name: str,
        config: Optional[InfraConfig] = None,
        dsn: Optional[str] = None,
        isolation: str = "read_committed",
    ):
        """
        Initialize PostgreSQL client wrapper.

        Args:
            service_name: Name of the service using this client
            config: Infrastructure config (defaults to global settings)
            dsn: Explicit DSN, overrides config host/port/credentials
            isolation: Isolation level for transactions opened by ``begin``
        """
        self.service_name = service_name
        self.config = config or get_settings().infrastructure
        self.dsn = dsn or self.config.postgres_dsn
        self.isolation = isolation
        self._pool: Optional[asyncpg.Pool] = None

        logger.info(
            f"PostgreSQL client initialized for {service_name}: "
            f"{self.config.postgres_host}:{self.config.postgres_port}/{self.config.postgres_db}"
        )

    async def connect(self) -> None:
        """Create the connection pool"""
        if self._pool is not None:
            return
        self._pool = await asyncpg.create_pool(
            dsn=self.dsn,
            min_size=self.config.postgres_pool_min,
            max_size=self.config.postgres_pool_max,
            command_timeout=60,
        )
        logger.info(f"PostgreSQL pool ready for {self.service_name}")

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("PostgreSQL pool not initialized, call connect() first")
        return self._pool

    @asynccontextmanager
    async def begin(self) -> AsyncIterator[PostgresTransaction]:
        """Open a transaction; commit on success, roll back on any exception"""
        async with self.pool.acquire() as connection:
            async with connection.transaction(isolation=self.isolation):
                yield PostgresTransaction(connection)

    async def query(self, sql: str, *args: Any) -> List[Dict[str, Any]]:
        """Execute query outside a transaction and return all rows"""
        async with self.pool.acquire() as connection:
            rows = await connection.fetch(sql, *args)
        return [dict(row) for row in rows]

    async def query_row(self, sql: str, *args: Any) -> Optional[Dict[str, Any]]:
        """Execute query outside a transaction and return a single row"""
        async with self.pool.acquire() as connection:
            row = await connection.fetchrow(sql, *args)
        return dict(row) if row is not None else None

    async def health_check(self) -> Dict[str, Any]:
        """Check database health"""
        try:
            async with self.pool.acquire() as connection:
                version = await connection.fetchval("SELECT version()")
            return {"healthy": True, "version": version}
        except Exception as e:
            logger.error(f"PostgreSQL health check failed: {e}")
            return {"healthy": False, "error": str(e)}

    async def close(self) -> None:
        """Close the pool"""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info(f"PostgreSQL pool closed for {self.service_name}")


# Singleton instances per service
_postgres_clients: Dict[str, PostgresClientWrapper] = {}


async def get_postgres_client(
    service_name: str,
    config: Optional[InfraConfig] = None,
    dsn: Optional[str] = None,
) -> PostgresClientWrapper:
    """
    Get or create the connected PostgreSQL client for a service.

    Args:
        service_name: Service name
        config: Optional infrastructure config override
        dsn: Optional DSN override

    Returns:
        PostgresClientWrapper instance with an open pool
    """
    if service_name not in _postgres_clients:
        client = PostgresClientWrapper(service_name=service_name, config=config, dsn=dsn)
        await client.connect()
        _postgres_clients[service_name] = client

    return _postgres_clients[service_name]
