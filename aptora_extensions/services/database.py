# aptora_extensions/services/database.py
"""Database connection services."""

import asyncio
import logging
import time
from typing import Optional

import asyncpg

logger = logging.getLogger("database")

APPLICATION_NAME = "aptora-extensions"


async def create_pool(
    dsn: str,
    min_size: int = 1,
    max_size: int = 10,
    ssl: Optional[str] = None,
    timeout: float = 5.0,
    max_inactive_lifetime: float = 300.0,
    read_only: bool = False
) -> asyncpg.Pool:
    """Create a PostgreSQL connection pool.

    Args:
        dsn: Database connection string.
        min_size: Connections opened eagerly and kept idle.
        max_size: Upper bound on open connections.
        ssl: asyncpg ssl mode (``disable``, ``prefer``, ``require``).
        timeout: Connection timeout in seconds.
        max_inactive_lifetime: Seconds an idle connection lives before it is closed.
        read_only: Ask the server to start every transaction read-only.
            The session can still override this, so it is only a statement
            of intent.

    Returns:
        An asyncpg connection pool.
    """
    server_settings = {"application_name": APPLICATION_NAME}
    if read_only:
        server_settings["default_transaction_read_only"] = "on"

    pool = await asyncpg.create_pool(
        dsn=dsn,
        min_size=min_size,
        max_size=max_size,
        ssl=ssl,
        timeout=timeout,
        max_inactive_connection_lifetime=max_inactive_lifetime,
        server_settings=server_settings
    )
    return pool


async def ping(pool: asyncpg.Pool, timeout: float = 5.0) -> float:
    """Round-trip ``SELECT 1`` through the pool.

    Args:
        pool: The connection pool to test.
        timeout: Seconds allowed for acquiring a connection and the query.

    Returns:
        Latency in milliseconds.

    Raises:
        asyncio.TimeoutError: The round trip took longer than ``timeout``.
        asyncpg.PostgresError, OSError: The server could not be reached.
    """
    start_time = time.perf_counter()

    async def _select_one() -> None:
        async with pool.acquire() as conn:
            await conn.fetchval("SELECT 1")

    await asyncio.wait_for(_select_one(), timeout=timeout)
    return (time.perf_counter() - start_time) * 1000


async def current_database(pool: asyncpg.Pool) -> str:
    """Ask the server which database the pool is connected to."""
    async with pool.acquire() as conn:
        return await conn.fetchval("SELECT current_database()")


async def close_pool(pool: Optional[asyncpg.Pool], timeout: float = 10.0) -> None:
    """Close a connection pool.

    Waits up to ``timeout`` seconds for borrowed connections to come back,
    then terminates whatever is left. ``None`` is ignored.

    Args:
        pool: The connection pool to close.
        timeout: Seconds to wait for a graceful close.
    """
    if pool is None:
        return
    try:
        await asyncio.wait_for(pool.close(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("Pool did not close within %.1fs; terminating", timeout)
        pool.terminate()


def is_connection_error(exc: BaseException) -> bool:
    """Whether ``exc`` means the connection itself is gone.

    Used to tell a broken link apart from a query the server rejected.
    """
    return isinstance(
        exc,
        (
            asyncpg.exceptions.ConnectionDoesNotExistError,
            asyncpg.exceptions.PostgresConnectionError,
            ConnectionError,
            OSError,
        ),
    )
