# aptora_extensions/services/manager.py
"""Dual-database connection manager.

Owns two asyncpg pools:

- the **read-only** pool for the Aptora business database, which this
  service must never modify, and
- the **read-write** pool for the Extensions database, which holds the
  service's own bookkeeping.

Connecting happens in a background task. Until the first cycle succeeds the
service runs degraded: ``health()`` reports the last error and the pool
accessors return ``None``. A cycle only installs new pools after every
check has passed, and the previous pools keep serving until then.
"""

import asyncio
import logging
import threading
from contextlib import AsyncExitStack, contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Iterator, Optional

import asyncpg

from aptora_extensions.models.database import DatabaseConfig, DatabaseTarget, HealthStatus
from aptora_extensions.services.database import close_pool, create_pool, ping
from aptora_extensions.services.schema import initialize_schema
from aptora_extensions.services.verifier import verify_read_only
from aptora_extensions.utils.constants import ErrorCode
from aptora_extensions.utils.exceptions import AppError, DatabaseConnectionError

logger = logging.getLogger("connection-manager")

PoolFactory = Callable[..., Awaitable[asyncpg.Pool]]
Sleep = Callable[[float], Awaitable[None]]
Clock = Callable[[], datetime]


@dataclass(frozen=True)
class _ConnectionState:
    """Everything readers may look at, replaced as a whole."""
    read_only_pool: Optional[asyncpg.Pool] = None
    read_write_pool: Optional[asyncpg.Pool] = None
    health: HealthStatus = field(default_factory=HealthStatus)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _describe(exc: BaseException) -> str:
    if isinstance(exc, asyncio.TimeoutError):
        return "timed out"
    return str(exc) or type(exc).__name__


@contextmanager
def _step(description: str) -> Iterator[None]:
    """Turn driver/network failures of one cycle step into a described error."""
    try:
        yield
    except AppError:
        raise
    except Exception as e:
        raise DatabaseConnectionError(f"{description}: {_describe(e)}") from e


class ConnectionManager:
    """Keeps both database pools alive without blocking request traffic.

    All shared state lives in one immutable ``_ConnectionState``. Readers
    take the lock only to read the reference; a successful cycle takes it
    only to swap the reference. Opening, pinging and verifying pools always
    happens outside the lock.
    """

    def __init__(
        self,
        config: DatabaseConfig,
        pool_factory: PoolFactory = create_pool,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = _utcnow
    ):
        """Initialize the manager. No I/O happens until ``start()``.

        Args:
            config: Connection configuration for both databases.
            pool_factory: Coroutine creating a pool; takes the same
                arguments as ``create_pool``.
            sleep: Coroutine used to wait between loop ticks.
            clock: Source of audit row timestamps.
        """
        self.config = config
        self._pool_factory = pool_factory
        self._sleep = sleep
        self._clock = clock

        self._lock = threading.Lock()
        self._state = _ConnectionState()
        self._closed = False
        self._cycle_lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def _snapshot(self) -> _ConnectionState:
        with self._lock:
            return self._state

    def health(self) -> HealthStatus:
        """Latest health snapshot. Never waits for a cycle in progress."""
        return self._snapshot().health

    def is_healthy(self) -> tuple[bool, str]:
        """Health as a ``(connected, error)`` pair."""
        health = self.health()
        return health.connected, health.error

    def read_only_pool(self) -> Optional[asyncpg.Pool]:
        """Verified pool for the Aptora database, or ``None`` if never connected."""
        return self._snapshot().read_only_pool

    def read_write_pool(self) -> Optional[asyncpg.Pool]:
        """Pool for the Extensions database, or ``None`` if never connected."""
        return self._snapshot().read_write_pool

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Schedule the connection loop on the running event loop.

        Returns immediately; the first cycle runs in the background.
        Calling it again while the loop runs does nothing.
        """
        if self._closed:
            raise RuntimeError("connection manager is closed")
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name="connection-manager"
        )

    async def close(self) -> None:
        """Stop the loop and close both pools. Safe to call more than once."""
        with self._lock:
            self._closed = True
            state = self._state
            self._state = _ConnectionState(
                health=HealthStatus(connected=False, error="connection manager closed")
            )

        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        if state.read_only_pool is not None or state.read_write_pool is not None:
            await close_pool(state.read_only_pool)
            await close_pool(state.read_write_pool)
            logger.info("Database pools closed")

    def mark_unhealthy(self, message: str) -> None:
        """Record a connectivity failure noticed outside the loop.

        The installed pools stay in place; the next tick runs a full cycle.
        """
        self._set_unhealthy(message)

    # ------------------------------------------------------------------
    # Background loop
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        await self._tick()
        while True:
            await self._sleep(self.config.retry_interval)
            await self._tick()

    async def _tick(self) -> None:
        # Nothing may escape: the loop has to outlive any failure.
        try:
            if self.health().connected:
                await self.check_liveness()
            else:
                await self.connect_once()
        except Exception:
            logger.exception("Unexpected error in connection loop")

    async def check_liveness(self) -> bool:
        """Ping both installed pools; mark unhealthy when either fails.

        Returns:
            True if both pools answered.
        """
        state = self._snapshot()
        for label, pool in (
            ("Aptora", state.read_only_pool),
            ("Extensions", state.read_write_pool),
        ):
            if pool is None:
                self._set_unhealthy(f"{label} database not connected")
                return False
            try:
                await ping(pool, timeout=self.config.connect_timeout)
            except Exception as e:
                self._set_unhealthy(f"lost connection to {label} database: {_describe(e)}")
                return False
        return True

    async def connect_once(self) -> bool:
        """Run one connection cycle.

        Opens and verifies fresh pools for both databases and, only if
        every step passes, installs them and closes the previous ones. On
        failure the previous pools stay installed and only the health
        record changes.

        Returns:
            True if the new pools were installed.
        """
        async with self._cycle_lock:
            if self._closed:
                return False

            logger.info("Attempting to connect to databases")
            try:
                read_only, read_write = await self._open_verified_pools()
            except AppError as e:
                self._set_unhealthy(e.message, code=e.code)
                return False

            with self._lock:
                installed = not self._closed
                if installed:
                    previous = self._state
                    self._state = _ConnectionState(
                        read_only_pool=read_only,
                        read_write_pool=read_write,
                        health=HealthStatus(connected=True, error=""),
                    )

            if not installed:
                await close_pool(read_only)
                await close_pool(read_write)
                return False

            await close_pool(previous.read_only_pool)
            await close_pool(previous.read_write_pool)
            logger.info("Successfully connected to databases")
            return True

    async def _open_verified_pools(self) -> tuple[asyncpg.Pool, asyncpg.Pool]:
        cfg = self.config
        async with AsyncExitStack() as stack:
            with _step("failed to open Aptora database"):
                read_only = await self._open_pool(cfg.aptora, read_only=True)
            stack.push_async_callback(close_pool, read_only)

            with _step("failed to ping Aptora database"):
                await ping(read_only, timeout=cfg.connect_timeout)

            with _step("failed to verify Aptora database is read-only"):
                await verify_read_only(read_only, cfg.aptora.name)

            with _step("failed to open Extensions database"):
                read_write = await self._open_pool(cfg.extensions, read_only=False)
            stack.push_async_callback(close_pool, read_write)

            with _step("failed to ping Extensions database"):
                await ping(read_write, timeout=cfg.connect_timeout)

            with _step("failed to initialize schema"):
                await initialize_schema(read_write, cfg.extensions.name, now=self._clock())

            stack.pop_all()
        return read_only, read_write

    async def _open_pool(self, target: DatabaseTarget, read_only: bool) -> asyncpg.Pool:
        cfg = self.config
        return await self._pool_factory(
            dsn=cfg.dsn(target),
            min_size=cfg.pool_min_size,
            max_size=cfg.pool_max_size,
            ssl=cfg.encrypt.value,
            timeout=cfg.connect_timeout,
            max_inactive_lifetime=cfg.pool_max_inactive_lifetime,
            read_only=read_only,
        )

    def _set_unhealthy(self, message: str, code: Optional[ErrorCode] = None) -> None:
        with self._lock:
            if self._closed:
                return
            self._state = _ConnectionState(
                read_only_pool=self._state.read_only_pool,
                read_write_pool=self._state.read_write_pool,
                health=HealthStatus(connected=False, error=message),
            )

        if code is ErrorCode.DB_NOT_READ_ONLY:
            logger.critical("Aptora credentials can WRITE; refusing to use them: %s", message)
        elif code is ErrorCode.DB_TARGET_MISMATCH:
            logger.critical("Extensions pool points at the wrong database: %s", message)
        else:
            logger.error("Database connection failed: %s", message)
