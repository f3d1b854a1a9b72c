"""Pytest configuration and fixtures for aptora-extensions tests.

The fakes below stand in for asyncpg pools. They understand exactly the
statements this project sends and keep enough state (tables, audit rows,
executed SQL) for tests to assert on.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from urllib.parse import unquote

import asyncpg
import pytest

from aptora_extensions.models.database import DatabaseConfig, DatabaseTarget
from aptora_extensions.services.manager import ConnectionManager

FIXED_NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


# Markers for test categorization
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (deselect with '-m \"not integration\"')"
    )


@pytest.fixture(scope="session")
def anyio_backend():
    """Set the async backend for anyio."""
    return "asyncio"


def pytest_collection_modifyitems(config, items):
    """Run integration tests last."""
    items.sort(key=lambda item: item.get_closest_marker("integration") is not None)


class FakeDatabase:
    """In-memory stand-in for one PostgreSQL database."""

    def __init__(self, name: str, writable: bool = False):
        self.name = name
        self.writable = writable
        self.tables: set[str] = set()
        self.health_rows: list[datetime] = []
        self.executed: list[str] = []
        self.queries: list[tuple[str, tuple]] = []

        self.ping_error: Exception | None = None
        self.probe_error: BaseException | None = None
        self.drop_error: Exception | None = None
        self.insert_error: Exception | None = None

        self.employee_rows: list[tuple] = []
        self.invoice_rows: list[tuple] = []
        self.invoice_count = 0
        self.query_error: Exception | None = None
        self.query_delay = 0.0

    def probe_tables(self) -> set[str]:
        return {t for t in self.tables if t.startswith("_readonly_probe_")}


class FakeConnection:
    def __init__(self, db: FakeDatabase):
        self.db = db
        self._pending_tables: set[str] = set()

    async def execute(self, sql: str, *args, timeout=None):
        db = self.db
        db.executed.append(sql)
        stmt = sql.strip()

        if stmt == "BEGIN READ WRITE":
            self._pending_tables = set()
            return "BEGIN"
        if stmt == "ROLLBACK":
            db.tables -= self._pending_tables
            self._pending_tables = set()
            return "ROLLBACK"
        if stmt.startswith("BEGIN READ WRITE; DROP TABLE IF EXISTS"):
            if db.drop_error is not None:
                raise db.drop_error
            db.tables.discard(stmt.split('"')[1])
            return "COMMIT"
        if stmt.startswith('CREATE TABLE "'):
            if db.probe_error is not None:
                raise db.probe_error
            if not db.writable:
                raise asyncpg.exceptions.InsufficientPrivilegeError(
                    "permission denied for schema public"
                )
            name = stmt.split('"')[1]
            db.tables.add(name)
            self._pending_tables.add(name)
            return "CREATE TABLE"
        if stmt.startswith("CREATE TABLE IF NOT EXISTS health_check"):
            db.tables.add("health_check")
            return "CREATE TABLE"
        if stmt.startswith("INSERT INTO health_check"):
            if db.insert_error is not None:
                raise db.insert_error
            db.health_rows.append(args[0])
            return "INSERT 0 1"
        raise AssertionError(f"unexpected statement: {sql}")

    async def fetchval(self, sql: str, *args, timeout=None):
        db = self.db
        if sql == "SELECT 1":
            if db.ping_error is not None:
                raise db.ping_error
            return 1
        if sql == "SELECT current_database()":
            return db.name
        db.queries.append((sql, args))
        await self._maybe_fail()
        if sql.startswith("SELECT COUNT(*)"):
            return db.invoice_count
        raise AssertionError(f"unexpected fetchval: {sql}")

    async def fetch(self, sql: str, *args, timeout=None):
        db = self.db
        db.queries.append((sql, args))
        await self._maybe_fail()
        if "FROM Invoices" in sql:
            return list(db.invoice_rows)
        if "FROM Employees" in sql:
            return list(db.employee_rows)
        raise AssertionError(f"unexpected fetch: {sql}")

    async def _maybe_fail(self):
        if self.db.query_delay:
            await asyncio.sleep(self.db.query_delay)
        if self.db.query_error is not None:
            raise self.db.query_error

    @asynccontextmanager
    async def transaction(self):
        rows_before = len(self.db.health_rows)
        tables_before = set(self.db.tables)
        try:
            yield
        except BaseException:
            del self.db.health_rows[rows_before:]
            self.db.tables = tables_before
            raise


class FakePool:
    def __init__(self, db: FakeDatabase, read_only: bool = False, **options):
        self.db = db
        self.read_only = read_only
        self.options = options
        self.closed = False

    @asynccontextmanager
    async def acquire(self, timeout=None):
        if self.closed:
            raise asyncpg.exceptions.InterfaceError("pool is closed")
        yield FakeConnection(self.db)

    async def close(self):
        self.closed = True

    def terminate(self):
        self.closed = True


class FakeServer:
    """Hands out ``FakePool`` objects in place of ``create_pool``."""

    def __init__(self, *names: str):
        self.databases = {name: FakeDatabase(name) for name in names}
        self.routes: dict[str, str] = {}
        self.unreachable: set[str] = set()
        self.pools: list[FakePool] = []

    async def create_pool(self, dsn: str, read_only: bool = False, **options) -> FakePool:
        requested = unquote(dsn.rsplit("/", 1)[1])
        if requested in self.unreachable:
            raise ConnectionRefusedError(f"could not connect to {requested}: connection refused")
        db = self.databases[self.routes.get(requested, requested)]
        pool = FakePool(db, read_only=read_only, **options)
        self.pools.append(pool)
        return pool

    def pools_for(self, name: str) -> list[FakePool]:
        return [p for p in self.pools if p.db.name == name]


@pytest.fixture
def db_config() -> DatabaseConfig:
    return DatabaseConfig(
        host="db.internal",
        port=5432,
        aptora=DatabaseTarget(name="aptora", user="reporter", password="ro-secret"),
        extensions=DatabaseTarget(name="extensions", user="ext_owner", password="rw-secret"),
    )


@pytest.fixture
def fake_server() -> FakeServer:
    return FakeServer("aptora", "extensions")


@pytest.fixture
def aptora_db(fake_server) -> FakeDatabase:
    return fake_server.databases["aptora"]


@pytest.fixture
def extensions_db(fake_server) -> FakeDatabase:
    return fake_server.databases["extensions"]


@pytest.fixture
def manager(db_config, fake_server) -> ConnectionManager:
    return ConnectionManager(
        db_config,
        pool_factory=fake_server.create_pool,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def fake_pool_factory():
    """Build a standalone ``FakePool`` over a fresh database."""
    def _factory(name: str = "aptora", writable: bool = False) -> FakePool:
        return FakePool(FakeDatabase(name, writable=writable))
    return _factory
