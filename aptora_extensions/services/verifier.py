# aptora_extensions/services/verifier.py
"""Safety checks run against freshly opened pools.

Two questions are answered here, both before a pool is ever handed to the
rest of the service:

- Can the read-only credential write? It must not. The
  ``default_transaction_read_only`` server setting used when opening the
  pool is only advisory (a session may override it), so the check tries a
  real DDL statement in an explicit ``READ WRITE`` transaction.
- Is the read-write pool connected to the database we expect? Schema
  initialization must never run against the business database.
"""

import logging
import uuid
from typing import Optional

import asyncpg

from aptora_extensions.services.database import current_database
from aptora_extensions.utils.exceptions import (
    ReadOnlyViolationError,
    TargetDatabaseMismatchError,
)

logger = logging.getLogger("connection-verifier")

PROBE_PREFIX = "_readonly_probe_"

# Server answers that prove the credential cannot create tables. Any other
# error (lock timeout, shutdown, lost connection) leaves the question open.
READ_ONLY_VERDICTS = (
    asyncpg.exceptions.InsufficientPrivilegeError,
    asyncpg.exceptions.ReadOnlySQLTransactionError,
)


def new_probe_name() -> str:
    """Unique probe table name, so concurrent instances never collide."""
    return f"{PROBE_PREFIX}{uuid.uuid4().hex}"


async def verify_read_only(
    pool: asyncpg.Pool,
    database: str,
    probe_name: Optional[str] = None
) -> None:
    """Verify that ``pool`` cannot modify the schema.

    A permission or read-only-transaction rejection of the probe is the
    healthy outcome. If the probe succeeds the transaction is rolled back
    and the table dropped on a best-effort basis; cleanup problems are
    logged and never change the verdict.

    Args:
        pool: Freshly opened pool for the read-only database.
        database: Database name, used in messages.
        probe_name: Table name to attempt; a unique one is generated when omitted.

    Raises:
        ReadOnlyViolationError: The probe table was created.
        asyncpg.PostgresError, OSError: The probe failed for another
            reason (lock timeout, lost connection). Not a verdict; the
            caller treats it as a failed check.
    """
    probe = probe_name or new_probe_name()
    ident = _quote_ident(probe)

    async with pool.acquire() as conn:
        await conn.execute("BEGIN READ WRITE")
        try:
            await conn.execute(f"CREATE TABLE {ident} (id integer)")
        except READ_ONLY_VERDICTS as e:
            logger.info("Read-only verified for %s: probe rejected (%s)", database, type(e).__name__)
            await _rollback(conn, probe)
            return
        except BaseException:
            await _rollback(conn, probe)
            raise

        logger.error(
            "Read-only verification FAILED for %s: probe table %s was created", database, probe
        )
        await _rollback(conn, probe)
        await _drop_probe(conn, ident, probe)

    raise ReadOnlyViolationError(database)


async def verify_target_database(pool: asyncpg.Pool, expected: str) -> str:
    """Verify that ``pool`` is connected to ``expected``.

    Args:
        pool: Pool about to receive schema-initializing statements.
        expected: The configured database name.

    Returns:
        The connected database name.

    Raises:
        TargetDatabaseMismatchError: The server reports a different database.
    """
    actual = await current_database(pool)
    if actual != expected:
        logger.error(
            "Refusing to initialize schema: connected to %r, expected %r", actual, expected
        )
        raise TargetDatabaseMismatchError(expected=expected, actual=actual)
    return actual


async def _rollback(conn: asyncpg.Connection, probe: str) -> None:
    try:
        await conn.execute("ROLLBACK")
    except Exception as e:
        logger.warning("Rollback after read-only probe %s failed: %s", probe, e)


async def _drop_probe(conn: asyncpg.Connection, ident: str, probe: str) -> None:
    # DDL is transactional, so the rollback normally removed the table already.
    try:
        await conn.execute(f"BEGIN READ WRITE; DROP TABLE IF EXISTS {ident}; COMMIT")
    except Exception as e:
        logger.warning("Could not drop read-only probe table %s: %s", probe, e)
        await _rollback(conn, probe)


def _quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'
