# aptora_extensions/services/schema.py
"""Bookkeeping schema for the extensions database."""

import logging
from datetime import datetime, timezone
from typing import Optional

import asyncpg

from aptora_extensions.services.verifier import verify_target_database
from aptora_extensions.utils.constants import HEALTH_CHECK_TABLE
from aptora_extensions.utils.exceptions import SchemaInitError

logger = logging.getLogger("schema-initializer")

CREATE_HEALTH_CHECK_SQL = f"""
CREATE TABLE IF NOT EXISTS {HEALTH_CHECK_TABLE} (
    id BIGSERIAL PRIMARY KEY,
    timestamp TIMESTAMPTZ NOT NULL
)"""

INSERT_HEALTH_CHECK_SQL = f"INSERT INTO {HEALTH_CHECK_TABLE} (timestamp) VALUES ($1)"


async def initialize_schema(
    pool: asyncpg.Pool,
    expected_database: str,
    now: Optional[datetime] = None,
    timeout: float = 10.0
) -> None:
    """Ensure the ``health_check`` table exists and append one audit row.

    The connected database is checked against ``expected_database`` before
    any statement that writes is sent.

    Args:
        pool: Pool for the read-write extensions database.
        expected_database: Configured name of the extensions database.
        now: Timestamp for the audit row. Defaults to the current UTC time.
        timeout: Seconds allowed for each statement.

    Raises:
        TargetDatabaseMismatchError: The pool points at another database.
        SchemaInitError: The table could not be created or the row inserted.
    """
    await verify_target_database(pool, expected_database)

    timestamp = now or datetime.now(timezone.utc)
    async with pool.acquire() as conn:
        try:
            async with conn.transaction():
                await conn.execute(CREATE_HEALTH_CHECK_SQL, timeout=timeout)
                await conn.execute(INSERT_HEALTH_CHECK_SQL, timestamp, timeout=timeout)
        except asyncpg.PostgresError as e:
            raise SchemaInitError(f"failed to initialize {HEALTH_CHECK_TABLE} table: {e}") from e

    logger.info("Recorded %s row in %s", HEALTH_CHECK_TABLE, expected_database)
