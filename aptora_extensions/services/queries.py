# aptora_extensions/services/queries.py
"""Read queries against the Aptora database."""

import asyncio
import logging
from datetime import date, datetime
from typing import Any, Optional

import asyncpg
from pydantic import ValidationError

from aptora_extensions.models.records import Employee, Invoice
from aptora_extensions.services.database import is_connection_error
from aptora_extensions.services.manager import ConnectionManager
from aptora_extensions.services.sql_validator import SQLValidator
from aptora_extensions.utils.constants import MAX_INVOICE_ROWS
from aptora_extensions.utils.exceptions import (
    AppError,
    DatabaseUnavailableError,
    InvalidRequestError,
    QueryExecutionError,
    QueryTimeoutError,
)

logger = logging.getLogger("queries")

EMPLOYEES_SQL = "SELECT id, Name FROM Employees WHERE DateReleased IS NULL"

INVOICE_FILTER = "WHERE i.Date >= $1 AND i.Date <= $2"
INVOICE_EMPLOYEE_FILTER = " AND i.RepID = $3"

INVOICE_COUNT_SQL = "SELECT COUNT(*) FROM Invoices i " + INVOICE_FILTER

INVOICES_SQL = (
    "SELECT i.id, i.Date, i.RepID, e.Name, i.Total "
    "FROM Invoices i "
    "LEFT JOIN Employees e ON i.RepID = e.id "
    + INVOICE_FILTER
)
INVOICE_ORDER = " ORDER BY i.Date ASC, i.id ASC"

# Every statement this module can send. They are fixed text with positional
# parameters, so the read-only guard runs once at import.
STATEMENTS = (
    EMPLOYEES_SQL,
    INVOICE_COUNT_SQL,
    INVOICE_COUNT_SQL + INVOICE_EMPLOYEE_FILTER,
    INVOICES_SQL + INVOICE_ORDER,
    INVOICES_SQL + INVOICE_EMPLOYEE_FILTER + INVOICE_ORDER,
)


def _check_statements() -> None:
    validator = SQLValidator()
    for sql in STATEMENTS:
        validator.check(sql)


_check_statements()

DATE_FORMAT = "%Y-%m-%d"


def parse_date(value: Optional[str]) -> date:
    """Parse a ``YYYY-MM-DD`` query parameter.

    Raises:
        InvalidRequestError: Missing or malformed value.
    """
    if not value:
        raise InvalidRequestError("start_date and end_date are required (YYYY-MM-DD format)")
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError:
        raise InvalidRequestError(f"invalid date {value!r}, expected YYYY-MM-DD format")


def parse_employee_id(value: Optional[str]) -> Optional[int]:
    """Parse the optional ``employee_id`` query parameter.

    Raises:
        InvalidRequestError: Not an integer.
    """
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        raise InvalidRequestError("employee_id must be a valid integer")


class QueryService:
    """Runs the parameterized read queries behind the API.

    The pool is fetched from the connection manager on every call and never
    kept between calls.
    """

    def __init__(
        self,
        manager: ConnectionManager,
        timeout: float = 10.0
    ):
        """Initialize the query service.

        Args:
            manager: Source of the read-only pool.
            timeout: Seconds allowed per request, including waiting for a connection.
        """
        self.manager = manager
        self.timeout = timeout

    async def list_employees(self) -> list[Employee]:
        """Active employees (no release date)."""
        rows = await self._run("query employees", self._fetch_employees)
        employees = []
        for row in rows:
            try:
                employees.append(Employee(id=row[0], name=row[1]))
            except ValidationError as e:
                logger.error("Failed to read employee row: %s", e)
        return employees

    async def list_invoices(
        self,
        start_date: date,
        end_date: date,
        employee_id: Optional[int] = None
    ) -> list[Invoice]:
        """Invoices dated within ``[start_date, end_date]``, oldest first.

        Args:
            start_date: First day, inclusive.
            end_date: Last day, inclusive.
            employee_id: Only invoices for this sales rep.

        Raises:
            InvalidRequestError: More than ``MAX_INVOICE_ROWS`` invoices match.
        """
        args: list[Any] = [start_date, end_date]
        if employee_id is not None:
            args.append(employee_id)

        rows = await self._run("query invoices", self._fetch_invoices, args)
        invoices = []
        for row in rows:
            try:
                invoices.append(_to_invoice(row))
            except (TypeError, ValueError, AttributeError) as e:
                logger.error("Failed to read invoice row: %s", e)
        return invoices

    async def _fetch_employees(self, conn: asyncpg.Connection) -> list:
        return await conn.fetch(EMPLOYEES_SQL)

    async def _fetch_invoices(self, conn: asyncpg.Connection, args: list) -> list:
        count_sql = INVOICE_COUNT_SQL
        sql = INVOICES_SQL
        if len(args) == 3:
            count_sql += INVOICE_EMPLOYEE_FILTER
            sql += INVOICE_EMPLOYEE_FILTER
        sql += INVOICE_ORDER

        count = await conn.fetchval(count_sql, *args)
        if count > MAX_INVOICE_ROWS:
            raise InvalidRequestError(
                f"query would return more than {MAX_INVOICE_ROWS} invoices, "
                "please use a narrower filter"
            )
        return await conn.fetch(sql, *args)

    async def _run(self, action: str, fetch, *args: Any) -> list:
        pool = self.manager.read_only_pool()
        if pool is None:
            raise DatabaseUnavailableError()

        async def _with_connection() -> list:
            async with pool.acquire() as conn:
                return await fetch(conn, *args)

        try:
            return await asyncio.wait_for(_with_connection(), timeout=self.timeout)
        except AppError:
            raise
        except asyncio.TimeoutError:
            logger.error("Failed to %s: timed out after %.1fs", action, self.timeout)
            raise QueryTimeoutError(self.timeout)
        except Exception as e:
            logger.error("Failed to %s: %s", action, e)
            if is_connection_error(e):
                self.manager.mark_unhealthy(f"lost connection to Aptora database: {e}")
            raise QueryExecutionError(f"failed to {action}") from e


def _to_invoice(row) -> Invoice:
    invoice_date = row[1]
    if isinstance(invoice_date, (date, datetime)):
        invoice_date = invoice_date.strftime(DATE_FORMAT)
    return Invoice(
        id=row[0],
        date=str(invoice_date),
        employee_id=row[2],
        employee_name=row[3] or "",
        total=float(row[4]),
    )
