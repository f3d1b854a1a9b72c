# aptora_extensions/services/sql_validator.py
"""Read-only guard for statements sent to the Aptora database."""

import functools
import re
from typing import Optional, Set

import sqlglot
from sqlglot.errors import ParseError

from aptora_extensions.utils.exceptions import SQLSecurityError


class SQLValidator:
    """SQL read-only validator.

    Every statement the query handlers send to the read-only pool passes
    through here first. It complements, and does not replace, the
    read-only credential itself.
    """

    # Allowed statement types
    ALLOWED_STATEMENTS = {"SELECT"}

    # Forbidden patterns for dangerous keywords
    FORBIDDEN_PATTERNS = [
        r"\bINSERT\b",
        r"\bUPDATE\b",
        r"\bDELETE\b",
        r"\bMERGE\b",
        r"\bDROP\b",
        r"\bTRUNCATE\b",
        r"\bALTER\b",
        r"\bCREATE\b",
        r"\bGRANT\b",
        r"\bREVOKE\b",
        r"\bEXECUTE\b",
        r"\bCOPY\b",
        r"\bINTO\b",  # SELECT ... INTO creates a table
    ]

    def __init__(self, allowed_statements: Optional[Set[str]] = None):
        """Initialize the SQL validator.

        Args:
            allowed_statements: Set of allowed statement types.
        """
        self.allowed_statements = allowed_statements or self.ALLOWED_STATEMENTS
        self._compiled_patterns = [
            re.compile(p, re.IGNORECASE) for p in self.FORBIDDEN_PATTERNS
        ]
        self.validate = functools.lru_cache(maxsize=64)(self._validate)

    def _validate(self, sql: str) -> tuple[bool, Optional[str]]:
        """Validate an SQL statement.

        Args:
            sql: The SQL statement to validate.

        Returns:
            A tuple of (is_valid, error_message).
        """
        # Step 1: Remove comments
        cleaned_sql = self._remove_comments(sql)

        # Step 2: Regex pattern check (must be BEFORE sqlglot parsing)
        for pattern in self._compiled_patterns:
            match = pattern.search(self._strip_quoted(cleaned_sql))
            if match:
                return False, f"forbidden keyword: {match.group(0).upper()}"

        # Step 3: Basic syntax check + single statement constraint
        try:
            statements = [s for s in sqlglot.parse(cleaned_sql, read="postgres") if s is not None]
        except ParseError as e:
            return False, f"SQL syntax error: {e}"

        if len(statements) != 1:
            return False, "only a single SELECT statement is allowed"

        # Step 4: Check statement type
        statement_type = type(statements[0]).__name__.upper()
        if statement_type not in self.allowed_statements:
            return False, f"statement type not allowed: {statement_type}"

        return True, None

    def check(self, sql: str) -> str:
        """Validate ``sql`` and return it unchanged.

        Raises:
            SQLSecurityError: The statement is not a single SELECT.
        """
        is_valid, error = self.validate(sql)
        if not is_valid:
            raise SQLSecurityError(sql, error)
        return sql

    def _remove_comments(self, sql: str) -> str:
        """Remove SQL comments from the statement.

        Args:
            sql: The SQL statement with possible comments.

        Returns:
            The SQL statement without comments.
        """
        # Remove /* ... */ style comments
        sql = re.sub(r"/\*.*?\*/", "", sql, flags=re.DOTALL)
        # Remove -- style comments
        sql = re.sub(r"--.*$", "", sql, flags=re.MULTILINE)
        return sql.strip()

    @staticmethod
    def _strip_quoted(sql: str) -> str:
        # Quoted identifiers and literals may legitimately contain keywords.
        return re.sub(r"\"[^\"]*\"|'[^']*'", "", sql)
