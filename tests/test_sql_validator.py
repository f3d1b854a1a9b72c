# tests/test_sql_validator.py
"""Tests for the SQL read-only guard."""

import pytest

from aptora_extensions.services.queries import STATEMENTS
from aptora_extensions.services.sql_validator import SQLValidator
from aptora_extensions.utils.exceptions import SQLSecurityError


class TestSQLValidator:
    """SQL Validator test suite."""

    def setup_method(self):
        """Set up test fixtures."""
        self.validator = SQLValidator()

    # === Valid SQL tests ===

    def test_valid_select(self):
        """Test valid SELECT statement."""
        sql = "SELECT id, name FROM users WHERE id = 1"
        is_valid, error = self.validator.validate(sql)
        assert is_valid is True
        assert error is None

    def test_parameterized_select(self):
        """Test SELECT with positional parameters."""
        sql = "SELECT id FROM invoices WHERE created >= $1 AND created <= $2"
        is_valid, _ = self.validator.validate(sql)
        assert is_valid is True

    def test_select_with_join(self):
        """Test SELECT with JOIN."""
        sql = "SELECT u.name, o.total FROM users u LEFT JOIN orders o ON u.id = o.user_id"
        is_valid, _ = self.validator.validate(sql)
        assert is_valid is True

    def test_keyword_inside_quoted_identifier(self):
        """Keywords inside quotes are not statements."""
        sql = 'SELECT "Update" FROM notes WHERE body = \'please delete me\''
        is_valid, _ = self.validator.validate(sql)
        assert is_valid is True

    def test_comments_are_ignored(self):
        """Test that comments are stripped before checking."""
        sql = "-- list people\nSELECT id FROM users /* all of them */"
        is_valid, _ = self.validator.validate(sql)
        assert is_valid is True

    @pytest.mark.parametrize("sql", STATEMENTS)
    def test_application_queries_pass(self, sql):
        """Every statement the API sends is accepted."""
        is_valid, error = self.validator.validate(sql)
        assert is_valid is True, error

    # === Rejection tests ===

    def test_reject_insert(self):
        """Test INSERT statement rejection."""
        sql = "INSERT INTO users (name) VALUES ('test')"
        is_valid, error = self.validator.validate(sql)
        assert is_valid is False
        assert "INSERT" in error

    def test_reject_update(self):
        """Test UPDATE statement rejection."""
        sql = "UPDATE users SET name = 'hacked' WHERE id = 1"
        is_valid, _ = self.validator.validate(sql)
        assert is_valid is False

    def test_reject_delete(self):
        """Test DELETE statement rejection."""
        is_valid, _ = self.validator.validate("DELETE FROM users")
        assert is_valid is False

    def test_reject_ddl(self):
        """Test DDL rejection."""
        for sql in ("DROP TABLE users", "CREATE TABLE x (id int)", "ALTER TABLE users ADD c int"):
            is_valid, _ = self.validator.validate(sql)
            assert is_valid is False, sql

    def test_reject_select_into(self):
        """SELECT ... INTO creates a table."""
        is_valid, error = self.validator.validate("SELECT * INTO copy FROM users")
        assert is_valid is False
        assert "INTO" in error

    def test_reject_multiple_statements(self):
        """Test that stacked statements are rejected."""
        is_valid, error = self.validator.validate("SELECT 1; SELECT 2")
        assert is_valid is False
        assert "single" in error

    def test_reject_hidden_after_comment(self):
        """Test that a write is caught even after a comment."""
        sql = "SELECT 1 /* harmless */; DELETE FROM users"
        is_valid, _ = self.validator.validate(sql)
        assert is_valid is False

    def test_reject_non_select(self):
        """Test that non-SELECT statements are rejected by type."""
        is_valid, error = self.validator.validate("SHOW search_path")
        assert is_valid is False

    # === check() ===

    def test_check_returns_sql(self):
        sql = "SELECT 1"
        assert self.validator.check(sql) == sql

    def test_check_raises(self):
        with pytest.raises(SQLSecurityError) as exc_info:
            self.validator.check("TRUNCATE users")
        assert exc_info.value.details == {"sql": "TRUNCATE users"}
        assert "TRUNCATE" in exc_info.value.message
