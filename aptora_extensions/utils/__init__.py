"""Utility modules for aptora-extensions."""

from aptora_extensions.utils.constants import ErrorCode, ERROR_MESSAGES
from aptora_extensions.utils.exceptions import (
    AppError,
    DatabaseConnectionError,
    ReadOnlyViolationError,
    TargetDatabaseMismatchError,
    SchemaInitError,
    DatabaseUnavailableError,
    InvalidRequestError,
    SQLSecurityError,
    QueryExecutionError,
    QueryTimeoutError,
    MethodNotAllowedError,
)

__all__ = [
    "ErrorCode",
    "ERROR_MESSAGES",
    "AppError",
    "DatabaseConnectionError",
    "ReadOnlyViolationError",
    "TargetDatabaseMismatchError",
    "SchemaInitError",
    "DatabaseUnavailableError",
    "InvalidRequestError",
    "SQLSecurityError",
    "QueryExecutionError",
    "QueryTimeoutError",
    "MethodNotAllowedError",
]
