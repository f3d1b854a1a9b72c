"""Service modules for aptora-extensions."""

from aptora_extensions.services.database import (
    create_pool,
    ping,
    current_database,
    close_pool,
    is_connection_error,
)
from aptora_extensions.services.verifier import (
    verify_read_only,
    verify_target_database,
)
from aptora_extensions.services.schema import initialize_schema
from aptora_extensions.services.manager import ConnectionManager
from aptora_extensions.services.sql_validator import SQLValidator
from aptora_extensions.services.queries import QueryService

__all__ = [
    # Database
    "create_pool",
    "ping",
    "current_database",
    "close_pool",
    "is_connection_error",
    # Verification
    "verify_read_only",
    "verify_target_database",
    # Schema
    "initialize_schema",
    # Connection manager
    "ConnectionManager",
    # Queries
    "SQLValidator",
    "QueryService",
]
