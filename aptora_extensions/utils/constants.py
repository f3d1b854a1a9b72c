# aptora_extensions/utils/constants.py
"""Constants for aptora-extensions."""

from enum import Enum


class ErrorCode(str, Enum):
    """Error code enumeration."""

    DB_CONNECTION_FAILED = "ERR_001"
    DB_NOT_READ_ONLY = "ERR_002"
    DB_TARGET_MISMATCH = "ERR_003"
    SCHEMA_INIT_FAILED = "ERR_004"
    DB_UNAVAILABLE = "ERR_005"
    INVALID_REQUEST = "ERR_006"
    SQL_EXECUTION_FAILED = "ERR_007"
    SQL_SECURITY_CHECK_FAILED = "ERR_008"
    QUERY_TIMEOUT = "ERR_009"
    NOT_FOUND = "ERR_010"
    METHOD_NOT_ALLOWED = "ERR_011"


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.DB_CONNECTION_FAILED: "failed to connect to database",
    ErrorCode.DB_NOT_READ_ONLY: "read-only database connection is NOT read-only",
    ErrorCode.DB_TARGET_MISMATCH: "refusing to initialize schema on unexpected database",
    ErrorCode.SCHEMA_INIT_FAILED: "failed to initialize schema",
    ErrorCode.DB_UNAVAILABLE: "database not available",
    ErrorCode.INVALID_REQUEST: "invalid request",
    ErrorCode.SQL_EXECUTION_FAILED: "query failed",
    ErrorCode.SQL_SECURITY_CHECK_FAILED: "statement is not allowed on the read-only database",
    ErrorCode.QUERY_TIMEOUT: "query timed out",
    ErrorCode.NOT_FOUND: "API endpoint not found",
    ErrorCode.METHOD_NOT_ALLOWED: "method not allowed",
}

HTTP_STATUS: dict[ErrorCode, int] = {
    ErrorCode.DB_UNAVAILABLE: 503,
    ErrorCode.INVALID_REQUEST: 400,
    ErrorCode.SQL_EXECUTION_FAILED: 500,
    ErrorCode.SQL_SECURITY_CHECK_FAILED: 500,
    ErrorCode.QUERY_TIMEOUT: 504,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.METHOD_NOT_ALLOWED: 405,
}

# Largest invoice result the API will return in one response.
MAX_INVOICE_ROWS = 500

# Bookkeeping table written once per successful connection cycle.
HEALTH_CHECK_TABLE = "health_check"
