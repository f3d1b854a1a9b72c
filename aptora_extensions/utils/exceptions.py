# aptora_extensions/utils/exceptions.py
"""Exception classes for aptora-extensions."""

from aptora_extensions.utils.constants import ErrorCode, ERROR_MESSAGES, HTTP_STATUS


class AppError(Exception):
    """Base exception class for aptora-extensions."""

    def __init__(
        self,
        code: ErrorCode,
        message: str | None = None,
        details: dict | None = None
    ):
        self.code = code
        self.message = message or ERROR_MESSAGES.get(code, "unknown error")
        self.details = details or {}
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        """HTTP status used when this error reaches a client."""
        return HTTP_STATUS.get(self.code, 500)

    def to_dict(self) -> dict:
        """Convert the exception to the API's error body.

        Returns:
            A dictionary with the human-readable message under ``error``.
        """
        return {"error": self.message}


class DatabaseConnectionError(AppError):
    """Opening or pinging a database failed."""

    def __init__(self, message: str):
        super().__init__(
            code=ErrorCode.DB_CONNECTION_FAILED,
            message=message
        )


class ReadOnlyViolationError(AppError):
    """The read-only credential was able to write."""

    def __init__(self, database: str):
        super().__init__(
            code=ErrorCode.DB_NOT_READ_ONLY,
            message=(
                f"read-only verification failed: connection to {database} is NOT read-only "
                "(probe table creation succeeded)"
            ),
            details={"database": database}
        )


class TargetDatabaseMismatchError(AppError):
    """The read-write pool is connected to the wrong database."""

    def __init__(self, expected: str, actual: str):
        super().__init__(
            code=ErrorCode.DB_TARGET_MISMATCH,
            message=(
                f"refusing to initialize schema on unexpected database: "
                f"connected to {actual!r}, expected {expected!r}"
            ),
            details={"expected": expected, "actual": actual}
        )


class SchemaInitError(AppError):
    """Creating the bookkeeping table or writing the audit row failed."""

    def __init__(self, message: str):
        super().__init__(
            code=ErrorCode.SCHEMA_INIT_FAILED,
            message=message
        )


class DatabaseUnavailableError(AppError):
    """No verified pool is installed yet."""

    def __init__(self):
        super().__init__(code=ErrorCode.DB_UNAVAILABLE)


class InvalidRequestError(AppError):
    """Request parameters are missing or malformed."""

    def __init__(self, message: str):
        super().__init__(
            code=ErrorCode.INVALID_REQUEST,
            message=message
        )


class SQLSecurityError(AppError):
    """A statement failed the read-only guard."""

    def __init__(self, sql: str, reason: str):
        super().__init__(
            code=ErrorCode.SQL_SECURITY_CHECK_FAILED,
            message=f"SQL security check failed: {reason}",
            details={"sql": sql}
        )


class QueryExecutionError(AppError):
    """A read query failed."""

    def __init__(self, message: str):
        super().__init__(
            code=ErrorCode.SQL_EXECUTION_FAILED,
            message=message
        )


class QueryTimeoutError(AppError):
    """A read query exceeded its time budget."""

    def __init__(self, seconds: float):
        super().__init__(
            code=ErrorCode.QUERY_TIMEOUT,
            message=f"query timed out after {seconds:g}s"
        )


class MethodNotAllowedError(AppError):
    """The API path exists but not for this method."""

    def __init__(self, allowed: list[str]):
        super().__init__(
            code=ErrorCode.METHOD_NOT_ALLOWED,
            details={"allowed": allowed}
        )
