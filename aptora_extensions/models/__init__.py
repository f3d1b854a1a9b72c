"""Data models for aptora-extensions."""

from aptora_extensions.models.database import (
    EncryptMode,
    DatabaseTarget,
    DatabaseConfig,
    HealthStatus,
)
from aptora_extensions.models.records import (
    Employee,
    Invoice,
    EmployeesResponse,
    InvoicesResponse,
    HealthResponse,
)

__all__ = [
    "EncryptMode",
    "DatabaseTarget",
    "DatabaseConfig",
    "HealthStatus",
    "Employee",
    "Invoice",
    "EmployeesResponse",
    "InvoicesResponse",
    "HealthResponse",
]
