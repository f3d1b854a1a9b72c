# aptora_extensions/models/records.py
"""Response models for the read endpoints."""

from typing import Literal, Optional

from pydantic import BaseModel


class Employee(BaseModel):
    """Active employee."""

    id: int
    name: str


class Invoice(BaseModel):
    """Invoice row joined with its sales rep."""

    id: int
    date: str
    employee_id: int
    employee_name: str = ""
    total: float


class EmployeesResponse(BaseModel):
    """Body of ``GET /api/employees``."""

    employees: list[Employee]


class InvoicesResponse(BaseModel):
    """Body of ``GET /api/invoices``."""

    invoices: list[Invoice]


class HealthResponse(BaseModel):
    """Body of ``GET /health``."""

    status: Literal["healthy", "unhealthy"]
    error: Optional[str] = None
