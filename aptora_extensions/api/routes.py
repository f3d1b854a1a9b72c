"""API route definitions."""

from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.routing import Match

from aptora_extensions.models.records import (
    EmployeesResponse,
    HealthResponse,
    InvoicesResponse,
)
from aptora_extensions.services.manager import ConnectionManager
from aptora_extensions.services.queries import (
    QueryService,
    parse_date,
    parse_employee_id,
)
from aptora_extensions.utils.constants import ErrorCode
from aptora_extensions.utils.exceptions import AppError, MethodNotAllowedError

router = APIRouter()
api_router = APIRouter(prefix="/api")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _manager_dependency(request: Request) -> ConnectionManager:
    """Retrieve the shared connection manager from app state."""
    return request.app.state.manager


def _queries_dependency(request: Request) -> QueryService:
    """Retrieve the shared query service from app state."""
    return request.app.state.queries


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------


@router.get("/health", response_model=HealthResponse, response_model_exclude_none=True)
async def health_check(manager: ConnectionManager = Depends(_manager_dependency)):
    """Report whether both databases are connected and verified."""
    health = manager.health()
    if not health.connected:
        return JSONResponse(
            status_code=503,
            content=HealthResponse(status="unhealthy", error=health.error).model_dump(),
        )
    return HealthResponse(status="healthy")


# ---------------------------------------------------------------------------
# Read endpoints
# ---------------------------------------------------------------------------


@api_router.get("/employees", response_model=EmployeesResponse)
async def list_employees(queries: QueryService = Depends(_queries_dependency)):
    """Active employees, for the invoice filter."""
    return EmployeesResponse(employees=await queries.list_employees())


@api_router.get("/invoices", response_model=InvoicesResponse)
async def list_invoices(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    employee_id: Optional[str] = None,
    queries: QueryService = Depends(_queries_dependency),
):
    """Invoices between two dates, optionally for one sales rep.

    Query parameters are parsed by hand so that malformed values produce
    the API's own error body rather than a validation report.
    """
    start = parse_date(start_date)
    end = parse_date(end_date)
    rep = parse_employee_id(employee_id)
    return InvoicesResponse(invoices=await queries.list_invoices(start, end, rep))


@api_router.api_route(
    "/{path:path}",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"],
    include_in_schema=False,
)
async def api_not_found(path: str, request: Request):
    """Unmatched API routes are JSON errors, never the SPA page.

    A path served by another API route under a different method is a 405;
    anything else is a 404.
    """
    allowed = _allowed_methods(request)
    if allowed:
        raise MethodNotAllowedError(allowed)
    raise AppError(ErrorCode.NOT_FOUND)


def _allowed_methods(request: Request) -> list[str]:
    methods: set[str] = set()
    for route in api_router.routes:
        if getattr(route, "endpoint", None) is api_not_found:
            continue
        match, _ = route.matches(request.scope)
        if match is not Match.NONE:
            methods |= route.methods
    return sorted(methods)
