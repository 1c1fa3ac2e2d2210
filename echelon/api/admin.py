"""Administrative API endpoints: statistics, exports and bulk changes."""

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from echelon.auth.middleware import require_admin
from echelon.database.database import get_db
from echelon.employees.models import ActiveStatusRequest, EmployeeResponse
from echelon.schemas.admin import (
    BulkPermissionUpdateRequest,
    BulkPermissionUpdateResponse,
    StatisticsResponse,
)
from echelon.services.employee_service import EmployeeService
from echelon.utils.auth import Actor


def get_employee_service(
    session: Annotated[Session, Depends(get_db)],
) -> EmployeeService:
    """Get employee service instance."""
    return EmployeeService(session)


admin_router = APIRouter(prefix="/admin", tags=["Administration"])


@admin_router.get(
    "/stats",
    response_model=StatisticsResponse,
    summary="Directory Statistics",
    description="Counts over the whole directory, independent of any listing filters.",
)
async def get_statistics(
    service: Annotated[EmployeeService, Depends(get_employee_service)],
    actor: Annotated[Actor, Depends(require_admin)],
) -> StatisticsResponse:
    """Get organization-wide statistics."""
    return service.get_statistics(actor)


@admin_router.put(
    "/bulk-permissions",
    response_model=BulkPermissionUpdateResponse,
    summary="Bulk Permission Update",
)
async def bulk_update_permissions(
    data: BulkPermissionUpdateRequest,
    service: Annotated[EmployeeService, Depends(get_employee_service)],
    actor: Annotated[Actor, Depends(require_admin)],
) -> BulkPermissionUpdateResponse:
    """Apply several permission level changes; none apply if any employee is missing."""
    count = service.bulk_update_permissions(actor, data.updates)
    return BulkPermissionUpdateResponse(
        updated_count=count,
        message="Permissions updated successfully",
    )


@admin_router.put(
    "/employees/{employee_id}/active",
    response_model=EmployeeResponse,
    summary="Set Active Status",
)
async def set_active_status(
    employee_id: str,
    data: ActiveStatusRequest,
    service: Annotated[EmployeeService, Depends(get_employee_service)],
    actor: Annotated[Actor, Depends(require_admin)],
) -> EmployeeResponse:
    """Activate or deactivate an employee account."""
    return service.toggle_active(actor, employee_id, data.is_active)


@admin_router.get(
    "/export/{export_format}",
    summary="Export Employees",
    description="Export the whole directory as json or csv.",
)
async def export_employees(
    export_format: str,
    service: Annotated[EmployeeService, Depends(get_employee_service)],
    actor: Annotated[Actor, Depends(require_admin)],
) -> Response:
    """Download the directory."""
    result = service.export_employees(actor, export_format)
    return Response(
        content=result.content,
        media_type=result.media_type,
        headers={"Content-Disposition": f"attachment; filename={result.filename}"},
    )
