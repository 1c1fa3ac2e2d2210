"""API endpoints for the employee directory and reporting hierarchy."""

from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from echelon.auth.middleware import get_current_actor
from echelon.database.database import get_db
from echelon.employees.models import (
    EmployeeCreateRequest,
    EmployeeResponse,
    EmployeeUpdateRequest,
    HierarchyNode,
    ManagerAssignmentRequest,
)
from echelon.services.employee_service import EmployeeService
from echelon.utils.auth import Actor


# =============================================================================
# Response Models
# =============================================================================

class EmployeeResponseWrapper(BaseModel):
    """Response wrapper for a single employee."""

    data: EmployeeResponse
    message: Optional[str] = None


class EmployeeListResponse(BaseModel):
    """Response for the directory listing."""

    data: List[EmployeeResponse]
    total: int


class HierarchyResponse(BaseModel):
    """Response wrapper for the hierarchy tree."""

    data: List[HierarchyNode]


class DeleteResponse(BaseModel):
    """Acknowledgement of a deletion."""

    message: str


# =============================================================================
# Dependency Injection
# =============================================================================

def get_employee_service(
    session: Annotated[Session, Depends(get_db)],
) -> EmployeeService:
    """Get employee service instance."""
    return EmployeeService(session)


# =============================================================================
# Router Setup
# =============================================================================

employee_router = APIRouter(prefix="/employees", tags=["Employees"])


# =============================================================================
# Directory Endpoints
# =============================================================================

@employee_router.get(
    "/",
    response_model=EmployeeListResponse,
    summary="List Employees",
    description="List the employees visible to the caller, with search and sorting.",
)
async def list_employees(
    service: Annotated[EmployeeService, Depends(get_employee_service)],
    actor: Annotated[Actor, Depends(get_current_actor)],
    search: Annotated[Optional[str], Query(description="Name, number or role substring")] = None,
    role: Annotated[Optional[str], Query(description="Role substring")] = None,
    sort_by: Annotated[Optional[str], Query(description="Sort field")] = None,
    sort_order: Annotated[Optional[str], Query(description="asc or desc")] = None,
) -> EmployeeListResponse:
    """
    List employees.

    - Results are filtered to what the caller may see
    - Salary is only included where the caller may see it
    """
    employees = service.list_employees(
        actor,
        search=search,
        role=role,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return EmployeeListResponse(data=employees, total=len(employees))


@employee_router.get(
    "/hierarchy/tree",
    response_model=HierarchyResponse,
    summary="Get Hierarchy Tree",
    description="Reporting hierarchy over the employees visible to the caller.",
)
async def get_hierarchy_tree(
    service: Annotated[EmployeeService, Depends(get_employee_service)],
    actor: Annotated[Actor, Depends(get_current_actor)],
) -> HierarchyResponse:
    """
    Get the reporting forest.

    Each node says whether the caller may move it and whether the caller
    may place other employees under it.
    """
    return HierarchyResponse(data=service.get_hierarchy_tree(actor))


# =============================================================================
# Employee CRUD Endpoints
# =============================================================================

@employee_router.post(
    "/",
    response_model=EmployeeResponseWrapper,
    status_code=status.HTTP_201_CREATED,
    summary="Create Employee",
    description="Create a new employee. Admin and HR only.",
)
async def create_employee(
    data: EmployeeCreateRequest,
    service: Annotated[EmployeeService, Depends(get_employee_service)],
    actor: Annotated[Actor, Depends(get_current_actor)],
) -> EmployeeResponseWrapper:
    """
    Create a new employee.

    - Validates employee number and email uniqueness
    - Validates the manager reference
    - Assigns the default password and requires a change at first login

    Returns the employee with HTTP 201 on success.
    """
    employee = service.create_employee(actor, data)
    return EmployeeResponseWrapper(data=employee, message="Employee created successfully")


@employee_router.get(
    "/{employee_id}",
    response_model=EmployeeResponseWrapper,
    summary="Get Employee",
    description="Retrieve an employee by ID.",
)
async def get_employee(
    employee_id: str,
    service: Annotated[EmployeeService, Depends(get_employee_service)],
    actor: Annotated[Actor, Depends(get_current_actor)],
) -> EmployeeResponseWrapper:
    """
    Get an employee.

    - Returns 404 if the employee does not exist
    - Returns 403 if the caller may not see the employee
    """
    return EmployeeResponseWrapper(data=service.get_employee(actor, employee_id))


@employee_router.put(
    "/{employee_id}",
    response_model=EmployeeResponseWrapper,
    summary="Update Employee",
    description="Partially update an employee.",
)
async def update_employee(
    employee_id: str,
    data: EmployeeUpdateRequest,
    service: Annotated[EmployeeService, Depends(get_employee_service)],
    actor: Annotated[Actor, Depends(get_current_actor)],
) -> EmployeeResponseWrapper:
    """
    Update an employee.

    - Fields the caller may not edit are ignored
    - Returns 403 if HR tries to grant the admin level
    - Returns 409 for duplicates and hierarchy violations
    """
    employee = service.update_employee(actor, employee_id, data)
    return EmployeeResponseWrapper(data=employee, message="Employee updated successfully")


@employee_router.put(
    "/{employee_id}/manager",
    response_model=EmployeeResponseWrapper,
    summary="Reassign Manager",
    description="Move an employee under a new manager, or detach them.",
)
async def reassign_manager(
    employee_id: str,
    data: ManagerAssignmentRequest,
    service: Annotated[EmployeeService, Depends(get_employee_service)],
    actor: Annotated[Actor, Depends(get_current_actor)],
) -> EmployeeResponseWrapper:
    """
    Reassign an employee's manager.

    - Returns 409 with reason self_management, manager_not_found or
      cycle_detected when the move would break the hierarchy
    """
    employee = service.reassign_manager(actor, employee_id, data.manager_id)
    return EmployeeResponseWrapper(data=employee, message="Manager updated successfully")


@employee_router.delete(
    "/{employee_id}",
    response_model=DeleteResponse,
    summary="Delete Employee",
    description="Delete an employee without subordinates.",
)
async def delete_employee(
    employee_id: str,
    service: Annotated[EmployeeService, Depends(get_employee_service)],
    actor: Annotated[Actor, Depends(get_current_actor)],
) -> DeleteResponse:
    """
    Delete an employee.

    - Returns 409 with reason has_subordinates while anyone reports to them
    """
    service.delete_employee(actor, employee_id)
    return DeleteResponse(message="Employee deleted successfully")
