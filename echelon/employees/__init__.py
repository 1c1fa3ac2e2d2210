"""Employees package for the employee directory."""

from echelon.employees.models import (
    ActiveStatusRequest,
    EmployeeCreateRequest,
    EmployeeResponse,
    EmployeeSummary,
    EmployeeUpdateRequest,
    HierarchyNode,
    ManagerAssignmentRequest,
)

__all__ = [
    "ActiveStatusRequest",
    "EmployeeCreateRequest",
    "EmployeeResponse",
    "EmployeeSummary",
    "EmployeeUpdateRequest",
    "HierarchyNode",
    "ManagerAssignmentRequest",
]
