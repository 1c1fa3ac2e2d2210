"""Pydantic models for employee API operations with validation rules."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from echelon.utils.auth import PermissionLevel


# =============================================================================
# Response Models - Nested Objects
# =============================================================================

class EmployeeSummary(BaseModel):
    """
    Short employee reference for manager and subordinate links.

    Used to avoid circular dependencies in nested response objects.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    first_name: str
    surname: str
    role: str


# =============================================================================
# Response Models - Full Employee
# =============================================================================

class EmployeeResponse(BaseModel):
    """
    Employee data for API responses.

    Salary is None when the requesting actor may not see it. Manager and
    subordinate summaries only include records the actor can view.
    """

    model_config = ConfigDict(from_attributes=True)

    # Identification
    id: str
    employee_number: str
    email: str

    # Personal Information
    first_name: str
    surname: str
    birth_date: date

    # Employment Information
    role: str
    salary: Optional[Decimal] = None
    permission_level: PermissionLevel
    manager_id: Optional[str] = None

    # Nested relationships
    manager: Optional[EmployeeSummary] = None
    subordinates: List[EmployeeSummary] = Field(default_factory=list)

    # System fields
    is_active: bool = True
    must_change_password: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# =============================================================================
# Request Models
# =============================================================================

class EmployeeCreateRequest(BaseModel):
    """
    Request model for creating a new employee.

    The initial password is derived by the service, never submitted.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    employee_number: str = Field(
        ...,
        min_length=1,
        max_length=20,
        description="Unique employee number",
    )
    first_name: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Employee's first name",
    )
    surname: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Employee's surname",
    )
    email: EmailStr = Field(
        ...,
        description="Work email address",
    )
    birth_date: date = Field(
        ...,
        description="Date of birth",
    )
    salary: Decimal = Field(
        ...,
        max_digits=10,
        decimal_places=2,
        ge=Decimal("0"),
        description="Salary (10 digits, 2 decimal places)",
    )
    role: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Job title",
    )
    permission_level: PermissionLevel = Field(
        default=PermissionLevel.EMPLOYEE,
        description="Access level",
    )
    manager_id: Optional[str] = Field(
        default=None,
        description="ID of the employee's manager",
    )
    is_active: bool = Field(
        default=True,
        description="Whether the account is active",
    )

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Store emails lower-cased so uniqueness is case-insensitive."""
        return v.lower()

    @field_validator("birth_date")
    @classmethod
    def validate_birth_date_not_future(cls, v: date) -> date:
        """Ensure birth date is not in the future."""
        if v > date.today():
            raise ValueError("Birth date cannot be in the future")
        return v

    @field_validator("manager_id")
    @classmethod
    def blank_manager_is_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat an empty manager reference as no manager."""
        return v or None


class EmployeeUpdateRequest(BaseModel):
    """
    Request model for updating an employee.

    All fields are optional to support partial updates; only fields that
    were actually submitted are considered. Submitting ``manager_id: null``
    detaches the employee from their manager.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    first_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    surname: Optional[str] = Field(default=None, min_length=1, max_length=50)
    email: Optional[EmailStr] = Field(default=None)
    birth_date: Optional[date] = Field(default=None)
    salary: Optional[Decimal] = Field(
        default=None,
        max_digits=10,
        decimal_places=2,
        ge=Decimal("0"),
    )
    role: Optional[str] = Field(default=None, min_length=1, max_length=100)
    permission_level: Optional[PermissionLevel] = Field(default=None)
    manager_id: Optional[str] = Field(default=None)
    is_active: Optional[bool] = Field(default=None)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> Optional[str]:
        """Store emails lower-cased so uniqueness is case-insensitive."""
        return v.lower() if v is not None else v

    @field_validator("birth_date")
    @classmethod
    def validate_birth_date_not_future(cls, v: Optional[date]) -> Optional[date]:
        """Ensure birth date is not in the future."""
        if v is not None and v > date.today():
            raise ValueError("Birth date cannot be in the future")
        return v

    @field_validator("manager_id")
    @classmethod
    def blank_manager_is_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat an empty manager reference as no manager."""
        return v or None


class ManagerAssignmentRequest(BaseModel):
    """Request body for moving an employee under a new manager."""

    manager_id: Optional[str] = Field(
        default=None,
        description="New manager ID, or null to detach from the hierarchy",
    )

    @field_validator("manager_id")
    @classmethod
    def blank_manager_is_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat an empty manager reference as no manager."""
        return v or None


class ActiveStatusRequest(BaseModel):
    """Request body for activating or deactivating an employee."""

    is_active: bool


# =============================================================================
# Hierarchy
# =============================================================================

class HierarchyNode(BaseModel):
    """
    A node in the reporting hierarchy tree.

    ``can_reassign`` says whether the actor may move this employee under a
    different manager; ``can_receive_reports`` whether the actor may make
    other employees report to this one.
    """

    id: str
    employee_number: str
    first_name: str
    surname: str
    email: str
    role: str
    permission_level: PermissionLevel
    manager_id: Optional[str] = None
    salary: Optional[Decimal] = None
    is_active: bool = True
    can_reassign: bool = False
    can_receive_reports: bool = False
    children: List["HierarchyNode"] = Field(default_factory=list)


HierarchyNode.model_rebuild()
