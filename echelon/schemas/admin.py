"""Pydantic models for administrative API requests and responses.

Statistics and exports always describe the whole directory, independent of
any listing filters the caller may have applied elsewhere.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from echelon.utils.auth import PermissionLevel


# =============================================================================
# Enums
# =============================================================================

class ExportFormat(str, Enum):
    """Supported export formats."""

    JSON = "json"
    CSV = "csv"


# =============================================================================
# Statistics
# =============================================================================

class RecentEmployee(BaseModel):
    """A recently created employee."""

    id: str
    employee_number: str
    first_name: str
    surname: str
    role: str
    created_at: Optional[datetime] = None


class StatisticsResponse(BaseModel):
    """Organization-wide employee statistics."""

    permission_breakdown: Dict[str, int] = Field(
        default_factory=dict,
        description="Employee count per permission level",
    )
    active_employees: int = 0
    inactive_employees: int = 0
    total_employees: int = 0
    recent_employees: List[RecentEmployee] = Field(default_factory=list)


# =============================================================================
# Bulk Permission Updates
# =============================================================================

class PermissionUpdate(BaseModel):
    """A single permission level change."""

    employee_id: str = Field(..., min_length=1)
    permission_level: PermissionLevel


class BulkPermissionUpdateRequest(BaseModel):
    """A batch of permission level changes, applied all-or-nothing."""

    updates: List[PermissionUpdate] = Field(..., min_length=1)

    @field_validator("updates")
    @classmethod
    def validate_unique_employees(cls, v: List[PermissionUpdate]) -> List[PermissionUpdate]:
        """Each employee may appear only once per batch."""
        seen = set()
        for update in v:
            if update.employee_id in seen:
                raise ValueError(f"Duplicate employee_id in updates: {update.employee_id}")
            seen.add(update.employee_id)
        return v


class BulkPermissionUpdateResponse(BaseModel):
    """Result of a bulk permission update."""

    updated_count: int
    message: str
