"""Pydantic schemas for API request/response validation."""

from echelon.schemas.admin import (
    BulkPermissionUpdateRequest,
    BulkPermissionUpdateResponse,
    ExportFormat,
    PermissionUpdate,
    RecentEmployee,
    StatisticsResponse,
)
from echelon.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    PasswordResetResponse,
)

__all__ = [
    # Admin schemas
    "BulkPermissionUpdateRequest",
    "BulkPermissionUpdateResponse",
    "ExportFormat",
    "PermissionUpdate",
    "RecentEmployee",
    "StatisticsResponse",
    # Auth schemas
    "ChangePasswordRequest",
    "LoginRequest",
    "LoginResponse",
    "MessageResponse",
    "PasswordResetResponse",
]
