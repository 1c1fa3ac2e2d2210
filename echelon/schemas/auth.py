"""Pydantic models for authentication API requests and responses."""

from pydantic import BaseModel, ConfigDict, Field

from echelon.employees.models import EmployeeResponse


class LoginRequest(BaseModel):
    """Credentials submitted at login."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(..., min_length=1, max_length=255, description="Work email address")
    password: str = Field(..., min_length=1, description="Account password")


class LoginResponse(BaseModel):
    """Session token and the authenticated employee's profile."""

    token: str = Field(..., description="Signed session token")
    token_type: str = Field(default="Bearer")
    expires_in: int = Field(..., description="Seconds until the token expires")
    employee: EmployeeResponse
    must_change_password: bool = Field(
        default=False,
        description="Client must prompt for a new password before continuing",
    )


class ChangePasswordRequest(BaseModel):
    """Request body for changing one's own password."""

    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1, max_length=72)


class PasswordResetResponse(BaseModel):
    """Result of an administrative password reset."""

    employee_id: str
    new_password: str = Field(..., description="Default credential to hand to the employee")
    message: str = "Password reset to default. The employee must change it at next login."


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    message: str
