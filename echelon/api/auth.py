"""API endpoints for login, session and password management."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from echelon.auth.middleware import get_current_actor
from echelon.database.database import get_db
from echelon.employees.models import EmployeeResponse
from echelon.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    PasswordResetResponse,
)
from echelon.services.auth_service import AuthService
from echelon.services.employee_service import EmployeeService
from echelon.utils.auth import Actor


def get_auth_service(
    session: Annotated[Session, Depends(get_db)],
) -> AuthService:
    """Get auth service instance."""
    return AuthService(session)


def get_employee_service(
    session: Annotated[Session, Depends(get_db)],
) -> EmployeeService:
    """Get employee service instance."""
    return EmployeeService(session)


auth_router = APIRouter(prefix="/auth", tags=["Authentication"])


@auth_router.post(
    "/login",
    response_model=LoginResponse,
    summary="Login",
    description="Exchange email and password for a session token.",
)
async def login(
    data: LoginRequest,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
    employee_service: Annotated[EmployeeService, Depends(get_employee_service)],
) -> LoginResponse:
    """
    Authenticate an employee.

    Unknown accounts, inactive accounts and wrong passwords all return the
    same 401 response.
    """
    session = auth_service.authenticate(data.email, data.password)
    return LoginResponse(
        token=session.token.access_token,
        token_type=session.token.token_type,
        expires_in=session.token.expires_in,
        employee=employee_service.get_me(session.actor),
        must_change_password=session.employee.must_change_password,
    )


@auth_router.get(
    "/me",
    response_model=EmployeeResponse,
    summary="Current Employee",
)
async def get_me(
    employee_service: Annotated[EmployeeService, Depends(get_employee_service)],
    actor: Annotated[Actor, Depends(get_current_actor)],
) -> EmployeeResponse:
    """Get the authenticated employee's own record."""
    return employee_service.get_me(actor)


@auth_router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Logout",
)
async def logout(
    actor: Annotated[Actor, Depends(get_current_actor)],
) -> MessageResponse:
    """Sessions are stateless; the client discards its token."""
    return MessageResponse(message="Logged out successfully")


@auth_router.post(
    "/change-password",
    response_model=MessageResponse,
    summary="Change Password",
)
async def change_password(
    data: ChangePasswordRequest,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
    actor: Annotated[Actor, Depends(get_current_actor)],
) -> MessageResponse:
    """Change the caller's password."""
    auth_service.change_password(actor, data.current_password, data.new_password)
    return MessageResponse(message="Password changed successfully")


@auth_router.post(
    "/reset-password/{employee_id}",
    response_model=PasswordResetResponse,
    summary="Reset Password",
    description="Reset an employee's password to the default. Admin only.",
)
async def reset_password(
    employee_id: str,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
    actor: Annotated[Actor, Depends(get_current_actor)],
) -> PasswordResetResponse:
    """Reset a password and return the new default credential."""
    new_password = auth_service.reset_password(actor, employee_id)
    return PasswordResetResponse(employee_id=employee_id, new_password=new_password)
