"""Authentication service: credentials, session tokens and password lifecycle."""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from echelon.auth.jwt_manager import IssuedToken, JWTManager, get_jwt_manager
from echelon.auth.password import PasswordHasher, default_password
from echelon.data.employee_repository import EmployeeRepository
from echelon.models.employee import Employee
from echelon.services import permission_service
from echelon.utils.auth import Actor
from echelon.utils.errors import (
    AuthenticationError,
    PermissionDeniedError,
    create_field_error,
    create_not_found_error,
    create_validation_error,
)

logger = logging.getLogger(__name__)


@dataclass
class AuthenticatedSession:
    """A freshly issued session for a verified employee."""

    token: IssuedToken
    actor: Actor
    employee: Employee


class AuthService:
    """
    Authenticates employees and manages their credentials.

    Failure messages are deliberately generic so that callers cannot tell
    unknown accounts, inactive accounts and wrong passwords apart.
    """

    def __init__(
        self,
        session: Session,
        hasher: Optional[PasswordHasher] = None,
        jwt_manager: Optional[JWTManager] = None,
    ):
        self.session = session
        self.repository = EmployeeRepository(session)
        self.hasher = hasher or PasswordHasher()
        self.jwt_manager = jwt_manager or get_jwt_manager()

    def authenticate(self, email: str, password: str) -> AuthenticatedSession:
        """Verify credentials and issue a session token."""
        employee = self.repository.find_by_email(email)

        if employee is None or not employee.is_active:
            logger.warning("Login rejected: unknown or inactive account")
            raise AuthenticationError()

        if not self.hasher.verify(password, employee.password_hash):
            logger.warning(f"Login rejected for employee {employee.id}: bad password")
            raise AuthenticationError()

        actor = Actor.from_employee(employee)
        token = self.jwt_manager.issue(actor.to_claims())

        logger.info(f"Employee {employee.id} logged in")
        return AuthenticatedSession(token=token, actor=actor, employee=employee)

    def get_actor_from_token(self, token: str) -> Actor:
        """
        Resolve a bearer token into an actor.

        The actor is rebuilt from the current record, so level changes and
        deactivation take effect without waiting for the token to expire.
        """
        result = self.jwt_manager.verify(token)
        if not result.is_valid:
            logger.info(f"Token rejected: {result.error_code}")
            raise AuthenticationError()

        employee = self.repository.find_by_id(result.payload.sub)
        if employee is None or not employee.is_active:
            raise AuthenticationError()

        return Actor.from_employee(employee)

    def change_password(self, actor: Actor, current_password: str, new_password: str) -> None:
        """Change the actor's own password and clear the must-change flag."""
        employee = self.repository.find_by_id(actor.id)
        if employee is None:
            raise AuthenticationError()

        if not self.hasher.verify(current_password, employee.password_hash):
            raise create_validation_error([
                create_field_error(
                    "current_password",
                    "Current password is incorrect",
                    code="incorrect",
                )
            ])

        problems = self.hasher.validate_new_password(new_password, current_password)
        if problems:
            raise create_validation_error([
                create_field_error("new_password", problem) for problem in problems
            ])

        self.repository.update(employee, {
            "password_hash": self.hasher.hash(new_password),
            "must_change_password": False,
        })
        logger.info(f"Employee {employee.id} changed their password")

    def reset_password(self, actor: Actor, employee_id: str) -> str:
        """
        Reset an employee's password to the default credential.

        Returns the new plaintext password so it can be handed over; the
        employee must change it at next login.
        """
        if not permission_service.can_reset_password(actor):
            logger.warning(f"Actor {actor.id} denied password reset for {employee_id}")
            raise PermissionDeniedError("Only administrators can reset passwords")

        employee = self.repository.find_by_id(employee_id)
        if employee is None:
            raise create_not_found_error("Employee", employee_id)

        new_password = default_password(employee.first_name, employee.employee_number)
        self.repository.update(employee, {
            "password_hash": self.hasher.hash(new_password),
            "must_change_password": True,
        })

        logger.info(f"Actor {actor.id} reset the password of employee {employee.id}")
        return new_password
