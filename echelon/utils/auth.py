"""Permission levels and the authenticated actor snapshot."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class PermissionLevel(str, Enum):
    """Fixed permission levels, lowest first."""

    EMPLOYEE = "employee"
    MANAGER = "manager"
    HR = "hr"
    ADMIN = "admin"


# Levels that see and edit the whole directory
PRIVILEGED_LEVELS = frozenset({PermissionLevel.ADMIN, PermissionLevel.HR})

# Levels a manager can always see, regardless of reporting line
MANAGER_LEVELS = frozenset({PermissionLevel.ADMIN, PermissionLevel.HR, PermissionLevel.MANAGER})


def parse_permission_level(value: Any) -> PermissionLevel:
    """Coerce a stored or submitted value into a PermissionLevel."""
    if isinstance(value, PermissionLevel):
        return value
    return PermissionLevel(str(value))


@dataclass(frozen=True)
class Actor:
    """
    The authenticated employee performing an operation.

    Built from a verified session token and the employee's current record,
    then passed explicitly into every service call.
    """

    id: str
    permission_level: PermissionLevel
    manager_id: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def from_employee(cls, employee: Any) -> "Actor":
        """Build an actor snapshot from an employee record."""
        return cls(
            id=employee.id,
            permission_level=parse_permission_level(employee.permission_level),
            manager_id=employee.manager_id,
            email=employee.email,
            name=f"{employee.first_name} {employee.surname}",
        )

    @property
    def is_admin(self) -> bool:
        return self.permission_level == PermissionLevel.ADMIN

    @property
    def is_privileged(self) -> bool:
        """Admin and HR see the whole directory."""
        return self.permission_level in PRIVILEGED_LEVELS

    def has_level(self, *levels: PermissionLevel) -> bool:
        """Check if the actor holds one of the given levels."""
        return self.permission_level in levels

    def to_claims(self) -> Dict[str, Any]:
        """Token claims describing this actor."""
        return {
            "sub": self.id,
            "permission_level": self.permission_level.value,
            "manager_id": self.manager_id,
            "email": self.email,
            "name": self.name,
        }
