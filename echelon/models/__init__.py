"""Models package for the employee directory."""

from echelon.models.base import Base
from echelon.models.employee import Employee

__all__ = [
    "Base",
    "Employee",
]
