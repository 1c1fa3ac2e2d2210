"""SQLAlchemy Employee model for database operations."""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from echelon.models.base import Base


PERMISSION_LEVELS = ("employee", "manager", "hr", "admin")


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Employee(Base):
    """
    Employee directory record.

    The manager link is a self-reference; subordinates are queried on demand
    and never stored. Manager links must always form a forest.
    """

    __tablename__ = "employees"

    # Primary Key
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)

    # Unique Identifiers
    employee_number: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)

    # Personal Information
    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    surname: Mapped[str] = mapped_column(String(50), nullable=False)
    birth_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Employment Information
    role: Mapped[str] = mapped_column(String(100), nullable=False)
    salary: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    manager_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("employees.id", ondelete="RESTRICT"), nullable=True, index=True
    )

    # Access Control
    permission_level: Mapped[str] = mapped_column(
        String(20), nullable=False, default="employee", index=True
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    must_change_password: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # System Fields
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
    )

    __table_args__ = (
        CheckConstraint("manager_id IS NULL OR manager_id <> id", name="ck_employees_not_self_managed"),
        CheckConstraint("salary >= 0", name="ck_employees_salary_non_negative"),
        CheckConstraint(
            f"permission_level IN ({', '.join(repr(level) for level in PERMISSION_LEVELS)})",
            name="ck_employees_permission_level",
        ),
        Index("idx_employees_name", "first_name", "surname"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.surname}"

    def __repr__(self) -> str:
        return (
            f"<Employee("
            f"id={self.id}, "
            f"employee_number={self.employee_number}, "
            f"name={self.first_name} {self.surname}"
            f")>"
        )
