"""Create employees table.

Revision ID: 001
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the employees table with its hierarchy and uniqueness constraints."""

    op.create_table(
        "employees",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("employee_number", sa.String(20), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(50), nullable=False),
        sa.Column("surname", sa.String(50), nullable=False),
        sa.Column("birth_date", sa.Date, nullable=False),
        sa.Column("role", sa.String(100), nullable=False),
        sa.Column("salary", sa.Numeric(10, 2), nullable=False),
        sa.Column(
            "manager_id",
            sa.String(36),
            sa.ForeignKey("employees.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column(
            "permission_level",
            sa.String(20),
            nullable=False,
            server_default="employee",
        ),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column(
            "must_change_password",
            sa.Boolean,
            nullable=False,
            server_default=sa.text("true"),
        ),
        sa.Column(
            "is_active",
            sa.Boolean,
            nullable=False,
            server_default=sa.text("true"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(
            "manager_id IS NULL OR manager_id <> id",
            name="ck_employees_not_self_managed",
        ),
        sa.CheckConstraint("salary >= 0", name="ck_employees_salary_non_negative"),
        sa.CheckConstraint(
            "permission_level IN ('employee', 'manager', 'hr', 'admin')",
            name="ck_employees_permission_level",
        ),
    )

    op.create_index(
        "ix_employees_employee_number", "employees", ["employee_number"], unique=True
    )
    op.create_index("ix_employees_email", "employees", ["email"], unique=True)
    op.create_index("ix_employees_manager_id", "employees", ["manager_id"])
    op.create_index("ix_employees_permission_level", "employees", ["permission_level"])
    op.create_index("ix_employees_is_active", "employees", ["is_active"])
    op.create_index("idx_employees_name", "employees", ["first_name", "surname"])


def downgrade() -> None:
    """Drop the employees table."""

    op.drop_index("idx_employees_name", table_name="employees")
    op.drop_index("ix_employees_is_active", table_name="employees")
    op.drop_index("ix_employees_permission_level", table_name="employees")
    op.drop_index("ix_employees_manager_id", table_name="employees")
    op.drop_index("ix_employees_email", table_name="employees")
    op.drop_index("ix_employees_employee_number", table_name="employees")
    op.drop_table("employees")
