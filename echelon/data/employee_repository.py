"""Employee repository for data access operations."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import Select, func, or_, select
from sqlalchemy.orm import Session

from echelon.models.employee import Employee


@dataclass
class SortParams:
    """Sort parameters."""

    field: str = "first_name"
    order: str = "asc"  # 'asc' or 'desc'


@dataclass
class SearchFilters:
    """Search filter parameters."""

    query: Optional[str] = None
    role: Optional[str] = None


class EmployeeRepository:
    """
    Repository for employee data access operations.

    Owns the employee records and the manager-link graph. All methods work
    inside the caller's session; committing is left to the session owner.
    """

    def __init__(self, session: Session):
        """Initialize repository with database session."""
        self.session = session

    # =========================================================================
    # Lookups
    # =========================================================================

    def find_by_id(self, employee_id: str) -> Optional[Employee]:
        """Get an employee by ID."""
        return self.session.get(Employee, employee_id)

    def find_by_ids(self, employee_ids: Sequence[str]) -> List[Employee]:
        """Get several employees by ID."""
        if not employee_ids:
            return []
        stmt = select(Employee).where(Employee.id.in_(list(employee_ids)))
        return list(self.session.execute(stmt).scalars().all())

    def find_by_email(self, email: str) -> Optional[Employee]:
        """Get an employee by email (case-insensitive)."""
        stmt = select(Employee).where(func.lower(Employee.email) == email.strip().lower())
        return self.session.execute(stmt).scalar_one_or_none()

    def find_by_manager_id(self, manager_id: str) -> List[Employee]:
        """Get direct reports of a manager."""
        stmt = (
            select(Employee)
            .where(Employee.manager_id == manager_id)
            .order_by(Employee.first_name, Employee.surname)
        )
        return list(self.session.execute(stmt).scalars().all())

    def find_all(
        self,
        filters: Optional[SearchFilters] = None,
        sort: Optional[SortParams] = None,
    ) -> List[Employee]:
        """
        Get employees matching the filters.

        Search is a case-insensitive substring match over first name,
        surname, employee number and role.
        """
        stmt = select(Employee)

        if filters is not None:
            stmt = self._apply_filters(stmt, filters)

        stmt = self._apply_sorting(stmt, sort or SortParams())

        return list(self.session.execute(stmt).scalars().all())

    def find_recent(self, limit: int = 5) -> List[Employee]:
        """Get the most recently created employees."""
        stmt = select(Employee).order_by(Employee.created_at.desc()).limit(limit)
        return list(self.session.execute(stmt).scalars().all())

    def exists(self, employee_id: str) -> bool:
        """Check if an employee exists."""
        stmt = select(Employee.id).where(Employee.id == employee_id)
        return self.session.execute(stmt).first() is not None

    def exists_by_employee_number(
        self,
        employee_number: str,
        exclude_id: Optional[str] = None,
    ) -> bool:
        """Check if an employee number is already taken."""
        stmt = select(Employee.id).where(Employee.employee_number == employee_number)
        if exclude_id is not None:
            stmt = stmt.where(Employee.id != exclude_id)
        return self.session.execute(stmt).first() is not None

    def exists_by_email(self, email: str, exclude_id: Optional[str] = None) -> bool:
        """Check if an email is already taken (case-insensitive)."""
        stmt = select(Employee.id).where(func.lower(Employee.email) == email.strip().lower())
        if exclude_id is not None:
            stmt = stmt.where(Employee.id != exclude_id)
        return self.session.execute(stmt).first() is not None

    # =========================================================================
    # Hierarchy
    # =========================================================================

    def get_manager_graph(self, lock: bool = False) -> Dict[str, Optional[str]]:
        """
        Load the employee id -> manager id graph.

        With lock=True the rows are selected FOR UPDATE so concurrent
        hierarchy edits serialize on the ancestor walk (no-op on SQLite).
        """
        stmt = self.manager_graph_query(lock=lock)
        return {row.id: row.manager_id for row in self.session.execute(stmt)}

    @staticmethod
    def manager_graph_query(lock: bool = False) -> Select:
        """SELECT id, manager_id over every employee, optionally FOR UPDATE."""
        stmt = select(Employee.id, Employee.manager_id)
        if lock:
            stmt = stmt.with_for_update()
        return stmt

    # =========================================================================
    # Aggregates
    # =========================================================================

    def count_all(self) -> int:
        """Count all employees."""
        stmt = select(func.count()).select_from(Employee)
        return self.session.execute(stmt).scalar() or 0

    def count_by_permission_level(self) -> Dict[str, int]:
        """Count employees per permission level across the whole directory."""
        stmt = (
            select(Employee.permission_level, func.count(Employee.id))
            .group_by(Employee.permission_level)
        )
        return {level: count for level, count in self.session.execute(stmt).all()}

    def count_by_active(self) -> Dict[bool, int]:
        """Count active and inactive employees."""
        stmt = select(Employee.is_active, func.count(Employee.id)).group_by(Employee.is_active)
        counts = {True: 0, False: 0}
        for is_active, count in self.session.execute(stmt).all():
            counts[bool(is_active)] = count
        return counts

    # =========================================================================
    # Writes
    # =========================================================================

    def create(self, employee: Employee) -> Employee:
        """Add a new employee and flush so constraints are checked."""
        self.session.add(employee)
        self.session.flush()
        return employee

    def update(self, employee: Employee, values: Dict[str, Any]) -> Employee:
        """Apply values to an employee and flush."""
        for key, value in values.items():
            setattr(employee, key, value)
        self.session.flush()
        return employee

    def delete(self, employee: Employee) -> None:
        """Remove an employee."""
        self.session.delete(employee)
        self.session.flush()

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def _apply_filters(self, stmt, filters: SearchFilters):
        """Apply search filters to query."""
        if filters.query:
            pattern = f"%{filters.query.strip().lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(Employee.first_name).like(pattern),
                    func.lower(Employee.surname).like(pattern),
                    func.lower(Employee.employee_number).like(pattern),
                    func.lower(Employee.role).like(pattern),
                )
            )

        if filters.role:
            stmt = stmt.where(func.lower(Employee.role).like(f"%{filters.role.strip().lower()}%"))

        return stmt

    def _apply_sorting(self, stmt, sort: SortParams):
        """Apply sorting to query."""
        # Map field names to columns
        sort_columns = {
            "first_name": Employee.first_name,
            "surname": Employee.surname,
            "employee_number": Employee.employee_number,
            "email": Employee.email,
            "role": Employee.role,
            "permission_level": Employee.permission_level,
            "created_at": Employee.created_at,
        }

        column = sort_columns.get(sort.field, Employee.first_name)

        if sort.order.lower() == "desc":
            column = column.desc()
        else:
            column = column.asc()

        # Stable tiebreaker
        return stmt.order_by(column, Employee.id)
