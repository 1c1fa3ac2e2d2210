"""Employee service for directory business logic and database operations."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import TypeAdapter
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from echelon.auth.password import PasswordHasher, default_password
from echelon.config.settings import get_settings
from echelon.data.employee_repository import (
    EmployeeRepository,
    SearchFilters,
    SortParams,
)
from echelon.employees.models import (
    EmployeeCreateRequest,
    EmployeeResponse,
    EmployeeSummary,
    EmployeeUpdateRequest,
    HierarchyNode,
)
from echelon.models.employee import Employee
from echelon.schemas.admin import (
    ExportFormat,
    PermissionUpdate,
    RecentEmployee,
    StatisticsResponse,
)
from echelon.services import hierarchy_validator, permission_service
from echelon.utils.auth import Actor, PermissionLevel
from echelon.utils.csv_export import generate_csv_content
from echelon.utils.errors import (
    ConflictError,
    ConflictReason,
    FieldError,
    InternalError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
    create_duplicate_error,
    create_field_error,
    create_not_found_error,
    create_validation_error,
)

logger = logging.getLogger(__name__)


# Columns that may be submitted as null on update
NULLABLE_FIELDS = frozenset({"manager_id"})

EXPORT_CSV_FIELDS = [
    "employee_number",
    "first_name",
    "surname",
    "email",
    "role",
    "permission_level",
    "manager_name",
]

EXPORT_CSV_HEADERS = {
    "employee_number": "Employee Number",
    "first_name": "First Name",
    "surname": "Surname",
    "email": "Email",
    "role": "Role",
    "permission_level": "Permission Level",
    "manager_name": "Manager",
}


@dataclass
class ExportResult:
    """Rendered export payload."""

    content: bytes
    media_type: str
    filename: str


class EmployeeService:
    """
    Service layer for the employee directory.

    Every operation takes the authenticated actor explicitly. Mutations run
    the permission checks, then the hierarchy checks, and only then write.
    Fields outside the actor's edit mask are dropped, not rejected.
    """

    def __init__(self, session: Session, hasher: Optional[PasswordHasher] = None):
        """Initialize service with database session."""
        self.session = session
        self.repository = EmployeeRepository(session)
        self.hasher = hasher or PasswordHasher()
        self.settings = get_settings()

    # =========================================================================
    # Read Operations
    # =========================================================================

    def list_employees(
        self,
        actor: Actor,
        search: Optional[str] = None,
        role: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
    ) -> List[EmployeeResponse]:
        """
        List the employees the actor may see.

        Search matches first name, surname, employee number and role;
        the role filter is a case-insensitive substring match.
        """
        sort = self._validate_sort(sort_by, sort_order)
        filters = SearchFilters(query=search or None, role=role or None)

        employees = self.repository.find_all(filters=filters, sort=sort)
        visible = permission_service.visible_set(actor, employees)

        by_id, reports_of = self._directory_index()
        return [self._build_response(actor, e, by_id, reports_of) for e in visible]

    def get_employee(self, actor: Actor, employee_id: str) -> EmployeeResponse:
        """Get a single employee the actor may see."""
        employee = self._get_viewable(actor, employee_id)
        return self._build_response(actor, employee)

    def get_me(self, actor: Actor) -> EmployeeResponse:
        """Get the actor's own record."""
        employee = self.repository.find_by_id(actor.id)
        if employee is None:
            raise create_not_found_error("Employee", actor.id)
        return self._build_response(actor, employee)

    def get_hierarchy_tree(self, actor: Actor) -> List[HierarchyNode]:
        """
        Build the reporting forest over the records the actor may see.

        Employees whose manager is not visible to the actor become roots.
        """
        visible = permission_service.visible_set(actor, self.repository.find_all())
        roots = hierarchy_validator.build_tree(visible)
        return [self._build_node(actor, root) for root in roots]

    # =========================================================================
    # Create Operations
    # =========================================================================

    def create_employee(self, actor: Actor, data: EmployeeCreateRequest) -> EmployeeResponse:
        """
        Create a new employee.

        The account starts with the default credential and must change it
        at first login.
        """
        if not permission_service.can_create(actor):
            logger.warning(f"Actor {actor.id} denied employee creation")
            raise PermissionDeniedError("Insufficient permissions to create employees")

        mask = permission_service.field_edit_mask(actor, None, is_create=True)
        values = self._masked_values(data.model_dump(), mask)

        level = values.get("permission_level", PermissionLevel.EMPLOYEE)
        if level != PermissionLevel.EMPLOYEE:
            permission_service.check_permission_level_assignment(actor, None, level)
        values["permission_level"] = PermissionLevel(level).value

        self._validate_employee_number_unique(values["employee_number"])
        self._validate_email_unique(values["email"])

        if values.get("manager_id"):
            self._ensure_valid_manager(None, values["manager_id"])

        initial_password = default_password(values["first_name"], values["employee_number"])
        employee = Employee(
            **values,
            password_hash=self.hasher.hash(initial_password),
            must_change_password=True,
        )

        self._write(lambda: self.repository.create(employee))

        logger.info(
            f"Actor {actor.id} created employee {employee.id} "
            f"({employee.employee_number}, level={employee.permission_level})"
        )
        return self._build_response(actor, employee)

    # =========================================================================
    # Update Operations
    # =========================================================================

    def update_employee(
        self,
        actor: Actor,
        employee_id: str,
        data: EmployeeUpdateRequest,
    ) -> EmployeeResponse:
        """
        Apply a partial update.

        Only submitted fields are considered, and of those only the ones in
        the actor's edit mask are written.
        """
        employee = self._get_viewable(actor, employee_id)
        submitted = data.model_dump(exclude_unset=True)

        mask = permission_service.field_edit_mask(actor, employee)
        if not mask:
            logger.warning(f"Actor {actor.id} has no editable fields on {employee_id}")
            raise PermissionDeniedError("Insufficient permissions to edit this employee")

        values = self._masked_values(submitted, mask)
        self._reject_nulls(values)

        if "permission_level" in values:
            permission_service.check_permission_level_assignment(
                actor, employee, values["permission_level"]
            )
            values["permission_level"] = PermissionLevel(values["permission_level"]).value

        values = self._changed_values(employee, values)

        if "email" in values:
            self._validate_email_unique(values["email"], exclude_id=employee.id)

        if "manager_id" in values:
            self._ensure_valid_manager(employee.id, values["manager_id"])

        if values:
            self._write(lambda: self.repository.update(employee, values))
            logger.info(
                f"Actor {actor.id} updated employee {employee.id}: "
                f"{', '.join(sorted(values))}"
            )

        return self._build_response(actor, employee)

    def reassign_manager(
        self,
        actor: Actor,
        employee_id: str,
        new_manager_id: Optional[str],
    ) -> EmployeeResponse:
        """
        Move an employee under a new manager, or detach them with None.

        The actor must be allowed to pick the employee up and to place them
        under the target manager.
        """
        employee = self._get_viewable(actor, employee_id)

        if not permission_service.can_initiate_reassign(actor, employee):
            logger.warning(f"Actor {actor.id} denied reassigning {employee_id}")
            raise PermissionDeniedError("Insufficient permissions to reassign this employee")

        if new_manager_id:
            target_manager = self.repository.find_by_id(new_manager_id)
            if target_manager is not None and not permission_service.can_receive_reassign(
                actor, target_manager
            ):
                logger.warning(
                    f"Actor {actor.id} denied assigning reports to {new_manager_id}"
                )
                raise PermissionDeniedError(
                    "Insufficient permissions to assign reports to this employee"
                )

        self._ensure_valid_manager(employee.id, new_manager_id)

        if employee.manager_id != (new_manager_id or None):
            previous = employee.manager_id
            self._write(
                lambda: self.repository.update(employee, {"manager_id": new_manager_id or None})
            )
            logger.info(
                f"Actor {actor.id} moved employee {employee.id} "
                f"from manager {previous} to {employee.manager_id}"
            )

        return self._build_response(actor, employee)

    def toggle_active(self, actor: Actor, employee_id: str, is_active: bool) -> EmployeeResponse:
        """Activate or deactivate an employee account."""
        if not permission_service.can_toggle_active(actor):
            raise PermissionDeniedError("Only administrators can change account status")

        employee = self.repository.find_by_id(employee_id)
        if employee is None:
            raise create_not_found_error("Employee", employee_id)

        if employee.is_active != is_active:
            self._write(lambda: self.repository.update(employee, {"is_active": is_active}))
            logger.info(
                f"Actor {actor.id} set employee {employee.id} active={is_active}"
            )

        return self._build_response(actor, employee)

    # =========================================================================
    # Delete Operations
    # =========================================================================

    def delete_employee(self, actor: Actor, employee_id: str) -> None:
        """Delete an employee with no subordinates."""
        employee = self._get_viewable(actor, employee_id)

        if not permission_service.can_delete(actor, employee):
            logger.warning(f"Actor {actor.id} denied deleting {employee_id}")
            raise PermissionDeniedError("Insufficient permissions to delete this employee")

        graph = self.repository.get_manager_graph(lock=True)
        check = hierarchy_validator.validate_deletion(employee.id, graph)
        if not check.is_valid:
            logger.warning(
                f"Delete of {employee_id} rejected: {check.violation.value}"
            )
            check.raise_for_violation()

        self._write(lambda: self.repository.delete(employee))
        logger.info(f"Actor {actor.id} deleted employee {employee_id}")

    # =========================================================================
    # Administration
    # =========================================================================

    def get_statistics(self, actor: Actor) -> StatisticsResponse:
        """
        Organization-wide statistics.

        Always computed from the whole store, never from a filtered listing.
        """
        if not permission_service.can_view_statistics(actor):
            raise PermissionDeniedError("Only administrators can view statistics")

        breakdown = {level.value: 0 for level in PermissionLevel}
        breakdown.update(self.repository.count_by_permission_level())

        active_counts = self.repository.count_by_active()
        recent = self.repository.find_recent(self.settings.search.recent_employees_limit)

        return StatisticsResponse(
            permission_breakdown=breakdown,
            active_employees=active_counts[True],
            inactive_employees=active_counts[False],
            total_employees=self.repository.count_all(),
            recent_employees=[
                RecentEmployee(
                    id=e.id,
                    employee_number=e.employee_number,
                    first_name=e.first_name,
                    surname=e.surname,
                    role=e.role,
                    created_at=e.created_at,
                )
                for e in recent
            ],
        )

    def export_employees(self, actor: Actor, export_format: str) -> ExportResult:
        """Export the whole directory as JSON or CSV."""
        if not permission_service.can_export(actor):
            raise PermissionDeniedError("Only administrators can export employee data")

        try:
            fmt = ExportFormat(str(export_format).lower())
        except ValueError:
            raise ValidationError(
                message="Unsupported export format",
                field_errors=[
                    create_field_error("format", "Format must be one of: json, csv")
                ],
            )

        by_id, reports_of = self._directory_index()
        employees = sorted(by_id.values(), key=lambda e: (e.employee_number, e.id))

        if fmt == ExportFormat.JSON:
            rows = [self._build_response(actor, e, by_id, reports_of) for e in employees]
            content = TypeAdapter(List[EmployeeResponse]).dump_json(rows)
            return ExportResult(content, "application/json", "employees.json")

        rows = []
        for e in employees:
            manager = by_id.get(e.manager_id) if e.manager_id else None
            rows.append({
                "employee_number": e.employee_number,
                "first_name": e.first_name,
                "surname": e.surname,
                "email": e.email,
                "role": e.role,
                "permission_level": e.permission_level,
                "manager_name": manager.full_name if manager else "No Manager",
            })

        content = generate_csv_content(rows, EXPORT_CSV_FIELDS, headers=EXPORT_CSV_HEADERS)
        logger.info(f"Actor {actor.id} exported {len(rows)} employees as csv")
        return ExportResult(content, "text/csv", "employees.csv")

    def bulk_update_permissions(self, actor: Actor, updates: List[PermissionUpdate]) -> int:
        """
        Apply several permission level changes at once.

        Either every listed employee is updated or none is.
        """
        if not permission_service.can_bulk_update_permissions(actor):
            raise PermissionDeniedError("Only administrators can bulk update permissions")

        ids = [update.employee_id for update in updates]
        found = {e.id: e for e in self.repository.find_by_ids(ids)}

        missing = [employee_id for employee_id in ids if employee_id not in found]
        if missing:
            raise NotFoundError(
                message="Employee not found",
                details={"resource_type": "Employee", "identifiers": missing},
            )

        def apply() -> None:
            for update in updates:
                self.repository.update(
                    found[update.employee_id],
                    {"permission_level": PermissionLevel(update.permission_level).value},
                )

        self._write(apply)
        logger.info(f"Actor {actor.id} bulk-updated permissions for {len(updates)} employees")
        return len(updates)

    # =========================================================================
    # Validation Helpers
    # =========================================================================

    def _get_viewable(self, actor: Actor, employee_id: str) -> Employee:
        """Load a record, hiding everything about it from actors who cannot view it."""
        employee = self.repository.find_by_id(employee_id)
        if employee is None:
            raise create_not_found_error("Employee", employee_id)

        if not permission_service.can_view(actor, employee):
            logger.warning(f"Actor {actor.id} denied access to employee {employee_id}")
            raise PermissionDeniedError()

        return employee

    def _ensure_valid_manager(
        self,
        employee_id: Optional[str],
        proposed_manager_id: Optional[str],
    ) -> None:
        """
        Single hierarchy check used by create, update and reassignment.

        The manager graph is read under a row lock so that concurrent
        reassignments cannot jointly introduce a cycle.
        """
        graph = self.repository.get_manager_graph(lock=True)
        check = hierarchy_validator.validate_manager_assignment(
            employee_id, proposed_manager_id, graph
        )
        if not check.is_valid:
            logger.warning(
                f"Manager assignment {employee_id} -> {proposed_manager_id} "
                f"rejected: {check.violation.value}"
            )
            check.raise_for_violation()

    def _validate_sort(self, sort_by: Optional[str], sort_order: Optional[str]) -> SortParams:
        search_settings = self.settings.search
        field = sort_by or search_settings.default_sort_field
        order = (sort_order or search_settings.default_sort_order).lower()

        errors: List[FieldError] = []
        if field not in search_settings.sort_fields:
            errors.append(create_field_error(
                "sort_by",
                f"Sort field must be one of: {', '.join(search_settings.sort_fields)}",
            ))
        if order not in ("asc", "desc"):
            errors.append(create_field_error("sort_order", "Sort order must be 'asc' or 'desc'"))

        if errors:
            raise create_validation_error(errors)

        return SortParams(field=field, order=order)

    def _validate_employee_number_unique(self, employee_number: str) -> None:
        if self.repository.exists_by_employee_number(employee_number):
            raise create_duplicate_error("Employee", "employee_number", employee_number)

    def _validate_email_unique(self, email: str, exclude_id: Optional[str] = None) -> None:
        if self.repository.exists_by_email(email, exclude_id=exclude_id):
            raise create_duplicate_error("Employee", "email", email)

    @staticmethod
    def _masked_values(submitted: Dict[str, Any], mask: Iterable[str]) -> Dict[str, Any]:
        allowed = set(mask)
        dropped = sorted(set(submitted) - allowed)
        if dropped:
            logger.debug(f"Dropping fields outside edit mask: {', '.join(dropped)}")
        return {key: value for key, value in submitted.items() if key in allowed}

    @staticmethod
    def _reject_nulls(values: Dict[str, Any]) -> None:
        errors = [
            create_field_error(key, "This field cannot be null", code="required")
            for key, value in values.items()
            if value is None and key not in NULLABLE_FIELDS
        ]
        if errors:
            raise create_validation_error(errors)

    @staticmethod
    def _changed_values(employee: Employee, values: Dict[str, Any]) -> Dict[str, Any]:
        """Keep only values that differ from what is stored."""
        changed = {}
        for key, value in values.items():
            current = getattr(employee, key)
            comparable = value.value if isinstance(value, PermissionLevel) else value
            if comparable != current:
                changed[key] = value
        return changed

    # =========================================================================
    # Persistence Helpers
    # =========================================================================

    def _write(self, operation) -> None:
        """
        Run a store write, translating store failures.

        A uniqueness violation that slipped past the pre-checks (a lost
        race with a concurrent request) becomes a duplicate conflict.
        """
        try:
            operation()
        except IntegrityError as e:
            self.session.rollback()
            field = self._conflicting_field(str(e.orig))
            logger.warning(f"Integrity violation on write ({field or 'unknown field'})")
            if field is not None:
                raise create_duplicate_error("Employee", field, "submitted value")
            raise ConflictError(
                ConflictReason.DUPLICATE,
                message="Employee number or email already exists",
            )
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("Employee store write failed")
            raise InternalError("Failed to save employee")

    @staticmethod
    def _conflicting_field(error_message: str) -> Optional[str]:
        message = error_message.lower()
        for field in ("employee_number", "email"):
            if field in message:
                return field
        return None

    # =========================================================================
    # Response Builders
    # =========================================================================

    def _directory_index(self) -> Tuple[Dict[str, Employee], Dict[str, List[Employee]]]:
        """Index every employee by id and by manager id."""
        by_id: Dict[str, Employee] = {}
        reports_of: Dict[str, List[Employee]] = {}
        for employee in self.repository.find_all():
            by_id[employee.id] = employee
            if employee.manager_id:
                reports_of.setdefault(employee.manager_id, []).append(employee)
        return by_id, reports_of

    def _build_response(
        self,
        actor: Actor,
        employee: Employee,
        by_id: Optional[Dict[str, Employee]] = None,
        reports_of: Optional[Dict[str, List[Employee]]] = None,
    ) -> EmployeeResponse:
        """
        Shape an employee for the actor.

        Salary is withheld unless visible to the actor, and linked records
        the actor cannot view are left out.
        """
        if by_id is None:
            manager = (
                self.repository.find_by_id(employee.manager_id) if employee.manager_id else None
            )
            reports = self.repository.find_by_manager_id(employee.id)
        else:
            manager = by_id.get(employee.manager_id) if employee.manager_id else None
            reports = reports_of.get(employee.id, []) if reports_of else []

        manager_summary = None
        if manager is not None and permission_service.can_view(actor, manager):
            manager_summary = EmployeeSummary.model_validate(manager)

        return EmployeeResponse(
            id=employee.id,
            employee_number=employee.employee_number,
            email=employee.email,
            first_name=employee.first_name,
            surname=employee.surname,
            birth_date=employee.birth_date,
            role=employee.role,
            salary=employee.salary if permission_service.can_see_salary(actor, employee) else None,
            permission_level=employee.permission_level,
            manager_id=employee.manager_id,
            manager=manager_summary,
            subordinates=[
                EmployeeSummary.model_validate(report)
                for report in reports
                if permission_service.can_view(actor, report)
            ],
            is_active=employee.is_active,
            must_change_password=employee.must_change_password,
            created_at=employee.created_at,
            updated_at=employee.updated_at,
        )

    def _build_node(self, actor: Actor, node: hierarchy_validator.TreeNode) -> HierarchyNode:
        employee = node.employee
        return HierarchyNode(
            id=employee.id,
            employee_number=employee.employee_number,
            first_name=employee.first_name,
            surname=employee.surname,
            email=employee.email,
            role=employee.role,
            permission_level=employee.permission_level,
            manager_id=employee.manager_id,
            salary=employee.salary if permission_service.can_see_salary(actor, employee) else None,
            is_active=employee.is_active,
            can_reassign=permission_service.can_initiate_reassign(actor, employee),
            can_receive_reports=permission_service.can_receive_reassign(actor, employee),
            children=[self._build_node(actor, child) for child in node.children],
        )
