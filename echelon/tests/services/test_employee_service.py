"""Tests for the directory service against an in-memory database."""

import csv
import io
import json
from datetime import date
from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy.dialects import postgresql

from echelon.data.employee_repository import EmployeeRepository
from echelon.employees.models import EmployeeCreateRequest, EmployeeUpdateRequest
from echelon.models import Employee
from echelon.schemas.admin import PermissionUpdate
from echelon.services.employee_service import EmployeeService
from echelon.services.hierarchy_validator import build_tree
from echelon.utils.auth import PermissionLevel
from echelon.utils.errors import (
    ConflictError,
    ConflictReason,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)


@pytest.fixture
def service(db_session, hasher):
    return EmployeeService(db_session, hasher=hasher)


def _create_request(number, first_name, manager_id=None, **overrides):
    data = {
        "employee_number": number,
        "first_name": first_name,
        "surname": "New",
        "email": f"{first_name.lower()}.new@example.com",
        "birth_date": date(1995, 5, 17),
        "salary": Decimal("42000.00"),
        "role": "Software Engineer",
        "manager_id": manager_id,
    }
    data.update(overrides)
    return EmployeeCreateRequest(**data)


# =============================================================================
# Listing and Reading
# =============================================================================

class TestListEmployees:
    """Test cases for directory listing."""

    def test_admin_sees_everyone(self, service, actors, org):
        """Admin listing returns the whole directory."""
        result = service.list_employees(actors["ada"])

        assert len(result) == len(org)

    def test_employee_sees_self_manager_and_peers(self, service, actors):
        """An employee's listing is limited to their reporting line."""
        result = service.list_employees(actors["eve"])

        assert sorted(e.first_name for e in result) == ["Eve", "Finn", "Mona"]

    def test_salary_hidden_from_peers(self, service, actors, org):
        """Salary is only present on the actor's own record."""
        result = {e.first_name: e for e in service.list_employees(actors["eve"])}

        assert result["Eve"].salary == org["eve"].salary
        assert result["Finn"].salary is None
        assert result["Mona"].salary is None

    def test_search_matches_name_number_and_role(self, service, actors, org):
        """Search is a case-insensitive substring match."""
        assert [e.first_name for e in service.list_employees(actors["ada"], search="mAx")] == ["Max"]
        assert [e.id for e in service.list_employees(
            actors["ada"], search=org["gus"].employee_number
        )] == [org["gus"].id]
        assert [e.first_name for e in service.list_employees(
            actors["ada"], search="accountant"
        )] == ["Lou"]

    def test_role_filter(self, service, actors):
        """The role filter matches substrings of the job title."""
        result = service.list_employees(actors["ada"], role="manager")

        assert sorted(e.first_name for e in result) == ["Hana", "Max", "Mona"]

    def test_visibility_applies_to_search_results(self, service, actors):
        """Search never bypasses visibility filtering."""
        assert service.list_employees(actors["eve"], search="Gus") == []

    def test_sorting(self, service, actors):
        """Results follow the requested sort."""
        result = service.list_employees(actors["ada"], sort_by="first_name", sort_order="desc")

        names = [e.first_name for e in result]
        assert names == sorted(names, reverse=True)

    def test_invalid_sort_field_rejected(self, service, actors):
        """Unknown sort fields are a validation error."""
        with pytest.raises(ValidationError) as exc_info:
            service.list_employees(actors["ada"], sort_by="password_hash")

        assert exc_info.value.field_errors[0].field == "sort_by"

    def test_manager_and_subordinate_summaries(self, service, actors):
        """Linked records are summarized on each entry."""
        result = {e.first_name: e for e in service.list_employees(actors["ada"])}

        assert result["Eve"].manager.first_name == "Mona"
        assert sorted(s.first_name for s in result["Mona"].subordinates) == ["Eve", "Finn"]


class TestGetEmployee:
    """Test cases for reading a single record."""

    def test_get_visible_record(self, service, actors, org):
        """A peer's record is returned without salary."""
        result = service.get_employee(actors["eve"], org["finn"].id)

        assert result.first_name == "Finn"
        assert result.salary is None

    def test_get_hidden_record_is_denied_generically(self, service, actors, org):
        """Records outside the actor's view raise a generic denial."""
        with pytest.raises(PermissionDeniedError) as exc_info:
            service.get_employee(actors["eve"], org["gus"].id)

        assert exc_info.value.details is None
        assert "Gus" not in exc_info.value.message

    def test_get_missing_record(self, service, actors):
        """Unknown ids are not found."""
        with pytest.raises(NotFoundError):
            service.get_employee(actors["ada"], "does-not-exist")

    def test_hidden_manager_left_out_of_summary(self, service, actors, org):
        """A manager the actor cannot see is not summarized."""
        result = service.get_employee(actors["eve"], org["mona"].id)

        assert result.manager_id == org["ada"].id
        assert result.manager is None
        assert sorted(s.first_name for s in result.subordinates) == ["Eve", "Finn"]

    def test_get_me_includes_own_salary(self, service, actors, org):
        """The actor always sees their own salary."""
        own = service.get_me(actors["eve"])

        assert own.manager.first_name == "Mona"
        assert own.salary == org["eve"].salary


# =============================================================================
# Create
# =============================================================================

class TestCreateEmployee:
    """Test cases for creating employees."""

    def test_hr_creates_employee_with_default_password(self, service, actors, org, hasher, db_session):
        """New accounts get the default credential and must change it."""
        result = service.create_employee(actors["hana"], _create_request("N100", "Nina", org["mona"].id))

        stored = db_session.get(Employee, result.id)
        assert stored.must_change_password is True
        assert hasher.verify("NinaN100", stored.password_hash)
        assert result.manager.id == org["mona"].id
        assert result.permission_level == PermissionLevel.EMPLOYEE

    def test_long_non_ascii_name_gets_working_default_password(self, service, actors, hasher, db_session):
        """A default credential past bcrypt's 72 bytes still hashes and verifies."""
        first_name = "é" * 50
        number = "N" + "9" * 19

        result = service.create_employee(
            actors["ada"],
            _create_request(number, first_name, email="long.name@example.com"),
        )

        stored = db_session.get(Employee, result.id)
        assert hasher.verify(f"{first_name}{number}", stored.password_hash)

    def test_email_is_lower_cased(self, service, actors):
        """Emails are stored lower-cased."""
        result = service.create_employee(
            actors["ada"], _create_request("N101", "Olga", email="Olga.MIXED@Example.com")
        )

        assert result.email == "olga.mixed@example.com"

    @pytest.mark.parametrize("creator", ["mona", "eve"])
    def test_non_privileged_cannot_create(self, service, actors, creator):
        """Managers and employees are denied before any field is considered."""
        with pytest.raises(PermissionDeniedError):
            service.create_employee(actors[creator], _create_request("N102", "Pia"))

    def test_hr_cannot_create_admin(self, service, actors, db_session):
        """HR granting admin on create is a hard rejection."""
        with pytest.raises(PermissionDeniedError):
            service.create_employee(
                actors["hana"],
                _create_request("N103", "Quin", permission_level=PermissionLevel.ADMIN),
            )

        assert db_session.query(Employee).filter_by(employee_number="N103").first() is None

    def test_hr_cannot_create_inactive_account(self, service, actors):
        """The active flag is outside HR's mask and is dropped."""
        result = service.create_employee(
            actors["hana"], _create_request("N104", "Rita", is_active=False)
        )

        assert result.is_active is True

    def test_duplicate_employee_number(self, service, actors, org):
        """Employee numbers are unique."""
        with pytest.raises(ConflictError) as exc_info:
            service.create_employee(
                actors["ada"], _create_request(org["eve"].employee_number, "Sam")
            )

        assert exc_info.value.reason == ConflictReason.DUPLICATE
        assert exc_info.value.field_errors[0].field == "employee_number"

    def test_duplicate_email_case_insensitive(self, service, actors, org):
        """Emails are unique regardless of case."""
        with pytest.raises(ConflictError) as exc_info:
            service.create_employee(
                actors["ada"], _create_request("N105", "Tom", email=org["eve"].email.upper())
            )

        assert exc_info.value.field_errors[0].field == "email"

    def test_unknown_manager(self, service, actors):
        """The manager must exist."""
        with pytest.raises(ConflictError) as exc_info:
            service.create_employee(actors["ada"], _create_request("N106", "Uma", "ghost"))

        assert exc_info.value.reason == ConflictReason.MANAGER_NOT_FOUND

    def test_lost_race_on_employee_number_is_a_conflict(self, service, actors, session_factory, hasher):
        """Two creates with the same number: one succeeds, the other conflicts."""
        first = service.create_employee(actors["ada"], _create_request("N200", "Vic"))
        service.session.commit()

        # A concurrent request that passed the pre-check before the first commit
        other = EmployeeService(session_factory(), hasher=hasher)
        with patch.object(other.repository, "exists_by_employee_number", return_value=False):
            with pytest.raises(ConflictError) as exc_info:
                other.create_employee(
                    actors["ada"], _create_request("N200", "Wes", email="wes@example.com")
                )

        assert exc_info.value.reason == ConflictReason.DUPLICATE
        assert exc_info.value.field_errors[0].field == "employee_number"
        assert first.employee_number == "N200"
        other.session.close()


# =============================================================================
# Update
# =============================================================================

class TestUpdateEmployee:
    """Test cases for partial updates."""

    def test_manager_edits_report_basic_info_only(self, service, actors, org):
        """Fields outside a manager's mask are silently dropped."""
        result = service.update_employee(
            actors["mona"],
            org["eve"].id,
            EmployeeUpdateRequest(first_name="Evelyn", role="CTO", salary=Decimal("1")),
        )

        assert result.first_name == "Evelyn"
        assert result.role == "Software Engineer"
        assert org["eve"].salary == Decimal("50000.00")

    def test_employee_edits_own_basic_info(self, service, actors, org):
        """Employees can fix their own details but not their level."""
        result = service.update_employee(
            actors["eve"],
            org["eve"].id,
            EmployeeUpdateRequest(surname="Smith", permission_level=PermissionLevel.ADMIN),
        )

        assert result.surname == "Smith"
        assert result.permission_level == PermissionLevel.EMPLOYEE

    def test_employee_cannot_edit_peer(self, service, actors, org):
        """A visible record with no editable fields is denied."""
        with pytest.raises(PermissionDeniedError):
            service.update_employee(
                actors["eve"], org["finn"].id, EmployeeUpdateRequest(first_name="Fred")
            )

    def test_hr_cannot_grant_admin(self, service, actors, org):
        """HR submitting the admin level is rejected even though HR edits levels."""
        with pytest.raises(PermissionDeniedError):
            service.update_employee(
                actors["hana"],
                org["eve"].id,
                EmployeeUpdateRequest(permission_level=PermissionLevel.ADMIN),
            )

        assert org["eve"].permission_level == "employee"

    def test_hr_promotes_to_manager(self, service, actors, org):
        """HR may assign non-admin levels."""
        result = service.update_employee(
            actors["hana"],
            org["eve"].id,
            EmployeeUpdateRequest(permission_level=PermissionLevel.MANAGER),
        )

        assert result.permission_level == PermissionLevel.MANAGER

    def test_hr_submitting_admin_on_existing_admin_rejected(self, service, actors, org):
        """HR submitting the admin level is rejected even when it is unchanged."""
        with pytest.raises(PermissionDeniedError):
            service.update_employee(
                actors["hana"],
                org["ada"].id,
                EmployeeUpdateRequest(permission_level=PermissionLevel.ADMIN, role="Founder"),
            )

        assert org["ada"].role == "Chief Executive Officer"

    def test_admin_resubmitting_same_level_is_a_no_op(self, service, actors, org):
        """Unchanged values are not written."""
        result = service.update_employee(
            actors["ada"],
            org["eve"].id,
            EmployeeUpdateRequest(permission_level=PermissionLevel.EMPLOYEE, role="Staff Engineer"),
        )

        assert result.permission_level == PermissionLevel.EMPLOYEE
        assert result.role == "Staff Engineer"

    def test_null_on_required_field_rejected(self, service, actors, org):
        """Only the manager link may be cleared."""
        with pytest.raises(ValidationError) as exc_info:
            service.update_employee(
                actors["ada"], org["eve"].id, EmployeeUpdateRequest(first_name=None)
            )

        assert exc_info.value.field_errors[0].field == "first_name"

    def test_update_can_detach_manager(self, service, actors, org):
        """Submitting a null manager detaches the employee."""
        result = service.update_employee(
            actors["ada"], org["eve"].id, EmployeeUpdateRequest(manager_id=None)
        )

        assert result.manager_id is None

    def test_update_rejects_cycle(self, service, actors, org):
        """Manager changes through update go through the hierarchy check."""
        with pytest.raises(ConflictError) as exc_info:
            service.update_employee(
                actors["ada"], org["mona"].id, EmployeeUpdateRequest(manager_id=org["eve"].id)
            )

        assert exc_info.value.reason == ConflictReason.CYCLE_DETECTED

    def test_update_rejects_self_management(self, service, actors, org):
        """Nobody manages themself."""
        with pytest.raises(ConflictError) as exc_info:
            service.update_employee(
                actors["ada"], org["eve"].id, EmployeeUpdateRequest(manager_id=org["eve"].id)
            )

        assert exc_info.value.reason == ConflictReason.SELF_MANAGEMENT

    def test_update_duplicate_email(self, service, actors, org):
        """Email changes keep emails unique."""
        with pytest.raises(ConflictError):
            service.update_employee(
                actors["ada"], org["eve"].id, EmployeeUpdateRequest(email=org["finn"].email)
            )


# =============================================================================
# Manager Reassignment
# =============================================================================

class TestReassignManager:
    """Test cases for moving employees in the hierarchy."""

    def test_chain_cycle_rejected(self, service, actors):
        """E1 <- E2 <- E3: moving E1 under E3 is a cycle."""
        admin = actors["ada"]
        e1 = service.create_employee(admin, _create_request("C001", "One"))
        e2 = service.create_employee(admin, _create_request("C002", "Two", e1.id))
        e3 = service.create_employee(admin, _create_request("C003", "Three", e2.id))

        with pytest.raises(ConflictError) as exc_info:
            service.reassign_manager(admin, e1.id, e3.id)

        assert exc_info.value.reason == ConflictReason.CYCLE_DETECTED

    def test_swap_rejected_after_first_move(self, service, actors, org):
        """Setting A under B, then B under A, rejects the second move."""
        admin = actors["ada"]
        service.reassign_manager(admin, org["lou"].id, org["gus"].id)

        with pytest.raises(ConflictError) as exc_info:
            service.reassign_manager(admin, org["gus"].id, org["lou"].id)

        assert exc_info.value.reason == ConflictReason.CYCLE_DETECTED

    def test_manager_moves_own_report_to_visible_manager(self, service, actors, org):
        """A manager may hand a report to another manager-level node."""
        result = service.reassign_manager(actors["mona"], org["eve"].id, org["max"].id)

        assert result.manager_id == org["max"].id

    def test_manager_cannot_move_other_teams(self, service, actors, org):
        """Only the current manager may pick an employee up."""
        with pytest.raises(PermissionDeniedError):
            service.reassign_manager(actors["mona"], org["max"].id, org["mona"].id)

    def test_manager_cannot_place_under_hidden_node(self, service, actors, org):
        """The target manager must be visible to the actor."""
        with pytest.raises(PermissionDeniedError):
            service.reassign_manager(actors["mona"], org["eve"].id, org["gus"].id)

    def test_detach(self, service, actors, org):
        """A null manager detaches the employee."""
        result = service.reassign_manager(actors["hana"], org["gus"].id, None)

        assert result.manager_id is None
        assert result.manager is None

    def test_unknown_manager(self, service, actors, org):
        """Unknown managers are a conflict."""
        with pytest.raises(ConflictError) as exc_info:
            service.reassign_manager(actors["ada"], org["gus"].id, "ghost")

        assert exc_info.value.reason == ConflictReason.MANAGER_NOT_FOUND

    def test_no_cycles_after_valid_moves(self, service, actors, org, db_session):
        """After successful moves every manager chain still ends at a root."""
        admin = actors["ada"]
        service.reassign_manager(admin, org["max"].id, org["mona"].id)
        service.reassign_manager(admin, org["lou"].id, org["gus"].id)
        service.reassign_manager(admin, org["hana"].id, org["lou"].id)

        graph = {e.id: e.manager_id for e in db_session.query(Employee).all()}
        for start in graph:
            seen = set()
            current = start
            while current is not None:
                assert current not in seen
                seen.add(current)
                current = graph[current]


class TestConcurrentHierarchyEdits:
    """Test cases for row locking around hierarchy writes."""

    def test_locked_graph_query_is_for_update(self):
        """The locked graph read compiles to SELECT ... FOR UPDATE."""
        dialect = postgresql.dialect()

        locked = str(EmployeeRepository.manager_graph_query(lock=True).compile(dialect=dialect))
        plain = str(EmployeeRepository.manager_graph_query().compile(dialect=dialect))

        assert locked.rstrip().endswith("FOR UPDATE")
        assert "FOR UPDATE" not in plain

    @pytest.mark.parametrize("operation", ["create", "update", "reassign", "delete"])
    def test_hierarchy_writes_read_graph_under_lock(self, service, actors, org, operation):
        """Every write that checks the hierarchy takes the row lock."""
        admin = actors["ada"]
        repository = service.repository
        with patch.object(
            repository, "get_manager_graph", wraps=repository.get_manager_graph
        ) as graph_read:
            if operation == "create":
                service.create_employee(admin, _create_request("L001", "Lena", org["mona"].id))
            elif operation == "update":
                service.update_employee(
                    admin, org["gus"].id, EmployeeUpdateRequest(manager_id=org["mona"].id)
                )
            elif operation == "reassign":
                service.reassign_manager(admin, org["lou"].id, org["max"].id)
            else:
                service.delete_employee(admin, org["eve"].id)

        assert graph_read.call_count >= 1
        assert all(call.kwargs == {"lock": True} for call in graph_read.call_args_list)

    def test_interleaved_swap_sees_committed_move(
        self, service, actors, org, session_factory, hasher, db_session
    ):
        """A second request that started before the first committed still detects the cycle."""
        admin = actors["ada"]
        other = EmployeeService(session_factory(), hasher=hasher)
        try:
            # The second request is already in flight and has read Gus
            assert other.get_employee(admin, org["gus"].id).manager_id == org["max"].id

            service.reassign_manager(admin, org["lou"].id, org["gus"].id)
            service.session.commit()

            with pytest.raises(ConflictError) as exc_info:
                other.reassign_manager(admin, org["gus"].id, org["lou"].id)
        finally:
            other.session.close()

        assert exc_info.value.reason == ConflictReason.CYCLE_DETECTED
        db_session.expire_all()
        roots = build_tree(db_session.query(Employee).all())
        assert sum(root.count() for root in roots) == 8


# =============================================================================
# Delete
# =============================================================================

class TestDeleteEmployee:
    """Test cases for deleting employees."""

    def test_delete_with_subordinates_rejected(self, service, actors, org):
        """Managers with reports cannot be deleted."""
        with pytest.raises(ConflictError) as exc_info:
            service.delete_employee(actors["ada"], org["mona"].id)

        assert exc_info.value.reason == ConflictReason.HAS_SUBORDINATES
        assert exc_info.value.details["subordinate_count"] == 2

    def test_delete_leaf_then_not_found(self, service, actors, org):
        """A deleted leaf is gone."""
        service.delete_employee(actors["hana"], org["lou"].id)

        with pytest.raises(NotFoundError):
            service.get_employee(actors["ada"], org["lou"].id)

    def test_hr_cannot_delete_admin(self, service, actors, make_employee):
        """HR may not delete admins."""
        other_admin = make_employee("Zoe", "Root", permission_level="admin")

        with pytest.raises(PermissionDeniedError):
            service.delete_employee(actors["hana"], other_admin.id)

    def test_manager_cannot_delete(self, service, actors, org):
        """Managers cannot delete their reports."""
        with pytest.raises(PermissionDeniedError):
            service.delete_employee(actors["mona"], org["eve"].id)

    def test_create_under_manager_then_tree_then_blocked_delete(self, service, actors, make_employee):
        """A new report shows up in the tree and blocks deleting the manager."""
        boss = make_employee("Bea", "Boss", permission_level="manager")
        admin = actors["ada"]
        created = service.create_employee(admin, _create_request("T001", "Tia", boss.id))

        tree = service.get_hierarchy_tree(admin)
        bea = next(node for node in tree if node.id == boss.id)
        assert [child.id for child in bea.children] == [created.id]

        with pytest.raises(ConflictError):
            service.delete_employee(admin, boss.id)

        service.reassign_manager(admin, created.id, None)
        service.delete_employee(admin, boss.id)


# =============================================================================
# Hierarchy Tree
# =============================================================================

class TestHierarchyTree:
    """Test cases for the hierarchy view."""

    def test_admin_tree(self, service, actors):
        """Admin sees the whole forest with reassign flags."""
        tree = service.get_hierarchy_tree(actors["ada"])

        assert [node.first_name for node in tree] == ["Ada", "Lou"]
        ada = tree[0]
        assert [child.first_name for child in ada.children] == ["Hana", "Max", "Mona"]
        assert all(node.can_reassign and node.can_receive_reports for node in tree)

    def test_employee_tree_is_filtered(self, service, actors):
        """An employee's tree only contains their reporting line."""
        tree = service.get_hierarchy_tree(actors["eve"])

        assert [node.first_name for node in tree] == ["Mona"]
        assert [child.first_name for child in tree[0].children] == ["Eve", "Finn"]
        assert tree[0].salary is None
        assert not tree[0].can_receive_reports

    def test_manager_flags(self, service, actors):
        """A manager may move their own reports only."""
        tree = service.get_hierarchy_tree(actors["mona"])
        ada = tree[0]
        mona = next(child for child in ada.children if child.first_name == "Mona")
        eve = next(child for child in mona.children if child.first_name == "Eve")

        assert eve.can_reassign
        assert not mona.can_reassign
        assert mona.can_receive_reports

    def test_deep_chain_accepted_on_write_is_readable(self, service, actors, org):
        """Any chain the write path accepts can be rendered as a tree."""
        manager_id = org["lou"].id
        for i in range(60):
            created = service.create_employee(
                actors["ada"],
                _create_request(f"DEEP{i:03d}", f"Deep{i}", manager_id=manager_id),
            )
            manager_id = created.id

        tree = service.get_hierarchy_tree(actors["ada"])

        node = next(root for root in tree if root.first_name == "Lou")
        depth = 1
        while node.children:
            node = node.children[0]
            depth += 1
        assert depth == 61


# =============================================================================
# Administration
# =============================================================================

class TestAdministration:
    """Test cases for admin-only operations."""

    def test_statistics_cover_whole_store(self, service, actors):
        """Statistics are not affected by listing filters."""
        service.list_employees(actors["ada"], search="Eve")

        stats = service.get_statistics(actors["ada"])

        assert stats.permission_breakdown == {"employee": 4, "manager": 2, "hr": 1, "admin": 1}
        assert stats.total_employees == 8
        assert stats.active_employees == 8
        assert stats.inactive_employees == 0
        assert len(stats.recent_employees) == 5

    def test_statistics_admin_only(self, service, actors):
        """HR cannot view statistics."""
        with pytest.raises(PermissionDeniedError):
            service.get_statistics(actors["hana"])

    def test_toggle_active(self, service, actors, org):
        """Admin deactivates an account; the statistics follow."""
        result = service.toggle_active(actors["ada"], org["lou"].id, False)

        assert result.is_active is False
        stats = service.get_statistics(actors["ada"])
        assert stats.inactive_employees == 1

    def test_toggle_active_admin_only(self, service, actors, org):
        """HR cannot change account status."""
        with pytest.raises(PermissionDeniedError):
            service.toggle_active(actors["hana"], org["lou"].id, False)

    def test_export_csv(self, service, actors):
        """CSV export lists everyone with their manager's name."""
        result = service.export_employees(actors["ada"], "csv")

        rows = list(csv.DictReader(io.StringIO(result.content.decode("utf-8"))))
        assert result.media_type == "text/csv"
        assert len(rows) == 8
        by_name = {row["First Name"]: row for row in rows}
        assert by_name["Eve"]["Manager"] == "Mona Manager"
        assert by_name["Ada"]["Manager"] == "No Manager"
        assert "salary" not in {key.lower() for key in rows[0]}

    def test_export_json(self, service, actors):
        """JSON export contains every record."""
        result = service.export_employees(actors["ada"], "json")

        payload = json.loads(result.content)
        assert len(payload) == 8
        assert all("password_hash" not in row for row in payload)

    def test_export_unknown_format(self, service, actors):
        """Only json and csv are supported."""
        with pytest.raises(ValidationError):
            service.export_employees(actors["ada"], "xlsx")

    def test_bulk_update_permissions(self, service, actors, org):
        """Several levels change at once."""
        count = service.bulk_update_permissions(actors["ada"], [
            PermissionUpdate(employee_id=org["eve"].id, permission_level=PermissionLevel.MANAGER),
            PermissionUpdate(employee_id=org["lou"].id, permission_level=PermissionLevel.HR),
        ])

        assert count == 2
        assert org["eve"].permission_level == "manager"
        assert org["lou"].permission_level == "hr"

    def test_bulk_update_is_all_or_nothing(self, service, actors, org):
        """A missing employee aborts the whole batch."""
        with pytest.raises(NotFoundError):
            service.bulk_update_permissions(actors["ada"], [
                PermissionUpdate(employee_id=org["eve"].id, permission_level=PermissionLevel.MANAGER),
                PermissionUpdate(employee_id="ghost", permission_level=PermissionLevel.HR),
            ])

        assert org["eve"].permission_level == "employee"
