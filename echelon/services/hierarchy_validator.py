"""Reporting hierarchy validation and tree building.

Manager links must always form a forest: nobody manages themselves, every
manager reference resolves, and following manager links never loops. The
checks here run before any write, against an ``employee id -> manager id``
graph loaded from the store, and are the single code path used by create,
update and manager reassignment.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set

from echelon.utils.errors import (
    ConflictError,
    ConflictReason,
    MalformedHierarchyError,
)

logger = logging.getLogger(__name__)


# Employee id -> manager id (None for roots)
ManagerGraph = Mapping[str, Optional[str]]


# =============================================================================
# Validation Types
# =============================================================================

class HierarchyViolation(str, Enum):
    """Reasons a hierarchy edit is rejected."""

    SELF_MANAGEMENT = "self_management"
    MANAGER_NOT_FOUND = "manager_not_found"
    CYCLE_DETECTED = "cycle_detected"
    HAS_SUBORDINATES = "has_subordinates"
    MALFORMED_HIERARCHY = "malformed_hierarchy"


_CONFLICT_REASONS: Dict[HierarchyViolation, ConflictReason] = {
    HierarchyViolation.SELF_MANAGEMENT: ConflictReason.SELF_MANAGEMENT,
    HierarchyViolation.MANAGER_NOT_FOUND: ConflictReason.MANAGER_NOT_FOUND,
    HierarchyViolation.CYCLE_DETECTED: ConflictReason.CYCLE_DETECTED,
    HierarchyViolation.HAS_SUBORDINATES: ConflictReason.HAS_SUBORDINATES,
}


@dataclass
class HierarchyCheck:
    """Outcome of a hierarchy check: accepted, or rejected with a reason."""

    violation: Optional[HierarchyViolation] = None
    message: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return self.violation is None

    @classmethod
    def ok(cls) -> "HierarchyCheck":
        return cls()

    @classmethod
    def rejected(
        cls,
        violation: HierarchyViolation,
        message: str,
        **details: Any,
    ) -> "HierarchyCheck":
        return cls(violation=violation, message=message, details=details)

    def raise_for_violation(self) -> None:
        """Raise the matching typed error if the check was rejected."""
        if self.violation is None:
            return

        if self.violation == HierarchyViolation.MALFORMED_HIERARCHY:
            raise MalformedHierarchyError(message=self.message, details=self.details)

        raise ConflictError(
            _CONFLICT_REASONS[self.violation],
            message=self.message,
            details=self.details,
        )


# =============================================================================
# Write-side Checks
# =============================================================================

def _ancestors(start_id: str, graph: ManagerGraph) -> Optional[List[str]]:
    """
    Walk manager links upward from start_id.

    Returns the ancestor chain (nearest first), or None if the stored links
    already loop.
    """
    chain: List[str] = []
    seen: Set[str] = {start_id}
    current = graph.get(start_id)

    while current is not None:
        if current in seen:
            return None
        seen.add(current)
        chain.append(current)
        current = graph.get(current)

    return chain


def validate_manager_assignment(
    employee_id: Optional[str],
    proposed_manager_id: Optional[str],
    graph: ManagerGraph,
) -> HierarchyCheck:
    """
    Validate that employee_id may report to proposed_manager_id.

    Args:
        employee_id: ID of the employee being edited, or None for a record
            that does not exist yet
        proposed_manager_id: ID of the proposed manager, None/empty to detach
        graph: Current employee id -> manager id mapping

    Returns:
        HierarchyCheck
    """
    if not proposed_manager_id:
        return HierarchyCheck.ok()

    if employee_id is not None and proposed_manager_id == employee_id:
        return HierarchyCheck.rejected(
            HierarchyViolation.SELF_MANAGEMENT,
            "Employee cannot be their own manager",
            field="manager_id",
        )

    if proposed_manager_id not in graph:
        return HierarchyCheck.rejected(
            HierarchyViolation.MANAGER_NOT_FOUND,
            "Manager not found",
            field="manager_id",
            manager_id=proposed_manager_id,
        )

    # A new record has no subordinates, so it cannot close a loop
    if employee_id is None:
        return HierarchyCheck.ok()

    ancestors = _ancestors(proposed_manager_id, graph)
    if ancestors is None:
        logger.error(f"Manager chain above {proposed_manager_id} loops")
        return HierarchyCheck.rejected(
            HierarchyViolation.MALFORMED_HIERARCHY,
            "Reporting hierarchy is malformed",
            manager_id=proposed_manager_id,
        )

    if employee_id in ancestors:
        return HierarchyCheck.rejected(
            HierarchyViolation.CYCLE_DETECTED,
            "Assignment would create a reporting cycle",
            field="manager_id",
            manager_id=proposed_manager_id,
        )

    return HierarchyCheck.ok()


def validate_deletion(employee_id: str, graph: ManagerGraph) -> HierarchyCheck:
    """Reject deleting an employee that still has subordinates."""
    subordinate_ids = sorted(
        candidate for candidate, manager_id in graph.items() if manager_id == employee_id
    )

    if subordinate_ids:
        return HierarchyCheck.rejected(
            HierarchyViolation.HAS_SUBORDINATES,
            "Cannot delete employee with subordinates. Please reassign subordinates first.",
            subordinate_count=len(subordinate_ids),
        )

    return HierarchyCheck.ok()


# =============================================================================
# Read-side Tree
# =============================================================================

@dataclass
class TreeNode:
    """An employee and the ordered subtrees of their direct reports."""

    employee: Any
    children: List["TreeNode"] = field(default_factory=list)

    def count(self) -> int:
        """Count nodes in this subtree."""
        total = 0
        pending = [self]
        while pending:
            node = pending.pop()
            total += 1
            pending.extend(node.children)
        return total


def _sort_key(employee: Any) -> tuple:
    return (employee.first_name.lower(), employee.surname.lower(), employee.id)


def build_tree(employees: Sequence[Any]) -> List[TreeNode]:
    """
    Build the reporting forest for a set of employees.

    Roots are employees without a manager, or whose manager is outside the
    given set (a visibility-filtered view). Depth is unbounded. Raises
    MalformedHierarchyError if some employees cannot be reached from any
    root, which only happens when stored links loop.
    """
    nodes = {employee.id: TreeNode(employee=employee) for employee in employees}
    roots: List[TreeNode] = []

    for employee in sorted(employees, key=_sort_key):
        parent = nodes.get(employee.manager_id) if employee.manager_id else None
        if parent is None:
            roots.append(nodes[employee.id])
        else:
            parent.children.append(nodes[employee.id])

    placed = sum(root.count() for root in roots)
    if placed != len(nodes):
        logger.error(f"Hierarchy tree placed {placed} of {len(nodes)} employees")
        raise MalformedHierarchyError(
            details={"placed": placed, "total": len(nodes)},
        )

    return roots
