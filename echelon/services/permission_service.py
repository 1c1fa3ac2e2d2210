"""
Permission rules for the employee directory.

Every check here is a pure function of the actor snapshot, the target
employee snapshot and the static tables below. Nothing reads the database,
so the rules can be evaluated and tested in isolation.

Targets only need ``id``, ``manager_id`` and ``permission_level``
attributes; ORM ``Employee`` instances are what the services pass in.
"""

import logging
from typing import Any, Iterable, List, Optional, Set

from echelon.utils.auth import (
    MANAGER_LEVELS,
    Actor,
    PermissionLevel,
    parse_permission_level,
)
from echelon.utils.errors import PermissionDeniedError

logger = logging.getLogger(__name__)


# =============================================================================
# Field Groups
# =============================================================================

# Basic information editable on any record the actor is responsible for
BASIC_INFO_FIELDS: frozenset = frozenset({"first_name", "surname", "email", "birth_date"})

# Only settable when the record is created
CREATE_ONLY_FIELDS: frozenset = frozenset({"employee_number"})

# Fields each level may edit on any record it can edit at all
ROLE_EDITABLE_FIELDS: dict = {
    PermissionLevel.ADMIN: frozenset({"role", "salary", "permission_level", "is_active"}),
    PermissionLevel.HR: frozenset({"role", "salary", "permission_level"}),
    PermissionLevel.MANAGER: frozenset(),
    PermissionLevel.EMPLOYEE: frozenset(),
}

ALL_EDITABLE_FIELDS: frozenset = (
    BASIC_INFO_FIELDS
    | CREATE_ONLY_FIELDS
    | frozenset({"role", "salary", "permission_level", "is_active", "manager_id"})
)


def _level_of(target: Any) -> PermissionLevel:
    return parse_permission_level(target.permission_level)


def _is_direct_manager_of(actor: Actor, target: Any) -> bool:
    """The actor is a manager and currently manages the target."""
    return (
        actor.permission_level == PermissionLevel.MANAGER
        and target.manager_id is not None
        and target.manager_id == actor.id
    )


# =============================================================================
# Visibility
# =============================================================================

def can_view(actor: Actor, target: Any) -> bool:
    """
    Check whether the actor may see the target record at all.

    - admin, hr: everyone
    - manager: self, direct reports, and anyone at manager level or above
    - employee: self, own manager, and peers sharing the same manager
    """
    if actor.is_privileged:
        return True

    if target.id == actor.id:
        return True

    if actor.permission_level == PermissionLevel.MANAGER:
        if target.manager_id is not None and target.manager_id == actor.id:
            return True
        return _level_of(target) in MANAGER_LEVELS

    # Employee level
    if actor.manager_id is None:
        return False
    if target.id == actor.manager_id:
        return True
    return target.manager_id == actor.manager_id


def visible_set(actor: Actor, employees: Iterable[Any]) -> List[Any]:
    """
    Filter employees down to those the actor may see.

    Admin and HR get the input back unfiltered. Aggregates over the whole
    organization must be computed from the store, never from this view.
    """
    employees = list(employees)
    if actor.is_privileged:
        return employees
    return [employee for employee in employees if can_view(actor, employee)]


def can_see_salary(actor: Actor, target: Any) -> bool:
    """Salary is visible to admin, hr, and the employee themself."""
    return actor.is_privileged or target.id == actor.id


# =============================================================================
# Editing
# =============================================================================

def can_create(actor: Actor) -> bool:
    """Only admin and hr create employees."""
    return actor.is_privileged


def can_edit_manager(actor: Actor, target: Any) -> bool:
    """Admin, hr, or the target's current (outgoing) manager."""
    return actor.is_privileged or _is_direct_manager_of(actor, target)


def field_edit_mask(actor: Actor, target: Optional[Any], is_create: bool = False) -> Set[str]:
    """
    Get the set of field names the actor may write on the target.

    On create there is no stored target yet; only admin and hr reach this
    point and they get the full create mask for their level.
    """
    mask: Set[str] = set()

    if is_create:
        if not can_create(actor):
            return mask
        mask.update(BASIC_INFO_FIELDS)
        mask.update(CREATE_ONLY_FIELDS)
        mask.update(ROLE_EDITABLE_FIELDS[actor.permission_level])
        mask.add("manager_id")
        return mask

    if target is None:
        return mask

    if actor.is_privileged or target.id == actor.id or _is_direct_manager_of(actor, target):
        mask.update(BASIC_INFO_FIELDS)

    mask.update(ROLE_EDITABLE_FIELDS[actor.permission_level])

    if can_edit_manager(actor, target):
        mask.add("manager_id")

    return mask


def check_permission_level_assignment(
    actor: Actor,
    target: Optional[Any],
    new_level: Any,
) -> None:
    """
    Enforce the explicit rules on permission level changes.

    HR may never grant admin, and may not change the level of an existing
    admin. These are hard rejections rather than silently dropped fields.
    """
    level = parse_permission_level(new_level)

    if actor.is_admin:
        return

    if actor.permission_level != PermissionLevel.HR:
        raise PermissionDeniedError("Insufficient permissions to change permission level")

    if level == PermissionLevel.ADMIN:
        logger.warning(f"HR actor {actor.id} attempted to grant admin level")
        raise PermissionDeniedError(
            message="HR cannot assign the admin permission level",
            details={"field": "permission_level"},
        )

    if target is not None and _level_of(target) == PermissionLevel.ADMIN:
        raise PermissionDeniedError(
            message="HR cannot change the permission level of an admin",
            details={"field": "permission_level"},
        )


def can_delete(actor: Actor, target: Any) -> bool:
    """Admin deletes anyone; hr anyone but admins."""
    if actor.is_admin:
        return True
    if actor.permission_level == PermissionLevel.HR:
        return _level_of(target) != PermissionLevel.ADMIN
    return False


def can_reset_password(actor: Actor) -> bool:
    return actor.is_admin


def can_toggle_active(actor: Actor) -> bool:
    return actor.is_admin


def can_view_statistics(actor: Actor) -> bool:
    return actor.is_admin


def can_export(actor: Actor) -> bool:
    return actor.is_admin


def can_bulk_update_permissions(actor: Actor) -> bool:
    return actor.is_admin


# =============================================================================
# Manager Reassignment (drag and drop)
# =============================================================================

def can_initiate_reassign(actor: Actor, employee: Any) -> bool:
    """Whether the employee may be picked up and moved under a new manager."""
    return can_edit_manager(actor, employee)


def can_receive_reassign(actor: Actor, target_manager: Any) -> bool:
    """
    Whether the actor may make someone report to target_manager.

    Any manager-level actor may assign reports to any node they can see.
    """
    if actor.permission_level not in MANAGER_LEVELS:
        return False
    return can_view(actor, target_manager)
