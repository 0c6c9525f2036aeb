"""
Authorization gate for shift operations.

One capability table decides what each role may do. Every mutating
operation in ShiftService goes through the ``ensure_*`` helpers below instead
of checking roles inline.
"""

import logging
from enum import Enum
from typing import Iterable

from ...exceptions import InsufficientPermissionsError, InvalidOperationError
from ...models import Shift, ShiftStatus, User, UserRole
from .lifecycle import is_deletable

logger = logging.getLogger(__name__)


class Capability(str, Enum):
    CREATE = "create"
    EDIT_ANY = "edit_any"  # any field on any shift in the organization
    EDIT_OWN = "edit_own"  # notes and actual times on own assigned shifts
    STATUS_ANY = "status_any"  # any status on any shift in the organization
    STATUS_OWN = "status_own"  # start/complete own assigned shifts
    PLATFORM_ADMIN = "platform_admin"  # cross-organization access for support tooling
    LARGE_PAGES = "large_pages"


_FULL_EDIT = frozenset({Capability.CREATE, Capability.EDIT_ANY, Capability.STATUS_ANY})
_LIMITED = frozenset({Capability.EDIT_OWN, Capability.STATUS_OWN})

ROLE_CAPABILITIES: dict[str, frozenset[Capability]] = {
    UserRole.SUPER_ADMIN.value: _FULL_EDIT | {Capability.PLATFORM_ADMIN, Capability.LARGE_PAGES},
    UserRole.ADMIN.value: _FULL_EDIT | {Capability.LARGE_PAGES},
    UserRole.MANAGER.value: _FULL_EDIT,
    UserRole.CARE_WORKER.value: _LIMITED,
    UserRole.SUPPORT_COORDINATOR.value: _LIMITED,
}

# Statuses a limited role may request on its own shift
SELF_SERVICE_STATUSES = frozenset({ShiftStatus.IN_PROGRESS, ShiftStatus.COMPLETED})

# Fields a limited role may edit on its own shift
SELF_SERVICE_FIELDS = frozenset({"notes", "completion_notes", "actual_start_time", "actual_end_time"})

DEFAULT_MAX_PAGE_SIZE = 100
LARGE_MAX_PAGE_SIZE = 1000


def capabilities_for(role: str) -> frozenset[Capability]:
    return ROLE_CAPABILITIES.get(role, frozenset())


def has_capability(actor: User, capability: Capability) -> bool:
    return capability in capabilities_for(actor.role)


def can_bypass_organization_scope(actor: User) -> bool:
    return has_capability(actor, Capability.PLATFORM_ADMIN)


def max_page_size(actor: User) -> int:
    if has_capability(actor, Capability.LARGE_PAGES):
        return LARGE_MAX_PAGE_SIZE
    return DEFAULT_MAX_PAGE_SIZE


def _deny(actor: User, action: str, detail: str) -> InsufficientPermissionsError:
    logger.warning(f"⛔ User {actor.id} ({actor.role}) denied '{action}': {detail}")
    return InsufficientPermissionsError(detail, role=actor.role, action=action)


def ensure_can_create(actor: User) -> None:
    if not has_capability(actor, Capability.CREATE):
        raise _deny(actor, "create", "Only managers and admins can create shifts")


def ensure_can_update(actor: User, shift: Shift, fields: Iterable[str]) -> None:
    if has_capability(actor, Capability.EDIT_ANY):
        return

    if not has_capability(actor, Capability.EDIT_OWN) or shift.staff_id != actor.id:
        raise _deny(actor, "update", "You can only modify your own assigned shifts")

    restricted = sorted(set(fields) - SELF_SERVICE_FIELDS)
    if restricted:
        raise _deny(
            actor,
            "update",
            f"Only managers and admins can change {', '.join(restricted)}",
        )


def ensure_can_set_status(actor: User, shift: Shift, requested: ShiftStatus) -> None:
    if has_capability(actor, Capability.STATUS_ANY):
        return

    if not has_capability(actor, Capability.STATUS_OWN) or shift.staff_id != actor.id:
        raise _deny(actor, "set_status", "You can only modify your own assigned shifts")

    # Re-asserting the current status is a no-op for the assignee
    if ShiftStatus(requested).value == shift.status:
        return

    if ShiftStatus(requested) not in SELF_SERVICE_STATUSES:
        raise _deny(
            actor,
            "set_status",
            "Only managers and admins can cancel, reschedule or mark shifts as no-show",
        )


def ensure_can_delete(actor: User, shift: Shift) -> None:
    """Any role may delete within its own organization; only the status is checked"""
    if not is_deletable(shift.status):
        logger.warning(f"⛔ User {actor.id} tried to delete {shift.status} shift {shift.id}")
        raise InvalidOperationError(
            "Only scheduled or cancelled shifts can be deleted", shift_status=shift.status
        )
