from datetime import datetime

import pytest

from carecrm.domain.shifts import permissions
from carecrm.domain.shifts.permissions import Capability
from carecrm.exceptions import InsufficientPermissionsError, InvalidOperationError
from carecrm.models import Shift, ShiftStatus, User, UserRole


def make_user(role, user_id="user-1"):
    return User(id=user_id, role=role, organization_id="org-1")


def make_shift(staff_id="user-1", status=ShiftStatus.SCHEDULED):
    return Shift(
        id="shift-1",
        staff_id=staff_id,
        status=status.value,
        start_time=datetime(2024, 5, 1, 9),
        end_time=datetime(2024, 5, 1, 17),
    )


MANAGING_ROLES = [UserRole.SUPER_ADMIN, UserRole.ADMIN, UserRole.MANAGER]
LIMITED_ROLES = [UserRole.CARE_WORKER, UserRole.SUPPORT_COORDINATOR]


@pytest.mark.parametrize("role", MANAGING_ROLES)
def test_managing_roles_hold_full_edit_capabilities(role):
    caps = permissions.capabilities_for(role.value)

    assert {Capability.CREATE, Capability.EDIT_ANY, Capability.STATUS_ANY} <= caps


@pytest.mark.parametrize("role", LIMITED_ROLES)
def test_limited_roles_only_act_on_their_own_shifts(role):
    assert permissions.capabilities_for(role.value) == {Capability.EDIT_OWN, Capability.STATUS_OWN}


def test_unknown_role_holds_nothing():
    assert permissions.capabilities_for("intern") == frozenset()


def test_platform_bypass_is_super_admin_only():
    assert permissions.can_bypass_organization_scope(make_user(UserRole.SUPER_ADMIN.value))
    for role in [UserRole.ADMIN, UserRole.MANAGER, *LIMITED_ROLES]:
        assert not permissions.can_bypass_organization_scope(make_user(role.value))


@pytest.mark.parametrize(
    "role, expected",
    [
        (UserRole.SUPER_ADMIN, 1000),
        (UserRole.ADMIN, 1000),
        (UserRole.MANAGER, 100),
        (UserRole.CARE_WORKER, 100),
        (UserRole.SUPPORT_COORDINATOR, 100),
    ],
)
def test_max_page_size(role, expected):
    assert permissions.max_page_size(make_user(role.value)) == expected


class TestCreate:
    @pytest.mark.parametrize("role", MANAGING_ROLES)
    def test_allowed(self, role):
        permissions.ensure_can_create(make_user(role.value))

    @pytest.mark.parametrize("role", [*LIMITED_ROLES, "intern"])
    def test_denied(self, role):
        with pytest.raises(InsufficientPermissionsError) as exc_info:
            permissions.ensure_can_create(make_user(getattr(role, "value", role)))

        assert exc_info.value.status_code == 403
        assert exc_info.value.details["action"] == "create"


class TestUpdate:
    def test_manager_may_edit_any_field_on_any_shift(self):
        permissions.ensure_can_update(
            make_user(UserRole.MANAGER.value, "manager"), make_shift("someone-else"), ["start_time"]
        )

    @pytest.mark.parametrize("role", LIMITED_ROLES)
    def test_limited_role_may_edit_notes_on_own_shift(self, role):
        permissions.ensure_can_update(
            make_user(role.value), make_shift(), ["notes", "completion_notes", "actual_end_time"]
        )

    def test_limited_role_cannot_touch_someone_elses_shift(self):
        with pytest.raises(InsufficientPermissionsError):
            permissions.ensure_can_update(
                make_user(UserRole.CARE_WORKER.value), make_shift("someone-else"), ["notes"]
            )

    @pytest.mark.parametrize("field", ["start_time", "end_time", "hourly_rate", "location"])
    def test_limited_role_cannot_edit_schedule_fields(self, field):
        with pytest.raises(InsufficientPermissionsError):
            permissions.ensure_can_update(
                make_user(UserRole.CARE_WORKER.value), make_shift(), ["notes", field]
            )


class TestSetStatus:
    @pytest.mark.parametrize("status", [ShiftStatus.IN_PROGRESS, ShiftStatus.COMPLETED])
    def test_worker_may_start_and_complete_own_shift(self, status):
        permissions.ensure_can_set_status(make_user(UserRole.CARE_WORKER.value), make_shift(), status)

    @pytest.mark.parametrize(
        "status", [ShiftStatus.CANCELLED, ShiftStatus.NO_SHOW, ShiftStatus.SCHEDULED]
    )
    def test_worker_may_not_cancel_or_reschedule(self, status):
        with pytest.raises(InsufficientPermissionsError):
            permissions.ensure_can_set_status(
                make_user(UserRole.SUPPORT_COORDINATOR.value),
                make_shift(status=ShiftStatus.IN_PROGRESS),
                status,
            )

    @pytest.mark.parametrize("status", [ShiftStatus.SCHEDULED, ShiftStatus.CANCELLED])
    def test_worker_may_reassert_current_status_of_own_shift(self, status):
        permissions.ensure_can_set_status(
            make_user(UserRole.CARE_WORKER.value), make_shift(status=status), status
        )

    def test_reasserting_status_still_requires_ownership(self):
        with pytest.raises(InsufficientPermissionsError):
            permissions.ensure_can_set_status(
                make_user(UserRole.CARE_WORKER.value),
                make_shift("someone-else"),
                ShiftStatus.SCHEDULED,
            )

    def test_worker_may_not_start_colleagues_shift(self):
        with pytest.raises(InsufficientPermissionsError):
            permissions.ensure_can_set_status(
                make_user(UserRole.CARE_WORKER.value),
                make_shift("someone-else"),
                ShiftStatus.IN_PROGRESS,
            )

    def test_admin_may_set_any_status(self):
        permissions.ensure_can_set_status(
            make_user(UserRole.ADMIN.value, "admin"), make_shift(), ShiftStatus.NO_SHOW
        )


class TestDelete:
    @pytest.mark.parametrize("status", [ShiftStatus.SCHEDULED, ShiftStatus.CANCELLED])
    def test_manager_may_delete_scheduled_or_cancelled(self, status):
        permissions.ensure_can_delete(make_user(UserRole.MANAGER.value), make_shift(status=status))

    @pytest.mark.parametrize(
        "status", [ShiftStatus.IN_PROGRESS, ShiftStatus.COMPLETED, ShiftStatus.NO_SHOW]
    )
    def test_status_guard_applies_to_super_admin_too(self, status):
        with pytest.raises(InvalidOperationError) as exc_info:
            permissions.ensure_can_delete(
                make_user(UserRole.SUPER_ADMIN.value), make_shift(status=status)
            )

        assert exc_info.value.details == {"status": status.value}

    @pytest.mark.parametrize("role", [*LIMITED_ROLES, "intern"])
    def test_any_role_may_delete_a_scheduled_shift(self, role):
        permissions.ensure_can_delete(make_user(getattr(role, "value", role)), make_shift("someone-else"))

    def test_status_guard_applies_to_limited_roles(self):
        with pytest.raises(InvalidOperationError):
            permissions.ensure_can_delete(
                make_user(UserRole.CARE_WORKER.value), make_shift(status=ShiftStatus.COMPLETED)
            )
