"""
Shift lifecycle state machine.

    scheduled   → in_progress, cancelled, no_show
    in_progress → completed, cancelled
    completed   → (terminal)
    cancelled   → scheduled
    no_show     → scheduled

Requesting the current status again is accepted and changes nothing.
"""

from datetime import datetime, timedelta
from typing import Any, Optional, Union

from ...exceptions import InvalidTransitionError, TooEarlyToStartError
from ...models import Shift, ShiftStatus

ALLOWED_TRANSITIONS: dict[ShiftStatus, frozenset[ShiftStatus]] = {
    ShiftStatus.SCHEDULED: frozenset(
        {ShiftStatus.IN_PROGRESS, ShiftStatus.CANCELLED, ShiftStatus.NO_SHOW}
    ),
    ShiftStatus.IN_PROGRESS: frozenset({ShiftStatus.COMPLETED, ShiftStatus.CANCELLED}),
    ShiftStatus.COMPLETED: frozenset(),
    ShiftStatus.CANCELLED: frozenset({ShiftStatus.SCHEDULED}),
    ShiftStatus.NO_SHOW: frozenset({ShiftStatus.SCHEDULED}),
}

TERMINAL_STATUSES = frozenset({ShiftStatus.COMPLETED})

# Shifts in these statuses no longer occupy the staff member's calendar
NON_BLOCKING_STATUSES = frozenset({ShiftStatus.CANCELLED, ShiftStatus.COMPLETED})

DELETABLE_STATUSES = frozenset({ShiftStatus.SCHEDULED, ShiftStatus.CANCELLED})

EARLY_START_WINDOW_MINUTES = 30
EARLY_START_WINDOW = timedelta(minutes=EARLY_START_WINDOW_MINUTES)

StatusLike = Union[ShiftStatus, str]


def _as_status(value: StatusLike) -> Optional[ShiftStatus]:
    try:
        return ShiftStatus(value)
    except ValueError:
        return None


def _label(value: StatusLike) -> str:
    return value.value if isinstance(value, ShiftStatus) else str(value)


def is_blocking(status: StatusLike) -> bool:
    """Whether a shift in this status counts for double-booking checks"""
    return _as_status(status) not in NON_BLOCKING_STATUSES


def is_deletable(status: StatusLike) -> bool:
    return _as_status(status) in DELETABLE_STATUSES


def can_transition(current: StatusLike, requested: StatusLike) -> bool:
    current_status = _as_status(current)
    requested_status = _as_status(requested)
    if current_status is None or requested_status is None:
        return False
    if current_status == requested_status:
        return True
    return requested_status in ALLOWED_TRANSITIONS[current_status]


def validate_transition(current: StatusLike, requested: StatusLike) -> None:
    if not can_transition(current, requested):
        raise InvalidTransitionError(_label(current), _label(requested))


def check_start_window(scheduled_start: datetime, now: datetime) -> None:
    """Reject starting a shift more than 30 minutes before it is scheduled to begin"""
    if now < scheduled_start - EARLY_START_WINDOW:
        minutes_early = int((scheduled_start - now).total_seconds() // 60)
        raise TooEarlyToStartError(minutes_early, EARLY_START_WINDOW_MINUTES)


def plan_transition(
    shift: Shift,
    requested: StatusLike,
    now: datetime,
    actual_start_time: Optional[datetime] = None,
    actual_end_time: Optional[datetime] = None,
    completion_notes: Optional[str] = None,
) -> dict[str, Any]:
    """
    Validate a status change and return the column updates it implies.

    An empty dict means the request re-asserted the current status and there
    is nothing to write. Caller-supplied actual times take precedence over the
    automatic stamps.
    """
    current = _as_status(shift.status)
    target = _as_status(requested)

    if current is not None and current == target:
        return {}

    validate_transition(shift.status, requested)

    if current == ShiftStatus.SCHEDULED and target == ShiftStatus.IN_PROGRESS:
        check_start_window(shift.start_time, now)

    updates: dict[str, Any] = {"status": target.value}

    if completion_notes is not None:
        updates["completion_notes"] = completion_notes

    if actual_start_time is not None:
        updates["actual_start_time"] = actual_start_time
    elif target == ShiftStatus.IN_PROGRESS and shift.actual_start_time is None:
        updates["actual_start_time"] = now

    if actual_end_time is not None:
        updates["actual_end_time"] = actual_end_time
    elif target == ShiftStatus.COMPLETED and shift.actual_end_time is None:
        updates["actual_end_time"] = now

    return updates
