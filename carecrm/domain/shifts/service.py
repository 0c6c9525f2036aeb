"""Shift service - Business logic for shift scheduling and lifecycle"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...exceptions import (
    CareCRMException,
    InvalidParticipantError,
    InvalidStaffError,
    InvalidTimeRangeError,
    ScheduleConflictError,
    ShiftNotFoundError,
    StorageError,
)
from ...models import Shift, ShiftStatus, User, utc_now
from . import permissions
from .cost import calculate_total_cost
from .lifecycle import is_blocking, plan_transition
from .repository import ShiftRepository
from .schemas import ShiftCreate, ShiftFilters, ShiftStatusUpdate, ShiftUpdate
from .time_parser import end_of_day_exclusive, parse_date, parse_optional_time, parse_time

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10

# ShiftUpdate field → Shift column
UPDATE_FIELDS = {
    "startTime": "start_time",
    "endTime": "end_time",
    "actualStartTime": "actual_start_time",
    "actualEndTime": "actual_end_time",
    "serviceType": "service_type",
    "location": "location",
    "hourlyRate": "hourly_rate",
    "notes": "notes",
    "completionNotes": "completion_notes",
}


def normalize_pagination(actor: User, page: int, limit: int) -> tuple[int, int]:
    """Clamp page to >= 1; out-of-range limits fall back to the default page size"""
    page = max(page, 1)
    if limit < 1 or limit > permissions.max_page_size(actor):
        limit = DEFAULT_PAGE_SIZE
    return page, limit


def _validate_time_range(start_time: datetime, end_time: datetime) -> None:
    if end_time <= start_time:
        raise InvalidTimeRangeError(start_time, end_time)


class ShiftService:
    """Service layer for shift business logic"""

    def __init__(self, db: Session, clock: Callable[[], datetime] = utc_now):
        self.db = db
        self.repo = ShiftRepository()
        self.clock = clock

    @contextmanager
    def _transaction(self, action: str):
        """Roll back on any failure; storage errors become an opaque DATABASE_ERROR"""
        try:
            yield
        except CareCRMException:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"❌ Database error while trying to {action}: {e}")
            raise StorageError(f"Failed to {action}") from e

    def _organization_scope(self, actor: User) -> Optional[str]:
        if permissions.can_bypass_organization_scope(actor):
            return None
        return actor.organization_id

    def _load_shift(self, shift_id: str, organization_id: Optional[str]) -> Shift:
        shift = self.repo.get_shift_by_id(self.db, shift_id, organization_id)
        if not shift:
            raise ShiftNotFoundError(shift_id)
        return shift

    def _ensure_no_conflict(
        self,
        staff_id: str,
        start_time: datetime,
        end_time: datetime,
        exclude_shift_id: Optional[str] = None,
    ) -> None:
        self.repo.lock_staff_calendar(self.db, staff_id)
        if self.repo.has_conflict(self.db, staff_id, start_time, end_time, exclude_shift_id):
            logger.warning(
                f"⚠️ Schedule conflict for staff {staff_id}: {start_time.isoformat()} - {end_time.isoformat()}"
            )
            raise ScheduleConflictError(staff_id, start_time, end_time)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_shift(self, shift_id: str, actor: User) -> Shift:
        """Get a specific shift"""
        with self._transaction("fetch shift"):
            return self._load_shift(shift_id, self._organization_scope(actor))

    def list_shifts(
        self,
        actor: User,
        filters: Optional[ShiftFilters] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> tuple[list[Shift], int]:
        """Filtered, paginated shifts visible to the actor, plus the total match count"""
        filters = filters or ShiftFilters()
        page, limit = normalize_pagination(actor, page, limit)

        start_from = parse_date(filters.startDate, "startDate") if filters.startDate else None
        start_before = (
            end_of_day_exclusive(parse_date(filters.endDate, "endDate")) if filters.endDate else None
        )

        with self._transaction("fetch shifts"):
            return self.repo.list_shifts(
                self.db,
                self._organization_scope(actor),
                participant_id=filters.participantId,
                staff_id=filters.staffId,
                status=filters.status.value if filters.status else None,
                service_type=filters.serviceType,
                start_from=start_from,
                start_before=start_before,
                offset=(page - 1) * limit,
                limit=limit,
            )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_shift(self, data: ShiftCreate, actor: User) -> Shift:
        """Schedule a new shift for a participant and staff member of the actor's organization"""
        logger.info(
            f"📥 Creating shift for participant {data.participantId}, staff {data.staffId} "
            f"by user {actor.id}"
        )

        start_time = parse_time(data.startTime, "startTime")
        end_time = parse_time(data.endTime, "endTime")
        _validate_time_range(start_time, end_time)

        permissions.ensure_can_create(actor)

        with self._transaction("create shift"):
            participant = self.repo.get_active_participant(
                self.db, data.participantId, actor.organization_id
            )
            if not participant:
                raise InvalidParticipantError(data.participantId)

            staff = self.repo.get_active_staff(self.db, data.staffId, actor.organization_id)
            if not staff:
                raise InvalidStaffError(data.staffId)

            self._ensure_no_conflict(staff.id, start_time, end_time)

            shift = self.repo.create_shift(
                self.db,
                participant_id=participant.id,
                staff_id=staff.id,
                start_time=start_time,
                end_time=end_time,
                service_type=data.serviceType,
                location=data.location,
                status=ShiftStatus.SCHEDULED.value,
                hourly_rate=data.hourlyRate,
                total_cost=calculate_total_cost(start_time, end_time, data.hourlyRate),
                notes=data.notes,
            )

        logger.info(f"✅ Shift {shift.id} created (total cost {shift.total_cost:.2f})")
        return shift

    def update_shift(self, shift_id: str, data: ShiftUpdate, actor: User) -> Shift:
        """Apply a partial edit; conflicts and cost are re-evaluated only when their inputs change"""
        supplied = {
            UPDATE_FIELDS[name]: value
            for name, value in data.model_dump(exclude_unset=True, exclude_none=True).items()
        }

        with self._transaction("update shift"):
            shift = self._load_shift(shift_id, self._organization_scope(actor))
            permissions.ensure_can_update(actor, shift, supplied.keys())

            if not supplied:
                return shift

            start_time = (
                parse_time(supplied["start_time"], "startTime")
                if "start_time" in supplied
                else shift.start_time
            )
            end_time = (
                parse_time(supplied["end_time"], "endTime")
                if "end_time" in supplied
                else shift.end_time
            )
            _validate_time_range(start_time, end_time)

            updates = dict(supplied)
            timing_changed = "start_time" in supplied or "end_time" in supplied
            if "start_time" in supplied:
                updates["start_time"] = start_time
            if "end_time" in supplied:
                updates["end_time"] = end_time
            if "actual_start_time" in supplied:
                updates["actual_start_time"] = parse_time(
                    supplied["actual_start_time"], "actualStartTime"
                )
            if "actual_end_time" in supplied:
                updates["actual_end_time"] = parse_time(supplied["actual_end_time"], "actualEndTime")

            if timing_changed and is_blocking(shift.status):
                self._ensure_no_conflict(shift.staff_id, start_time, end_time, exclude_shift_id=shift.id)

            if timing_changed or "hourly_rate" in supplied:
                hourly_rate = supplied.get("hourly_rate", shift.hourly_rate)
                updates["total_cost"] = calculate_total_cost(start_time, end_time, hourly_rate)

            shift = self.repo.update_shift(self.db, shift, **updates)

        logger.info(f"✏️ Shift {shift.id} updated by user {actor.id}: {sorted(supplied)}")
        return shift

    def set_shift_status(self, shift_id: str, data: ShiftStatusUpdate, actor: User) -> Shift:
        """Move a shift along its lifecycle"""
        requested = data.status

        with self._transaction("update shift status"):
            shift = self._load_shift(shift_id, self._organization_scope(actor))
            permissions.ensure_can_set_status(actor, shift, requested)

            actual_start_time = parse_optional_time(data.actualStartTime, "actualStartTime")
            actual_end_time = parse_optional_time(data.actualEndTime, "actualEndTime")

            previous = shift.status
            updates = plan_transition(
                shift,
                requested,
                now=self.clock(),
                actual_start_time=actual_start_time,
                actual_end_time=actual_end_time,
                completion_notes=data.completionNotes,
            )
            if not updates:
                logger.info(f"Shift {shift.id} already {previous}, nothing to change")
                return shift

            # A reactivated cancelled shift takes its calendar slot back
            if not is_blocking(previous) and is_blocking(requested):
                self._ensure_no_conflict(
                    shift.staff_id, shift.start_time, shift.end_time, exclude_shift_id=shift.id
                )

            shift = self.repo.update_shift(self.db, shift, **updates)

        logger.info(f"🔄 Shift {shift.id} status {previous} → {shift.status} by user {actor.id}")
        return shift

    def delete_shift(self, shift_id: str, actor: User) -> dict:
        """Soft-delete a scheduled or cancelled shift in the actor's own organization"""
        with self._transaction("delete shift"):
            shift = self._load_shift(shift_id, actor.organization_id)
            permissions.ensure_can_delete(actor, shift)
            self.repo.soft_delete_shift(self.db, shift, self.clock())

        logger.info(f"🗑️ Shift {shift_id} deleted by user {actor.id}")
        return {"message": "Shift deleted successfully"}
