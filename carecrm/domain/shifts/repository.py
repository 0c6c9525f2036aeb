"""Shift repository - Database operations for shifts"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Query, Session, joinedload

from ...models import Participant, Shift, User
from .lifecycle import NON_BLOCKING_STATUSES


class ShiftRepository:
    """Repository for shift database operations"""

    @staticmethod
    def _visible_shifts(db: Session, organization_id: Optional[str]) -> Query:
        """Non-deleted shifts, limited to one organization unless organization_id is None"""
        query = db.query(Shift).filter(Shift.deleted_at.is_(None))
        if organization_id is not None:
            query = query.join(Participant, Shift.participant_id == Participant.id).filter(
                Participant.organization_id == organization_id
            )
        return query

    @staticmethod
    def get_shift_by_id(
        db: Session, shift_id: str, organization_id: Optional[str]
    ) -> Optional[Shift]:
        """Get a shift by ID within the organization (or globally when organization_id is None)"""
        return (
            ShiftRepository._visible_shifts(db, organization_id)
            .filter(Shift.id == shift_id)
            .options(joinedload(Shift.participant), joinedload(Shift.staff))
            .first()
        )

    @staticmethod
    def list_shifts(
        db: Session,
        organization_id: Optional[str],
        participant_id: Optional[str] = None,
        staff_id: Optional[str] = None,
        status: Optional[str] = None,
        service_type: Optional[str] = None,
        start_from: Optional[datetime] = None,
        start_before: Optional[datetime] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[Shift], int]:
        """Filtered page of shifts, newest start first, plus the total match count"""
        query = ShiftRepository._visible_shifts(db, organization_id)

        if participant_id:
            query = query.filter(Shift.participant_id == participant_id)

        if staff_id:
            query = query.filter(Shift.staff_id == staff_id)

        if status:
            query = query.filter(Shift.status == status)

        if service_type:
            query = query.filter(Shift.service_type == service_type)

        if start_from:
            query = query.filter(Shift.start_time >= start_from)

        if start_before:
            query = query.filter(Shift.start_time < start_before)

        total = query.count()

        shifts = (
            query.options(joinedload(Shift.participant), joinedload(Shift.staff))
            .order_by(Shift.start_time.desc(), Shift.id)
            .offset(offset)
            .limit(limit)
            .all()
        )
        return shifts, total

    @staticmethod
    def has_conflict(
        db: Session,
        staff_id: str,
        start_time: datetime,
        end_time: datetime,
        exclude_shift_id: Optional[str] = None,
    ) -> bool:
        """
        Whether the staff member has another active shift overlapping [start_time, end_time).

        Half-open intervals: a shift ending at 09:00 does not overlap one
        starting at 09:00. Cancelled, completed and soft-deleted shifts are ignored.
        """
        query = db.query(Shift.id).filter(
            Shift.staff_id == staff_id,
            Shift.deleted_at.is_(None),
            Shift.status.not_in([s.value for s in NON_BLOCKING_STATUSES]),
            Shift.start_time < end_time,
            Shift.end_time > start_time,
        )
        if exclude_shift_id:
            query = query.filter(Shift.id != exclude_shift_id)

        return query.first() is not None

    @staticmethod
    def lock_staff_calendar(db: Session, staff_id: str) -> Optional[User]:
        """
        Row-lock the staff member until the transaction ends.

        Serializes concurrent check-then-write sequences against the same
        calendar. SQLite ignores FOR UPDATE and already serializes writers.
        """
        return db.query(User).filter(User.id == staff_id).with_for_update().first()

    @staticmethod
    def get_active_participant(
        db: Session, participant_id: str, organization_id: str
    ) -> Optional[Participant]:
        return (
            db.query(Participant)
            .filter(
                Participant.id == participant_id,
                Participant.organization_id == organization_id,
                Participant.is_active.is_(True),
                Participant.deleted_at.is_(None),
            )
            .first()
        )

    @staticmethod
    def get_active_staff(db: Session, staff_id: str, organization_id: str) -> Optional[User]:
        return (
            db.query(User)
            .filter(
                User.id == staff_id,
                User.organization_id == organization_id,
                User.is_active.is_(True),
                User.deleted_at.is_(None),
            )
            .first()
        )

    @staticmethod
    def create_shift(db: Session, **shift_data) -> Shift:
        """Create a new shift"""
        shift = Shift(**shift_data)
        db.add(shift)
        db.commit()
        db.refresh(shift)
        return shift

    @staticmethod
    def update_shift(db: Session, shift: Shift, **updates) -> Shift:
        """Update a shift with the provided fields"""
        for key, value in updates.items():
            if hasattr(shift, key):
                setattr(shift, key, value)

        db.commit()
        db.refresh(shift)
        return shift

    @staticmethod
    def soft_delete_shift(db: Session, shift: Shift, deleted_at: datetime) -> None:
        """Mark a shift as deleted; the row stays for billing history"""
        shift.deleted_at = deleted_at
        db.commit()
