"""Shift router - FastAPI endpoints for shift scheduling and lifecycle"""

import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import Shift, ShiftStatus, User
from .schemas import (
    MessageEnvelope,
    Pagination,
    PersonSummary,
    ShiftCreate,
    ShiftEnvelope,
    ShiftFilters,
    ShiftListEnvelope,
    ShiftPage,
    ShiftResponse,
    ShiftStatusUpdate,
    ShiftUpdate,
)
from .service import DEFAULT_PAGE_SIZE, ShiftService, normalize_pagination

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/shifts", tags=["Shifts"])


def get_shift_service(db: Session = Depends(get_db)) -> ShiftService:
    """Dependency injection for ShiftService"""
    return ShiftService(db)


def _person(person) -> Optional[PersonSummary]:
    if person is None:
        return None
    return PersonSummary(id=person.id, firstName=person.first_name, lastName=person.last_name)


def to_shift_response(shift: Shift) -> ShiftResponse:
    return ShiftResponse(
        id=shift.id,
        participantId=shift.participant_id,
        staffId=shift.staff_id,
        startTime=shift.start_time,
        endTime=shift.end_time,
        actualStartTime=shift.actual_start_time,
        actualEndTime=shift.actual_end_time,
        serviceType=shift.service_type,
        location=shift.location,
        status=shift.status,
        hourlyRate=shift.hourly_rate,
        totalCost=shift.total_cost,
        notes=shift.notes,
        completionNotes=shift.completion_notes,
        createdAt=shift.created_at,
        updatedAt=shift.updated_at,
        participant=_person(shift.participant),
        staff=_person(shift.staff),
    )


@router.get("", response_model=ShiftListEnvelope)
async def list_shifts(
    page: int = Query(1),
    limit: int = Query(DEFAULT_PAGE_SIZE),
    participantId: Optional[str] = Query(None),
    staffId: Optional[str] = Query(None),
    status: Optional[ShiftStatus] = Query(None),
    serviceType: Optional[str] = Query(None),
    startDate: Optional[str] = Query(None, description="YYYY-MM-DD, inclusive"),
    endDate: Optional[str] = Query(None, description="YYYY-MM-DD, inclusive"),
    current_user: User = Depends(get_current_user),
    service: ShiftService = Depends(get_shift_service),
):
    """List shifts in the current user's organization with filters and pagination"""
    page, limit = normalize_pagination(current_user, page, limit)
    filters = ShiftFilters(
        participantId=participantId,
        staffId=staffId,
        status=status,
        serviceType=serviceType,
        startDate=startDate,
        endDate=endDate,
    )
    shifts, total = service.list_shifts(current_user, filters, page, limit)
    return ShiftListEnvelope(
        data=ShiftPage(
            shifts=[to_shift_response(s) for s in shifts],
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                totalPages=math.ceil(total / limit),
            ),
        )
    )


@router.get("/{shift_id}", response_model=ShiftEnvelope)
async def get_shift(
    shift_id: str,
    current_user: User = Depends(get_current_user),
    service: ShiftService = Depends(get_shift_service),
):
    """Get a specific shift"""
    shift = service.get_shift(shift_id, current_user)
    return ShiftEnvelope(data=to_shift_response(shift))


@router.post("", response_model=ShiftEnvelope, status_code=201)
async def create_shift(
    data: ShiftCreate,
    current_user: User = Depends(get_current_user),
    service: ShiftService = Depends(get_shift_service),
):
    """Schedule a new shift"""
    shift = service.create_shift(data, current_user)
    return ShiftEnvelope(data=to_shift_response(shift), message="Shift created successfully")


@router.put("/{shift_id}", response_model=ShiftEnvelope)
@router.patch("/{shift_id}", response_model=ShiftEnvelope)
async def update_shift(
    shift_id: str,
    data: ShiftUpdate,
    current_user: User = Depends(get_current_user),
    service: ShiftService = Depends(get_shift_service),
):
    """Update times, rate or details of a shift"""
    shift = service.update_shift(shift_id, data, current_user)
    return ShiftEnvelope(data=to_shift_response(shift), message="Shift updated successfully")


@router.patch("/{shift_id}/status", response_model=ShiftEnvelope)
async def update_shift_status(
    shift_id: str,
    data: ShiftStatusUpdate,
    current_user: User = Depends(get_current_user),
    service: ShiftService = Depends(get_shift_service),
):
    """Start, complete, cancel, reschedule or mark a shift as no-show"""
    shift = service.set_shift_status(shift_id, data, current_user)
    return ShiftEnvelope(
        data=to_shift_response(shift), message="Shift status updated successfully"
    )


@router.delete("/{shift_id}", response_model=MessageEnvelope)
async def delete_shift(
    shift_id: str,
    current_user: User = Depends(get_current_user),
    service: ShiftService = Depends(get_shift_service),
):
    """Delete a scheduled or cancelled shift"""
    result = service.delete_shift(shift_id, current_user)
    return MessageEnvelope(message=result["message"])


__all__ = [
    "router",
    "list_shifts",
    "get_shift",
    "create_shift",
    "update_shift",
    "update_shift_status",
    "delete_shift",
]
