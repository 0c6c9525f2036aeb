"""
Custom exceptions for consistent error handling

Every exception carries a machine readable ``error_code`` and a ``details``
dict so the client can render a specific message. They are HTTPExceptions,
so services raise them directly and FastAPI maps them to a status code.
"""

from typing import Any, Optional

from fastapi import HTTPException, status


class CareCRMException(HTTPException):
    """Base exception for the care CRM API"""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: str,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(status_code=status_code, detail=detail)
        self.error_code = error_code
        self.details = details or {}


class UnauthorizedException(CareCRMException):
    """401 - Authentication required or failed"""

    def __init__(self, detail: str = "Not authenticated"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="UNAUTHORIZED",
        )


class InvalidTimeFormatError(CareCRMException):
    """400 - A timestamp matched none of the accepted layouts"""

    def __init__(self, value: str, field: Optional[str] = None):
        label = field or "time"
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {label} format: {value!r}. Use ISO 8601 or 'YYYY-MM-DD HH:MM[:SS]'.",
            error_code="INVALID_TIME_FORMAT",
            details={"field": field, "value": value},
        )
        self.value = value
        self.field = field


class InvalidTimeRangeError(CareCRMException):
    """400 - End time is not strictly after start time"""

    def __init__(self, start_time, end_time):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="End time must be after start time",
            error_code="INVALID_TIME_RANGE",
            details={"startTime": start_time.isoformat(), "endTime": end_time.isoformat()},
        )


class InvalidParticipantError(CareCRMException):
    """400 - Participant missing, inactive or in another organization"""

    def __init__(self, participant_id: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Participant not found or inactive",
            error_code="INVALID_PARTICIPANT",
            details={"participantId": participant_id},
        )


class InvalidStaffError(CareCRMException):
    """400 - Staff member missing, inactive or in another organization"""

    def __init__(self, staff_id: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Staff member not found or inactive",
            error_code="INVALID_STAFF",
            details={"staffId": staff_id},
        )


class ScheduleConflictError(CareCRMException):
    """409 - Staff member already has an active shift in the window"""

    def __init__(self, staff_id: str, start_time, end_time):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail="Staff member already has a shift scheduled during this time",
            error_code="SCHEDULE_CONFLICT",
            details={
                "staffId": staff_id,
                "startTime": start_time.isoformat(),
                "endTime": end_time.isoformat(),
            },
        )


class InvalidTransitionError(CareCRMException):
    """400 - Requested status is not reachable from the current one"""

    def __init__(self, current: str, requested: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid status transition from {current} to {requested}",
            error_code="INVALID_TRANSITION",
            details={"currentStatus": current, "requestedStatus": requested},
        )
        self.current = current
        self.requested = requested


class TooEarlyToStartError(CareCRMException):
    """400 - Shift started more than the allowed window before its start time"""

    def __init__(self, minutes_early: int, window_minutes: int):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                f"Cannot start shift more than {window_minutes} minutes early. "
                f"Shift starts in {minutes_early} minutes."
            ),
            error_code="TOO_EARLY_TO_START",
            details={"minutesEarly": minutes_early, "windowMinutes": window_minutes},
        )
        self.minutes_early = minutes_early


class InsufficientPermissionsError(CareCRMException):
    """403 - Role or ownership does not allow the action"""

    def __init__(self, detail: str, role: Optional[str] = None, action: Optional[str] = None):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            error_code="INSUFFICIENT_PERMISSIONS",
            details={"role": role, "action": action},
        )


class InvalidOperationError(CareCRMException):
    """400 - Structurally disallowed action"""

    def __init__(self, detail: str, shift_status: Optional[str] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code="INVALID_OPERATION",
            details={"status": shift_status},
        )


class ShiftNotFoundError(CareCRMException):
    """404 - Shift not visible in the caller's scope"""

    def __init__(self, shift_id: str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Shift not found",
            error_code="SHIFT_NOT_FOUND",
            details={"shiftId": shift_id},
        )


class StorageError(CareCRMException):
    """500 - Unexpected database failure; the only kind worth retrying"""

    def __init__(self, detail: str = "Database error"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            error_code="DATABASE_ERROR",
        )
