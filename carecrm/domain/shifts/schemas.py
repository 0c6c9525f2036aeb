"""Shift domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_serializer, field_validator

from ...models import ShiftStatus
from .cost import round_currency
from .time_parser import format_utc


def _validate_rate(v):
    if v is not None and v <= 0:
        raise ValueError("Hourly rate must be greater than 0")
    return v


class ShiftCreate(BaseModel):
    """Schema for scheduling a new shift"""

    participantId: str = Field(..., min_length=1)
    staffId: str = Field(..., min_length=1)
    startTime: str = Field(..., min_length=1)  # ISO 8601 or "YYYY-MM-DD HH:MM[:SS]"
    endTime: str = Field(..., min_length=1)
    serviceType: str = Field(..., min_length=1, max_length=100)
    location: str = Field(..., min_length=1, max_length=100)
    hourlyRate: float
    notes: Optional[str] = None

    @field_validator("hourlyRate")
    @classmethod
    def validate_hourly_rate(cls, v):
        return _validate_rate(v)


class ShiftUpdate(BaseModel):
    """Schema for a partial shift edit; only supplied fields are written"""

    startTime: Optional[str] = None
    endTime: Optional[str] = None
    actualStartTime: Optional[str] = None
    actualEndTime: Optional[str] = None
    serviceType: Optional[str] = Field(None, min_length=1, max_length=100)
    location: Optional[str] = Field(None, min_length=1, max_length=100)
    hourlyRate: Optional[float] = None
    notes: Optional[str] = None
    completionNotes: Optional[str] = None

    @field_validator("hourlyRate")
    @classmethod
    def validate_hourly_rate(cls, v):
        return _validate_rate(v)


class ShiftStatusUpdate(BaseModel):
    """Schema for a status change"""

    status: ShiftStatus
    completionNotes: Optional[str] = None
    actualStartTime: Optional[str] = None
    actualEndTime: Optional[str] = None


class ShiftFilters(BaseModel):
    """Optional list filters; dates are YYYY-MM-DD and the end date is inclusive"""

    participantId: Optional[str] = None
    staffId: Optional[str] = None
    status: Optional[ShiftStatus] = None
    serviceType: Optional[str] = None
    startDate: Optional[str] = None
    endDate: Optional[str] = None


class PersonSummary(BaseModel):
    id: str
    firstName: str
    lastName: str


class ShiftResponse(BaseModel):
    """Schema for shift response"""

    id: str
    participantId: str
    staffId: str
    startTime: datetime
    endTime: datetime
    actualStartTime: Optional[datetime] = None
    actualEndTime: Optional[datetime] = None
    serviceType: str
    location: str
    status: str
    hourlyRate: float
    totalCost: float
    notes: Optional[str] = None
    completionNotes: Optional[str] = None
    createdAt: datetime
    updatedAt: datetime
    participant: Optional[PersonSummary] = None
    staff: Optional[PersonSummary] = None

    class Config:
        from_attributes = True

    @field_serializer(
        "startTime", "endTime", "actualStartTime", "actualEndTime", "createdAt", "updatedAt"
    )
    def serialize_utc(self, value: Optional[datetime]):
        return format_utc(value)

    @field_serializer("totalCost")
    def serialize_total_cost(self, value: float):
        return round_currency(value)


class ShiftEnvelope(BaseModel):
    success: bool = True
    data: ShiftResponse
    message: Optional[str] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int


class ShiftPage(BaseModel):
    shifts: list[ShiftResponse]
    pagination: Pagination


class ShiftListEnvelope(BaseModel):
    success: bool = True
    data: ShiftPage


class MessageEnvelope(BaseModel):
    success: bool = True
    message: str
