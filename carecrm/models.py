import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Index, String, Text
from sqlalchemy.orm import relationship

from .database import Base


def generate_id():
    """Generate an opaque unique identifier"""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Current time as naive UTC, the representation stored in every DateTime column"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class UserRole(str, Enum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    MANAGER = "manager"
    CARE_WORKER = "care_worker"
    SUPPORT_COORDINATOR = "support_coordinator"


class ShiftStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    users = relationship("User", back_populates="organization")
    participants = relationship("Participant", back_populates="organization")


class User(Base):
    """Staff member or administrator belonging to one organization"""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_id)
    email = Column(String(255), unique=True, index=True, nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    role = Column(String(50), nullable=False, index=True)  # admin, manager, care_worker, support_coordinator
    organization_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)
    deleted_at = Column(DateTime, nullable=True, index=True)

    organization = relationship("Organization", back_populates="users")
    shifts = relationship("Shift", back_populates="staff")


class Participant(Base):
    """Care recipient"""

    __tablename__ = "participants"

    id = Column(String(36), primary_key=True, default=generate_id)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    ndis_number = Column(String(10), unique=True, nullable=True)
    organization_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)
    deleted_at = Column(DateTime, nullable=True, index=True)

    organization = relationship("Organization", back_populates="participants")
    shifts = relationship("Shift", back_populates="participant")


class Shift(Base):
    """A staff member serving a participant over a time interval"""

    __tablename__ = "shifts"

    id = Column(String(36), primary_key=True, default=generate_id)

    # Relationships
    participant_id = Column(String(36), ForeignKey("participants.id"), nullable=False, index=True)
    staff_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    # Scheduling (naive UTC)
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False, index=True)

    # Actual execution times
    actual_start_time = Column(DateTime, nullable=True)
    actual_end_time = Column(DateTime, nullable=True)

    service_type = Column(String(100), nullable=False, index=True)
    location = Column(String(100), nullable=False)

    # Status workflow: scheduled → in_progress → completed
    # scheduled → cancelled / no_show, both of which can be rescheduled
    status = Column(String(50), default=ShiftStatus.SCHEDULED.value, nullable=False, index=True)

    # Pricing - total_cost is derived from duration and rate, never written directly by callers
    hourly_rate = Column(Float, nullable=False)
    total_cost = Column(Float, nullable=False, default=0.0)

    notes = Column(Text, nullable=True)
    completion_notes = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)
    deleted_at = Column(DateTime, nullable=True, index=True)

    participant = relationship("Participant", back_populates="shifts")
    staff = relationship("User", back_populates="shifts")

    __table_args__ = (
        # Supports the conflict detector's range scan per staff member
        Index("ix_shifts_staff_window", "staff_id", "status", "start_time", "end_time"),
    )
