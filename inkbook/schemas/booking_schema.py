"""Appointment data models."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from inkbook.utils import ensure_utc, utcnow


class AppointmentStatus(str, Enum):
    """Lifecycle status of an appointment."""
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


# Statuses that reserve calendar time for the resource.
HOLDS_SLOT_STATUSES = frozenset({
    AppointmentStatus.SCHEDULED,
    AppointmentStatus.CONFIRMED,
    AppointmentStatus.IN_PROGRESS,
})

TERMINAL_STATUSES = frozenset({
    AppointmentStatus.COMPLETED,
    AppointmentStatus.CANCELLED,
    AppointmentStatus.NO_SHOW,
})


class Appointment(BaseModel):
    """A booked session for one customer with one resource."""
    id: str
    resource_id: str
    customer_id: str
    start_time: datetime
    end_time: datetime
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    size: str
    placement: str
    complexity_level: int
    estimated_hours: Decimal = Field(ge=0)
    price: Decimal = Field(ge=0)
    deposit_amount: Decimal = Field(ge=0)
    deposit_paid: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    cancelled_at: Optional[datetime] = None
    cancellation_reason_code: Optional[str] = None

    @field_validator("start_time", "end_time", "created_at", "cancelled_at")
    @classmethod
    def _to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value) if value is not None else None

    @model_validator(mode="after")
    def _check_interval(self) -> "Appointment":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

    @property
    def holds_slot(self) -> bool:
        return self.status in HOLDS_SLOT_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class TransitionRecord(BaseModel):
    """Append-only audit entry for a committed status change."""
    appointment_id: str
    from_status: Optional[AppointmentStatus] = None
    to_status: AppointmentStatus
    action: str
    at: datetime = Field(default_factory=utcnow)
    request_id: str = "-"
