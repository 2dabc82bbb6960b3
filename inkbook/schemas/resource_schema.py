"""Resource (artist) and working-hours data models."""

from datetime import time
from decimal import Decimal
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

WEEKDAY_NAMES = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


class WorkingHoursBlock(BaseModel):
    """One open window within a day, in the resource's local time."""

    model_config = ConfigDict(frozen=True)

    open: time
    close: time

    @model_validator(mode="after")
    def _check_order(self) -> "WorkingHoursBlock":
        if self.close <= self.open:
            raise ValueError(f"close ({self.close}) must be after open ({self.open})")
        return self

    def contains(self, start: time, end: time) -> bool:
        return self.open <= start and end <= self.close


class Resource(BaseModel):
    """
    A bookable artist.

    ``working_hours`` maps weekday numbers (0 = Monday) to the open
    windows for that day. A weekday without an entry is closed.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    timezone: str = "UTC"
    hourly_rate: Optional[Decimal] = Field(default=None, ge=0)
    working_hours: dict[int, tuple[WorkingHoursBlock, ...]] = Field(default_factory=dict)

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {value!r}") from None
        return value

    @field_validator("working_hours")
    @classmethod
    def _check_weekdays(
        cls, value: dict[int, tuple[WorkingHoursBlock, ...]]
    ) -> dict[int, tuple[WorkingHoursBlock, ...]]:
        for weekday, blocks in value.items():
            if not 0 <= weekday <= 6:
                raise ValueError(f"weekday must be 0-6, got {weekday}")
            ordered = sorted(blocks, key=lambda b: b.open)
            for earlier, later in zip(ordered, ordered[1:]):
                if later.open < earlier.close:
                    raise ValueError(
                        f"overlapping working hours on {WEEKDAY_NAMES[weekday]}"
                    )
        return {day: tuple(sorted(blocks, key=lambda b: b.open)) for day, blocks in value.items()}

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def blocks_for(self, weekday: int) -> tuple[WorkingHoursBlock, ...]:
        return self.working_hours.get(weekday, ())


def weekly_hours(
    days: list[int], open_at: str, close_at: str
) -> dict[int, tuple[WorkingHoursBlock, ...]]:
    """Build a working-hours map with the same single block on each given day.

    Example:
        weekly_hours([0, 1, 2, 3, 4], "09:00", "17:00")
    """
    block = WorkingHoursBlock(open=time.fromisoformat(open_at), close=time.fromisoformat(close_at))
    return {day: (block,) for day in days}
