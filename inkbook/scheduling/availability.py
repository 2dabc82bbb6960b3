"""
Per-resource index of committed intervals.

Each resource keeps its held intervals sorted by start time. Held
intervals never overlap one another (insert and update refuse an
overlapping interval), so ends are sorted too and a conflict check only
needs to look at the neighbour just before the requested end (plus one
more when that neighbour is excluded). Search is O(log n); insert and
remove are O(n) list shifts.

All mutation for one resource happens under that resource's lock;
different resources never share a lock.

Usage:
    index = AvailabilityIndex()
    index.register_resource(resource)
    with index.locked("artist-1"):
        if not index.has_conflict("artist-1", start, end):
            index.insert("APT-1", "artist-1", start, end)
"""

import bisect
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterator, Optional

from inkbook.errors import InvalidInterval, OutsideWorkingHours, ResourceNotFound, SlotConflict
from inkbook.schemas.resource_schema import WEEKDAY_NAMES, Resource, WorkingHoursBlock
from inkbook.utils import ensure_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Interval:
    """A held [start, end) interval owned by an appointment."""
    start: datetime
    end: datetime
    appointment_id: str


@dataclass
class _Timeline:
    """Sorted held intervals for one resource."""
    starts: list[datetime] = field(default_factory=list)
    intervals: list[Interval] = field(default_factory=list)

    def add(self, interval: Interval) -> None:
        pos = bisect.bisect_right(self.starts, interval.start)
        self.starts.insert(pos, interval.start)
        self.intervals.insert(pos, interval)

    def discard(self, interval: Interval) -> None:
        pos = bisect.bisect_left(self.starts, interval.start)
        while pos < len(self.intervals) and self.starts[pos] == interval.start:
            if self.intervals[pos].appointment_id == interval.appointment_id:
                del self.starts[pos]
                del self.intervals[pos]
                return
            pos += 1

    def find_overlap(
        self, start: datetime, end: datetime, exclude: Optional[str] = None
    ) -> Optional[Interval]:
        # Candidates are the intervals starting before `end`; the latest of
        # them also ends latest, so only the tail needs checking.
        pos = bisect.bisect_left(self.starts, end) - 1
        while pos >= 0:
            candidate = self.intervals[pos]
            if candidate.appointment_id != exclude:
                return candidate if candidate.end > start else None
            pos -= 1
        return None


def _interval(appointment_id: str, start: datetime, end: datetime) -> Interval:
    start, end = ensure_utc(start), ensure_utc(end)
    if end <= start:
        raise InvalidInterval(f"end ({end.isoformat()}) must be after start ({start.isoformat()})")
    return Interval(start, end, appointment_id)


def _refuse_overlap(timeline: _Timeline, resource_id: str, interval: Interval) -> None:
    """Keep the timeline overlap-free; find_overlap depends on it."""
    hit = timeline.find_overlap(interval.start, interval.end, exclude=interval.appointment_id)
    if hit is not None:
        raise SlotConflict(resource_id, hit.appointment_id)


class AvailabilityIndex:
    """Held intervals and working-hours calendars for every resource."""

    def __init__(self) -> None:
        self._resources: dict[str, Resource] = {}
        self._timelines: dict[str, _Timeline] = {}
        self._by_appointment: dict[str, tuple[str, Interval]] = {}
        self._locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    # ------------------------------------------------------------------ #
    # Locking
    # ------------------------------------------------------------------ #

    def lock_for(self, resource_id: str) -> threading.RLock:
        """Return the re-entrant lock guarding one resource's timeline."""
        lock = self._locks.get(resource_id)
        if lock is None:
            with self._locks_guard:
                lock = self._locks.setdefault(resource_id, threading.RLock())
        return lock

    @contextmanager
    def locked(self, resource_id: str) -> Iterator[None]:
        with self.lock_for(resource_id):
            yield

    # ------------------------------------------------------------------ #
    # Resources and working hours
    # ------------------------------------------------------------------ #

    def register_resource(self, resource: Resource) -> None:
        with self.locked(resource.id):
            self._resources[resource.id] = resource
            self._timelines.setdefault(resource.id, _Timeline())
        logger.debug("Resource registered in index: %s", resource.id)

    def set_working_hours(
        self, resource_id: str, working_hours: dict[int, tuple[WorkingHoursBlock, ...]]
    ) -> Resource:
        """Replace a resource's calendar. Existing bookings are left alone."""
        with self.locked(resource_id):
            resource = self.get_resource(resource_id)
            updated = Resource.model_validate(
                {**resource.model_dump(), "working_hours": working_hours}
            )
            self._resources[resource_id] = updated
        logger.info("Working hours updated for resource %s", resource_id)
        return updated

    def get_resource(self, resource_id: str) -> Resource:
        resource = self._resources.get(resource_id)
        if resource is None:
            raise ResourceNotFound(resource_id)
        return resource

    def has_resource(self, resource_id: str) -> bool:
        return resource_id in self._resources

    def check_working_hours(self, resource_id: str, start: datetime, end: datetime) -> None:
        """
        Ensure [start, end) sits inside one working-hours block.

        The slot is converted to the resource's timezone. A slot that
        ends on a different local day than it starts is rejected.

        Raises:
            OutsideWorkingHours: If no single block covers the slot.
            ResourceNotFound: If the resource is not registered.
        """
        resource = self.get_resource(resource_id)
        local_start = ensure_utc(start).astimezone(resource.tz)
        local_end = ensure_utc(end).astimezone(resource.tz)

        if local_end.date() != local_start.date():
            raise OutsideWorkingHours(
                f"Slot {local_start:%Y-%m-%d %H:%M} - {local_end:%Y-%m-%d %H:%M} "
                f"crosses a day boundary for resource '{resource_id}'"
            )

        weekday = local_start.weekday()
        blocks = resource.blocks_for(weekday)
        if not any(b.contains(local_start.time(), local_end.time()) for b in blocks):
            opening = ", ".join(f"{b.open:%H:%M}-{b.close:%H:%M}" for b in blocks) or "closed"
            raise OutsideWorkingHours(
                f"Slot {local_start:%H:%M}-{local_end:%H:%M} is outside working hours "
                f"for resource '{resource_id}' on {WEEKDAY_NAMES[weekday]} ({opening})"
            )

    # ------------------------------------------------------------------ #
    # Interval queries and mutation
    # ------------------------------------------------------------------ #

    def _timeline(self, resource_id: str) -> _Timeline:
        timeline = self._timelines.get(resource_id)
        if timeline is None:
            raise ResourceNotFound(resource_id)
        return timeline

    def find_conflict(
        self,
        resource_id: str,
        start: datetime,
        end: datetime,
        exclude_appointment_id: Optional[str] = None,
    ) -> Optional[str]:
        """Return the id of an appointment overlapping [start, end), if any."""
        start, end = ensure_utc(start), ensure_utc(end)
        if end <= start:
            raise InvalidInterval(f"end ({end.isoformat()}) must be after start ({start.isoformat()})")
        with self.locked(resource_id):
            hit = self._timeline(resource_id).find_overlap(start, end, exclude_appointment_id)
        return hit.appointment_id if hit else None

    def has_conflict(
        self,
        resource_id: str,
        start: datetime,
        end: datetime,
        exclude_appointment_id: Optional[str] = None,
    ) -> bool:
        return self.find_conflict(resource_id, start, end, exclude_appointment_id) is not None

    def insert(self, appointment_id: str, resource_id: str, start: datetime, end: datetime) -> None:
        """Add a held interval.

        Raises:
            ValueError: If the appointment is already indexed.
            InvalidInterval: If end is not after start.
            SlotConflict: If the interval overlaps another held interval.
        """
        interval = _interval(appointment_id, start, end)
        with self.locked(resource_id):
            if appointment_id in self._by_appointment:
                raise ValueError(f"Appointment '{appointment_id}' is already indexed")
            timeline = self._timeline(resource_id)
            _refuse_overlap(timeline, resource_id, interval)
            timeline.add(interval)
            self._by_appointment[appointment_id] = (resource_id, interval)

    def remove(self, appointment_id: str) -> bool:
        """Drop an appointment's interval. Returns False if it was not indexed."""
        entry = self._by_appointment.get(appointment_id)
        if entry is None:
            return False
        resource_id, _ = entry
        with self.locked(resource_id):
            entry = self._by_appointment.pop(appointment_id, None)
            if entry is None:
                return False
            self._timeline(resource_id).discard(entry[1])
        return True

    def update(self, appointment_id: str, new_start: datetime, new_end: datetime) -> None:
        """Move an indexed appointment to a new interval on the same resource.

        Raises:
            KeyError: If the appointment is not indexed.
            InvalidInterval: If end is not after start.
            SlotConflict: If the new interval overlaps another held interval.
        """
        entry = self._by_appointment.get(appointment_id)
        if entry is None:
            raise KeyError(f"Appointment '{appointment_id}' is not indexed")
        resource_id, old = entry
        new = _interval(appointment_id, new_start, new_end)
        with self.locked(resource_id):
            timeline = self._timeline(resource_id)
            _refuse_overlap(timeline, resource_id, new)
            timeline.discard(old)
            timeline.add(new)
            self._by_appointment[appointment_id] = (resource_id, new)

    def interval_of(self, appointment_id: str) -> Optional[Interval]:
        entry = self._by_appointment.get(appointment_id)
        return entry[1] if entry else None

    def intervals(self, resource_id: str) -> list[Interval]:
        with self.locked(resource_id):
            return list(self._timeline(resource_id).intervals)

    def clear(self) -> None:
        for resource_id in list(self._timelines):
            with self.locked(resource_id):
                self._timelines[resource_id] = _Timeline()
        self._by_appointment.clear()

    # ------------------------------------------------------------------ #
    # Open slot search
    # ------------------------------------------------------------------ #

    def open_slots(
        self,
        resource_id: str,
        day: date,
        duration_minutes: int,
        step_minutes: int = 30,
    ) -> list[tuple[datetime, datetime]]:
        """
        List free [start, end) slots of a given length on a local date.

        Candidate starts are laid on a ``step_minutes`` grid from each
        block's opening time. Returned datetimes are UTC.
        """
        if duration_minutes <= 0 or step_minutes <= 0:
            raise ValueError("duration_minutes and step_minutes must be positive")

        resource = self.get_resource(resource_id)
        tz = resource.tz
        duration = timedelta(minutes=duration_minutes)
        step = timedelta(minutes=step_minutes)
        slots: list[tuple[datetime, datetime]] = []

        with self.locked(resource_id):
            timeline = self._timeline(resource_id)
            for block in resource.blocks_for(day.weekday()):
                # Step and measure in UTC so a DST shift never stretches a slot.
                cursor = ensure_utc(datetime.combine(day, block.open, tzinfo=tz))
                close = ensure_utc(datetime.combine(day, block.close, tzinfo=tz))
                while cursor + duration <= close:
                    end = cursor + duration
                    local_start, local_end = cursor.astimezone(tz), end.astimezone(tz)
                    inside = local_start.date() == local_end.date() == day and block.contains(
                        local_start.time(), local_end.time()
                    )
                    if inside and timeline.find_overlap(cursor, end) is None:
                        slots.append((cursor, end))
                    cursor += step
        return slots
