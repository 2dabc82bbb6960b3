"""
In-memory repositories.

In production these would be backed by the studio database (one table for
appointments with a transition log table beside it). The in-memory
versions hand out copies so callers never mutate stored rows in place.
"""

import logging
import threading
from typing import Optional

from inkbook.schemas.booking_schema import Appointment, TransitionRecord
from inkbook.schemas.resource_schema import Resource

logger = logging.getLogger(__name__)


class InMemoryResourceRepository:
    """Dict-backed resource store."""

    def __init__(self, resources: Optional[list[Resource]] = None) -> None:
        self._resources: dict[str, Resource] = {r.id: r for r in resources or []}
        self._lock = threading.Lock()

    def get(self, resource_id: str) -> Optional[Resource]:
        return self._resources.get(resource_id)

    def save(self, resource: Resource) -> None:
        with self._lock:
            self._resources[resource.id] = resource

    def list_all(self) -> list[Resource]:
        return list(self._resources.values())

    def close(self) -> None:
        logger.debug("Resource repository closed (%d resources)", len(self._resources))


class InMemoryAppointmentRepository:
    """Dict-backed appointment store with an append-only transition log."""

    def __init__(self) -> None:
        self._appointments: dict[str, Appointment] = {}
        self._transitions: list[TransitionRecord] = []
        self._lock = threading.Lock()
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("Appointment repository is closed")

    def get(self, appointment_id: str) -> Optional[Appointment]:
        stored = self._appointments.get(appointment_id)
        return stored.model_copy() if stored else None

    def add(self, appointment: Appointment) -> None:
        with self._lock:
            self._check_open()
            if appointment.id in self._appointments:
                raise ValueError(f"Appointment '{appointment.id}' already exists")
            self._appointments[appointment.id] = appointment.model_copy()

    def update(self, appointment: Appointment) -> None:
        with self._lock:
            self._check_open()
            if appointment.id not in self._appointments:
                raise KeyError(f"Appointment '{appointment.id}' does not exist")
            self._appointments[appointment.id] = appointment.model_copy()

    def delete(self, appointment_id: str) -> None:
        with self._lock:
            self._appointments.pop(appointment_id, None)

    def list_for_resource(self, resource_id: str) -> list[Appointment]:
        rows = [a for a in self._appointments.values() if a.resource_id == resource_id]
        return [a.model_copy() for a in sorted(rows, key=lambda a: a.start_time)]

    def list_holding(self) -> list[Appointment]:
        return [a.model_copy() for a in self._appointments.values() if a.holds_slot]

    def record_transition(self, record: TransitionRecord) -> None:
        with self._lock:
            self._check_open()
            self._transitions.append(record)

    def history(self, appointment_id: str) -> list[TransitionRecord]:
        return [r for r in self._transitions if r.appointment_id == appointment_id]

    def close(self) -> None:
        self._closed = True
        logger.debug("Appointment repository closed (%d rows)", len(self._appointments))
