"""Repository interfaces the scheduling engine persists through."""

from typing import Iterable, Optional, Protocol

from inkbook.schemas.booking_schema import Appointment, TransitionRecord
from inkbook.schemas.resource_schema import Resource


class ResourceRepository(Protocol):
    """Stores artists and their working-hours calendars."""

    def get(self, resource_id: str) -> Optional[Resource]:
        ...

    def save(self, resource: Resource) -> None:
        ...

    def list_all(self) -> list[Resource]:
        ...

    def close(self) -> None:
        ...


class AppointmentRepository(Protocol):
    """Stores appointment rows and their append-only transition log."""

    def get(self, appointment_id: str) -> Optional[Appointment]:
        ...

    def add(self, appointment: Appointment) -> None:
        ...

    def update(self, appointment: Appointment) -> None:
        ...

    def delete(self, appointment_id: str) -> None:
        ...

    def list_for_resource(self, resource_id: str) -> list[Appointment]:
        ...

    def list_holding(self) -> Iterable[Appointment]:
        ...

    def record_transition(self, record: TransitionRecord) -> None:
        ...

    def history(self, appointment_id: str) -> list[TransitionRecord]:
        ...

    def close(self) -> None:
        ...
