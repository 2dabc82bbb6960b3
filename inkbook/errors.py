"""
Exceptions raised by the scheduling engine.

Every error carries a stable ``code`` and the ``http_status`` an HTTP
layer should answer with, so callers can serialize failures without a
lookup table of their own.
"""

from typing import Optional


class SchedulingError(Exception):
    """Base exception for all scheduling engine errors."""

    code = "scheduling_error"
    http_status = 400

    def to_dict(self) -> dict:
        return {"error": self.code, "message": str(self)}


class InvalidInterval(SchedulingError):
    """Raised when a slot's end is not after its start."""

    code = "invalid_interval"
    http_status = 422


class UnknownProfile(SchedulingError):
    """Raised when no pricing profile exists for a size and placement."""

    code = "unknown_profile"
    http_status = 422

    def __init__(self, size: str, placement: str) -> None:
        super().__init__(f"No pricing profile for size '{size}' on placement '{placement}'")
        self.size = size
        self.placement = placement


class SlotConflict(SchedulingError):
    """Raised when the requested slot overlaps an appointment that holds it."""

    code = "slot_conflict"
    http_status = 409

    def __init__(self, resource_id: str, conflicting_appointment_id: str) -> None:
        super().__init__(
            f"Slot for resource '{resource_id}' overlaps appointment "
            f"'{conflicting_appointment_id}'"
        )
        self.resource_id = resource_id
        self.conflicting_appointment_id = conflicting_appointment_id

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["conflicting_appointment_id"] = self.conflicting_appointment_id
        return data


class OutsideWorkingHours(SchedulingError):
    """Raised when a slot falls outside the resource's working hours."""

    code = "outside_working_hours"
    http_status = 422


class InvalidTransition(SchedulingError):
    """Raised when a status change is not allowed from the current status."""

    code = "invalid_transition"
    http_status = 409


class AlreadyCancelled(SchedulingError):
    """Raised when cancelling an appointment that is already cancelled."""

    code = "already_cancelled"
    http_status = 409


class TerminalState(SchedulingError):
    """Raised when cancelling a completed or no-show appointment."""

    code = "terminal_state"
    http_status = 409


class AppointmentNotFound(SchedulingError):
    code = "appointment_not_found"
    http_status = 404

    def __init__(self, appointment_id: str) -> None:
        super().__init__(f"Appointment '{appointment_id}' not found")
        self.appointment_id = appointment_id


class ResourceNotFound(SchedulingError):
    code = "resource_not_found"
    http_status = 404

    def __init__(self, resource_id: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"Resource '{resource_id}' not found")
        self.resource_id = resource_id


class PolicyConfigurationError(ValueError):
    """Raised when a cancellation tier list does not partition [0, inf)."""
