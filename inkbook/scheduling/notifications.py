"""
Notification dispatch boundary.

The engine calls a hook after every committed status change. Email, SMS
and webhook delivery live outside this package; they implement
``NotificationHook`` and are injected into the engine.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Appointment events announced to the notifier."""
    CREATED = "appointment.created"
    RESCHEDULED = "appointment.rescheduled"
    CONFIRMED = "appointment.confirmed"
    STARTED = "appointment.started"
    COMPLETED = "appointment.completed"
    CANCELLED = "appointment.cancelled"
    NO_SHOW = "appointment.no_show"


@dataclass(frozen=True)
class NotificationEvent:
    """A committed change, with a JSON-friendly payload."""
    type: EventType
    appointment_id: str
    payload: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class NotificationHook(Protocol):
    """Receives events after the engine commits a change."""

    def notify(self, event: NotificationEvent) -> None:
        ...


class LoggingNotifier:
    """Default hook: writes each event to the log and does nothing else."""

    def notify(self, event: NotificationEvent) -> None:
        logger.info("Notification %s for %s", event.type.value, event.appointment_id)
