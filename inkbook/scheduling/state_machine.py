"""
Finite state machine for the appointment lifecycle.

Defines the six appointment statuses and the explicit actions that move
between them. Any action without a matching transition is rejected, and
terminal statuses (completed, cancelled, no-show) accept no action at all.

Usage:
    status = AppointmentStateMachine.apply(AppointmentStatus.SCHEDULED, AppointmentAction.CONFIRM)
    assert status == AppointmentStatus.CONFIRMED
"""

import logging
from dataclasses import dataclass
from enum import Enum

from inkbook.errors import InvalidTransition
from inkbook.schemas.booking_schema import AppointmentStatus

logger = logging.getLogger(__name__)


class AppointmentAction(str, Enum):
    """Actions that change an appointment's status."""
    CONFIRM = "confirm"
    START = "start"
    COMPLETE = "complete"
    CANCEL = "cancel"
    MARK_NO_SHOW = "mark_no_show"


@dataclass(frozen=True)
class Transition:
    """A single valid status transition."""
    from_status: AppointmentStatus
    to_status: AppointmentStatus
    action: AppointmentAction


class AppointmentStateMachine:
    """Transition table for appointment statuses."""

    INITIAL_STATUS = AppointmentStatus.SCHEDULED

    TRANSITIONS: list[Transition] = [
        # --- Confirmation (deposit received) ---
        Transition(AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED,
                   AppointmentAction.CONFIRM),

        # --- Session ---
        Transition(AppointmentStatus.CONFIRMED, AppointmentStatus.IN_PROGRESS,
                   AppointmentAction.START),
        Transition(AppointmentStatus.IN_PROGRESS, AppointmentStatus.COMPLETED,
                   AppointmentAction.COMPLETE),

        # --- Cancellation ---
        Transition(AppointmentStatus.SCHEDULED, AppointmentStatus.CANCELLED,
                   AppointmentAction.CANCEL),
        Transition(AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED,
                   AppointmentAction.CANCEL),

        # --- No-show (administrative) ---
        Transition(AppointmentStatus.SCHEDULED, AppointmentStatus.NO_SHOW,
                   AppointmentAction.MARK_NO_SHOW),
        Transition(AppointmentStatus.CONFIRMED, AppointmentStatus.NO_SHOW,
                   AppointmentAction.MARK_NO_SHOW),
        Transition(AppointmentStatus.IN_PROGRESS, AppointmentStatus.NO_SHOW,
                   AppointmentAction.MARK_NO_SHOW),
    ]

    @classmethod
    def apply(cls, status: AppointmentStatus, action: AppointmentAction) -> AppointmentStatus:
        """
        Resolve the status reached by applying an action.

        Raises:
            InvalidTransition: If no transition exists for the pair.
        """
        for t in cls.TRANSITIONS:
            if t.from_status == status and t.action == action:
                logger.debug(
                    "Status transition: %s -> %s (action: %s)",
                    status.value, t.to_status.value, action.value,
                )
                return t.to_status

        valid = [a.value for a in cls.valid_actions(status)]
        raise InvalidTransition(
            f"Cannot '{action.value}' an appointment that is '{status.value}'. "
            f"Valid actions: {valid}"
        )

    @classmethod
    def can_apply(cls, status: AppointmentStatus, action: AppointmentAction) -> bool:
        return action in cls.valid_actions(status)

    @classmethod
    def valid_actions(cls, status: AppointmentStatus) -> list[AppointmentAction]:
        """Return all actions valid from the given status."""
        return [t.action for t in cls.TRANSITIONS if t.from_status == status]
