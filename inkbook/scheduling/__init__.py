from inkbook.scheduling.availability import AvailabilityIndex
from inkbook.scheduling.cancellation import CancellationPolicyEvaluator
from inkbook.scheduling.engine import SchedulingEngine
from inkbook.scheduling.notifications import (
    EventType,
    LoggingNotifier,
    NotificationEvent,
    NotificationHook,
)
from inkbook.scheduling.pricing import PricingCalculator
from inkbook.scheduling.state_machine import AppointmentAction, AppointmentStateMachine

__all__ = [
    "SchedulingEngine",
    "AvailabilityIndex",
    "PricingCalculator",
    "CancellationPolicyEvaluator",
    "AppointmentStateMachine",
    "AppointmentAction",
    "NotificationHook",
    "NotificationEvent",
    "EventType",
    "LoggingNotifier",
]
