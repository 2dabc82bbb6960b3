"""
Scheduling engine: books, moves, and cancels appointments.

Every change for one resource runs as a single unit under that resource's
lock: validate, check the availability index, write the repository, update
the index. If a write fails part way, earlier writes are undone before the
error propagates. The notifier runs after the lock is released, and a
failing notifier never undoes a committed change.

Usage:
    with SchedulingEngine(resources=repo, appointments=store) as engine:
        appt = engine.create("artist-1", "cust-9", start, end, "medium", "arm", 3)
        outcome = engine.cancel(appt.id)
"""

import uuid
from datetime import date, datetime
from typing import Any, Callable, Optional

from inkbook.config import AppConfig, settings
from inkbook.errors import (
    AppointmentNotFound,
    InvalidInterval,
    InvalidTransition,
    SlotConflict,
)
from inkbook.logging_context import get_request_id, get_request_logger
from inkbook.scheduling.availability import AvailabilityIndex
from inkbook.scheduling.cancellation import CancellationPolicyEvaluator
from inkbook.scheduling.notifications import (
    EventType,
    LoggingNotifier,
    NotificationEvent,
    NotificationHook,
)
from inkbook.scheduling.pricing import PricingCalculator
from inkbook.scheduling.state_machine import AppointmentAction, AppointmentStateMachine
from inkbook.schemas.booking_schema import (
    HOLDS_SLOT_STATUSES,
    Appointment,
    AppointmentStatus,
    TransitionRecord,
)
from inkbook.schemas.policy_schema import CancellationOutcome, PriceEstimate
from inkbook.schemas.resource_schema import Resource, WorkingHoursBlock
from inkbook.storage.memory import InMemoryAppointmentRepository, InMemoryResourceRepository
from inkbook.storage.repository import AppointmentRepository, ResourceRepository
from inkbook.utils import ensure_utc, utcnow

logger = get_request_logger(__name__)

RESCHEDULABLE_STATUSES = frozenset({AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED})


def _new_appointment_id() -> str:
    return f"APT-{uuid.uuid4().hex[:8].upper()}"


def _validate_interval(start: datetime, end: datetime) -> None:
    if end <= start:
        raise InvalidInterval(
            f"end ({end.isoformat()}) must be after start ({start.isoformat()})"
        )


class SchedulingEngine:
    """
    Books appointments against per-resource availability.

    The engine holds no global state: repositories, the availability index,
    the pricing calculator, the policy evaluator, and the notifier are all
    injected (or built from ``config``) per instance. Call ``start()``
    before use to load resources and held appointments into the index, and
    ``close()`` at shutdown.
    """

    def __init__(
        self,
        resources: Optional[ResourceRepository] = None,
        appointments: Optional[AppointmentRepository] = None,
        config: Optional[AppConfig] = None,
        notifier: Optional[NotificationHook] = None,
        pricing: Optional[PricingCalculator] = None,
        policy: Optional[CancellationPolicyEvaluator] = None,
        index: Optional[AvailabilityIndex] = None,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = _new_appointment_id,
    ) -> None:
        self._config = config or settings
        self._resources = resources if resources is not None else InMemoryResourceRepository()
        self._appointments = (
            appointments if appointments is not None else InMemoryAppointmentRepository()
        )
        self._notifier = notifier or LoggingNotifier()
        self._pricing = pricing or PricingCalculator(self._config.pricing)
        self._policy = policy or CancellationPolicyEvaluator(self._config.policy.cancellation_tiers)
        self._index = index or AvailabilityIndex()
        self._clock = clock
        self._id_factory = id_factory
        self._started = False

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def start(self) -> "SchedulingEngine":
        """Load resources and slot-holding appointments into the index.

        Raises:
            SlotConflict: If the repository holds two overlapping
                slot-holding appointments for one resource. The index is
                left empty and the engine stays stopped.
        """
        if self._started:
            return self
        for resource in self._resources.list_all():
            self._index.register_resource(resource)
        held = 0
        for appointment in self._appointments.list_holding():
            try:
                self._index.insert(
                    appointment.id, appointment.resource_id,
                    appointment.start_time, appointment.end_time,
                )
            except SlotConflict:
                logger.error(
                    "Stored appointment %s overlaps another held appointment on %s",
                    appointment.id, appointment.resource_id,
                )
                self._index.clear()
                raise
            held += 1
        self._started = True
        logger.info("Scheduling engine started with %d held appointments", held)
        return self

    def close(self) -> None:
        if not self._started:
            return
        self._started = False
        self._index.clear()
        self._appointments.close()
        self._resources.close()
        logger.info("Scheduling engine closed")

    def __enter__(self) -> "SchedulingEngine":
        return self.start()

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _require_started(self) -> None:
        if not self._started:
            raise RuntimeError("SchedulingEngine.start() must be called before use")

    @property
    def index(self) -> AvailabilityIndex:
        return self._index

    @property
    def pricing(self) -> PricingCalculator:
        return self._pricing

    @property
    def policy(self) -> CancellationPolicyEvaluator:
        return self._policy

    # ------------------------------------------------------------------ #
    # Resources
    # ------------------------------------------------------------------ #

    def register_resource(self, resource: Resource) -> Resource:
        self._require_started()
        self._resources.save(resource)
        self._index.register_resource(resource)
        logger.info("Resource registered: %s (%s)", resource.id, resource.name)
        return resource

    def set_working_hours(
        self, resource_id: str, working_hours: dict[int, tuple[WorkingHoursBlock, ...]]
    ) -> Resource:
        """Replace a resource's calendar. Existing bookings stay as they are."""
        self._require_started()
        with self._index.locked(resource_id):
            updated = self._index.set_working_hours(resource_id, working_hours)
            self._resources.save(updated)
        return updated

    def get_resource(self, resource_id: str) -> Resource:
        return self._index.get_resource(resource_id)

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def quote(
        self, size: str, placement: str, complexity_level: int, resource_id: Optional[str] = None
    ) -> PriceEstimate:
        """Price a piece, using the resource's own rate when it has one."""
        rate = self._index.get_resource(resource_id).hourly_rate if resource_id else None
        return self._pricing.estimate(size, placement, complexity_level, rate)

    def get(self, appointment_id: str) -> Appointment:
        appointment = self._appointments.get(appointment_id)
        if appointment is None:
            raise AppointmentNotFound(appointment_id)
        return appointment

    def list_for_resource(self, resource_id: str) -> list[Appointment]:
        return self._appointments.list_for_resource(resource_id)

    def history(self, appointment_id: str) -> list[TransitionRecord]:
        return self._appointments.history(appointment_id)

    def open_slots(
        self, resource_id: str, day: date, duration_minutes: int
    ) -> list[tuple[datetime, datetime]]:
        self._require_started()
        return self._index.open_slots(
            resource_id, day, duration_minutes, self._config.availability.slot_step_minutes
        )

    def suggest_slots(
        self, resource_id: str, day: date, size: str, placement: str, complexity_level: int
    ) -> list[tuple[datetime, datetime]]:
        """Open slots long enough for the estimated session."""
        estimate = self.quote(size, placement, complexity_level, resource_id)
        step = self._config.availability.slot_step_minutes
        return self.open_slots(resource_id, day, self._pricing.session_minutes(estimate, step))

    def preview_cancellation(
        self, appointment_id: str, cancellation_time: Optional[datetime] = None
    ) -> CancellationOutcome:
        """Evaluate the cancellation fee without cancelling."""
        at = ensure_utc(cancellation_time or self._clock())
        return self._policy.evaluate(self.get(appointment_id), at)

    # ------------------------------------------------------------------ #
    # Booking
    # ------------------------------------------------------------------ #

    def create(
        self,
        resource_id: str,
        customer_id: str,
        start: datetime,
        end: datetime,
        size: str,
        placement: str,
        complexity_level: int,
    ) -> Appointment:
        """
        Book a new appointment in Scheduled status.

        Raises:
            InvalidInterval: If end is not after start.
            ResourceNotFound: If the resource is not registered.
            UnknownProfile: If the piece cannot be priced.
            OutsideWorkingHours: If the slot is outside the resource's hours.
            SlotConflict: If the slot overlaps a held appointment.
        """
        self._require_started()
        start, end = ensure_utc(start), ensure_utc(end)
        _validate_interval(start, end)

        resource = self._index.get_resource(resource_id)
        estimate = self._pricing.estimate(size, placement, complexity_level, resource.hourly_rate)

        with self._index.locked(resource_id):
            self._index.check_working_hours(resource_id, start, end)
            conflict = self._index.find_conflict(resource_id, start, end)
            if conflict is not None:
                logger.info("Slot conflict for %s with %s", resource_id, conflict)
                raise SlotConflict(resource_id, conflict)

            appointment = Appointment(
                id=self._id_factory(),
                resource_id=resource_id,
                customer_id=customer_id,
                start_time=start,
                end_time=end,
                status=AppointmentStateMachine.INITIAL_STATUS,
                size=estimate.size,
                placement=estimate.placement,
                complexity_level=estimate.complexity_level,
                estimated_hours=estimate.estimated_hours,
                price=estimate.total_price,
                deposit_amount=estimate.deposit_amount,
                created_at=self._clock(),
            )
            self._appointments.add(appointment)
            try:
                self._index.insert(appointment.id, resource_id, start, end)
                self._appointments.record_transition(
                    self._record(appointment.id, None, appointment.status, "create")
                )
            except Exception:
                self._index.remove(appointment.id)
                self._appointments.delete(appointment.id)
                raise

        logger.info(
            "Appointment %s booked for %s on %s (%s - %s)",
            appointment.id, customer_id, resource_id, start.isoformat(), end.isoformat(),
        )
        self._dispatch(EventType.CREATED, appointment)
        return appointment

    def reschedule(self, appointment_id: str, new_start: datetime, new_end: datetime) -> Appointment:
        """
        Move an appointment to a new slot on the same resource.

        The booked price is kept. Either both the record and the index move,
        or neither does.

        Raises:
            InvalidInterval, UnknownProfile, OutsideWorkingHours, SlotConflict,
            InvalidTransition (if the appointment is not Scheduled or Confirmed).
        """
        self._require_started()
        new_start, new_end = ensure_utc(new_start), ensure_utc(new_end)
        _validate_interval(new_start, new_end)

        resource_id = self.get(appointment_id).resource_id
        with self._index.locked(resource_id):
            current = self.get(appointment_id)
            if current.status not in RESCHEDULABLE_STATUSES:
                raise InvalidTransition(
                    f"Cannot reschedule an appointment that is '{current.status.value}'"
                )
            self._pricing.profile_for(current.size, current.placement, current.complexity_level)
            self._index.check_working_hours(resource_id, new_start, new_end)
            conflict = self._index.find_conflict(
                resource_id, new_start, new_end, exclude_appointment_id=appointment_id
            )
            if conflict is not None:
                raise SlotConflict(resource_id, conflict)

            updated = current.model_copy(update={"start_time": new_start, "end_time": new_end})
            self._index.update(appointment_id, new_start, new_end)
            try:
                self._commit_update(current, updated, "reschedule")
            except Exception:
                self._index.update(appointment_id, current.start_time, current.end_time)
                raise

        logger.info(
            "Appointment %s moved from %s to %s",
            appointment_id, current.start_time.isoformat(), new_start.isoformat(),
        )
        self._dispatch(
            EventType.RESCHEDULED, updated,
            previous_start=current.start_time.isoformat(),
            previous_end=current.end_time.isoformat(),
        )
        return updated

    # ------------------------------------------------------------------ #
    # Status changes
    # ------------------------------------------------------------------ #

    def confirm(self, appointment_id: str, deposit_paid: bool = True) -> Appointment:
        """Scheduled -> Confirmed, typically once the deposit arrives."""
        return self._transition(
            appointment_id, AppointmentAction.CONFIRM, EventType.CONFIRMED,
            deposit_paid=deposit_paid,
        )

    def start_session(self, appointment_id: str) -> Appointment:
        return self._transition(appointment_id, AppointmentAction.START, EventType.STARTED)

    def complete(self, appointment_id: str) -> Appointment:
        return self._transition(appointment_id, AppointmentAction.COMPLETE, EventType.COMPLETED)

    def mark_no_show(self, appointment_id: str) -> Appointment:
        return self._transition(appointment_id, AppointmentAction.MARK_NO_SHOW, EventType.NO_SHOW)

    def cancel(
        self,
        appointment_id: str,
        cancellation_time: Optional[datetime] = None,
        reason_code: Optional[str] = None,
    ) -> CancellationOutcome:
        """
        Cancel an appointment and release its slot.

        Returns the fee/refund outcome for downstream payment handling.

        Raises:
            AlreadyCancelled: If it is already cancelled.
            TerminalState: If it is completed or a no-show.
            InvalidTransition: If it is in progress.
        """
        self._require_started()
        at = ensure_utc(cancellation_time or self._clock())
        resource_id = self.get(appointment_id).resource_id

        with self._index.locked(resource_id):
            current = self.get(appointment_id)
            outcome = self._policy.evaluate(current, at)
            status = AppointmentStateMachine.apply(current.status, AppointmentAction.CANCEL)
            updated = current.model_copy(update={
                "status": status,
                "cancelled_at": at,
                "cancellation_reason_code": reason_code,
            })
            self._commit_update(current, updated, AppointmentAction.CANCEL.value)
            self._index.remove(appointment_id)

        logger.info(
            "Appointment %s cancelled with %.1fh notice, fee %s",
            appointment_id, outcome.notice_hours, outcome.fee_amount,
        )
        self._dispatch(
            EventType.CANCELLED, updated,
            fee_percentage=str(outcome.fee_percentage),
            fee_amount=str(outcome.fee_amount),
            refund_amount=str(outcome.refund_amount),
            deposit_refundable=outcome.deposit_refundable,
            reason_code=reason_code,
        )
        return outcome

    def _transition(
        self,
        appointment_id: str,
        action: AppointmentAction,
        event: EventType,
        **changes: Any,
    ) -> Appointment:
        self._require_started()
        resource_id = self.get(appointment_id).resource_id
        with self._index.locked(resource_id):
            current = self.get(appointment_id)
            status = AppointmentStateMachine.apply(current.status, action)
            updated = current.model_copy(update={"status": status, **changes})
            self._commit_update(current, updated, action.value)
            if status not in HOLDS_SLOT_STATUSES:
                self._index.remove(appointment_id)
        self._dispatch(event, updated)
        return updated

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _record(
        self,
        appointment_id: str,
        from_status: Optional[AppointmentStatus],
        to_status: AppointmentStatus,
        action: str,
    ) -> TransitionRecord:
        return TransitionRecord(
            appointment_id=appointment_id,
            from_status=from_status,
            to_status=to_status,
            action=action,
            at=self._clock(),
            request_id=get_request_id(),
        )

    def _commit_update(self, previous: Appointment, updated: Appointment, action: str) -> None:
        """Write the new row and its audit record, restoring the old row on failure."""
        self._appointments.update(updated)
        try:
            self._appointments.record_transition(
                self._record(updated.id, previous.status, updated.status, action)
            )
        except Exception:
            self._appointments.update(previous)
            raise

    def _dispatch(self, event_type: EventType, appointment: Appointment, **extra: Any) -> None:
        payload = {
            "resource_id": appointment.resource_id,
            "customer_id": appointment.customer_id,
            "start_time": appointment.start_time.isoformat(),
            "end_time": appointment.end_time.isoformat(),
            "status": appointment.status.value,
            "price": str(appointment.price),
            "deposit_amount": str(appointment.deposit_amount),
            **extra,
        }
        event = NotificationEvent(type=event_type, appointment_id=appointment.id, payload=payload)
        try:
            self._notifier.notify(event)
        except Exception:
            logger.exception(
                "Notification hook failed for %s (%s)", appointment.id, event_type.value
            )
