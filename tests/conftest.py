"""Shared test fixtures and helpers."""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

import pytest

from inkbook.config import AppConfig, AvailabilityConfig, PolicyConfig, PricingConfig
from inkbook.scheduling.cancellation import CancellationPolicyEvaluator
from inkbook.scheduling.engine import SchedulingEngine
from inkbook.scheduling.notifications import NotificationEvent
from inkbook.scheduling.pricing import PricingCalculator
from inkbook.schemas.booking_schema import Appointment, AppointmentStatus
from inkbook.schemas.policy_schema import CancellationPolicyTier
from inkbook.schemas.resource_schema import Resource, weekly_hours

# 2025-03-17 is a Monday.
MONDAY = date(2025, 3, 17)

TEST_TIERS = (
    CancellationPolicyTier(min_notice_hours=48, fee_percentage=Decimal("0"), deposit_refundable=True),
    CancellationPolicyTier(min_notice_hours=24, fee_percentage=Decimal("0.5")),
    CancellationPolicyTier(
        min_notice_hours=0, fee_percentage=Decimal("1.0"), reschedule_allowed=False
    ),
)

TEST_PRICING = PricingConfig(
    base_hourly_rate=Decimal("150"),
    deposit_percentage=Decimal("0.20"),
    complexity_min=1,
    complexity_max=5,
)


def at(day: date, hour: int, minute: int = 0) -> datetime:
    """UTC datetime on a given day."""
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)


def make_config(**overrides) -> AppConfig:
    values = {
        "pricing": TEST_PRICING,
        "policy": PolicyConfig(cancellation_tiers=TEST_TIERS),
        "availability": AvailabilityConfig(slot_step_minutes=30),
    }
    values.update(overrides)
    return AppConfig(**values)


def make_appointment(
    appointment_id: str = "APT-TEST",
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    status: AppointmentStatus = AppointmentStatus.SCHEDULED,
    price: str = "300.00",
    deposit: str = "60.00",
    deposit_paid: bool = False,
) -> Appointment:
    """Helper to create an Appointment with sensible defaults."""
    start = start or at(MONDAY, 10)
    return Appointment(
        id=appointment_id,
        resource_id="artist-1",
        customer_id="cust-1",
        start_time=start,
        end_time=end or at(MONDAY, 12),
        status=status,
        size="medium",
        placement="arm",
        complexity_level=3,
        estimated_hours=Decimal("2.20"),
        price=Decimal(price),
        deposit_amount=Decimal(deposit),
        deposit_paid=deposit_paid,
    )


class RecordingNotifier:
    """Collects every event it receives."""

    def __init__(self) -> None:
        self.events: list[NotificationEvent] = []

    def notify(self, event: NotificationEvent) -> None:
        self.events.append(event)

    @property
    def types(self) -> list[str]:
        return [e.type.value for e in self.events]


class FailingNotifier:
    def notify(self, event: NotificationEvent) -> None:
        raise RuntimeError("SMS gateway unreachable")


class FixedClock:
    """A settable clock for the engine."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def pricing():
    return PricingCalculator(TEST_PRICING)


@pytest.fixture
def policy():
    return CancellationPolicyEvaluator(TEST_TIERS)


@pytest.fixture
def artist():
    return Resource(
        id="artist-1",
        name="Rosa",
        working_hours=weekly_hours([0, 1, 2, 3, 4, 5], "09:00", "17:00"),
    )


@pytest.fixture
def second_artist():
    return Resource(
        id="artist-2",
        name="Kai",
        hourly_rate=Decimal("200"),
        working_hours=weekly_hours([0, 1, 2, 3, 4], "10:00", "18:00"),
    )


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def clock():
    return FixedClock(at(date(2025, 3, 10), 9))


@pytest.fixture
def engine(config, artist, second_artist, notifier, clock):
    eng = SchedulingEngine(config=config, notifier=notifier, clock=clock).start()
    eng.register_resource(artist)
    eng.register_resource(second_artist)
    yield eng
    eng.close()
