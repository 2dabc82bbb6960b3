"""
Cancellation policy evaluation.

Maps the notice a customer gives to a fee bracket. Tiers are checked from
the longest notice down, so the most generous tier the customer qualifies
for wins. The tier list must cover every notice from zero upward.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional, Sequence

from inkbook.config import settings
from inkbook.errors import AlreadyCancelled, TerminalState
from inkbook.schemas.booking_schema import Appointment, AppointmentStatus
from inkbook.schemas.policy_schema import (
    CancellationOutcome,
    CancellationPolicyTier,
    validate_tiers,
)
from inkbook.utils import ensure_utc, round_money

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = 3600


class CancellationPolicyEvaluator:
    """Computes fee and refund outcomes from a tier list."""

    def __init__(self, tiers: Optional[Sequence[CancellationPolicyTier]] = None) -> None:
        tiers = tuple(tiers) if tiers is not None else settings.policy.cancellation_tiers
        validate_tiers(tiers)
        self._tiers = tiers

    @property
    def tiers(self) -> tuple[CancellationPolicyTier, ...]:
        return self._tiers

    def select_tier(self, notice_hours: float) -> CancellationPolicyTier:
        """Pick the first tier whose threshold the notice meets.

        Notice below zero (cancelling after the start) falls into the last tier.
        """
        for tier in self._tiers:
            if tier.min_notice_hours <= notice_hours:
                return tier
        return self._tiers[-1]

    def evaluate(self, appointment: Appointment, cancellation_time: datetime) -> CancellationOutcome:
        """
        Evaluate the fee for cancelling an appointment at a given time.

        Raises:
            AlreadyCancelled: If the appointment is already cancelled.
            TerminalState: If the appointment is completed or a no-show.
        """
        if appointment.status == AppointmentStatus.CANCELLED:
            raise AlreadyCancelled(f"Appointment '{appointment.id}' is already cancelled")
        if appointment.status in (AppointmentStatus.COMPLETED, AppointmentStatus.NO_SHOW):
            raise TerminalState(
                f"Appointment '{appointment.id}' is '{appointment.status.value}' "
                "and can no longer be cancelled"
            )

        notice = appointment.start_time - ensure_utc(cancellation_time)
        notice_hours = notice.total_seconds() / SECONDS_PER_HOUR
        tier = self.select_tier(notice_hours)

        refundable = tier.deposit_refundable
        refund = appointment.deposit_amount if (refundable and appointment.deposit_paid) else Decimal("0")

        outcome = CancellationOutcome(
            appointment_id=appointment.id,
            notice_hours=notice_hours,
            fee_percentage=tier.fee_percentage,
            fee_amount=round_money(appointment.price * tier.fee_percentage),
            deposit_refundable=refundable,
            refund_amount=round_money(refund),
            allow_reschedule=tier.reschedule_allowed,
            tier=tier,
        )
        logger.debug(
            "Cancellation of %s with %.2fh notice -> fee %s%%",
            appointment.id, notice_hours, tier.fee_percentage * 100,
        )
        return outcome
