"""Pricing profile, estimate and cancellation policy data models."""

from decimal import Decimal
from typing import Sequence

from pydantic import BaseModel, ConfigDict, Field

from inkbook.errors import PolicyConfigurationError


class SizeComplexityProfile(BaseModel):
    """Multipliers for one size/placement pair at one complexity level."""

    model_config = ConfigDict(frozen=True)

    size: str
    placement: str
    complexity_level: int
    base_hours: Decimal = Field(gt=0)
    size_factor: Decimal = Field(gt=0)
    placement_factor: Decimal = Field(gt=0)
    complexity_factor: Decimal = Field(gt=0)


class PriceEstimate(BaseModel):
    """Result of a pricing estimate."""

    model_config = ConfigDict(frozen=True)

    size: str
    placement: str
    complexity_level: int
    complexity_clamped: bool = False
    hourly_rate: Decimal = Field(ge=0)
    estimated_hours: Decimal = Field(ge=0)
    total_price: Decimal = Field(ge=0)
    deposit_amount: Decimal = Field(ge=0)


class CancellationPolicyTier(BaseModel):
    """A notice bracket mapping to a cancellation fee."""

    model_config = ConfigDict(frozen=True)

    min_notice_hours: float = Field(ge=0)
    fee_percentage: Decimal = Field(ge=0, le=1)
    deposit_refundable: bool = False
    reschedule_allowed: bool = True


class CancellationOutcome(BaseModel):
    """Fee and refund decision for a cancellation."""

    model_config = ConfigDict(frozen=True)

    appointment_id: str
    notice_hours: float
    fee_percentage: Decimal
    fee_amount: Decimal = Field(ge=0)
    deposit_refundable: bool
    refund_amount: Decimal = Field(ge=0)
    allow_reschedule: bool
    tier: CancellationPolicyTier


def validate_tiers(tiers: Sequence[CancellationPolicyTier]) -> None:
    """Check a tier list is sorted descending and covers [0, inf) with no gaps.

    Raises:
        PolicyConfigurationError: If the list is empty, unsorted, has a
            duplicate threshold, or does not end with a 0-hour tier.
    """
    if not tiers:
        raise PolicyConfigurationError("at least one cancellation tier is required")
    thresholds = [t.min_notice_hours for t in tiers]
    for higher, lower in zip(thresholds, thresholds[1:]):
        if higher <= lower:
            raise PolicyConfigurationError(
                f"tiers must be strictly descending by min_notice_hours, got {thresholds}"
            )
    if thresholds[-1] != 0:
        raise PolicyConfigurationError(
            f"the last tier must start at 0 hours notice, got {thresholds[-1]}"
        )
