"""
Tattoo pricing catalog and calculator.

Derives an hours estimate, a total price and a deposit from the piece's
size, placement and complexity. The catalog below is the studio's
standard table; a deployment can pass its own profiles to the calculator.

Usage:
    calc = PricingCalculator()
    estimate = calc.estimate("medium", "arm", 3)
    estimate.total_price  # Decimal('330.00') at the default 150/h rate
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from inkbook.config import PricingConfig, settings
from inkbook.errors import UnknownProfile
from inkbook.schemas.policy_schema import PriceEstimate, SizeComplexityProfile
from inkbook.utils import ceil_to_step, normalize_key, round_money, to_decimal

logger = logging.getLogger(__name__)

SIZE_CATALOG: dict[str, dict] = {
    "small": {"label": "Small (2-3 inches)", "base_hours": "1", "size_factor": "1.0"},
    "medium": {"label": "Medium (4-6 inches)", "base_hours": "2", "size_factor": "1.0"},
    "large": {"label": "Large (7-10 inches)", "base_hours": "4", "size_factor": "1.1"},
    "extra-large": {"label": "Extra Large (11+ inches)", "base_hours": "6", "size_factor": "1.15"},
    "half-sleeve": {"label": "Half Sleeve", "base_hours": "5", "size_factor": "1.2"},
    "full-sleeve": {"label": "Full Sleeve", "base_hours": "8", "size_factor": "1.25"},
    "back-piece": {"label": "Back Piece", "base_hours": "10", "size_factor": "1.25"},
}

PLACEMENT_CATALOG: dict[str, dict] = {
    "arm": {"label": "Arm", "factor": "1.0"},
    "forearm": {"label": "Forearm", "factor": "1.0"},
    "upper-arm": {"label": "Upper Arm", "factor": "1.0"},
    "shoulder": {"label": "Shoulder", "factor": "1.1"},
    "chest": {"label": "Chest", "factor": "1.2"},
    "back": {"label": "Back", "factor": "1.1"},
    "leg": {"label": "Leg", "factor": "1.0"},
    "thigh": {"label": "Thigh", "factor": "1.05"},
    "calf": {"label": "Calf", "factor": "1.05"},
    "ankle": {"label": "Ankle", "factor": "1.15"},
    "foot": {"label": "Foot", "factor": "1.25"},
    "hand": {"label": "Hand", "factor": "1.3"},
    "wrist": {"label": "Wrist", "factor": "1.15"},
    "neck": {"label": "Neck", "factor": "1.3"},
    "ribs": {"label": "Ribs", "factor": "1.35"},
}

SIZE_ALIASES: dict[str, str] = {
    "xl": "extra-large", "extralarge": "extra-large",
    "sleeve": "full-sleeve", "half": "half-sleeve", "back": "back-piece",
    "sm": "small", "md": "medium", "lg": "large",
}

# Sizes that only fit on large body areas.
LARGE_AREA_SIZES = {"half-sleeve", "full-sleeve", "back-piece"}

SIZE_PLACEMENTS: dict[str, set[str]] = {
    "half-sleeve": {"arm", "forearm", "upper-arm", "leg", "thigh", "calf"},
    "full-sleeve": {"arm", "leg"},
    "back-piece": {"back"},
}

COMPLEXITY_LABELS: dict[int, str] = {
    1: "Simple linework",
    2: "Light shading",
    3: "Standard detail",
    4: "Heavy detail",
    5: "Realism / intricate",
}


def complexity_factor(level: int) -> Decimal:
    """Complexity multiplier: 0.9 at level 1 up to 1.3 at level 5."""
    return Decimal("0.8") + Decimal("0.1") * level


def _supports(size: str, placement: str) -> bool:
    if size in LARGE_AREA_SIZES:
        return placement in SIZE_PLACEMENTS[size]
    return True


def build_default_profiles() -> dict[tuple[str, str], SizeComplexityProfile]:
    """Build the (size, placement) profile table from the catalogs.

    The stored profiles carry the level-3 complexity factor; the
    calculator swaps in the factor for the requested level.
    """
    profiles: dict[tuple[str, str], SizeComplexityProfile] = {}
    for size, size_info in SIZE_CATALOG.items():
        for placement, placement_info in PLACEMENT_CATALOG.items():
            if not _supports(size, placement):
                continue
            profiles[(size, placement)] = SizeComplexityProfile(
                size=size,
                placement=placement,
                complexity_level=3,
                base_hours=Decimal(size_info["base_hours"]),
                size_factor=Decimal(size_info["size_factor"]),
                placement_factor=Decimal(placement_info["factor"]),
                complexity_factor=complexity_factor(3),
            )
    return profiles


def normalize_size(size: str) -> str:
    key = normalize_key(size)
    return SIZE_ALIASES.get(key.replace("-", ""), SIZE_ALIASES.get(key, key))


def normalize_placement(placement: str) -> str:
    return normalize_key(placement)


class PricingCalculator:
    """
    Pure price and duration estimator.

    Holds only read-only configuration, so the same inputs always give
    the same estimate.
    """

    def __init__(
        self,
        config: Optional[PricingConfig] = None,
        profiles: Optional[dict[tuple[str, str], SizeComplexityProfile]] = None,
    ) -> None:
        self._config = config or settings.pricing
        self._profiles = dict(profiles) if profiles is not None else build_default_profiles()

    @property
    def complexity_range(self) -> tuple[int, int]:
        return self._config.complexity_level_range

    def clamp_complexity(self, level: Union[int, float, str]) -> int:
        """Round a level half-up to a whole level, then clamp it to the range."""
        low, high = self.complexity_range
        whole = int(to_decimal(level).quantize(Decimal(1), rounding=ROUND_HALF_UP))
        return max(low, min(high, whole))

    def profile_for(self, size: str, placement: str, complexity_level: int) -> SizeComplexityProfile:
        """Resolve the profile for a size/placement pair at a given level.

        Raises:
            UnknownProfile: If the catalog has no entry for the pair.
        """
        key = (normalize_size(size), normalize_placement(placement))
        profile = self._profiles.get(key)
        if profile is None:
            raise UnknownProfile(size, placement)
        level = self.clamp_complexity(complexity_level)
        return profile.model_copy(
            update={"complexity_level": level, "complexity_factor": complexity_factor(level)}
        )

    def estimate(
        self,
        size: str,
        placement: str,
        complexity_level: int,
        custom_hourly_rate: Optional[Union[Decimal, float, int, str]] = None,
    ) -> PriceEstimate:
        """
        Estimate hours, price and deposit for a piece.

        Complexity outside the configured range is clamped; the returned
        estimate reports the level actually used.

        Raises:
            UnknownProfile: If no profile matches the size and placement.
        """
        profile = self.profile_for(size, placement, complexity_level)
        clamped = profile.complexity_level != complexity_level
        if clamped:
            logger.info(
                "Complexity %s clamped to %s (range %s)",
                complexity_level, profile.complexity_level, self.complexity_range,
            )

        rate = (
            to_decimal(custom_hourly_rate)
            if custom_hourly_rate is not None
            else self._config.base_hourly_rate
        )
        if rate < 0:
            raise ValueError(f"hourly rate must be >= 0, got {rate}")

        hours = (
            profile.base_hours
            * profile.size_factor
            * profile.placement_factor
            * profile.complexity_factor
        )
        total_price = round_money(hours * rate)
        deposit = round_money(total_price * self._config.deposit_percentage)

        return PriceEstimate(
            size=profile.size,
            placement=profile.placement,
            complexity_level=profile.complexity_level,
            complexity_clamped=clamped,
            hourly_rate=rate,
            estimated_hours=round_money(hours),
            total_price=total_price,
            deposit_amount=deposit,
        )

    def session_minutes(self, estimate: PriceEstimate, step_minutes: int = 30) -> int:
        """Round an estimate's hours up to a bookable number of minutes."""
        return ceil_to_step(float(estimate.estimated_hours) * 60, step_minutes)

    def catalog(self) -> dict[str, list[dict]]:
        """Return sizes, placements and complexity levels for display."""
        low, high = self.complexity_range
        return {
            "sizes": [
                {"id": sid, "label": info["label"], "base_hours": info["base_hours"]}
                for sid, info in SIZE_CATALOG.items()
            ],
            "placements": [
                {"id": pid, "label": info["label"]} for pid, info in PLACEMENT_CATALOG.items()
            ],
            "complexity_levels": [
                {
                    "level": level,
                    "label": COMPLEXITY_LABELS.get(level, f"Level {level}"),
                    "factor": str(complexity_factor(level)),
                }
                for level in range(low, high + 1)
            ],
        }
