"""Tests for the pricing calculator."""

from decimal import Decimal

import pytest

from inkbook.config import PricingConfig
from inkbook.errors import UnknownProfile
from inkbook.scheduling.pricing import (
    PricingCalculator,
    build_default_profiles,
    complexity_factor,
    normalize_size,
)


class TestEstimate:
    def test_medium_arm_standard_complexity(self, pricing):
        est = pricing.estimate("medium", "arm", 3)
        assert est.estimated_hours == Decimal("2.20")
        assert est.total_price == Decimal("330.00")
        assert est.deposit_amount == Decimal("66.00")
        assert est.hourly_rate == Decimal("150")
        assert est.complexity_clamped is False

    def test_all_factors_multiply(self, pricing):
        # large (4h, 1.1) on chest (1.2) at level 5 (1.3)
        est = pricing.estimate("large", "chest", 5)
        assert est.estimated_hours == Decimal("6.86")
        assert est.total_price == Decimal("1029.60")
        assert est.deposit_amount == Decimal("205.92")

    def test_custom_hourly_rate_overrides_base(self, pricing):
        est = pricing.estimate("medium", "arm", 3, custom_hourly_rate=200)
        assert est.total_price == Decimal("440.00")
        assert est.hourly_rate == Decimal("200")

    def test_rounds_half_up(self, pricing):
        # small (1h) on ankle (1.15) at level 1 (0.9) = 1.035h
        est = pricing.estimate("small", "ankle", 1, custom_hourly_rate="155")
        assert est.estimated_hours == Decimal("1.04")
        assert est.total_price == Decimal("160.43")
        assert est.deposit_amount == Decimal("32.09")

    def test_negative_rate_rejected(self, pricing):
        with pytest.raises(ValueError, match="hourly rate"):
            pricing.estimate("medium", "arm", 3, custom_hourly_rate=-1)

    def test_deposit_percentage_from_config(self):
        calc = PricingCalculator(PricingConfig(
            base_hourly_rate=Decimal("100"), deposit_percentage=Decimal("0.5"),
            complexity_min=1, complexity_max=5,
        ))
        est = calc.estimate("small", "arm", 2)
        assert est.total_price == Decimal("100.00")
        assert est.deposit_amount == Decimal("50.00")


class TestIdempotence:
    def test_same_inputs_same_output(self, pricing):
        first = pricing.estimate("full-sleeve", "arm", 4)
        second = pricing.estimate("full-sleeve", "arm", 4)
        assert first == second


class TestComplexityClamping:
    def test_above_range_clamped_to_max(self, pricing):
        est = pricing.estimate("medium", "arm", 9)
        assert est.complexity_level == 5
        assert est.complexity_clamped is True
        assert est == pricing.estimate("medium", "arm", 5).model_copy(
            update={"complexity_clamped": True}
        )

    def test_below_range_clamped_to_min(self, pricing):
        est = pricing.estimate("medium", "arm", 0)
        assert est.complexity_level == 1
        assert est.complexity_clamped is True

    @pytest.mark.parametrize("level, expected", [(2.7, 3), (2.5, 3), (2.4, 2), ("4", 4)])
    def test_fractional_level_rounds(self, pricing, level, expected):
        assert pricing.clamp_complexity(level) == expected

    def test_fractional_level_prices_as_rounded(self, pricing):
        est = pricing.estimate("medium", "arm", 2.7)
        assert est.complexity_level == 3
        assert est.total_price == Decimal("330.00")

    def test_factor_scale(self):
        assert complexity_factor(1) == Decimal("0.9")
        assert complexity_factor(5) == Decimal("1.3")


class TestProfileLookup:
    def test_unknown_size(self, pricing):
        with pytest.raises(UnknownProfile) as exc_info:
            pricing.estimate("tiny", "arm", 3)
        assert exc_info.value.size == "tiny"

    def test_unknown_placement(self, pricing):
        with pytest.raises(UnknownProfile):
            pricing.estimate("small", "eyelid", 3)

    def test_unsupported_combination(self, pricing):
        with pytest.raises(UnknownProfile):
            pricing.estimate("back-piece", "wrist", 3)

    def test_aliases_and_spelling(self, pricing):
        assert pricing.estimate("XL", "Upper Arm", 3).size == "extra-large"
        assert pricing.estimate("extra_large", "upper_arm", 3).placement == "upper-arm"
        assert normalize_size("Full Sleeve") == "full-sleeve"

    def test_custom_profile_table(self):
        profiles = {k: v for k, v in build_default_profiles().items() if k[0] == "small"}
        calc = PricingCalculator(
            PricingConfig(complexity_min=1, complexity_max=5), profiles=profiles
        )
        calc.estimate("small", "arm", 3)
        with pytest.raises(UnknownProfile):
            calc.estimate("medium", "arm", 3)


class TestSessionMinutes:
    def test_rounds_up_to_step(self, pricing):
        est = pricing.estimate("medium", "arm", 3)
        assert pricing.session_minutes(est, 30) == 150

    def test_catalog_lists_levels(self, pricing):
        catalog = pricing.catalog()
        assert [c["level"] for c in catalog["complexity_levels"]] == [1, 2, 3, 4, 5]
        assert any(s["id"] == "back-piece" for s in catalog["sizes"])
