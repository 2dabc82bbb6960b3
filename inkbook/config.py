"""
Centralized configuration with environment variable overrides.

Pricing rates, the cancellation policy and availability defaults are
configurable here. Nothing is hardcoded in pricing or scheduling logic.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from decimal import Decimal

from dotenv import load_dotenv

from inkbook.logging_context import RequestIdFilter
from inkbook.schemas.policy_schema import CancellationPolicyTier, validate_tiers

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_CANCELLATION_TIERS = (
    '[{"min_notice_hours": 48, "fee_percentage": 0, "deposit_refundable": true},'
    ' {"min_notice_hours": 24, "fee_percentage": 0.5, "deposit_refundable": false},'
    ' {"min_notice_hours": 0, "fee_percentage": 1.0, "deposit_refundable": false,'
    ' "reschedule_allowed": false}]'
)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_decimal(env_var: str, default: str) -> Decimal:
    """Parse a decimal from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        value = Decimal(raw.strip())
    except (ArithmeticError, AttributeError):
        raise ValueError(
            f"Invalid number for {env_var}: {raw!r}"
        ) from None
    if not value.is_finite():
        raise ValueError(f"Invalid number for {env_var}: {raw!r}")
    return value


def _parse_tiers(env_var: str, default: str) -> tuple[CancellationPolicyTier, ...]:
    """Parse the cancellation tier list from a JSON env var."""
    raw = os.getenv(env_var, default)
    try:
        items = json.loads(raw)
        return tuple(CancellationPolicyTier(**item) for item in items)
    except (ValueError, TypeError) as exc:
        raise ValueError(f"Invalid tier list for {env_var}: {exc}") from None


@dataclass(frozen=True)
class StudioConfig:
    """Studio-wide settings."""

    name: str = os.getenv("STUDIO_NAME", "Ink & Iron Tattoo Studio")
    default_timezone: str = os.getenv("DEFAULT_TIMEZONE", "UTC")


@dataclass(frozen=True)
class PricingConfig:
    """Rates used by the pricing calculator."""

    base_hourly_rate: Decimal = _safe_decimal("BASE_HOURLY_RATE", "150")
    deposit_percentage: Decimal = _safe_decimal("DEPOSIT_PERCENTAGE", "0.20")
    complexity_min: int = _safe_int("COMPLEXITY_MIN", "1")
    complexity_max: int = _safe_int("COMPLEXITY_MAX", "5")

    @property
    def complexity_level_range(self) -> tuple[int, int]:
        return (self.complexity_min, self.complexity_max)


@dataclass(frozen=True)
class PolicyConfig:
    """Cancellation policy tiers, most generous first."""

    cancellation_tiers: tuple[CancellationPolicyTier, ...] = field(
        default_factory=lambda: _parse_tiers("CANCELLATION_TIERS", DEFAULT_CANCELLATION_TIERS)
    )


@dataclass(frozen=True)
class AvailabilityConfig:
    """Open-slot search settings."""

    slot_step_minutes: int = _safe_int("SLOT_STEP_MINUTES", "30")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    studio: StudioConfig = field(default_factory=StudioConfig)
    pricing: PricingConfig = field(default_factory=PricingConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    availability: AvailabilityConfig = field(default_factory=AvailabilityConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if config.pricing.base_hourly_rate < 0:
        raise ValueError(
            f"BASE_HOURLY_RATE must be >= 0, got {config.pricing.base_hourly_rate}"
        )
    if not 0 <= config.pricing.deposit_percentage <= 1:
        raise ValueError(
            "DEPOSIT_PERCENTAGE must be between 0.0 and 1.0, "
            f"got {config.pricing.deposit_percentage}"
        )
    if config.pricing.complexity_min < 1:
        raise ValueError(
            f"COMPLEXITY_MIN must be >= 1, got {config.pricing.complexity_min}"
        )
    if config.pricing.complexity_max < config.pricing.complexity_min:
        raise ValueError(
            "COMPLEXITY_MAX must be >= COMPLEXITY_MIN, "
            f"got {config.pricing.complexity_max} < {config.pricing.complexity_min}"
        )
    if config.availability.slot_step_minutes < 1:
        raise ValueError(
            f"SLOT_STEP_MINUTES must be >= 1, got {config.availability.slot_step_minutes}"
        )

    try:
        validate_tiers(config.policy.cancellation_tiers)
    except ValueError as exc:
        raise ValueError(f"CANCELLATION_TIERS is invalid: {exc}") from None


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] [%(request_id)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RequestIdFilter) for f in handler.filters):
            handler.addFilter(RequestIdFilter())
    logger.info("Configuration loaded for '%s'", config.studio.name)
    return config


# Singleton instance
settings = load_config()
