"""Shared utilities used across the scheduling engine."""

import math
import re
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

CENTS = Decimal("0.01")


def to_decimal(value: Union[Decimal, float, int, str]) -> Decimal:
    """Convert a number to Decimal without inheriting float noise.

    Examples:
        >>> to_decimal(0.2)
        Decimal('0.2')
    """
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: Union[Decimal, float, int, str]) -> Decimal:
    """Round to two decimal places using round-half-up.

    Examples:
        >>> round_money("2.675")
        Decimal('2.68')
        >>> round_money(10)
        Decimal('10.00')
    """
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def ensure_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime. Naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ceil_to_step(minutes: float, step: int) -> int:
    """Round a duration in minutes up to the next multiple of ``step``.

    Examples:
        >>> ceil_to_step(132, 30)
        150
        >>> ceil_to_step(120, 30)
        120
    """
    return int(math.ceil(round(minutes, 6) / step)) * step


def normalize_key(value: str) -> str:
    """Normalize a catalog key: lower case, spaces and underscores to dashes.

    Examples:
        >>> normalize_key("Upper Arm")
        'upper-arm'
        >>> normalize_key(" extra_large ")
        'extra-large'
    """
    return re.sub(r"[\s_]+", "-", value.strip().lower())
