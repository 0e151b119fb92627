"""Weight → price. Every price in the tracker comes from :func:`price_for`."""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

_CENT = Decimal("0.01")


@dataclass(frozen=True)
class PriceSchedule:
    rate_per_kg: float = 2.50
    minimum_charge: float = 0.00


DEFAULT_SCHEDULE = PriceSchedule()


def price_for(weight: Any, schedule: PriceSchedule = DEFAULT_SCHEDULE) -> float:
    """Return the price for ``weight`` kilograms, rounded half-up to cents.

    Negative weights are clamped to zero. NaN, infinities and non-numbers raise
    ValueError. The minimum charge applies to any positive weight.
    """
    if isinstance(weight, bool) or not isinstance(weight, (int, float, Decimal)):
        raise ValueError(f"weight must be a number, got {weight!r}")
    value = float(weight)
    if not math.isfinite(value):
        raise ValueError(f"weight must be finite, got {weight!r}")
    if value <= 0:
        return 0.0
    raw = Decimal(str(value)) * Decimal(str(schedule.rate_per_kg))
    raw = max(raw, Decimal(str(schedule.minimum_charge)))
    return float(raw.quantize(_CENT, rounding=ROUND_HALF_UP))
