"""Order records, pricing and the normalization helpers they share."""

from .models import (
    WEIGHT_UNCLEAR,
    MonthGroup,
    OrderRecord,
    ServiceGroup,
    price_value,
    weight_or_unclear,
    weight_value,
)
from .pricing import DEFAULT_SCHEDULE, PriceSchedule, price_for

__all__ = [
    "WEIGHT_UNCLEAR",
    "OrderRecord",
    "MonthGroup",
    "ServiceGroup",
    "weight_or_unclear",
    "weight_value",
    "price_value",
    "PriceSchedule",
    "DEFAULT_SCHEDULE",
    "price_for",
]
