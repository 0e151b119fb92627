from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .normalize import coerce_weight

# Marker the extractor reports when the scale could not be read.
WEIGHT_UNCLEAR = "DATA_UNCLEAR"

Weight = Union[float, str]


@dataclass(frozen=True)
class OrderRecord:
    service_name: str
    order_number: str
    customer_name: str
    delivery_address: str
    weight: Weight             # kilograms or WEIGHT_UNCLEAR
    price: Optional[float]
    confidence: float          # 0.0 .. 1.0
    timestamp: int             # ms since epoch, unique within the ledger
    weight_image_src: Optional[str] = None
    customer_image_src: Optional[str] = None

    @property
    def weight_is_unclear(self) -> bool:
        return not isinstance(self.weight, (int, float))

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "laundry_service_name": self.service_name,
            "shopify_order_number": self.order_number,
            "customer_name": self.customer_name,
            "delivery_address": self.delivery_address,
            "laundry_weight_kg": self.weight,
            "price": self.price,
            "extraction_confidence_score": self.confidence,
            "timestamp": self.timestamp,
        }
        if self.weight_image_src is not None:
            data["weight_image_src"] = self.weight_image_src
        if self.customer_image_src is not None:
            data["customer_image_src"] = self.customer_image_src
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OrderRecord":
        """Rebuild a record from its stored form; raises ValueError on bad shape."""
        if not isinstance(data, dict):
            raise ValueError("order record must be an object")
        service = data.get("laundry_service_name")
        if not isinstance(service, str) or not service.strip():
            raise ValueError("laundry_service_name required")
        ts = data.get("timestamp")
        if isinstance(ts, bool) or not isinstance(ts, (int, float)):
            raise ValueError("timestamp must be a number")
        price = data.get("price")
        if isinstance(price, bool) or not isinstance(price, (int, float)):
            price = None
        confidence = data.get("extraction_confidence_score")
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            confidence = 0.0

        def _text(key: str) -> str:
            value = data.get(key)
            return value if isinstance(value, str) else ""

        def _opt_text(key: str) -> Optional[str]:
            value = data.get(key)
            return value if isinstance(value, str) else None

        return cls(
            service_name=service,
            order_number=_text("shopify_order_number"),
            customer_name=_text("customer_name"),
            delivery_address=_text("delivery_address"),
            weight=weight_or_unclear(data.get("laundry_weight_kg")),
            price=float(price) if price is not None else None,
            confidence=float(confidence),
            timestamp=int(ts),
            weight_image_src=_opt_text("weight_image_src"),
            customer_image_src=_opt_text("customer_image_src"),
        )


def weight_or_unclear(value: Any) -> Weight:
    """Kilograms when ``value`` is numeric, otherwise WEIGHT_UNCLEAR."""
    kg = coerce_weight(value)
    return kg if kg is not None else WEIGHT_UNCLEAR


def weight_value(record: OrderRecord) -> float:
    """Numeric weight for sums; an unclear weight contributes nothing."""
    if record.weight_is_unclear:
        return 0.0
    return float(record.weight)


def price_value(record: OrderRecord) -> float:
    return float(record.price) if record.price else 0.0


@dataclass
class ServiceGroup:
    key: str
    display_name: str
    records: List[OrderRecord] = field(default_factory=list)
    total_weight: float = 0.0
    total_price: float = 0.0

    @property
    def record_count(self) -> int:
        return len(self.records)


@dataclass
class MonthGroup:
    sort_key: str              # "YYYY-MM"
    label: str                 # "January 2024"
    services: List[ServiceGroup] = field(default_factory=list)

    @property
    def total_weight(self) -> float:
        return sum(s.total_weight for s in self.services)

    @property
    def total_price(self) -> float:
        return sum(s.total_price for s in self.services)

    @property
    def records(self) -> List[OrderRecord]:
        return [r for s in self.services for r in s.records]
