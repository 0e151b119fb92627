from __future__ import annotations

import json
import math
import re
from typing import Any, Optional, Tuple

from ..domain.models import WEIGHT_UNCLEAR, OrderRecord, weight_or_unclear
from ..domain.pricing import DEFAULT_SCHEDULE, PriceSchedule, price_for
from ..errors import PayloadValidationError
from ..logging import get_logger

LOG = get_logger("extraction-parser")


def scavenge_json_object(text: str) -> Optional[Any]:
    """Best-effort JSON from model text: plain, fenced ```json```, or brace slice."""
    if not text:
        return None
    candidates = [text.strip()]
    fenced = re.search(r"```(?:json)?\s*(.*?)```", text, re.DOTALL)
    if fenced and fenced.group(1):
        candidates.append(fenced.group(1).strip())
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start : end + 1])
    for candidate in candidates:
        try:
            return json.loads(candidate)
        except ValueError:
            continue
    return None


def _clamp_confidence(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    try:
        num = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(num):
        return 0.0
    # Some models answer in percent
    if 1.0 < num <= 100.0:
        num = num / 100.0
    return min(1.0, max(0.0, num))


def parse_order_payload(
    payload: Any,
    *,
    service_name: str,
    timestamp: int,
    images: Tuple[Optional[str], Optional[str]] = (None, None),
    schedule: PriceSchedule = DEFAULT_SCHEDULE,
) -> OrderRecord:
    """Validate the model's answer and build the draft order.

    Expected keys (all optional except that the payload must be an object):
    - customer_name, delivery_address, shopify_order_number: strings
    - laundry_weight_kg: number, numeric string, or "DATA_UNCLEAR"
    - extraction_confidence_score: 0..1 (percent values are scaled down)
    The price is always computed here from the weight, never taken from the model.
    """
    if not isinstance(payload, dict):
        raise PayloadValidationError("Payload must be a JSON object")
    if not service_name or not service_name.strip():
        raise PayloadValidationError("service name required")

    def _norm_s(s: Any) -> str:
        if isinstance(s, (int, float)) and not isinstance(s, bool):
            return str(s)
        return s.strip() if isinstance(s, str) else ""

    weight = weight_or_unclear(payload.get("laundry_weight_kg"))
    if weight != WEIGHT_UNCLEAR and weight < 0:
        LOG.warning(f"Model reported negative weight {weight}; treating as unclear")
        weight = WEIGHT_UNCLEAR
    price = 0.0 if weight == WEIGHT_UNCLEAR else price_for(weight, schedule)

    order_number = _norm_s(payload.get("shopify_order_number")).lstrip("#")

    record = OrderRecord(
        service_name=service_name.strip(),
        order_number=order_number,
        customer_name=_norm_s(payload.get("customer_name")),
        delivery_address=_norm_s(payload.get("delivery_address")),
        weight=weight,
        price=price,
        confidence=_clamp_confidence(payload.get("extraction_confidence_score")),
        timestamp=int(timestamp),
        weight_image_src=images[0],
        customer_image_src=images[1],
    )
    LOG.debug(f"Parsed draft ts={record.timestamp} weight={record.weight} confidence={record.confidence:.2f}")
    return record
