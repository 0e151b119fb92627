import math
import re
from datetime import datetime, tzinfo
from typing import Any, Optional, Tuple

from ..logging import get_logger

_LOG = get_logger("normalize")

# Leading float literal, the way a browser's parseFloat reads operator input.
_FLOAT_PREFIX = re.compile(r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)")


def parse_weight(text: Any) -> Optional[float]:
    """Parse operator-typed weight text; None when no finite number leads it.

    "12.5" -> 12.5, " 7kg" -> 7.0, "abc" -> None, "" -> None.
    """
    if isinstance(text, bool):
        return None
    if isinstance(text, (int, float)):
        value = float(text)
        return value if math.isfinite(value) else None
    if not isinstance(text, str):
        return None
    m = _FLOAT_PREFIX.match(text)
    if not m:
        return None
    value = float(m.group(1))
    return value if math.isfinite(value) else None


def coerce_weight(value: Any) -> Optional[float]:
    """Strictly coerce a stored/extracted weight to kilograms.

    Accepts numbers and numeric strings (a single decimal comma is allowed,
    e.g. '4,5'). Anything else, including the unclear marker, gives None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        num = float(value)
        return num if math.isfinite(num) else None
    if isinstance(value, str):
        s = value.strip()
        if re.fullmatch(r"[+-]?\d+,\d+", s):
            s = s.replace(",", ".")
        try:
            num = float(s)
        except ValueError:
            return None
        if not math.isfinite(num):
            _LOG.debug(f"Ignoring non-finite weight {value!r}")
            return None
        return num
    return None


def format_weight(weight: Any) -> str:
    """Render a weight as displayed and exported: 3.0 -> '3', 12.5 -> '12.5'."""
    if isinstance(weight, bool) or not isinstance(weight, (int, float)):
        return str(weight)
    value = float(weight)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def service_key(name: str) -> str:
    """Grouping identity of a laundry service: trimmed and lower-cased."""
    return (name or "").strip().lower()


def local_datetime(timestamp_ms: int, tz: Optional[tzinfo] = None) -> datetime:
    """Timestamp in ms -> aware-or-local datetime (local time when tz is None)."""
    return datetime.fromtimestamp(timestamp_ms / 1000.0, tz)


def month_key(timestamp_ms: int, tz: Optional[tzinfo] = None) -> Tuple[str, str]:
    """Return ("YYYY-MM", "Month YYYY") for a timestamp.

    The key is built from numbers, never from locale month names, so it sorts
    the same way everywhere.
    """
    dt = local_datetime(timestamp_ms, tz)
    return f"{dt.year:04d}-{dt.month:02d}", dt.strftime("%B %Y")
