from __future__ import annotations

import os
import re
from datetime import date, datetime, timezone, tzinfo
from typing import Iterable, List, Optional

from ..domain.models import OrderRecord
from ..domain.normalize import format_weight, local_datetime
from ..logging import get_logger

LOG = get_logger("ledger-export")

EXPORT_MIME_TYPE = "text/csv"
EXPORT_PREFIX = "laundry-tracker-export"

HEADERS = (
    "Date",
    "Time",
    "Laundry Service",
    "Order Number",
    "Customer Name",
    "Delivery Address",
    "Weight (kg)",
    "Price (EUR)",
)

_NEWLINES = re.compile(r"\r\n|\r|\n")


def _quote(value: Optional[str]) -> str:
    return '"' + (value or "").replace('"', '""') + '"'


def _row(record: OrderRecord, tz: Optional[tzinfo]) -> str:
    dt = local_datetime(record.timestamp, tz)
    address = _NEWLINES.sub(" ", record.delivery_address or "")
    values = [
        dt.strftime("%Y-%m-%d"),
        dt.strftime("%H:%M:%S"),
        _quote(record.service_name),
        _quote(record.order_number),
        _quote(record.customer_name),
        _quote(address),
        format_weight(record.weight),
        f"{(record.price or 0.0):.2f}",
    ]
    return ",".join(values)


def export_csv(records: Iterable[OrderRecord], *, tz: Optional[tzinfo] = None) -> Optional[bytes]:
    """Serialize the ledger in storage order; None when there is nothing to export."""
    rows: List[str] = [_row(r, tz) for r in records]
    if not rows:
        return None
    return "\n".join([",".join(HEADERS), *rows]).encode("utf-8")


def export_filename(today: Optional[date] = None) -> str:
    day = today or datetime.now(timezone.utc).date()
    return f"{EXPORT_PREFIX}-{day.isoformat()}.csv"


def write_export(
    records: Iterable[OrderRecord],
    output_dir: str,
    *,
    today: Optional[date] = None,
    tz: Optional[tzinfo] = None,
) -> Optional[str]:
    """Write the CSV artifact into output_dir and return its path.

    An empty ledger writes nothing and returns None.
    """
    rows = list(records)
    content = export_csv(rows, tz=tz)
    if content is None:
        LOG.info("Ledger is empty; nothing to export")
        return None
    os.makedirs(output_dir, exist_ok=True)
    path = os.path.join(os.path.abspath(output_dir), export_filename(today))
    with open(path, "wb") as handle:
        handle.write(content)
    LOG.info(f"Exported {len(rows)} record(s) to {path}")
    return path
