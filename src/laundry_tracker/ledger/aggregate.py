"""Month → service hierarchy derived from the ledger.

The view is rebuilt from scratch on every call; nothing is cached.
"""

from __future__ import annotations

from datetime import tzinfo
from typing import Dict, Iterable, List, Optional

from ..domain.models import MonthGroup, OrderRecord, ServiceGroup, price_value, weight_value
from ..domain.normalize import month_key, service_key


def group(records: Iterable[OrderRecord], *, tz: Optional[tzinfo] = None) -> List[MonthGroup]:
    """Group records by (year, month) then by normalized service name.

    - Month buckets come out most recent first (sorted on "YYYY-MM").
    - Service groups and the records inside them keep iteration order.
    - A service group is displayed with the casing of the first record seen
      for it in that month.
    """
    months: Dict[str, MonthGroup] = {}
    seen_services: Dict[str, Dict[str, ServiceGroup]] = {}

    for record in records:
        sort_key, label = month_key(record.timestamp, tz)
        bucket = months.get(sort_key)
        if bucket is None:
            bucket = MonthGroup(sort_key=sort_key, label=label)
            months[sort_key] = bucket
            seen_services[sort_key] = {}

        key = service_key(record.service_name)
        services = seen_services[sort_key]
        svc = services.get(key)
        if svc is None:
            svc = ServiceGroup(key=key, display_name=record.service_name.strip())
            services[key] = svc
            bucket.services.append(svc)

        svc.records.append(record)
        svc.total_weight += weight_value(record)
        svc.total_price += price_value(record)

    return [months[k] for k in sorted(months, reverse=True)]
