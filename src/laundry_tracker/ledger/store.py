from __future__ import annotations

import json
from typing import Callable, Iterator, List, Tuple

from ..domain.models import OrderRecord
from ..logging import get_logger
from .blobstore import BlobStore

LOG = get_logger("ledger-store")

DEFAULT_LEDGER_KEY = "laundryTrackerHistory"


class LedgerStore:
    """Ordered, process-wide list of confirmed orders with a persisted mirror.

    The in-memory list is the truth for the running process. After every
    mutation the whole list is written back to the blob store; a failed write
    is logged and the in-memory state is kept.
    """

    def __init__(self, blob_store: BlobStore, *, key: str = DEFAULT_LEDGER_KEY) -> None:
        self.blob_store = blob_store
        self.key = key
        self._records: List[OrderRecord] = []

    @property
    def records(self) -> Tuple[OrderRecord, ...]:
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[OrderRecord]:
        return iter(tuple(self._records))

    def load(self) -> Tuple[OrderRecord, ...]:
        """Restore the ledger from the blob store; any failure means no history."""
        try:
            raw = self.blob_store.get(self.key)
            if raw is None:
                LOG.info("No saved ledger found; starting empty")
                self._records = []
                return self.records
            data = json.loads(raw)
            if not isinstance(data, list):
                raise ValueError("saved ledger is not a list")
            self._records = [OrderRecord.from_dict(item) for item in data]
        except Exception as exc:
            LOG.error(f"Failed to load ledger '{self.key}'; starting empty: {exc}")
            self._records = []
            return self.records
        LOG.info(f"Loaded {len(self._records)} record(s) from ledger '{self.key}'")
        return self.records

    def append(self, record: OrderRecord) -> None:
        self._records.insert(0, record)
        LOG.info(f"Appended order ts={record.timestamp} service='{record.service_name}'")
        self._persist()

    def remove_where(self, predicate: Callable[[OrderRecord], bool]) -> int:
        kept = [r for r in self._records if not predicate(r)]
        removed = len(self._records) - len(kept)
        self._records = kept
        LOG.info(f"Removed {removed} record(s); {len(kept)} remaining")
        self._persist()
        return removed

    def _persist(self) -> None:
        try:
            payload = json.dumps([r.to_dict() for r in self._records], ensure_ascii=False)
            self.blob_store.set(self.key, payload)
        except Exception as exc:
            LOG.error(f"Failed to save ledger '{self.key}'; keeping in-memory state: {exc}")
