from __future__ import annotations

from enum import Enum
from typing import Callable, FrozenSet, Optional, Set

from ..domain.models import OrderRecord
from ..errors import SelectionError
from ..logging import get_logger
from .store import LedgerStore

LOG = get_logger("ledger-selection")


class SelectionMode(str, Enum):
    NORMAL = "normal"
    SELECTING = "selecting"


def delete_prompt(count: int) -> str:
    return f"Are you sure you want to delete {count} selected items?"


class SelectionController:
    """Multi-select over ledger timestamps with a confirmed batch delete.

    A selection is only meaningful for the ledger view it was made on, so it
    is cleared on every mode toggle and after each committed deletion.
    """

    def __init__(self, store: LedgerStore) -> None:
        self.store = store
        self.mode = SelectionMode.NORMAL
        self._selected: Set[int] = set()

    @property
    def selecting(self) -> bool:
        return self.mode is SelectionMode.SELECTING

    @property
    def selected(self) -> FrozenSet[int]:
        return frozenset(self._selected)

    @property
    def count(self) -> int:
        return len(self._selected)

    def is_selected(self, timestamp: int) -> bool:
        return timestamp in self._selected

    def toggle_mode(self) -> SelectionMode:
        self.mode = SelectionMode.NORMAL if self.selecting else SelectionMode.SELECTING
        self._selected.clear()
        LOG.debug(f"Selection mode -> {self.mode.value}")
        return self.mode

    def toggle(self, timestamp: int) -> bool:
        """Flip membership of ``timestamp``; returns whether it is now selected."""
        if not self.selecting:
            raise SelectionError("records can only be selected in selecting mode")
        if timestamp in self._selected:
            self._selected.discard(timestamp)
            return False
        self._selected.add(timestamp)
        return True

    def activate(self, record: OrderRecord) -> Optional[OrderRecord]:
        """Handle a click on a record.

        Normal mode returns the record so its detail view can be opened;
        selecting mode toggles it and returns None.
        """
        if self.selecting:
            self.toggle(record.timestamp)
            return None
        return record

    def delete_selected(self, confirm: Callable[[int], bool]) -> int:
        """Remove every selected record once ``confirm(count)`` agrees.

        Returns the number of records removed. An empty selection is a no-op
        and does not prompt; a declined prompt leaves everything as it was.
        """
        if not self._selected:
            return 0
        count = len(self._selected)
        if not confirm(count):
            LOG.info(f"Deletion of {count} selected item(s) cancelled")
            return 0
        doomed = set(self._selected)
        removed = self.store.remove_where(lambda r: r.timestamp in doomed)
        self.mode = SelectionMode.NORMAL
        self._selected.clear()
        LOG.info(f"Deleted {removed} record(s) from {count} selected timestamp(s)")
        return removed
