from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from ..domain.models import WEIGHT_UNCLEAR, OrderRecord
from ..domain.normalize import format_weight, parse_weight
from ..domain.pricing import DEFAULT_SCHEDULE, PriceSchedule, price_for
from ..errors import DraftStateError
from ..logging import get_logger

LOG = get_logger("workflow-draft")

FIELD_WEIGHT = "weight"
FIELD_CUSTOMER_NAME = "customer_name"
FIELD_DELIVERY_ADDRESS = "delivery_address"
EDITABLE_FIELDS = (FIELD_WEIGHT, FIELD_CUSTOMER_NAME, FIELD_DELIVERY_ADDRESS)


class DraftState(str, Enum):
    DRAFT = "draft"
    CONFIRMED = "confirmed"
    DISCARDED = "discarded"


class ReviewUrgency(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


_URGENCY_MESSAGES = {
    ReviewUrgency.HIGH: "The data was extracted with high confidence.",
    ReviewUrgency.MEDIUM: "Please review the extracted data manually.",
    ReviewUrgency.LOW: "Please review the extracted data manually.",
}


def review_urgency(confidence: float) -> ReviewUrgency:
    """HIGH above 0.8, MEDIUM above 0.5, LOW otherwise."""
    if confidence > 0.8:
        return ReviewUrgency.HIGH
    if confidence > 0.5:
        return ReviewUrgency.MEDIUM
    return ReviewUrgency.LOW


def urgency_message(urgency: ReviewUrgency) -> str:
    return _URGENCY_MESSAGES[urgency]


@dataclass
class EditableField:
    value: str
    pending: str
    editing: bool = False


class DraftEditor:
    """Review/edit a freshly extracted order before it enters the ledger.

    Weight, customer name and delivery address can each be toggled into
    editing independently. Typing into the weight re-prices the draft on every
    change; text that does not parse as a number prices it at zero.
    """

    def __init__(self, record: OrderRecord, *, schedule: PriceSchedule = DEFAULT_SCHEDULE) -> None:
        self.original = record
        self.schedule = schedule
        self.state = DraftState.DRAFT
        initial = {
            FIELD_WEIGHT: format_weight(record.weight),
            FIELD_CUSTOMER_NAME: record.customer_name or "",
            FIELD_DELIVERY_ADDRESS: record.delivery_address or "",
        }
        self.fields: Dict[str, EditableField] = {
            name: EditableField(value=text, pending=text) for name, text in initial.items()
        }
        self.price = self._recompute(initial[FIELD_WEIGHT])

    # ---- read side --------------------------------------------------------
    @property
    def urgency(self) -> ReviewUrgency:
        return review_urgency(self.original.confidence)

    @property
    def confidence_percent(self) -> int:
        return int(round(self.original.confidence * 100))

    def text(self, name: str) -> str:
        """Current working text of a field (pending text while it is being edited)."""
        fld = self._field(name)
        return fld.pending if fld.editing else fld.value

    def is_editing(self, name: str) -> bool:
        return self._field(name).editing

    # ---- edits ------------------------------------------------------------
    def begin_edit(self, name: str) -> None:
        self._require_draft()
        fld = self._field(name)
        if not fld.editing:
            fld.pending = fld.value
            fld.editing = True

    def set_text(self, name: str, text: str) -> None:
        self._require_draft()
        fld = self._field(name)
        if not fld.editing:
            raise DraftStateError(f"field '{name}' is not being edited")
        fld.pending = text
        if name == FIELD_WEIGHT:
            self.price = self._recompute(text)

    def finish_edit(self, name: str) -> None:
        self._require_draft()
        fld = self._field(name)
        if fld.editing:
            fld.value = fld.pending
            fld.editing = False

    def edit(self, name: str, text: str) -> None:
        """Begin, type and finish in one step."""
        self.begin_edit(name)
        self.set_text(name, text)
        self.finish_edit(name)

    # ---- outcomes ---------------------------------------------------------
    def confirm(self) -> OrderRecord:
        """Close open edits and return the final record.

        A weight field that does not start with a number is stored as
        WEIGHT_UNCLEAR (priced 0.00), not as 0 kg, so the CSV export shows
        "DATA_UNCLEAR" in the weight column for such orders.
        """
        self._require_draft()
        for name in EDITABLE_FIELDS:
            self.finish_edit(name)
        weight = parse_weight(self.fields[FIELD_WEIGHT].value)
        final = dataclasses.replace(
            self.original,
            weight=weight if weight is not None else WEIGHT_UNCLEAR,
            price=self.price,
            customer_name=self.fields[FIELD_CUSTOMER_NAME].value,
            delivery_address=self.fields[FIELD_DELIVERY_ADDRESS].value,
        )
        self.state = DraftState.CONFIRMED
        LOG.info(f"Draft ts={final.timestamp} confirmed (weight={format_weight(final.weight)}, price={final.price:.2f})")
        return final

    def discard(self) -> None:
        self._require_draft()
        self.state = DraftState.DISCARDED
        LOG.info(f"Draft ts={self.original.timestamp} discarded")

    # ---- internals --------------------------------------------------------
    def _recompute(self, weight_text: str) -> float:
        weight: Optional[float] = parse_weight(weight_text)
        if weight is None:
            return 0.0
        return price_for(weight, self.schedule)

    def _field(self, name: str) -> EditableField:
        try:
            return self.fields[name]
        except KeyError:
            raise DraftStateError(f"unknown editable field '{name}'") from None

    def _require_draft(self) -> None:
        if self.state is not DraftState.DRAFT:
            raise DraftStateError(f"draft already {self.state.value}")
