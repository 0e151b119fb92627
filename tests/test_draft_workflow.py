import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from laundry_tracker.domain.models import WEIGHT_UNCLEAR, OrderRecord  # noqa: E402
from laundry_tracker.domain.pricing import PriceSchedule, price_for  # noqa: E402
from laundry_tracker.errors import DraftStateError  # noqa: E402
from laundry_tracker.workflow.draft import (  # noqa: E402
    FIELD_CUSTOMER_NAME,
    FIELD_DELIVERY_ADDRESS,
    FIELD_WEIGHT,
    DraftEditor,
    DraftState,
    ReviewUrgency,
    review_urgency,
    urgency_message,
)


def _record(**overrides) -> OrderRecord:
    data = dict(
        service_name="Acme",
        order_number="1001",
        customer_name="Jane Doe",
        delivery_address="Main St 1",
        weight=3.0,
        price=7.5,
        confidence=0.9,
        timestamp=1700000000000,
        weight_image_src="data:image/jpeg;base64,AA==",
        customer_image_src="data:image/jpeg;base64,BB==",
    )
    data.update(overrides)
    return OrderRecord(**data)


def test_urgency_tiers() -> None:
    assert review_urgency(0.81) is ReviewUrgency.HIGH
    assert review_urgency(0.8) is ReviewUrgency.MEDIUM
    assert review_urgency(0.51) is ReviewUrgency.MEDIUM
    assert review_urgency(0.5) is ReviewUrgency.LOW
    assert review_urgency(0.0) is ReviewUrgency.LOW
    assert urgency_message(ReviewUrgency.HIGH) != urgency_message(ReviewUrgency.LOW)


def test_initial_state_mirrors_record() -> None:
    draft = DraftEditor(_record())
    assert draft.text(FIELD_WEIGHT) == "3"
    assert draft.price == 7.5
    assert draft.urgency is ReviewUrgency.HIGH
    assert draft.confidence_percent == 90
    assert not draft.is_editing(FIELD_WEIGHT)


def test_weight_edit_reprices_live() -> None:
    draft = DraftEditor(_record())
    draft.begin_edit(FIELD_WEIGHT)
    draft.set_text(FIELD_WEIGHT, "12.5")
    assert draft.price == price_for(12.5)
    assert draft.text(FIELD_WEIGHT) == "12.5"
    draft.set_text(FIELD_WEIGHT, "abc")
    assert draft.price == 0.0
    draft.set_text(FIELD_WEIGHT, "4")
    assert draft.price == 10.0


def test_text_edits_do_not_touch_price() -> None:
    draft = DraftEditor(_record())
    draft.edit(FIELD_CUSTOMER_NAME, "John Roe")
    draft.edit(FIELD_DELIVERY_ADDRESS, "Side St 2")
    assert draft.price == 7.5


def test_set_text_requires_editing() -> None:
    draft = DraftEditor(_record())
    with pytest.raises(DraftStateError):
        draft.set_text(FIELD_WEIGHT, "5")
    with pytest.raises(DraftStateError):
        draft.begin_edit("order_number")


def test_confirm_keeps_unedited_fields() -> None:
    original = _record()
    draft = DraftEditor(original)
    draft.edit(FIELD_WEIGHT, "12.5")
    draft.begin_edit(FIELD_CUSTOMER_NAME)
    draft.set_text(FIELD_CUSTOMER_NAME, "John Roe")
    final = draft.confirm()

    assert final.weight == 12.5
    assert final.price == price_for(12.5)
    assert final.customer_name == "John Roe"
    assert final.delivery_address == original.delivery_address
    assert final.order_number == original.order_number
    assert final.timestamp == original.timestamp
    assert final.confidence == original.confidence
    assert final.weight_image_src == original.weight_image_src
    assert final.customer_image_src == original.customer_image_src
    assert draft.state is DraftState.CONFIRMED


def test_non_numeric_weight_confirms_as_unclear() -> None:
    draft = DraftEditor(_record())
    draft.edit(FIELD_WEIGHT, "abc")
    final = draft.confirm()
    assert final.weight == WEIGHT_UNCLEAR
    assert final.price == 0.0


def test_unclear_extraction_starts_at_zero_price() -> None:
    draft = DraftEditor(_record(weight=WEIGHT_UNCLEAR, price=0.0, confidence=0.3))
    assert draft.text(FIELD_WEIGHT) == WEIGHT_UNCLEAR
    assert draft.price == 0.0
    assert draft.urgency is ReviewUrgency.LOW
    draft.edit(FIELD_WEIGHT, "6")
    assert draft.confirm().weight == 6.0


def test_schedule_is_used_for_recompute() -> None:
    draft = DraftEditor(_record(), schedule=PriceSchedule(rate_per_kg=3.0, minimum_charge=0.0))
    assert draft.price == 9.0
    draft.edit(FIELD_WEIGHT, "2")
    assert draft.price == 6.0


def test_terminal_states_reject_edits() -> None:
    draft = DraftEditor(_record())
    draft.discard()
    assert draft.state is DraftState.DISCARDED
    with pytest.raises(DraftStateError):
        draft.edit(FIELD_WEIGHT, "1")
    with pytest.raises(DraftStateError):
        draft.confirm()
