"""Draft review and the batch-entry session around it."""

from .draft import (
    EDITABLE_FIELDS,
    DraftEditor,
    DraftState,
    ReviewUrgency,
    review_urgency,
    urgency_message,
)
from .session import EXTRACTION_FAILED_MESSAGE, BatchSession, Step

__all__ = [
    "DraftEditor",
    "DraftState",
    "EDITABLE_FIELDS",
    "ReviewUrgency",
    "review_urgency",
    "urgency_message",
    "BatchSession",
    "Step",
    "EXTRACTION_FAILED_MESSAGE",
]
