"""Batch-entry session: input → processing → result, one extraction at a time."""

from __future__ import annotations

import asyncio
from datetime import tzinfo
from enum import Enum
from typing import List, Optional

from ..domain.models import MonthGroup, OrderRecord
from ..domain.pricing import DEFAULT_SCHEDULE, PriceSchedule
from ..errors import DraftStateError, ExtractionError, ExtractionInFlightError
from ..extraction.base import Extractor
from ..extraction.photos import Photo
from ..ledger.aggregate import group
from ..ledger.store import LedgerStore
from ..logging import get_logger
from .draft import DraftEditor

LOG = get_logger("workflow-session")

EXTRACTION_FAILED_MESSAGE = "Failed to process the order. Please ensure the API key is valid and try again."


class Step(str, Enum):
    INPUT = "input"
    PROCESSING = "processing"
    RESULT = "result"


class BatchSession:
    """Drive one operator through submit → review → confirm/discard.

    ``Step.PROCESSING`` doubles as the in-flight guard: while it is set, a new
    submission is rejected. There is no lock because nothing runs in parallel
    with the control loop except the extractor call itself.
    """

    def __init__(
        self,
        store: LedgerStore,
        extractor: Extractor,
        *,
        schedule: PriceSchedule = DEFAULT_SCHEDULE,
    ) -> None:
        self.store = store
        self.extractor = extractor
        self.schedule = schedule
        self.step = Step.INPUT
        self.error: Optional[str] = None
        self.draft: Optional[DraftEditor] = None
        self._generation = 0

    @staticmethod
    def can_submit(service_name: Optional[str], weight_photo: Optional[Photo], customer_photo: Optional[Photo]) -> bool:
        return bool(service_name and service_name.strip()) and weight_photo is not None and customer_photo is not None

    async def submit(
        self,
        service_name: Optional[str],
        weight_photo: Optional[Photo],
        customer_photo: Optional[Photo],
    ) -> Optional[DraftEditor]:
        if self.step is Step.PROCESSING:
            raise ExtractionInFlightError("an extraction is already in progress")
        if not self.can_submit(service_name, weight_photo, customer_photo):
            LOG.debug("Submission ignored; service name and both photos are required")
            return None

        self._generation += 1
        generation = self._generation
        self.step = Step.PROCESSING
        self.error = None
        self.draft = None
        LOG.info(f"Extracting order for service '{service_name.strip()}'")

        try:
            record = await asyncio.to_thread(self.extractor.extract, service_name.strip(), weight_photo, customer_photo)
        except ExtractionError as exc:
            LOG.error(f"Extraction failed: {exc}")
            if generation == self._generation:
                self.error = EXTRACTION_FAILED_MESSAGE
            self.step = Step.INPUT
            return None
        except BaseException:
            self.step = Step.INPUT
            raise

        if generation != self._generation:
            LOG.warning(f"Dropping extraction result ts={record.timestamp}; the submission was abandoned")
            self.step = Step.INPUT
            return None

        self.draft = DraftEditor(record, schedule=self.schedule)
        self.step = Step.RESULT
        LOG.info(f"Draft ready ts={record.timestamp} confidence={record.confidence:.2f} urgency={self.draft.urgency.value}")
        return self.draft

    def abandon(self) -> None:
        """Navigate away from the current submission.

        An in-flight extraction is not cancelled: the session stays in
        PROCESSING until the call returns, then drops the result and goes back
        to INPUT. An open draft is discarded.
        """
        self._generation += 1
        if self.step is Step.PROCESSING:
            LOG.info("Abandoning in-flight extraction; its result will be dropped")
            return
        if self.draft is not None and self.step is Step.RESULT:
            self.draft.discard()
        self._reset()

    def confirm(self) -> OrderRecord:
        draft = self._require_draft()
        record = draft.confirm()
        self.store.append(record)
        self._reset()
        return record

    def discard(self) -> None:
        draft = self._require_draft()
        draft.discard()
        self._reset()

    def dismiss_error(self) -> None:
        self.error = None

    def history(self, *, tz: Optional[tzinfo] = None) -> List[MonthGroup]:
        return group(self.store.records, tz=tz)

    def _require_draft(self) -> DraftEditor:
        if self.step is not Step.RESULT or self.draft is None:
            raise DraftStateError("no draft to act on")
        return self.draft

    def _reset(self) -> None:
        self.draft = None
        self.error = None
        self.step = Step.INPUT
