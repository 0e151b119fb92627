from __future__ import annotations


class LaundryTrackerError(Exception):
    pass


class ExtractionError(LaundryTrackerError):
    """The photos could not be turned into a draft order."""


class PayloadValidationError(ExtractionError):
    """The model answered, but not with a usable order object."""


class ExtractionInFlightError(LaundryTrackerError):
    """A submission arrived while another extraction was still outstanding."""


class DraftStateError(LaundryTrackerError):
    pass


class SelectionError(LaundryTrackerError):
    pass
