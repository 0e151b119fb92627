from __future__ import annotations

from typing import Protocol

from ..domain.models import OrderRecord
from .photos import Photo


class Extractor(Protocol):
    """Turns a service name and two photos into a draft order.

    Implementations raise ExtractionError for every failure.
    """

    def extract(self, service_name: str, weight_photo: Photo, customer_photo: Photo) -> OrderRecord:
        ...
