"""Photo → draft order extraction (the external collaborator of the tracker).

Modules:
- photos: load and normalize operator photos
- parser: validate model JSON into an OrderRecord
- vision: OpenAI / OpenRouter vision extractor
"""

from .base import Extractor
from .parser import parse_order_payload, scavenge_json_object
from .photos import Photo
from .vision import VisionExtractor

__all__ = [
    "Extractor",
    "Photo",
    "parse_order_payload",
    "scavenge_json_object",
    "VisionExtractor",
]
