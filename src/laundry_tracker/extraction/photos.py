from __future__ import annotations

import base64
import io
import os
from dataclasses import dataclass

from PIL import Image, ImageOps, UnidentifiedImageError

from ..errors import ExtractionError
from ..logging import get_logger

LOG = get_logger("extraction-photos")

MAX_EDGE_PX = 2048
JPEG_QUALITY = 85


@dataclass(frozen=True)
class Photo:
    """An operator photo ready to be sent to the vision model."""

    filename: str
    mime_type: str
    data: bytes

    @property
    def byte_size(self) -> int:
        return len(self.data)

    def data_url(self) -> str:
        b64 = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{b64}"

    @classmethod
    def from_bytes(cls, data: bytes, *, filename: str = "photo.jpg") -> "Photo":
        """Normalize raw image bytes: EXIF orientation, long edge <= 2048px, JPEG."""
        try:
            with Image.open(io.BytesIO(data)) as im:
                im = ImageOps.exif_transpose(im)
                if im.mode != "RGB":
                    im = im.convert("RGB")
                before = im.size
                im.thumbnail((MAX_EDGE_PX, MAX_EDGE_PX))
                out = io.BytesIO()
                im.save(out, format="JPEG", quality=JPEG_QUALITY)
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
            raise ExtractionError(f"{filename} is not a readable image: {exc}") from exc
        if im.size != before:
            LOG.debug(f"Downscaled {filename} from {before} to {im.size}")
        return cls(filename=filename, mime_type="image/jpeg", data=out.getvalue())

    @classmethod
    def from_path(cls, path: str) -> "Photo":
        try:
            with open(path, "rb") as handle:
                data = handle.read()
        except OSError as exc:
            raise ExtractionError(f"Failed to read photo {path}: {exc}") from exc
        photo = cls.from_bytes(data, filename=os.path.basename(path))
        approx_mb = round(photo.byte_size / (1024 * 1024), 2)
        LOG.debug(f"Loaded photo {path} (~{approx_mb} MiB after normalization)")
        return photo
