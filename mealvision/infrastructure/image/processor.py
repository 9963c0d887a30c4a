"""Image preparation with Pillow.

Validates uploads, shrinks them to a bounded box and re-encodes them as
JPEG without metadata before they are sent to a vision model.
"""

from __future__ import annotations

import asyncio
import io
from typing import Optional

import structlog
from PIL import Image, ImageOps

from mealvision.domain.meal.image.models import ProcessedImage
from mealvision.domain.shared.errors import ImageValidationError

logger = structlog.get_logger(__name__)

MAX_IMAGE_BYTES = 10 * 1024 * 1024
MAX_WIDTH = 1200
MAX_HEIGHT = 1200
JPEG_QUALITY = 85

ALLOWED_MIME_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/webp",
}


class ImageProcessor:
    """
    Validate and downsize meal photos.

    Example:
        >>> processor = ImageProcessor()
        >>> image = await processor.process(raw_bytes, "image/png")
        >>> image.mime_type
        'image/jpeg'
    """

    def __init__(
        self,
        max_bytes: int = MAX_IMAGE_BYTES,
        max_width: int = MAX_WIDTH,
        max_height: int = MAX_HEIGHT,
        quality: int = JPEG_QUALITY,
    ):
        self.max_bytes = max_bytes
        self.max_width = max_width
        self.max_height = max_height
        self.quality = quality

    def validate(self, content_type: Optional[str], size: int) -> None:
        """
        Check MIME type and size before decoding.

        Raises:
            ImageValidationError: Unsupported type, empty or oversized file
        """
        if (content_type or "").lower() not in ALLOWED_MIME_TYPES:
            raise ImageValidationError(f"Unsupported image type: {content_type}")
        if size <= 0:
            raise ImageValidationError("Image is empty")
        if size > self.max_bytes:
            raise ImageValidationError(
                f"Image too large: {size} bytes (max {self.max_bytes})"
            )

    async def process(self, data: bytes, content_type: Optional[str]) -> ProcessedImage:
        """
        Validate, resize and re-encode an upload.

        Pillow work runs in the default executor so the event loop is not
        blocked.

        Raises:
            ImageValidationError: Invalid upload or undecodable bytes
        """
        self.validate(content_type, len(data))
        loop = asyncio.get_running_loop()
        image = await loop.run_in_executor(None, self._process_sync, data)
        logger.debug(
            "Image processed",
            original_bytes=len(data),
            processed_bytes=image.size,
            width=image.width,
            height=image.height,
        )
        return image

    def _process_sync(self, data: bytes) -> ProcessedImage:
        try:
            img: Image.Image = Image.open(io.BytesIO(data))
            img.load()
        except (OSError, Image.DecompressionBombError) as e:
            raise ImageValidationError(f"Cannot decode image: {e}") from e

        img = ImageOps.exif_transpose(img) or img
        img = _to_rgb(img)
        img.thumbnail((self.max_width, self.max_height), Image.Resampling.LANCZOS)

        output = io.BytesIO()
        img.save(output, format="JPEG", quality=self.quality, optimize=True)
        encoded = output.getvalue()

        return ProcessedImage(
            data=encoded,
            mime_type="image/jpeg",
            size=len(encoded),
            width=img.width,
            height=img.height,
        )


def _to_rgb(img: Image.Image) -> Image.Image:
    """Flatten transparency onto white; JPEG has no alpha channel."""
    if img.mode in ("RGBA", "LA", "P"):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[-1])
        return background
    if img.mode != "RGB":
        return img.convert("RGB")
    return img
