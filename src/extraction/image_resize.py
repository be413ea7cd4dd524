# src/extraction/image_resize.py

import io
import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

from PIL import Image

from src.extraction.errors import ImageProcessingError

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 15 * 1024 * 1024   # before base64 encoding
COMPRESSION_FACTOR = 1.5             # expected size gain of re-encoding at JPEG_QUALITY
JPEG_QUALITY = 85
DEFAULT_MIME_TYPE = "image/png"


@dataclass(frozen=True)
class NormalizedImage:
    data: bytes
    mime_type: str
    resized: bool = False


def scale_dimensions(width: int, height: int, size: int, max_bytes: int) -> Tuple[int, int]:
    """
    Estimates the pixel dimensions that bring an image of `size` bytes under
    `max_bytes`. Single-pass estimate: the result may still overshoot.
    """
    scale = math.sqrt(max_bytes / (size * COMPRESSION_FACTOR))
    return math.floor(width * scale), math.floor(height * scale)


def normalize_image(
    image_bytes: bytes,
    content_type: Optional[str] = None,
    max_bytes: int = MAX_IMAGE_BYTES,
) -> NormalizedImage:
    """
    Returns image bytes that fit the inline budget.

    Images already within max_bytes are passed through untouched. Larger
    images are downscaled once and re-encoded as progressive JPEG.
    """
    size = len(image_bytes)
    logger.info("Original image size: %.2fMB", size / (1024 * 1024))

    if size <= max_bytes:
        return NormalizedImage(data=image_bytes, mime_type=content_type or DEFAULT_MIME_TYPE)

    logger.info("Image too large, resizing...")
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            width, height = img.size
            logger.info("Original dimensions: %sx%s", width, height)

            new_width, new_height = scale_dimensions(width, height, size, max_bytes)
            logger.info("Resizing to: %sx%s", new_width, new_height)

            resized = img.convert("RGB").resize((new_width, new_height))

        out = io.BytesIO()
        resized.save(out, format="JPEG", quality=JPEG_QUALITY, progressive=True)
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        logger.error("Error resizing image: %s", e)
        raise ImageProcessingError(
            f"Image resize failed: {e}",
            details="Unable to resize image. Try uploading a smaller image.",
        ) from e

    data = out.getvalue()
    logger.info("New image size: %.2fMB", len(data) / (1024 * 1024))
    return NormalizedImage(data=data, mime_type="image/jpeg", resized=True)
