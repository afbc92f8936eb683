"""Image loading, upload validation and scoped region crops (Pillow)."""

import io
import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Tuple

from PIL import Image, UnidentifiedImageError

from ..config import Settings, get_settings
from ..exceptions import ImageProcessingError
from .object_detection import BoundingBox

logger = logging.getLogger(__name__)

MIN_UPLOAD_DIMENSION = 100


def load_image(image_bytes: bytes) -> Image.Image:
    """
    Decode image bytes into an RGB Pillow image.

    Raises:
        ImageProcessingError: if the bytes are not a readable image
    """
    try:
        img = Image.open(io.BytesIO(image_bytes))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ImageProcessingError("Unable to read image", details=str(e)) from e

    # Handles RGBA PNGs, palette images, etc.
    if img.mode != "RGB":
        img = img.convert("RGB")
    return img


def is_valid_crop_size(width: int, height: int, min_size: int) -> bool:
    return width >= min_size and height >= min_size


@contextmanager
def cropped_region(
    image: Image.Image,
    box: BoundingBox,
    min_size: int,
    jpeg_quality: int = 90,
) -> Iterator[bytes]:
    """
    Crop a region and yield it as JPEG bytes.

    The crop and its buffer exist only inside the ``with`` block and are
    released on every exit path.

    Raises:
        ImageProcessingError: if the crop is smaller than ``min_size`` in
            either dimension or cannot be encoded
    """
    x1, y1, x2, y2 = box.to_pixels(*image.size)
    width, height = x2 - x1, y2 - y1
    if not is_valid_crop_size(width, height, min_size):
        raise ImageProcessingError(
            "Crop too small",
            details=f"{width}x{height} px, minimum {min_size}x{min_size}",
        )

    crop = image.crop((x1, y1, x2, y2))
    buffer = io.BytesIO()
    try:
        try:
            crop.save(buffer, format="JPEG", quality=jpeg_quality)
        except (OSError, ValueError) as e:
            raise ImageProcessingError("Unable to encode crop", details=str(e)) from e
        logger.debug(f"Cropped region ({x1}, {y1})-({x2}, {y2}): {width}x{height}")
        yield buffer.getvalue()
    finally:
        buffer.close()
        crop.close()


def get_image_info(image_bytes: bytes) -> dict:
    """Get basic image information."""
    with Image.open(io.BytesIO(image_bytes)) as img:
        return {
            "width": img.width,
            "height": img.height,
            "format": img.format,
            "mode": img.mode,
            "size_bytes": len(image_bytes),
        }


def validate_image(
    image_bytes: bytes,
    filename: str,
    settings: Optional[Settings] = None,
) -> Tuple[bool, str]:
    """
    Validate an uploaded image before detection.

    Returns:
        Tuple of (is_valid, error_message)
    """
    settings = settings or get_settings()

    # Check file extension
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if ext not in settings.allowed_extensions:
        allowed = ", ".join(sorted(settings.allowed_extensions)).upper()
        return False, f"Invalid file type. Allowed formats: {allowed}"

    size_mb = len(image_bytes) / (1024 * 1024)
    if size_mb > settings.max_upload_size_mb:
        return False, f"Image exceeds {settings.max_upload_size_mb}MB upload limit. Please resize or compress."

    try:
        info = get_image_info(image_bytes)
    except (UnidentifiedImageError, OSError) as e:
        return False, f"Unable to read image: {str(e)}"

    if info["width"] < MIN_UPLOAD_DIMENSION or info["height"] < MIN_UPLOAD_DIMENSION:
        return False, f"Image too small. Minimum dimensions: {MIN_UPLOAD_DIMENSION}x{MIN_UPLOAD_DIMENSION} pixels."

    return True, ""
