"""
Image Utilities
Client-side style image compression before upload: bounded dimensions,
fixed JPEG quality. Pure in-memory transform.
"""

import io
import logging
import os
from typing import Optional, Tuple

from PIL import Image, ImageOps

from utils.errors import ImageCompressionError

logger = logging.getLogger("ImageUtils")

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".tif", ".tiff", ".heic"}


def is_image(filename: str, content_type: Optional[str] = None) -> bool:
    """True when the upload looks like an image by MIME type or extension"""
    if content_type and content_type.lower().startswith("image/"):
        return True
    return os.path.splitext(filename or "")[1].lower() in IMAGE_EXTENSIONS


def target_size(width: int, height: int, max_width: int, max_height: int) -> Tuple[int, int]:
    """
    Compute output dimensions.

    Landscape images are bounded by max_width, everything else by max_height;
    the other side scales proportionally. Images inside the bounds keep their size.
    """
    if width > height:
        if width > max_width:
            height = height * max_width / width
            width = max_width
    else:
        if height > max_height:
            width = width * max_height / height
            height = max_height
    return max(1, round(width)), max(1, round(height))


def compress_image(
    content: bytes,
    max_width: int = 1200,
    max_height: int = 1200,
    quality: float = 0.7,
) -> bytes:
    """
    Re-encode an image as JPEG within the given bounds.

    Args:
        content: Raw bytes of any Pillow-decodable image
        max_width: Maximum output width for landscape images
        max_height: Maximum output height for portrait/square images
        quality: JPEG quality factor between 0.0 and 1.0

    Returns:
        JPEG bytes

    Raises:
        ImageCompressionError: if decoding or encoding fails, including images over
            Pillow's decompression bomb limit
    """
    try:
        with Image.open(io.BytesIO(content)) as img:
            img.load()
            img = ImageOps.exif_transpose(img)

            width, height = target_size(img.width, img.height, max_width, max_height)
            if (width, height) != img.size:
                img = img.resize((width, height), Image.Resampling.LANCZOS)

            if img.mode in ("RGBA", "LA", "P"):
                img = img.convert("RGBA")
                background = Image.new("RGB", img.size, (255, 255, 255))
                background.paste(img, mask=img.split()[-1])
                img = background
            elif img.mode != "RGB":
                img = img.convert("RGB")

            out = io.BytesIO()
            img.save(out, format="JPEG", quality=_pillow_quality(quality), optimize=True)
    except Exception as e:
        raise ImageCompressionError(detail=f"{type(e).__name__}: {e}") from e

    result = out.getvalue()
    logger.debug(f"Compressed image {len(content)} -> {len(result)} bytes ({width}x{height})")
    return result


def _pillow_quality(quality: float) -> int:
    """Map a 0.0-1.0 quality factor onto Pillow's 1-95 JPEG scale"""
    return max(1, min(95, int(round(quality * 100))))


def jpeg_filename(filename: str) -> str:
    base, _ = os.path.splitext(filename or "image")
    return f"{base or 'image'}.jpg"
