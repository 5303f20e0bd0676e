"""Screenshot recompression.

Full-page captures come back from the browser as large PNGs. Before they are
sent to the vision model and uploaded, they are bounded in width and height
and transcoded to JPEG at a fixed quality using Pillow.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

# ------------------------------------------------------------------
# Constants
# ------------------------------------------------------------------

DEFAULT_MAX_WIDTH = 1280
DEFAULT_MAX_HEIGHT = 8000
DEFAULT_QUALITY = 80

OUTPUT_FORMAT = "JPEG"
OUTPUT_CONTENT_TYPE = "image/jpeg"
OUTPUT_EXTENSION = ".jpg"


class ImageDecodeError(ValueError):
    """Raised when the captured bytes are not a decodable image."""


@dataclass
class ProcessedImage:
    """Recompressed screenshot ready for upload and analysis."""

    data: bytes
    content_type: str
    width: int
    height: int
    recompressed: bool = True


def _flatten(img: Image.Image) -> Image.Image:
    """Return an RGB copy of *img*, compositing any alpha onto white."""
    if img.mode in ("P", "PA", "LA"):
        img = img.convert("RGBA")
    if img.mode == "RGBA":
        background = Image.new("RGB", img.size, (255, 255, 255))
        background.paste(img, mask=img.split()[3])
        return background
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


def recompress_screenshot(
    content: bytes,
    *,
    max_width: int = DEFAULT_MAX_WIDTH,
    max_height: int = DEFAULT_MAX_HEIGHT,
    quality: int = DEFAULT_QUALITY,
) -> ProcessedImage:
    """Bound *content* to ``max_width`` x ``max_height`` and encode it as JPEG.

    JPEG input that already fits is passed through untouched. Wider images
    are scaled down with their aspect ratio kept; anything still taller than
    ``max_height`` is cropped from the top. Raises ``ImageDecodeError`` if
    Pillow cannot read the input.
    """
    try:
        img = Image.open(io.BytesIO(content))
        img.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise ImageDecodeError("captured bytes are not a readable image") from exc

    width, height = img.size
    if img.format == OUTPUT_FORMAT and width <= max_width and height <= max_height:
        return ProcessedImage(
            data=content,
            content_type=OUTPUT_CONTENT_TYPE,
            width=width,
            height=height,
            recompressed=False,
        )

    if width > max_width:
        new_height = max(1, int(height * max_width / width))
        img = img.resize((max_width, new_height), Image.Resampling.LANCZOS)

    if img.height > max_height:
        img = img.crop((0, 0, img.width, max_height))

    img = _flatten(img)

    buf = io.BytesIO()
    img.save(buf, format=OUTPUT_FORMAT, quality=quality, optimize=True)
    data = buf.getvalue()
    logger.info(
        "Recompressed screenshot %dx%d -> %dx%d, %d -> %d bytes",
        width,
        height,
        img.width,
        img.height,
        len(content),
        len(data),
    )
    return ProcessedImage(
        data=data,
        content_type=OUTPUT_CONTENT_TYPE,
        width=img.width,
        height=img.height,
    )
