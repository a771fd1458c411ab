"""Image loading, nearest-neighbour scaling and TSPL BITMAP encoding."""

from __future__ import annotations

import base64
import binascii
import io
import logging
import urllib.error
import urllib.request
from pathlib import Path
from typing import Sequence

from PIL import Image

__all__ = ["decode_image", "scale_nearest", "is_dark_pixel", "bitmap_command"]

logger = logging.getLogger(__name__)

_RAW_BASE64_MIN_LENGTH = 100
_FETCH_TIMEOUT = 30


def _decode_base64(payload: str) -> bytes | None:
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        pass
    try:
        return base64.b64decode(payload + "=" * (-len(payload) % 4), validate=True)
    except (binascii.Error, ValueError):
        return None


def _open_bytes(data: bytes | None) -> Image.Image | None:
    if not data:
        return None
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (OSError, ValueError, Image.DecompressionBombError):
        return None
    return image


def _fetch(url: str) -> Image.Image | None:
    try:
        with urllib.request.urlopen(url, timeout=_FETCH_TIMEOUT) as response:
            if response.status != 200:
                return None
            return _open_bytes(response.read())
    except (OSError, ValueError):
        return None


def decode_image(content: str) -> Image.Image | None:
    """Load an image from a data URI, raw base64, an HTTP URL or a file path.

    Returns None when the content cannot be read as an image.
    """
    if content.startswith("data:image/"):
        _, separator, payload = content.partition(",")
        if not separator:
            return None
        return _open_bytes(_decode_base64(payload))

    if (
        len(content) > _RAW_BASE64_MIN_LENGTH
        and not content.startswith("http")
        and "/" not in content[:20]
    ):
        return _open_bytes(_decode_base64(content))

    if content.startswith("http"):
        return _fetch(content)

    try:
        data = Path(content).read_bytes()
    except (OSError, ValueError):
        return None
    return _open_bytes(data)


def scale_nearest(image: Image.Image, width: int, height: int) -> Image.Image:
    """Resize with nearest-neighbour sampling from each target pixel's top-left source."""
    if width < 0 or height < 0:
        raise ValueError(f"negative target size: {width}x{height}")
    src_w, src_h = image.size
    if (src_w, src_h) == (width, height):
        return image
    source = image.convert("RGBA")
    pixels = source.load()
    scaled = Image.new("RGBA", (width, height))
    scaled.putdata(
        [
            pixels[dx * src_w // width, dy * src_h // height]
            for dy in range(height)
            for dx in range(width)
        ]
    )
    return scaled


def is_dark_pixel(pixel: Sequence[int]) -> bool:
    """True if an RGB(A) pixel should print black on monochrome paper."""
    if len(pixel) >= 4:
        red, green, blue, alpha = pixel[:4]
    else:
        red, green, blue = pixel[:3]
        alpha = 255
    red, green, blue = (channel * alpha // 255 for channel in (red, green, blue))
    luminance = 0.299 * red + 0.587 * green + 0.114 * blue
    return luminance < 128 and alpha > 128


def bitmap_command(image: Image.Image, x: int, y: int) -> bytes:
    """Encode an image as a TSPL BITMAP command; a set bit prints black."""
    width, height = image.size
    if width <= 0 or height <= 0:
        return b""

    width_bytes = (width + 7) // 8
    data = bytearray(width_bytes * height)
    raw = image.convert("RGBA").tobytes()
    for index, pixel in enumerate(zip(*[iter(raw)] * 4)):
        if is_dark_pixel(pixel):
            row, col = divmod(index, width)
            data[row * width_bytes + col // 8] |= 0x80 >> (col % 8)

    logger.debug("BITMAP %dx%d (%d bytes) at %d,%d", width, height, len(data), x, y)
    header = f"BITMAP {x},{y},{width_bytes},{height},0,".encode("ascii")
    return header + bytes(data) + b"\r\n"