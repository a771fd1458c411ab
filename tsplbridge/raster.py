"""Full-page raster rendering of label templates as monochrome TSPL bitmaps."""

from __future__ import annotations

import functools
import logging
import math
from typing import Iterable, Mapping

from PIL import Image, ImageDraw, ImageFont

from .images import bitmap_command, decode_image, is_dark_pixel
from .layout import DEFAULT_DPI, mm_to_dots, pt_to_dots, wrap_text_lines
from .native import INIT_SEQUENCE
from .qr import ErrorCorrection, encode
from .schema import Field, Schema, is_color_dark_enough, resolve_field_value

__all__ = [
    "raster_line",
    "raster_text",
    "raster_rect",
    "raster_qr",
    "raster_image",
    "rasterize_page",
    "render_bulk_raster",
]

logger = logging.getLogger(__name__)

BLACK = 0
WHITE = 255
BASE_FONT_WIDTH = 7
BASE_FONT_HEIGHT = 13
LINE_SPACING = 2
MAX_TEXT_SCALE = 6
DEFAULT_TEXT_POINTS = 13
MIN_VISIBLE_OPACITY = 0.25


def _round(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def _tdiv(a: int, b: int) -> int:
    """Integer division truncating toward zero."""
    quotient = abs(a) // abs(b)
    return quotient if (a >= 0) == (b > 0) else -quotient


def _fill(image: Image.Image, x0: int, y0: int, x1: int, y1: int) -> None:
    """Paint the half-open box [x0, x1) x [y0, y1) black, clipped to the image."""
    width, height = image.size
    left, top = max(x0, 0), max(y0, 0)
    right, bottom = min(x1, width), min(y1, height)
    if right > left and bottom > top:
        image.paste(BLACK, (left, top, right, bottom))


@functools.lru_cache(maxsize=1)
def _font() -> ImageFont.ImageFont:
    return ImageFont.load_default()


def raster_line(image: Image.Image, field: Field, x: int, y: int, w: int, h: int) -> None:
    """Draw a straight or rotated line field onto a grayscale image."""
    colour = field.color or field.font_color
    if colour and not is_color_dark_enough(colour):
        return

    thickness = max(h, 1)
    if field.rotate == 0:
        _fill(image, x, y, x + w, y + thickness)
        return

    width, height = image.size
    pixels = image.load()
    centre_x = x + w / 2
    centre_y = y + h / 2
    half = w / 2
    angle = math.radians(field.rotate)
    cos_a, sin_a = math.cos(angle), math.sin(angle)
    x1, y1 = centre_x - half * cos_a, centre_y - half * sin_a
    x2, y2 = centre_x + half * cos_a, centre_y + half * sin_a

    steps = int(max(abs(x2 - x1), abs(y2 - y1))) + 1
    spread = thickness // 2
    for i in range(steps + 1):
        t = i / steps
        px = x1 + t * (x2 - x1)
        py = y1 + t * (y2 - y1)
        for d in range(-spread, spread + 1):
            ix = _round(px + d * sin_a)
            iy = _round(py - d * cos_a)
            if 0 <= ix < width and 0 <= iy < height:
                pixels[ix, iy] = BLACK


def raster_text(
    image: Image.Image, text: str, field: Field, x: int, y: int, w: int, h: int, dpi: int
) -> None:
    """Draw word-wrapped, scaled bitmap text clipped to the field box."""
    colour = field.font_color or field.color
    if colour and not is_color_dark_enough(colour):
        return

    font_size = field.font_size
    if font_size == 0 and field.dynamic_font_size is not None:
        font_size = field.dynamic_font_size.max
    if font_size == 0:
        font_size = DEFAULT_TEXT_POINTS

    scale = _tdiv(pt_to_dots(font_size, dpi), BASE_FONT_HEIGHT)
    scale = max(1, min(MAX_TEXT_SCALE, scale))
    char_w = BASE_FONT_WIDTH * scale
    max_chars = max(_tdiv(w, char_w), 1)
    lines = wrap_text_lines(text, max_chars)

    cell_h = BASE_FONT_HEIGHT + LINE_SPACING
    line_h = cell_h * scale
    total_h = len(lines) * line_h

    valign = field.vertical_alignment.lower()
    start_y = y
    if valign in ("middle", ""):
        start_y = y + _tdiv(h - total_h, 2)
    elif valign == "bottom":
        start_y = y + h - total_h

    align = field.alignment.lower()
    img_w, img_h = image.size
    for index, line in enumerate(lines):
        if not line:
            continue
        line_y = start_y + index * line_h
        if line_y + line_h < y or line_y > y + h:
            continue

        text_w = BASE_FONT_WIDTH * len(line)
        printable = line.encode("latin-1", "replace").decode("latin-1")
        glyphs = Image.new("L", (text_w, cell_h), WHITE)
        ImageDraw.Draw(glyphs).text((0, 1), printable, fill=BLACK, font=_font())

        scaled_w = text_w * scale
        origin_x = x
        if align == "center":
            origin_x = x + _tdiv(w - scaled_w, 2)
        elif align == "right":
            origin_x = x + w - scaled_w

        left = max(origin_x, x, 0)
        top = max(line_y, y, 0)
        right = min(origin_x + scaled_w, x + w, img_w)
        bottom = min(line_y + line_h, y + h, img_h)
        if right <= left or bottom <= top:
            continue

        enlarged = glyphs.resize((scaled_w, line_h), Image.NEAREST)
        mask = enlarged.point(lambda v: 255 if v < 128 else 0)
        mask = mask.crop((left - origin_x, top - line_y, right - origin_x, bottom - line_y))
        image.paste(BLACK, (left, top, right, bottom), mask)


def raster_rect(image: Image.Image, field: Field, x: int, y: int, w: int, h: int) -> None:
    """Draw a rectangle field: a dark fill and a border of ``border_width`` dots."""
    fill = field.color or field.background_color
    if fill and is_color_dark_enough(fill):
        _fill(image, x, y, x + w, y + h)

    border = _round(field.border_width)
    for t in range(max(border, 0)):
        _fill(image, x, y + t, x + w, y + t + 1)
        _fill(image, x, y + h - 1 - t, x + w, y + h - t)
        _fill(image, x + t, y, x + t + 1, y + h)
        _fill(image, x + w - 1 - t, y, x + w - t, y + h)


def raster_qr(image: Image.Image, value: str, x: int, y: int, w: int, h: int) -> None:
    """Draw a QR code for ``value`` centred in the field box."""
    try:
        matrix = encode(value, ErrorCorrection.MEDIUM)
    except ValueError as exc:
        logger.warning("QR error: %s", exc)
        return
    modules = len(matrix)
    if modules == 0:
        return

    cell = max(1, _tdiv(min(w, h), modules))
    origin_x = x + _tdiv(w - cell * modules, 2)
    origin_y = y + _tdiv(h - cell * modules, 2)
    for row_index, row in enumerate(matrix):
        top = origin_y + row_index * cell
        for col_index, dark in enumerate(row):
            if dark:
                left = origin_x + col_index * cell
                _fill(image, left, top, left + cell, top + cell)


def raster_image(
    image: Image.Image, field: Field, row: Mapping[str, str], x: int, y: int, w: int, h: int
) -> None:
    """Draw the field's image, scaled to its box and thresholded to black."""
    content = field.image_source(row)
    if not content or w <= 0 or h <= 0:
        return
    source = decode_image(content)
    if source is None:
        logger.warning("could not decode image for field %r", field.name)
        return

    src_w, src_h = source.size
    src_pixels = source.convert("RGBA").load()
    pixels = image.load()
    img_w, img_h = image.size
    for dy in range(max(0, -y), min(h, img_h - y)):
        sy = dy * src_h // h
        for dx in range(max(0, -x), min(w, img_w - x)):
            if is_dark_pixel(src_pixels[dx * src_w // w, sy]):
                pixels[x + dx, y + dy] = BLACK


def rasterize_page(
    schema: Schema, row: Mapping[str, str], page_index: int, dpi: int = DEFAULT_DPI
) -> Image.Image:
    """Render one template page as a grayscale image of black and white pixels."""
    if page_index < 0:
        raise IndexError(f"page index out of range: {page_index}")
    width = max(mm_to_dots(schema.width, dpi), 0)
    height = max(mm_to_dots(schema.height, dpi), 0)
    image = Image.new("L", (width, height), WHITE)
    if page_index >= len(schema.pages):
        return image

    for field in schema.pages[page_index]:
        if 0 < field.opacity < MIN_VISIBLE_OPACITY:
            continue
        value = resolve_field_value(field, row)
        fx = mm_to_dots(field.position.x, dpi)
        fy = mm_to_dots(field.position.y, dpi)
        fw = mm_to_dots(field.width, dpi)
        fh = mm_to_dots(field.height, dpi)

        kind = field.type
        if kind == "line":
            raster_line(image, field, fx, fy, fw, fh)
        elif kind == "rectangle":
            raster_rect(image, field, fx, fy, fw, fh)
        elif kind == "qrcode":
            value = value or field.content
            if value:
                raster_qr(image, value, fx, fy, fw, fh)
        elif kind == "image":
            raster_image(image, field, row, fx, fy, fw, fh)
        elif kind in ("text", "multiVariableText"):
            value = value or field.content
            if value:
                raster_text(image, value, field, fx, fy, fw, fh, dpi)
    return image


def _header(schema: Schema) -> bytes:
    lines = [
        f"SIZE {schema.width:.1f} mm, {schema.height:.1f} mm",
        "GAP 3 mm, 0 mm",
        "DIRECTION 0,0",
        "SPEED 3",
        "DENSITY 10",
        "SET CUTTER OFF",
        "SET TEAR ON",
    ]
    return INIT_SEQUENCE + "".join(f"{line}\r\n" for line in lines).encode("ascii")


def render_bulk_raster(
    schema: Schema,
    rows: Iterable[Mapping[str, str]],
    dpi: int = DEFAULT_DPI,
    copies: int = 1,
) -> bytes:
    """TSPL2 job printing each page of each row as one full-label bitmap."""
    if dpi <= 0:
        dpi = DEFAULT_DPI
    copies = max(copies, 1)

    out = bytearray(_header(schema))
    row_count = 0
    for row in rows:
        row_count += 1
        for page_index in range(len(schema.pages)):
            out += b"CLS\r\n"
            out += bitmap_command(rasterize_page(schema, row, page_index, dpi), 0, 0)
            out += f"PRINT {copies}\r\n".encode("ascii")

    logger.info("generated %d bytes for %d rows (mode=raster)", len(out), row_count)
    return bytes(out)