"""Native TSPL2 command rendering of label templates."""

from __future__ import annotations

import logging
import math
from typing import Iterable, Mapping

from .images import bitmap_command, decode_image, scale_nearest
from .layout import (
    DEFAULT_DPI,
    escape_data,
    escape_text,
    mm_to_dots,
    pick_font_dynamic,
    pick_font_for_size,
    tspl_rotation,
    word_wrap,
)
from .qr import ErrorCorrection, encode
from .schema import Field, Schema, is_color_dark_enough, resolve_field_value

__all__ = [
    "should_render",
    "thermal_guilloche",
    "render_text",
    "render_qr",
    "render_barcode",
    "render_line",
    "render_rectangle",
    "render_ellipse",
    "render_image",
    "render_bulk",
    "render_single_page",
]

logger = logging.getLogger(__name__)

INIT_SEQUENCE = b"\x1b!R\r\n"
BARCODE_FIELD_TYPES = frozenset({"barcode", "code128", "code39", "ean13", "ean8"})
TEXT_FIELD_TYPES = frozenset({"text", "multiVariableText"})
GUILLOCHE_THRESHOLD = 5

_BARCODE_SYMBOLOGY = {"code39": "39", "ean13": "EAN13", "ean8": "EAN8"}


def _command(text: str) -> bytes:
    return (text + "\r\n").encode("utf-8")


def _tdiv(a: int, b: int) -> int:
    """Integer division truncating toward zero."""
    quotient = abs(a) // abs(b)
    return quotient if (a >= 0) == (b > 0) else -quotient


def _round(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def should_render(field: Field) -> bool:
    """False for decorative elements that do not survive thermal printing."""
    if 0 < field.opacity < 0.5:
        return False
    if field.type == "line" and (field.rotate > 1.0 or field.rotate < -1.0):
        return False
    return field.type != "ellipse"


def _dashes(start: int, end: int) -> Iterable[tuple[int, int]]:
    for position in range(start, end, 16):
        yield position, min(8, end - position)


def thermal_guilloche(width_mm: float, height_mm: float, dpi: int) -> bytes:
    """Commands for a decorative double frame with ticks and dashed edges."""
    w = mm_to_dots(width_mm, dpi)
    h = mm_to_dots(height_mm, dpi)
    margin = 4
    tick_len = 20
    tick_off = margin + 6
    right = w - margin - 6
    bottom = h - margin - 6

    lines = [
        f"BOX {margin},{margin},{w - margin},{h - margin},1",
        f"BOX {margin + 3},{margin + 3},{w - margin - 3},{h - margin - 3},1",
        f"BAR {tick_off},{tick_off},{tick_len},1",
        f"BAR {tick_off},{tick_off},1,{tick_len}",
        f"BAR {right - tick_len},{tick_off},{tick_len},1",
        f"BAR {right},{tick_off},1,{tick_len}",
        f"BAR {tick_off},{bottom},{tick_len},1",
        f"BAR {tick_off},{bottom - tick_len},1,{tick_len}",
        f"BAR {right - tick_len},{bottom},{tick_len},1",
        f"BAR {right},{bottom - tick_len},1,{tick_len}",
    ]

    h_start, h_end = margin + 8, w - margin - 8
    bottom_y = h - margin - 2
    for row in [*range(margin + 1, margin + 3), *range(bottom_y, bottom_y + 2)]:
        lines.extend(f"BAR {x},{row},{dash},1" for x, dash in _dashes(h_start, h_end))

    v_start, v_end = margin + 8, h - margin - 8
    right_x = w - margin - 2
    for col in [*range(margin + 1, margin + 3), *range(right_x, right_x + 2)]:
        lines.extend(f"BAR {col},{y},1,{dash}" for y, dash in _dashes(v_start, v_end))

    return b"".join(_command(line) for line in lines)


def render_text(
    field: Field, value: str, x: int, y: int, w: int, h: int, dpi: int
) -> bytes:
    """TEXT commands for a text field, wrapped and aligned inside its box."""
    if field.font_color and not is_color_dark_enough(field.font_color):
        return b""

    dynamic = field.dynamic_font_size
    if dynamic is not None and dynamic.max > 0:
        font = pick_font_dynamic(value, w, h, dynamic.min, dynamic.max, dynamic.fit, dpi)
    else:
        font = pick_font_for_size(field.font_size or 10, dpi)

    rotation = tspl_rotation(field.rotate)
    pad_top = mm_to_dots(field.padding.top, dpi)
    pad_right = mm_to_dots(field.padding.right, dpi)
    pad_bottom = mm_to_dots(field.padding.bottom, dpi)
    pad_left = mm_to_dots(field.padding.left, dpi)
    inner_x = x + pad_left
    inner_y = y + pad_top
    inner_w = max(w - pad_left - pad_right, font.char_width)
    inner_h = max(h - pad_top - pad_bottom, font.char_height)

    lines = word_wrap(value, inner_w, font.char_width)
    total_h = len(lines) * font.char_height
    text_y = inner_y
    if total_h < inner_h:
        if field.vertical_alignment == "middle":
            text_y = inner_y + (inner_h - total_h) // 2
        elif field.vertical_alignment == "bottom":
            text_y = inner_y + inner_h - total_h

    out = bytearray()
    for index, line in enumerate(lines):
        line_y = text_y + index * font.char_height
        if line_y + font.char_height > y + h:
            break
        line_x = inner_x
        line_w = len(line) * font.char_width
        if line_w < inner_w:
            if field.alignment == "center":
                line_x = inner_x + (inner_w - line_w) // 2
            elif field.alignment == "right":
                line_x = inner_x + inner_w - line_w

        escaped = escape_text(line)
        offsets = (0, 1) if field.font_weight == "bold" else (0,)
        for offset in offsets:
            out += _command(
                f'TEXT {line_x + offset},{line_y},"{font.font}",{rotation},'
                f'{font.mult},{font.mult},"{escaped}"'
            )
    return bytes(out)


def render_qr(field: Field, value: str, x: int, y: int, w: int, h: int) -> bytes:
    """A QRCODE command sized and centred to fit the field."""
    try:
        modules = len(encode(value, ErrorCorrection.MEDIUM))
    except ValueError as exc:
        logger.warning("QR error: %s", exc)
        return b""
    if modules == 0:
        return b""

    cell = max(1, min(10, _tdiv(min(w, h), modules)))
    total = cell * modules
    qr_x = max(0, x + _tdiv(w - total, 2))
    qr_y = max(0, y + _tdiv(h - total, 2))
    rotation = tspl_rotation(field.rotate)
    return _command(
        f'QRCODE {qr_x},{qr_y},M,{cell},A,{rotation},"{escape_data(value)}"'
    )


def render_barcode(field: Field, value: str, x: int, y: int, w: int, h: int) -> bytes:
    """A BARCODE command whose narrow bar width fits the field width."""
    height = max(h, 20)
    symbology = _BARCODE_SYMBOLOGY.get(field.type, "128")
    total_modules = len(value) * 11 + 35
    narrow = max(1, min(4, _tdiv(w, total_modules)))
    rotation = tspl_rotation(field.rotate)
    return _command(
        f'BARCODE {x},{y},"{symbology}",{height},1,{rotation},{narrow},{narrow},'
        f'"{escape_data(value)}"'
    )


def render_line(field: Field, x: int, y: int, w: int, h: int) -> bytes:
    """A BAR for a straight line or a DIAGONAL for a slightly rotated one."""
    colour = field.color or field.font_color
    if colour and not is_color_dark_enough(colour):
        return b""

    thickness = max(h, 1)
    if field.rotate == 0:
        return _command(f"BAR {x},{y},{w},{thickness}")

    centre_x = x + w / 2
    centre_y = y + h / 2
    half = w / 2
    angle = math.radians(field.rotate)
    dx = half * math.cos(angle)
    dy = half * math.sin(angle)
    x1 = max(0, _round(centre_x - dx))
    y1 = max(0, _round(centre_y - dy))
    x2 = max(0, _round(centre_x + dx))
    y2 = max(0, _round(centre_y + dy))
    return _command(f"DIAGONAL {x1},{y1},{x2},{y2},{thickness}")


def render_rectangle(field: Field, x: int, y: int, w: int, h: int, dpi: int) -> bytes:
    """A filled BAR for a dark fill, otherwise a BOX outline when bordered."""
    fill = field.color or field.background_color
    if fill and is_color_dark_enough(fill):
        return _command(f"BAR {x},{y},{w},{h}")
    if field.border_width > 0:
        border = max(1, mm_to_dots(field.border_width, dpi))
        return _command(f"BOX {x},{y},{x + w},{y + h},{border}")
    return b""


def render_ellipse(field: Field, x: int, y: int, w: int, h: int, dpi: int) -> bytes:
    """An ELLIPSE command with the field's border thickness."""
    thickness = 1
    if field.border_width > 0:
        thickness = max(1, mm_to_dots(field.border_width, dpi))
    return _command(f"ELLIPSE {x},{y},{w},{h},{thickness}")


def render_image(
    field: Field, row: Mapping[str, str], x: int, y: int, w: int, h: int
) -> bytes:
    """A BITMAP command with the field's image scaled to its box."""
    content = field.image_source(row)
    if not content:
        return b""
    image = decode_image(content)
    if image is None:
        logger.warning("could not decode image for field %r", field.name)
        return b""
    return bitmap_command(scale_nearest(image, max(w, 0), max(h, 0)), x, y)


def _header(schema: Schema, codepage: bool) -> bytes:
    lines = [
        f"SIZE {schema.width:.1f} mm, {schema.height:.1f} mm",
        "GAP 3 mm, 0 mm",
        "DIRECTION 0,0",
        "SPEED 4",
        "DENSITY 10",
        "SET CUTTER OFF",
        "SET TEAR ON",
    ]
    if codepage:
        lines.append("CODEPAGE UTF-8")
    return INIT_SEQUENCE + b"".join(_command(line) for line in lines)


def _render_field(
    field: Field, row: Mapping[str, str], dpi: int, verbose: bool = False
) -> bytes:
    value = resolve_field_value(field, row)
    x = mm_to_dots(field.position.x, dpi)
    y = mm_to_dots(field.position.y, dpi)
    w = mm_to_dots(field.width, dpi)
    h = mm_to_dots(field.height, dpi)
    if verbose:
        logger.debug(
            "field %r type=%s value=%r x=%d y=%d w=%d h=%d",
            field.name, field.type, value[:40], x, y, w, h,
        )

    kind = field.type
    if kind in TEXT_FIELD_TYPES:
        return render_text(field, value, x, y, w, h, dpi) if value else b""
    if kind == "qrcode":
        value = value or field.content
        return render_qr(field, value, x, y, w, h) if value else b""
    if kind in BARCODE_FIELD_TYPES:
        return render_barcode(field, value, x, y, w, h) if value else b""
    if kind == "line":
        return render_line(field, x, y, w, h)
    if kind == "rectangle":
        return render_rectangle(field, x, y, w, h, dpi)
    if kind == "ellipse":
        return render_ellipse(field, x, y, w, h, dpi)
    if kind == "image":
        return render_image(field, row, x, y, w, h)
    return b""


def _render_page(
    schema: Schema,
    fields: list[Field],
    row: Mapping[str, str],
    dpi: int,
    copies: int,
    guilloche: bool,
    verbose: bool = False,
) -> bytes:
    out = bytearray(_command("CLS"))
    if guilloche:
        out += thermal_guilloche(schema.width, schema.height, dpi)
    for field in fields:
        if should_render(field):
            out += _render_field(field, row, dpi, verbose)
    out += _command(f"PRINT {copies}")
    return bytes(out)


def render_bulk(
    schema: Schema,
    rows: Iterable[Mapping[str, str]],
    dpi: int = DEFAULT_DPI,
    copies: int = 1,
) -> bytes:
    """TSPL2 job printing every page of the template once per data row."""
    if dpi <= 0:
        dpi = DEFAULT_DPI
    copies = max(copies, 1)

    out = bytearray(_header(schema, codepage=not schema.has_images()))
    decorative = sum(
        not should_render(field) for page in schema.pages for field in page
    )
    guilloche = decorative > GUILLOCHE_THRESHOLD

    row_count = 0
    for row_index, row in enumerate(rows):
        row_count += 1
        for page_index, fields in enumerate(schema.pages):
            verbose = row_index == 0 and page_index == 0
            out += _render_page(schema, fields, row, dpi, copies, guilloche, verbose)

    logger.info("generated %d bytes for %d rows (mode=native)", len(out), row_count)
    return bytes(out)


def render_single_page(
    schema: Schema,
    row: Mapping[str, str],
    page_index: int,
    dpi: int = DEFAULT_DPI,
    copies: int = 1,
) -> bytes:
    """TSPL2 job for one template page; empty when the page does not exist."""
    if page_index < 0:
        raise IndexError(f"page index out of range: {page_index}")
    if dpi <= 0:
        dpi = DEFAULT_DPI
    copies = max(copies, 1)
    if page_index >= len(schema.pages):
        return b""

    fields = schema.pages[page_index]
    has_image = any(field.type == "image" for field in fields)
    decorative = sum(not should_render(field) for field in fields)
    out = _header(schema, codepage=not has_image)
    return out + _render_page(
        schema, fields, row, dpi, copies, decorative > GUILLOCHE_THRESHOLD
    )