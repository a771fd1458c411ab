"""Label template model: fields, pages, colours and value resolution."""

from __future__ import annotations

import re
from dataclasses import dataclass, field as dc_field
from typing import Any, Mapping

__all__ = [
    "Position",
    "Padding",
    "DynamicFontSize",
    "Field",
    "Schema",
    "field_from_dict",
    "schema_from_dict",
    "parse_color",
    "is_color_dark_enough",
    "resolve_field_value",
]

IMAGE_TYPE = "image"

_NAMED_COLORS: dict[str, tuple[int, int, int, float]] = {
    "black": (0, 0, 0, 1.0),
    "white": (255, 255, 255, 1.0),
    "red": (255, 0, 0, 1.0),
    "green": (0, 128, 0, 1.0),
    "blue": (0, 0, 255, 1.0),
    "gray": (128, 128, 128, 1.0),
    "grey": (128, 128, 128, 1.0),
    "transparent": (0, 0, 0, 0.0),
}

_FUNC_COLOR = re.compile(r"^rgba?\(\s*([^)]*)\)$")
_PLACEHOLDER = re.compile(r"\{([^{}]+)\}")


@dataclass
class Position:
    """Top-left corner of a field in millimetres."""

    x: float = 0.0
    y: float = 0.0


@dataclass
class Padding:
    """Inner padding of a text field in millimetres."""

    top: float = 0.0
    right: float = 0.0
    bottom: float = 0.0
    left: float = 0.0


@dataclass
class DynamicFontSize:
    """Font size range in points; ``fit`` is ``horizontal`` or ``vertical``."""

    min: float = 0.0
    max: float = 0.0
    fit: str = "vertical"


@dataclass
class Field:
    """One element placed on a label page."""

    name: str = ""
    type: str = ""
    content: str = ""
    position: Position = dc_field(default_factory=Position)
    width: float = 0.0
    height: float = 0.0
    rotate: float = 0.0
    opacity: float = 0.0
    font_size: float = 0.0
    font_color: str = ""
    color: str = ""
    background_color: str = ""
    border_width: float = 0.0
    alignment: str = ""
    vertical_alignment: str = ""
    font_weight: str = ""
    padding: Padding = dc_field(default_factory=Padding)
    dynamic_font_size: DynamicFontSize | None = None
    variables: list[str] = dc_field(default_factory=list)

    def image_source(self, row: Mapping[str, str]) -> str:
        """Return the image reference for this field: row value, variable, then content."""
        own = row.get(self.name, "")
        if own:
            return own
        for variable in self.variables:
            value = row.get(variable, "")
            if value:
                return value
        return self.content


@dataclass
class Schema:
    """A label template: page size in millimetres and the fields of each page."""

    width: float
    height: float
    pages: list[list[Field]] = dc_field(default_factory=list)

    def has_images(self) -> bool:
        """True if any page holds an image field."""
        return any(f.type == IMAGE_TYPE for page in self.pages for f in page)


def _number(value: Any) -> float:
    if value is None or value == "":
        return 0.0
    if isinstance(value, Mapping):
        return max((_number(v) for v in value.values()), default=0.0)
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"not a number: {value!r}") from exc


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _padding(value: Any) -> Padding:
    if value is None:
        return Padding()
    if isinstance(value, Mapping):
        return Padding(
            top=_number(value.get("top")),
            right=_number(value.get("right")),
            bottom=_number(value.get("bottom")),
            left=_number(value.get("left")),
        )
    if isinstance(value, (list, tuple)):
        parts = [_number(v) for v in value] + [0.0] * 4
        return Padding(*parts[:4])
    side = _number(value)
    return Padding(side, side, side, side)


def field_from_dict(data: Mapping[str, Any]) -> Field:
    """Build a Field from a template JSON object."""
    position = data.get("position") or {}
    dynamic = data.get("dynamicFontSize")
    dynamic_size = None
    if isinstance(dynamic, Mapping):
        dynamic_size = DynamicFontSize(
            min=_number(dynamic.get("min")),
            max=_number(dynamic.get("max")),
            fit=_text(dynamic.get("fit")) or "vertical",
        )
    field_type = _text(data.get("type"))
    content = _text(data.get("content"))
    if not content and field_type == "multiVariableText":
        content = _text(data.get("text"))
    return Field(
        name=_text(data.get("name")),
        type=field_type,
        content=content,
        position=Position(_number(position.get("x")), _number(position.get("y"))),
        width=_number(data.get("width")),
        height=_number(data.get("height")),
        rotate=_number(data.get("rotate")),
        opacity=_number(data.get("opacity")),
        font_size=_number(data.get("fontSize")),
        font_color=_text(data.get("fontColor")),
        color=_text(data.get("color")),
        background_color=_text(data.get("backgroundColor")),
        border_width=_number(data.get("borderWidth")),
        alignment=_text(data.get("alignment")),
        vertical_alignment=_text(data.get("verticalAlignment")),
        font_weight=_text(data.get("fontWeight")),
        padding=_padding(data.get("padding")),
        dynamic_font_size=dynamic_size,
        variables=[str(v) for v in data.get("variables") or []],
    )


def schema_from_dict(data: Mapping[str, Any]) -> Schema:
    """Build a Schema from a template JSON object with ``basePdf`` and ``schemas``."""
    base = data.get("basePdf")
    if not isinstance(base, Mapping):
        raise ValueError("basePdf must be an object with width and height")
    pages: list[list[Field]] = []
    for page in data.get("schemas") or []:
        if isinstance(page, Mapping):
            fields = []
            for name, raw in page.items():
                entry = dict(raw)
                entry.setdefault("name", name)
                fields.append(field_from_dict(entry))
            pages.append(fields)
        else:
            pages.append([field_from_dict(raw) for raw in page])
    return Schema(width=_number(base.get("width")), height=_number(base.get("height")), pages=pages)


def parse_color(value: str) -> tuple[int, int, int, float]:
    """Parse a CSS-style colour into (red, green, blue, alpha) with alpha in 0..1."""
    text = value.strip().lower()
    if text in _NAMED_COLORS:
        return _NAMED_COLORS[text]
    if text.startswith("#"):
        digits = text[1:]
        if len(digits) in (3, 4):
            digits = "".join(ch * 2 for ch in digits)
        if len(digits) not in (6, 8):
            raise ValueError(f"bad colour: {value!r}")
        try:
            channels = [int(digits[i : i + 2], 16) for i in range(0, len(digits), 2)]
        except ValueError as exc:
            raise ValueError(f"bad colour: {value!r}") from exc
        alpha = channels[3] / 255 if len(channels) == 4 else 1.0
        return channels[0], channels[1], channels[2], alpha
    match = _FUNC_COLOR.match(text)
    if match:
        parts = [p.strip() for p in match.group(1).split(",")]
        if len(parts) not in (3, 4):
            raise ValueError(f"bad colour: {value!r}")
        try:
            red, green, blue = (max(0, min(255, round(float(p)))) for p in parts[:3])
            alpha = float(parts[3]) if len(parts) == 4 else 1.0
        except ValueError as exc:
            raise ValueError(f"bad colour: {value!r}") from exc
        return red, green, blue, max(0.0, min(1.0, alpha))
    raise ValueError(f"bad colour: {value!r}")


def is_color_dark_enough(color: str) -> bool:
    """True if the colour would show on monochrome thermal paper.

    An empty or unreadable colour counts as the default, black.
    """
    if not color:
        return True
    try:
        red, green, blue, alpha = parse_color(color)
    except ValueError:
        return True
    if alpha < 0.3:
        return False
    return 0.299 * red + 0.587 * green + 0.114 * blue < 200


def resolve_field_value(field: Field, row: Mapping[str, str]) -> str:
    """Return the value a data row supplies for a field, or an empty string."""
    own = row.get(field.name, "")
    if own:
        return own
    if field.type == "multiVariableText" and field.content:
        if any(row.get(v, "") for v in field.variables):
            return _PLACEHOLDER.sub(lambda m: row.get(m.group(1), ""), field.content)
    return ""