"""Unit conversion, font fitting, wrapping and escaping for TSPL2 output."""

from __future__ import annotations

import math
from dataclasses import dataclass

__all__ = [
    "DEFAULT_DPI",
    "FontChoice",
    "mm_to_dots",
    "pt_to_dots",
    "pick_font",
    "pick_font_for_size",
    "pick_font_dynamic",
    "word_wrap",
    "wrap_text_lines",
    "tspl_rotation",
    "escape_text",
    "escape_data",
]

DEFAULT_DPI = 203
MAX_MULTIPLIER = 10
MIN_FONT_HEIGHT = 12
TEXT_LIMIT = 200

# Built-in monospace fonts: (name, char width, char height) in dots at 203 DPI.
FONT_METRICS: tuple[tuple[str, int, int], ...] = (
    ("1", 8, 12),
    ("2", 12, 20),
    ("3", 16, 24),
    ("4", 24, 32),
    ("5", 32, 48),
)


@dataclass(frozen=True)
class FontChoice:
    """A built-in font and multiplier with its effective character size in dots."""

    font: str
    mult: int
    char_width: int
    char_height: int


_SMALLEST = FontChoice("1", 1, 8, 12)


def _round(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def mm_to_dots(mm: float, dpi: int) -> int:
    """Convert millimetres to printer dots."""
    return _round(mm * dpi / 25.4)


def pt_to_dots(pt: float, dpi: int) -> int:
    """Convert typographic points to printer dots."""
    return _round(pt * dpi / 72.0)


def pick_font(target_height: int) -> FontChoice:
    """Return the tallest font and multiplier not taller than ``target_height`` dots."""
    best: FontChoice | None = None
    for name, width, height in FONT_METRICS:
        for mult in range(1, MAX_MULTIPLIER + 1):
            char_h = height * mult
            if char_h <= target_height and (best is None or char_h > best.char_height):
                best = FontChoice(name, mult, width * mult, char_h)
    return best or _SMALLEST


def pick_font_for_size(font_size: float, dpi: int) -> FontChoice:
    """Pick the font that best matches a size given in points."""
    return pick_font(max(pt_to_dots(font_size, dpi), MIN_FONT_HEIGHT))


def pick_font_dynamic(
    text: str, width: int, height: int, min_pt: float, max_pt: float, fit: str, dpi: int
) -> FontChoice:
    """Find the largest font that lets ``text`` fit a width x height box in dots.

    With ``fit == "horizontal"`` every paragraph must fit on one line; otherwise
    text is word-wrapped and the total height must fit.
    """
    max_h = pt_to_dots(max_pt, dpi)
    min_h = max(pt_to_dots(min_pt, dpi), MIN_FONT_HEIGHT)
    horizontal = fit == "horizontal"

    for name, base_w, base_h in reversed(FONT_METRICS):
        for mult in range(MAX_MULTIPLIER, 0, -1):
            char_h = base_h * mult
            char_w = base_w * mult
            if char_h > max_h or char_h < min_h:
                continue
            if horizontal:
                fits = all(len(para) * char_w <= width for para in text.split("\n"))
            else:
                fits = len(word_wrap(text, width, char_w)) * char_h <= height
            if fits:
                return FontChoice(name, mult, char_w, char_h)
    return pick_font(min_h)


def word_wrap(text: str, max_width: int, char_width: int) -> list[str]:
    """Wrap text at word boundaries to a width in dots, keeping paragraph breaks."""
    if char_width <= 0:
        return [text]
    max_chars = max(max_width // char_width, 1)

    lines: list[str] = []
    for para in text.split("\n"):
        words = para.split()
        if not words:
            lines.append("")
            continue
        current = words[0]
        for word in words[1:]:
            candidate = f"{current} {word}"
            if len(candidate) <= max_chars:
                current = candidate
            else:
                lines.append(current)
                current = word
        lines.append(current)
    return lines


def wrap_text_lines(text: str, max_chars: int) -> list[str]:
    """Wrap text to ``max_chars`` per line, splitting words that are too long."""
    if len(text) <= max_chars:
        return [text]
    lines: list[str] = []
    current = ""
    for word in text.split():
        if not current:
            current = word
        elif len(current) + 1 + len(word) <= max_chars:
            current = f"{current} {word}"
        else:
            lines.append(current)
            current = word
        while len(current) > max_chars:
            lines.append(current[:max_chars])
            current = current[max_chars:]
    if current:
        lines.append(current)
    return lines


def tspl_rotation(degrees: float) -> int:
    """Snap an angle in degrees to the nearest of 0, 90, 180 or 270."""
    if degrees == 0:
        return 0
    angle = degrees % 360
    if angle >= 315 or angle < 45:
        return 0
    if angle < 135:
        return 90
    if angle < 225:
        return 180
    return 270


def escape_data(value: str) -> str:
    """Escape a string for quoted TSPL data arguments."""
    return (
        value.replace("\\", "\\\\")
        .replace('"', "'")
        .replace("\r", "")
        .replace("\n", "")
    )


def escape_text(value: str) -> str:
    """Escape a string for TEXT commands, shortening it past 200 characters."""
    escaped = escape_data(value)
    if len(escaped) > TEXT_LIMIT:
        escaped = escaped[: TEXT_LIMIT - 3] + "..."
    return escaped