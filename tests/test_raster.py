import base64
import io

import pytest
from PIL import Image

from tsplbridge.layout import mm_to_dots
from tsplbridge.qr import ErrorCorrection, encode
from tsplbridge.raster import (
    raster_image,
    raster_line,
    raster_qr,
    raster_rect,
    raster_text,
    rasterize_page,
    render_bulk_raster,
)
from tsplbridge.schema import Field, Position, Schema


def _blank(width=40, height=40):
    return Image.new("L", (width, height), 255)


def _black_pixels(image):
    width, height = image.size
    pixels = image.load()
    return {(x, y) for y in range(height) for x in range(width) if pixels[x, y] == 0}


def _png_data_uri(image):
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


def test_horizontal_line_fills_exact_box():
    image = _blank(20, 20)
    raster_line(image, Field(type="line"), 2, 3, 5, 2)
    expected = {(x, y) for x in range(2, 7) for y in range(3, 5)}
    assert _black_pixels(image) == expected


def test_light_line_is_not_drawn():
    image = _blank(20, 20)
    raster_line(image, Field(type="line", color="#ffffff"), 2, 3, 5, 2)
    assert _black_pixels(image) == set()


def test_line_clipped_to_image():
    image = _blank(10, 10)
    raster_line(image, Field(type="line"), -5, 8, 30, 5)
    black = _black_pixels(image)
    assert black == {(x, y) for x in range(10) for y in range(8, 10)}


def test_rotated_line_stays_in_one_column():
    image = _blank(20, 20)
    raster_line(image, Field(type="line", rotate=90), 0, 10, 10, 1)
    black = _black_pixels(image)
    assert black
    assert {x for x, _ in black} == {5}


def test_rect_with_dark_fill_is_solid():
    image = _blank(20, 20)
    raster_rect(image, Field(type="rectangle", color="#000000"), 4, 5, 6, 3)
    assert _black_pixels(image) == {(x, y) for x in range(4, 10) for y in range(5, 8)}


def test_rect_border_only_leaves_interior_white():
    image = _blank(20, 20)
    raster_rect(image, Field(type="rectangle", border_width=1), 2, 2, 8, 8)
    pixels = image.load()
    black = _black_pixels(image)
    assert (2, 2) in black and (9, 9) in black and (2, 9) in black and (9, 2) in black
    assert all(pixels[x, y] == 255 for x in range(3, 9) for y in range(3, 9))
    assert all(2 <= x <= 9 and 2 <= y <= 9 for x, y in black)


def test_rect_light_fill_without_border_draws_nothing():
    image = _blank(20, 20)
    raster_rect(image, Field(type="rectangle", color="#eeeeee"), 2, 2, 8, 8)
    assert _black_pixels(image) == set()


def test_qr_matches_encoded_matrix():
    value = "HELLO 123"
    matrix = encode(value, ErrorCorrection.MEDIUM)
    size = len(matrix)
    image = _blank(size, size)
    raster_qr(image, value, 0, 0, size, size)
    pixels = image.load()
    for y, row in enumerate(matrix):
        for x, dark in enumerate(row):
            assert (pixels[x, y] == 0) == dark


def test_qr_scales_cells_to_field():
    value = "abc"
    matrix = encode(value, ErrorCorrection.MEDIUM)
    size = len(matrix)
    image = _blank(size * 3, size * 3)
    raster_qr(image, value, 0, 0, size * 3, size * 3)
    pixels = image.load()
    for y, row in enumerate(matrix):
        for x, dark in enumerate(row):
            block = {pixels[x * 3 + dx, y * 3 + dy] for dx in range(3) for dy in range(3)}
            assert block == ({0} if dark else {255})


def test_image_field_draws_dark_pixels():
    source = Image.new("RGB", (2, 1), (255, 255, 255))
    source.putpixel((0, 0), (0, 0, 0))
    field = Field(name="logo", type="image", content=_png_data_uri(source))
    image = _blank(10, 10)
    raster_image(image, field, {}, 1, 1, 4, 2)
    assert _black_pixels(image) == {(x, y) for x in range(1, 3) for y in range(1, 3)}


def test_image_from_row_value_overrides_content():
    dark = Image.new("RGB", (1, 1), (0, 0, 0))
    field = Field(name="logo", type="image", content="")
    image = _blank(10, 10)
    raster_image(image, field, {"logo": _png_data_uri(dark)}, 0, 0, 3, 3)
    assert len(_black_pixels(image)) == 9


def test_undecodable_image_draws_nothing(tmp_path):
    field = Field(name="logo", type="image", content=str(tmp_path / "missing.png"))
    image = _blank(10, 10)
    raster_image(image, field, {}, 0, 0, 5, 5)
    assert _black_pixels(image) == set()


def test_text_is_drawn_inside_field_only():
    image = _blank(200, 100)
    field = Field(type="text", font_size=10)
    raster_text(image, "HELLO WORLD", field, 10, 10, 150, 50, 203)
    black = _black_pixels(image)
    assert black
    assert all(10 <= x < 160 and 10 <= y < 60 for x, y in black)


def test_text_clipped_to_small_field():
    image = _blank(200, 100)
    field = Field(type="text", font_size=20, alignment="center")
    raster_text(image, "WWWWWWWWWWWWWWWWWWWW", field, 20, 20, 30, 12, 203)
    assert all(20 <= x < 50 and 20 <= y < 32 for x, y in _black_pixels(image))


def test_light_text_is_not_drawn():
    image = _blank(200, 100)
    field = Field(type="text", font_size=10, font_color="#ffffff")
    raster_text(image, "HELLO", field, 10, 10, 150, 50, 203)
    assert _black_pixels(image) == set()


def test_rasterize_blank_page_is_white_and_sized():
    schema = Schema(width=20, height=10, pages=[[]])
    image = rasterize_page(schema, {}, 0, 203)
    assert image.size == (mm_to_dots(20, 203), mm_to_dots(10, 203))
    assert image.getextrema() == (255, 255)


def test_rasterize_missing_page_is_white():
    schema = Schema(width=10, height=10, pages=[])
    assert rasterize_page(schema, {}, 3, 203).getextrema() == (255, 255)


def test_rasterize_negative_page_raises():
    schema = Schema(width=10, height=10, pages=[[]])
    with pytest.raises(IndexError):
        rasterize_page(schema, {}, -1, 203)


def test_rasterize_skips_faint_fields():
    faint = Field(type="rectangle", color="#000000", opacity=0.1,
                  position=Position(1, 1), width=5, height=5)
    schema = Schema(width=10, height=10, pages=[[faint]])
    assert rasterize_page(schema, {}, 0, 203).getextrema() == (255, 255)


def test_rasterize_draws_rectangle():
    rect = Field(type="rectangle", color="#000000", position=Position(1, 1), width=2, height=2)
    schema = Schema(width=10, height=10, pages=[[rect]])
    image = rasterize_page(schema, {}, 0, 203)
    start, size = mm_to_dots(1, 203), mm_to_dots(2, 203)
    assert _black_pixels(image) == {
        (x, y) for x in range(start, start + size) for y in range(start, start + size)
    }


def test_rasterize_uses_text_content_fallback():
    text = Field(name="title", type="text", content="ABC", font_size=10,
                 position=Position(1, 1), width=25, height=8)
    schema = Schema(width=30, height=10, pages=[[text]])
    assert rasterize_page(schema, {}, 0, 203).getextrema() == (0, 255)


def test_render_bulk_raster_structure():
    rect = Field(type="rectangle", color="#000000", position=Position(0, 0), width=2, height=2)
    schema = Schema(width=10, height=5, pages=[[rect], []])
    job = render_bulk_raster(schema, [{}, {}, {}], 203, 2)
    assert job.startswith(b"\x1b!R\r\nSIZE 10.0 mm, 5.0 mm\r\n")
    assert b"SPEED 3\r\n" in job
    assert b"CODEPAGE" not in job
    assert job.count(b"CLS\r\n") == 6
    assert job.count(b"PRINT 2\r\n") == 6
    header = f"BITMAP 0,0,{(mm_to_dots(10, 203) + 7) // 8},{mm_to_dots(5, 203)},0,"
    assert job.count(header.encode("ascii")) == 6


def test_render_bulk_raster_defaults_for_bad_arguments():
    schema = Schema(width=10, height=5, pages=[[]])
    job = render_bulk_raster(schema, [{}], 0, 0)
    assert job.endswith(b"PRINT 1\r\n")
    assert job == render_bulk_raster(schema, [{}], 203, 1)


def test_render_bulk_raster_without_rows_is_header_only():
    schema = Schema(width=10, height=5, pages=[[]])
    job = render_bulk_raster(schema, [])
    assert job.endswith(b"SET TEAR ON\r\n")
    assert b"CLS" not in job