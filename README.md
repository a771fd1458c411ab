# tsplbridge

Turn pdfme label templates into TSPL2 printer commands for 203 DPI thermal
label printers (TSC TDP-244 Pro and compatible).

Two output modes are available:

- **Native** (`tsplbridge.native`): emits TSPL2 commands such as `TEXT`, `BAR`,
  `BOX`, `QRCODE`, `BARCODE`, `DIAGONAL`, `ELLIPSE` and `BITMAP`. Small payloads,
  fast printing.
- **Raster** (`tsplbridge.raster`): draws each page into a black-and-white
  image with Pillow and sends it as a single `BITMAP`. Larger payloads.

Every job begins with the `ESC !R` sequence that switches the printer into
TSPL2 mode, followed by a `SIZE`, `GAP`, `DIRECTION`, `SPEED`, `DENSITY` and
`SET` header. The output may hold raw binary bitmap data, so send it to the
printer untouched.

## Installation

```
pip install tsplbridge
```

Pillow is the only dependency.

## Usage

```python
from tsplbridge.schema import schema_from_dict
from tsplbridge.native import render_bulk, render_single_page
from tsplbridge.raster import render_bulk_raster

template = {
    "basePdf": {"width": 50, "height": 30},
    "schemas": [[
        {"name": "title", "type": "text", "position": {"x": 2, "y": 2},
         "width": 46, "height": 8, "fontSize": 12, "alignment": "center"},
        {"name": "code", "type": "qrcode", "position": {"x": 2, "y": 11},
         "width": 16, "height": 16},
    ]],
}

schema = schema_from_dict(template)
rows = [{"title": "Widget A", "code": "SKU-0001"},
        {"title": "Widget B", "code": "SKU-0002"}]

payload = render_bulk(schema, rows, 203, 1)             # native commands
one = render_single_page(schema, rows[0], 0, 203, 2)     # one page, two copies
raster = render_bulk_raster(schema, rows, 203, 1)        # full-page bitmaps
```

Each result is `bytes`. `render_bulk` and `render_bulk_raster` print every
page of the template once per data row; `render_single_page` returns empty
bytes for a page index past the last page and raises `IndexError` for a
negative one. A `dpi` of zero or less falls back to 203, and `copies` below 1
becomes 1.

### Templates

`schema_from_dict` reads `basePdf` (width and height in millimetres) and
`schemas`, a list of pages; each page is either a list of field objects or an
object mapping field names to fields. `field_from_dict` builds a single
`Field`. Positions and sizes are in millimetres, font sizes in points.

A field's value comes from the data row under the field's name. For a
`multiVariableText` field with no such value, `{name}` placeholders in its
content are filled from the row when the row supplies any of the field's
`variables`.

### Field types

`text`, `multiVariableText`, `qrcode`, `barcode`, `code128`, `code39`, `ean13`,
`ean8`, `line`, `rectangle`, `ellipse` and `image`. Images may be given as a
data URI, raw base64, an HTTP URL or a local file path
(`tsplbridge.images.decode_image`).

Thermal paper is black and white. In native mode, fields with an opacity
below 0.5, lines rotated by more than one degree and ellipses are left out,
as are text and lines whose colour is too light to print. When the template
has more than five such decorations, a simple double frame with corner ticks
and dashed edges (`thermal_guilloche`) is printed in their place.

Raster mode skips fields with an opacity below 0.25 and draws lines,
rectangles, QR codes, images and text; barcodes and ellipses are not drawn
in this mode. Text uses Pillow's default bitmap font, scaled up to six times.

### Helpers

- `tsplbridge.layout`: unit conversions (`mm_to_dots`, `pt_to_dots`), font
  selection among the printer's built-in fonts (`pick_font`,
  `pick_font_for_size`, `pick_font_dynamic`, returning a `FontChoice`), word
  wrapping (`word_wrap`, `wrap_text_lines`), angle snapping (`tspl_rotation`)
  and string escaping (`escape_text`, `escape_data`).
- `tsplbridge.qr`: the QR encoder used by both modes, `encode(data, level)`
  with an `ErrorCorrection` level; it returns rows of booleans, `True` for a
  dark module, without a quiet zone.
- `tsplbridge.images`: `scale_nearest`, `is_dark_pixel` and `bitmap_command`,
  which encodes any Pillow image as a TSPL `BITMAP` command.
- `tsplbridge.schema`: `parse_color` and `is_color_dark_enough` for CSS-style
  colours (`#rgb`, `#rrggbb`, `#rrggbbaa`, `rgb()`, `rgba()` and a few names).

Messages go to the standard `logging` module under the `tsplbridge.*` logger
names.

## What it does not do

The package only produces printer jobs as bytes. It does not find,
connect to or write to printers, has no command-line program, and runs no
server or window of its own; sending the bytes to a printer port is left to
the caller.