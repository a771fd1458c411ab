"""Render pdfme label schemas to TSPL2 commands, natively or as full-page bitmaps."""

__version__ = "3.0.0"

__all__ = ["images", "layout", "native", "qr", "raster", "schema"]