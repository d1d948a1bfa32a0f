"""
Page rasterizer (PDF bytes -> per-page in-memory raster images).

This package is intentionally limited to rendering:
- It opens PDFs and renders pages at a configurable scale on an opaque
  background.
- It performs NO OCR, text extraction, layout inference, or content filtering.
- It is the ONLY stage allowed to handle PDFs.
"""

from .contracts import ColorMode, Raster, RasterEngineName, RenderConfig
from .module import OpenedDocument, is_blank_raster, open_document, render_page

__all__ = [
    "ColorMode",
    "OpenedDocument",
    "Raster",
    "RasterEngineName",
    "RenderConfig",
    "is_blank_raster",
    "open_document",
    "render_page",
]
