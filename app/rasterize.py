# -*- coding: utf-8 -*-
from __future__ import annotations
import base64
import logging
import re

from app.errors import ConversionError

log = logging.getLogger(__name__)

RASTER_SIZE = 512
_ROOT_TAG = re.compile(r"<svg\b[^>]*>", re.IGNORECASE | re.DOTALL)


def _has_explicit_size(svg_string: str) -> bool:
    m = _ROOT_TAG.search(svg_string)
    tag = m.group(0) if m else svg_string
    return bool(re.search(r"\swidth\s*=", tag)) and bool(re.search(r"\sheight\s*=", tag))


def _render_png(svg_string: str, width: int, height: int) -> bytes:
    # Imported lazily: cairosvg loads the native cairo library on import.
    import cairosvg

    return cairosvg.svg2png(
        bytestring=svg_string.encode("utf-8"),
        output_width=width,
        output_height=height,
    )


def svg_to_png_data_uri(svg_string: str, *, width: int = RASTER_SIZE, height: int = RASTER_SIZE) -> str:
    """Rasterize SVG source to a fixed-size PNG and return it as a base64 data URI."""
    if not svg_string or not svg_string.strip():
        raise ConversionError("SVG string cannot be empty")

    if not _has_explicit_size(svg_string):
        # Known rough edge: no width/height is patched in, the rasterizer gets the source as-is.
        log.warning("SVG string is missing width/height attributes, attempting conversion anyway")

    try:
        png = _render_png(svg_string, width, height)
    except Exception as exc:
        log.error("SVG to PNG conversion failed: %s", exc)
        raise ConversionError() from exc

    data_uri = "data:image/png;base64," + base64.b64encode(png).decode("ascii")
    log.info("SVG converted, data URI length=%d", len(data_uri))
    return data_uri
