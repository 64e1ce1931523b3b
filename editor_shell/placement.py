from __future__ import annotations

from typing import Dict, Optional, Tuple

from .models import Bounds, Record

FALLBACK_IMAGE_SIZE = 200.0


def image_shape_for(url: str, bounds: Optional[Bounds], center: Tuple[float, float]) -> Record:
    """Image shape covering `bounds`, or a fixed-size one centered on the viewport."""
    if bounds is not None and not bounds.is_empty:
        x, y, w, h = bounds.x, bounds.y, bounds.w, bounds.h
    else:
        half = FALLBACK_IMAGE_SIZE / 2
        x, y = center[0] - half, center[1] - half
        w = h = FALLBACK_IMAGE_SIZE
    props: Dict[str, object] = {"url": url, "w": w, "h": h}
    return {"type": "image", "x": x, "y": y, "props": props}
