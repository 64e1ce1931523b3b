# -*- coding: utf-8 -*-
from __future__ import annotations
import asyncio
import contextlib
import logging
from typing import AsyncIterator, Optional, Protocol, runtime_checkable

from app.rasterize import RASTER_SIZE, svg_to_png_data_uri

log = logging.getLogger(__name__)

DEFAULT_SCALE = 9.0


@runtime_checkable
class ImageGenerator(Protocol):
    async def submit(self, image: str, prompt: str, scale: float = 9, num_samples: str = "1") -> str:
        ...


class AdmissionGate:
    """Caps concurrent upstream generations; limit <= 0 means unbounded."""

    def __init__(self, limit: int = 0) -> None:
        self.limit = limit
        self._sem: Optional[asyncio.Semaphore] = asyncio.Semaphore(limit) if limit > 0 else None

    @contextlib.asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        if self._sem is None:
            yield
            return
        async with self._sem:
            yield


async def generate_image_from_scribble(
    svg_string: str,
    prompt: str,
    scale: Optional[float] = None,
    *,
    client: ImageGenerator,
    gate: Optional[AdmissionGate] = None,
    raster_size: int = RASTER_SIZE,
) -> str:
    """Rasterize the scribble, run the prediction, return the result image URL."""
    log.info("Generating from scribble: svg length=%d, prompt=%r", len(svg_string), prompt)
    # Rasterizing is CPU-bound; keep it off the event loop.
    image = await asyncio.to_thread(svg_to_png_data_uri, svg_string, width=raster_size, height=raster_size)
    async with (gate or AdmissionGate()).slot():
        return await client.submit(image, prompt, scale if scale is not None else DEFAULT_SCALE)
