"""Render source pages into raster surfaces, one page at a time."""

from __future__ import annotations

import logging
import math
from typing import Iterable, Iterator, Optional, Tuple

from PIL import Image

from .document import SourceDocument
from .exceptions import PageRenderError
from .types import PageSize, RasterSurface

LOGGER = logging.getLogger("morphpdf.rasterizer")


def pixel_size(size: PageSize, scale: float) -> Tuple[int, int]:
    """Pixel dimensions of a page of ``size`` points rendered at ``scale``."""

    return (
        max(1, math.ceil(size.width * scale)),
        max(1, math.ceil(size.height * scale)),
    )


def rasterize(doc: SourceDocument, page_number: int, scale: float) -> RasterSurface:
    """Render ``page_number`` of ``doc`` at ``scale`` into a :class:`RasterSurface`.

    The surface is exactly ``ceil(points * scale)`` pixels on each axis.
    Any failure raises :class:`PageRenderError`; it is never retried since
    rendering the same page again gives the same result.
    """

    if scale <= 0:
        raise ValueError(f"Scale must be positive, got {scale}")

    expected = pixel_size(doc.page_size(page_number), scale)
    try:
        image = doc.renderer.render_page(page_number - 1, scale)
    except Exception as exc:
        LOGGER.error("Failed to render page %s of %s: %s", page_number, doc.name, exc)
        raise PageRenderError(
            f"Failed to render page {page_number} of {doc.name}: {exc}",
            page_number=page_number,
        ) from exc

    if image is None or image.width == 0 or image.height == 0:
        raise PageRenderError(
            f"Renderer produced an empty surface for page {page_number} of {doc.name}",
            page_number=page_number,
        )

    if image.size != expected:
        LOGGER.debug(
            "Resizing page %s surface from %sx%s to %sx%s",
            page_number,
            image.width,
            image.height,
            *expected,
        )
        resized = image.resize(expected, Image.LANCZOS)
        image.close()
        image = resized

    return RasterSurface(page_number=page_number, scale=scale, image=image)


def iter_rasterized(
    doc: SourceDocument,
    scale: float,
    pages: Optional[Iterable[int]] = None,
) -> Iterator[RasterSurface]:
    """Yield surfaces for ``pages`` (default: every page) one at a time.

    Each surface is released once the consumer moves on, so only one page's
    pixels are alive at any moment.
    """

    numbers = range(1, doc.page_count + 1) if pages is None else pages
    for page_number in numbers:
        surface = rasterize(doc, page_number, scale)
        try:
            yield surface
        finally:
            surface.release()


__all__ = ["rasterize", "iter_rasterized", "pixel_size"]
