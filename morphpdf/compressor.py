"""Re-encode raster surfaces as compressed JPEG images."""

from __future__ import annotations

import io
import logging
from typing import Dict, Tuple, Union

from PIL import Image

from .exceptions import EncodeError
from .types import CompressedPage, CompressionPreset, RasterSurface

LOGGER = logging.getLogger("morphpdf.compressor")

ENCODE_FORMAT = "JPEG"

# light keeps the most detail, strong gives the smallest output.
PRESETS: Dict[str, CompressionPreset] = {
    "light": CompressionPreset("light", quality=0.8, max_dimension=1400),
    "medium": CompressionPreset("medium", quality=0.7, max_dimension=1200),
    "strong": CompressionPreset("strong", quality=0.6, max_dimension=1000),
}
DEFAULT_PRESET = "medium"

PresetLike = Union[str, CompressionPreset]


def get_preset(preset: PresetLike = DEFAULT_PRESET) -> CompressionPreset:
    """Return the preset called ``preset`` (or ``preset`` itself if already one)."""

    if isinstance(preset, CompressionPreset):
        return preset
    try:
        return PRESETS[preset]
    except KeyError:
        raise ValueError(
            f"Unknown compression level: {preset}. Expected one of {', '.join(PRESETS)}"
        ) from None


def target_size(width: int, height: int, max_dimension: int) -> Tuple[int, int]:
    """Proportionally shrink ``width`` x ``height`` so neither side exceeds ``max_dimension``."""

    largest = max(width, height)
    if largest <= max_dimension:
        return width, height
    ratio = max_dimension / largest
    return max(1, round(width * ratio)), max(1, round(height * ratio))


def _encoder_quality(quality: float) -> int:
    return max(1, min(100, round(quality * 100)))


def compress(surface: RasterSurface, preset: PresetLike = DEFAULT_PRESET) -> CompressedPage:
    """Encode ``surface`` under ``preset`` and return the :class:`CompressedPage`."""

    preset = get_preset(preset)
    image = surface.image
    size = target_size(image.width, image.height, preset.max_dimension)

    working = image if image.mode == "RGB" else image.convert("RGB")
    if size != (working.width, working.height):
        LOGGER.debug(
            "Downsampling page %s from %sx%s to %sx%s",
            surface.page_number,
            working.width,
            working.height,
            *size,
        )
        downsampled = working.resize(size, Image.LANCZOS)
        if working is not image:
            working.close()
        working = downsampled

    output = io.BytesIO()
    try:
        working.save(output, format=ENCODE_FORMAT, quality=_encoder_quality(preset.quality), optimize=True)
    except Exception as exc:
        raise EncodeError(
            f"Failed to encode page {surface.page_number}: {exc}",
            page_number=surface.page_number,
        ) from exc
    finally:
        if working is not image:
            working.close()

    data = output.getvalue()
    if not data:
        raise EncodeError(
            f"Encoder returned no data for page {surface.page_number}",
            page_number=surface.page_number,
        )

    LOGGER.debug(
        "Encoded page %s as %s (%d bytes, preset %s)",
        surface.page_number,
        ENCODE_FORMAT,
        len(data),
        preset.name,
    )
    return CompressedPage(
        page_number=surface.page_number,
        data=data,
        format=ENCODE_FORMAT,
        width=size[0],
        height=size[1],
    )


EXPORT_FORMATS = {"png": ("PNG", "image/png"), "jpg": ("JPEG", "image/jpeg")}


def export_image(surface: RasterSurface, image_format: str = "png", quality: float = 0.9) -> bytes:
    """Encode ``surface`` at full resolution as a standalone PNG or JPEG file."""

    try:
        encoder, _ = EXPORT_FORMATS[image_format]
    except KeyError:
        raise ValueError(f"Unsupported image format: {image_format}") from None

    output = io.BytesIO()
    options = {"quality": _encoder_quality(quality)} if encoder == "JPEG" else {"optimize": True}
    image = surface.image
    try:
        if encoder == "JPEG" and image.mode != "RGB":
            image = image.convert("RGB")
        image.save(output, format=encoder, **options)
    except Exception as exc:
        raise EncodeError(
            f"Failed to export page {surface.page_number} as {image_format}: {exc}",
            page_number=surface.page_number,
        ) from exc
    finally:
        if image is not surface.image:
            image.close()

    data = output.getvalue()
    if not data:
        raise EncodeError(
            f"Encoder returned no data for page {surface.page_number}",
            page_number=surface.page_number,
        )
    return data


__all__ = [
    "PRESETS",
    "DEFAULT_PRESET",
    "EXPORT_FORMATS",
    "get_preset",
    "target_size",
    "compress",
    "export_image",
]
