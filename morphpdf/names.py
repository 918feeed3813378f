"""Output filename conventions.

The patterns here are part of the public contract: downstream tooling
matches on them, so they must not drift.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Optional

_EXTENSION_RE = re.compile(r"\.[^.]+$")
_WHITESPACE_RE = re.compile(r"\s+")

CONVERTED_PDFS_ARCHIVE = "converted-pdfs.zip"
COMPRESSED_PDFS_ARCHIVE = "compressed-pdfs.zip"


def timestamp(now: Optional[datetime] = None) -> str:
    """UTC ISO-8601 timestamp with millisecond precision, made filesystem safe.

    ``2024-01-02T03:04:05.678Z`` becomes ``2024-01-02T03-04-05-678Z``.
    """

    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    iso = now.strftime("%Y-%m-%dT%H:%M:%S") + f".{now.microsecond // 1000:03d}Z"
    return iso.replace(":", "-").replace(".", "-")


def base_name(filename: str) -> str:
    """Strip the final extension from ``filename``."""

    return _EXTENSION_RE.sub("", filename)


def compress(original: str, level: str) -> str:
    return f"{base_name(original)}_compressed_{level}.pdf"


def merge(now: Optional[datetime] = None) -> str:
    return f"{timestamp(now)}_merged.pdf"


def split_archive(original: str, ranges: str) -> str:
    return f"{base_name(original)}_pages_{_WHITESPACE_RE.sub('', ranges)}.zip"


def split_page(original: str, page: int) -> str:
    return f"{base_name(original)}_page_{page}.pdf"


def split_part(original: str, index: int) -> str:
    """Name for the ``index``-th (1-based) chunk of an every-N or half split."""

    return f"{base_name(original)}_part_{index}.pdf"


def split_parts_archive(original: str) -> str:
    return f"{base_name(original)}_parts.zip"


def images_to_pdf(bundle: bool, count: int, now: Optional[datetime] = None) -> str:
    if bundle:
        return f"{timestamp(now)}_images_{count}.pdf"
    return f"{timestamp(now)}_image.pdf"


def image_to_pdf_entry(index: int, now: Optional[datetime] = None) -> str:
    """Name for the ``index``-th (1-based) PDF when images are converted separately."""

    return f"{timestamp(now)}_image_{index}.pdf"


def pdf_to_image(original: str, page: int, ext: str) -> str:
    return f"{base_name(original)}_page_{page}.{ext}"


def pdf_to_images_archive(original: str) -> str:
    return f"{base_name(original)}_pages.zip"


def organize(original: str) -> str:
    return f"{base_name(original)}_organized.pdf"


def watermark(original: str) -> str:
    return f"{base_name(original)}_watermarked.pdf"


def pagenum(original: str) -> str:
    return f"{base_name(original)}_pagenum.pdf"


def sign(original: str) -> str:
    return f"{base_name(original)}_signed.pdf"
