"""pypdfium2 backend implementation for page rendering."""

from __future__ import annotations

import logging
import threading
from typing import Any

import pypdfium2 as pdfium

from .base import RenderBackend, RenderDocument

LOGGER = logging.getLogger("morphpdf.backends.pdfium")

# pdfium keeps global state; every call into it must hold this lock.
_PDFIUM_LOCK = threading.RLock()


class PdfiumDocument(RenderDocument):
    def __init__(self, document: pdfium.PdfDocument) -> None:
        self._document = document

    def __len__(self) -> int:
        with _PDFIUM_LOCK:
            return len(self._document)

    def render_page(self, index: int, scale: float) -> Any:
        with _PDFIUM_LOCK:
            page = self._document[index]
            try:
                bitmap = page.render(scale=scale)
                try:
                    return bitmap.to_pil().convert("RGB")
                finally:
                    bitmap.close()
            finally:
                page.close()

    def close(self) -> None:
        with _PDFIUM_LOCK:
            self._document.close()


class PdfiumBackend(RenderBackend):
    """Backend implementation that uses `pypdfium2` under the hood."""

    name = "pdfium"

    def load(self, data: bytes, password: str | None = None) -> PdfiumDocument:
        LOGGER.debug("Opening %d bytes with pdfium", len(data))
        with _PDFIUM_LOCK:
            return PdfiumDocument(pdfium.PdfDocument(data, password=password))
