"""Render backend abstractions for morphpdf."""

from .base import RenderBackend, RenderDocument
from .pdfium_backend import PdfiumBackend

__all__ = [
    "RenderBackend",
    "RenderDocument",
    "PdfiumBackend",
]
