"""Request-scoped handle around an opened input PDF."""

from __future__ import annotations

import io
import logging
from typing import Any, Iterator, List, Optional

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from .backends import PdfiumBackend, RenderBackend, RenderDocument
from .exceptions import DocumentOpenError
from .names import base_name
from .types import InputFile, PageSize

LOGGER = logging.getLogger("morphpdf.document")


class SourceDocument:
    """An opened input document.

    Page objects and geometry come from :mod:`pypdf`; rendering is delegated
    to a :class:`~morphpdf.backends.RenderBackend` that is only loaded the
    first time a page is rasterized. Page numbers are 1-based throughout.
    """

    def __init__(
        self,
        source: InputFile,
        *,
        password: Optional[str] = None,
        backend: Optional[RenderBackend] = None,
    ) -> None:
        self.name = source.name
        self.byte_length = source.size
        self._data = source.data
        self._password = password
        self.backend: RenderBackend = backend or PdfiumBackend()
        self._renderer: Optional[RenderDocument] = None
        self._closed = False
        self.reader = self._load_reader()
        self.page_count = len(self.reader.pages)
        self._sizes: List[Optional[PageSize]] = [None] * self.page_count

    @classmethod
    def open(cls, source: InputFile, **kwargs: Any) -> "SourceDocument":
        return cls(source, **kwargs)

    def _load_reader(self) -> PdfReader:
        try:
            reader = PdfReader(io.BytesIO(self._data))
        except PdfReadError as exc:
            raise DocumentOpenError(
                f"Corrupted or invalid PDF file: {self.name}. Error: {exc}", name=self.name
            ) from exc
        except Exception as exc:
            raise DocumentOpenError(
                f"Unexpected error reading PDF: {self.name}. Error: {exc}", name=self.name
            ) from exc

        if reader.is_encrypted:
            try:
                unlocked = reader.decrypt(self._password or "")
            except Exception as exc:
                raise DocumentOpenError(
                    f"Unable to decrypt encrypted PDF: {self.name}", name=self.name
                ) from exc
            if not unlocked:
                raise DocumentOpenError(
                    f"PDF is encrypted. Supply a password to process {self.name}.",
                    name=self.name,
                )

        try:
            num_pages = len(reader.pages)
        except Exception as exc:
            raise DocumentOpenError(
                f"Unable to read page tree of {self.name}. Error: {exc}", name=self.name
            ) from exc
        if num_pages == 0:
            raise DocumentOpenError(f"PDF has no pages: {self.name}", name=self.name)
        return reader

    # ------------------------------------------------------------------
    # Basic document information helpers
    # ------------------------------------------------------------------
    @property
    def base_name(self) -> str:
        return base_name(self.name)

    @property
    def metadata(self) -> Any:
        return self.reader.metadata

    def _check_page(self, page_number: int) -> int:
        if not 1 <= page_number <= self.page_count:
            raise IndexError(
                f"Page {page_number} is out of bounds. PDF has {self.page_count} pages."
            )
        return page_number - 1

    def get_page(self, page_number: int) -> Any:
        return self.reader.pages[self._check_page(page_number)]

    def page_size(self, page_number: int) -> PageSize:
        """Displayed size of ``page_number`` in points, honouring ``/Rotate``."""

        index = self._check_page(page_number)
        cached = self._sizes[index]
        if cached is not None:
            return cached

        page = self.reader.pages[index]
        box = page.cropbox
        width, height = float(box.width), float(box.height)
        if (page.rotation or 0) % 180 == 90:
            width, height = height, width
        size = PageSize(width=abs(width), height=abs(height))
        self._sizes[index] = size
        return size

    def iter_page_sizes(self) -> Iterator[PageSize]:
        for page_number in range(1, self.page_count + 1):
            yield self.page_size(page_number)

    # ------------------------------------------------------------------
    # Rendering helpers
    # ------------------------------------------------------------------
    @property
    def renderer(self) -> RenderDocument:
        if self._closed:
            raise RuntimeError(f"Document {self.name} is closed")
        if self._renderer is None:
            LOGGER.debug("Loading %s with %s backend", self.name, self.backend.name)
            self._renderer = self.backend.load(self._data, password=self._password)
        return self._renderer

    # ------------------------------------------------------------------
    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._renderer is not None:
            try:
                self._renderer.close()
            finally:
                self._renderer = None

    def __enter__(self) -> "SourceDocument":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"SourceDocument(name={self.name!r}, pages={self.page_count})"


__all__ = ["SourceDocument"]
