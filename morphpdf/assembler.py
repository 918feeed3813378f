"""Build output documents from compressed pages, page references or images."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from fpdf import FPDF
from PIL import Image, UnidentifiedImageError
from pypdf import PdfWriter

from .document import SourceDocument
from .exceptions import AssemblyError, DocumentOpenError, MorphPDFError
from .types import CompressedPage, InputFile, PageSize

LOGGER = logging.getLogger("morphpdf.assembler")

PRODUCER = "morphpdf"

# Width x height in points, portrait.
PAPER_SIZES = {
    "A4": PageSize(595.28, 841.89),
    "Letter": PageSize(612, 792),
    "Legal": PageSize(612, 1008),
}

_COPIED_METADATA = ("/Title", "/Author", "/Subject", "/Keywords")
# fpdf2 embeds these directly; anything else is re-encoded as PNG first.
_EMBEDDABLE_FORMATS = {"JPEG", "PNG"}

PageDecorator = Callable[[object, int], None]


@dataclass(frozen=True)
class PageRef:
    """
    A page copied verbatim into a selection-mode document.

    Attributes:
        document: Opened source document
        page_number: 1-based page within ``document``
        rotation: Extra clockwise rotation in degrees (multiple of 90)
    """
    document: SourceDocument
    page_number: int
    rotation: int = 0


def _new_canvas() -> FPDF:
    pdf = FPDF(unit="pt")
    pdf.set_margins(0, 0, 0)
    pdf.set_auto_page_break(auto=False)
    pdf.set_creator(PRODUCER)
    return pdf


def _finish_canvas(pdf: FPDF) -> bytes:
    try:
        return bytes(pdf.output())
    except Exception as exc:
        raise AssemblyError(f"Failed to write output document: {exc}") from exc


# ----------------------------------------------------------------------
# Recompression mode
# ----------------------------------------------------------------------
def assemble_recompressed(pages: Iterable[Tuple[PageSize, CompressedPage]]) -> bytes:
    """Build a document whose page ``i`` is ``pages[i]``'s image at the source size.

    The image is stretched to fill the page exactly, so page geometry is
    identical to the source even though the pixels were downsampled.
    """

    pdf = _new_canvas()
    count = 0
    for size, compressed in pages:
        pdf.add_page(format=(size.width, size.height))
        try:
            pdf.image(io.BytesIO(compressed.data), x=0, y=0, w=size.width, h=size.height)
        except Exception as exc:
            raise AssemblyError(
                f"Failed to place compressed image for page {compressed.page_number}: {exc}"
            ) from exc
        count += 1

    if count == 0:
        raise AssemblyError()

    LOGGER.debug("Assembled %d recompressed page(s)", count)
    return _finish_canvas(pdf)


# ----------------------------------------------------------------------
# Selection mode
# ----------------------------------------------------------------------
def _copy_metadata(writer: PdfWriter, source: SourceDocument) -> None:
    metadata = {"/Producer": PRODUCER}
    info = source.metadata
    if info:
        for key in _COPIED_METADATA:
            value = info.get(key)
            if value:
                metadata[key] = str(value)
    writer.add_metadata(metadata)


def assemble_selection(
    refs: Sequence[PageRef],
    decorate: Optional[PageDecorator] = None,
) -> bytes:
    """Copy the referenced pages, in order, into a new document.

    Args:
        refs: Pages to copy, possibly from several documents.
        decorate: Called as ``decorate(page, index)`` for every output page
            (``index`` is 0-based) before the document is written.

    Raises:
        AssemblyError: If ``refs`` is empty or writing fails.
    """

    if not refs:
        raise AssemblyError()

    writer = PdfWriter()
    try:
        for index, ref in enumerate(refs):
            page = writer.add_page(ref.document.get_page(ref.page_number))
            if ref.rotation:
                page.rotate(ref.rotation)
            if decorate is not None:
                decorate(page, index)

        _copy_metadata(writer, refs[0].document)
        buffer = io.BytesIO()
        writer.write(buffer)
    except MorphPDFError:
        raise
    except Exception as exc:
        raise AssemblyError(f"Failed to assemble document: {exc}") from exc

    LOGGER.debug("Assembled %d selected page(s)", len(refs))
    return buffer.getvalue()


# ----------------------------------------------------------------------
# Image mode
# ----------------------------------------------------------------------
def image_page_layout(
    image_size: Tuple[int, int],
    page_size: str = "auto",
    orientation: str = "auto",
) -> Tuple[PageSize, Tuple[float, float, float, float]]:
    """Page size and ``(x, y, w, h)`` placement (top-left origin) for one image.

    ``auto`` pages take the image's pixel size as points. Paper sizes fit
    the image inside the page, preserving aspect ratio, and centre it.
    """

    image_w, image_h = image_size
    if page_size == "auto":
        page_w, page_h = float(image_w), float(image_h)
    else:
        paper = PAPER_SIZES[page_size]
        page_w, page_h = paper.width, paper.height

    wants_landscape = orientation == "landscape" or (
        orientation == "auto" and page_size != "auto" and image_w > image_h
    )
    wants_portrait = orientation == "portrait"
    if (wants_landscape and page_w < page_h) or (wants_portrait and page_w > page_h):
        page_w, page_h = page_h, page_w

    scale = min(page_w / image_w, page_h / image_h)
    draw_w, draw_h = image_w * scale, image_h * scale
    x, y = (page_w - draw_w) / 2, (page_h - draw_h) / 2
    return PageSize(page_w, page_h), (x, y, draw_w, draw_h)


def _load_image(item: InputFile) -> Tuple[io.BytesIO, Tuple[int, int]]:
    try:
        with Image.open(io.BytesIO(item.data)) as image:
            image.load()
            size = image.size
            if image.format in _EMBEDDABLE_FORMATS:
                return io.BytesIO(item.data), size
            converted = io.BytesIO()
            image.convert("RGBA" if "A" in image.getbands() else "RGB").save(converted, format="PNG")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
        raise DocumentOpenError(f"Unsupported or corrupted image: {item.name}", name=item.name) from exc
    converted.seek(0)
    return converted, size


def assemble_images(
    images: Sequence[InputFile],
    page_size: str = "auto",
    orientation: str = "auto",
) -> bytes:
    """Build one document with a page per image, in the given order."""

    if not images:
        raise AssemblyError()

    pdf = _new_canvas()
    for item in images:
        stream, size = _load_image(item)
        page, (x, y, w, h) = image_page_layout(size, page_size, orientation)
        pdf.add_page(format=(page.width, page.height))
        try:
            pdf.image(stream, x=x, y=y, w=w, h=h)
        except Exception as exc:
            raise AssemblyError(f"Failed to place image {item.name}: {exc}") from exc

    LOGGER.debug("Assembled %d image page(s)", len(images))
    return _finish_canvas(pdf)


__all__: List[str] = [
    "PageRef",
    "PAPER_SIZES",
    "assemble_recompressed",
    "assemble_selection",
    "assemble_images",
    "image_page_layout",
]
