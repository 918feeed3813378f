"""Page decoration passes: watermark text, page numbers and signatures.

Each decoration draws onto a transparent single-page overlay with
:mod:`fpdf2` and stamps it onto the target page with :mod:`pypdf`.
Coordinates below follow PDF conventions (origin bottom-left, points)
unless stated otherwise; fpdf2 measures from the top, hence the flips.
"""

from __future__ import annotations

import io
import logging
import re
from typing import Callable, Dict, List, Tuple

from fpdf import FPDF
from pypdf import PageObject, PdfReader

from . import fonts
from .operations import (
    PageNumberOperation,
    SignatureElement,
    SignOperation,
    WatermarkOperation,
)

LOGGER = logging.getLogger("morphpdf.decorations")

WATERMARK_MARGIN = 50

Decorator = Callable[[PageObject, int], None]
DrawFn = Callable[[FPDF, float, float], None]

_HEX_RE = re.compile(r"^#?([a-f\d]{2})([a-f\d]{2})([a-f\d]{2})$", re.IGNORECASE)


def hex_to_rgb(value: str) -> Tuple[int, int, int]:
    """Parse ``#RRGGBB``; anything else falls back to mid grey."""

    match = _HEX_RE.match(value or "")
    if not match:
        return (102, 102, 102)
    return tuple(int(part, 16) for part in match.groups())  # type: ignore[return-value]


def to_roman(number: int) -> str:
    values = [1000, 900, 500, 400, 100, 90, 50, 40, 10, 9, 5, 4, 1]
    symbols = ["M", "CM", "D", "CD", "C", "XC", "L", "XL", "X", "IX", "V", "IV", "I"]
    result = []
    for value, symbol in zip(values, symbols):
        while number >= value:
            result.append(symbol)
            number -= value
    return "".join(result)


def to_alpha(number: int) -> str:
    """1 -> A, 26 -> Z, 27 -> AA."""

    result = ""
    while number > 0:
        number -= 1
        result = chr(65 + number % 26) + result
        number //= 26
    return result


def format_page_number(number: int, number_format: str) -> str:
    if number_format == "roman-lower":
        return to_roman(number).lower()
    if number_format == "roman-upper":
        return to_roman(number)
    if number_format == "alpha-lower":
        return to_alpha(number).lower()
    if number_format == "alpha-upper":
        return to_alpha(number)
    return str(number)


def _page_dimensions(page: PageObject) -> Tuple[float, float, float, float]:
    box = page.mediabox
    return float(box.left), float(box.bottom), float(box.width), float(box.height)


def build_overlay(width: float, height: float, draw_fn: DrawFn) -> PageObject:
    """Render ``draw_fn`` onto a blank ``width`` x ``height`` point page."""

    pdf = FPDF(unit="pt", format=(width, height))
    pdf.set_margins(0, 0, 0)
    pdf.set_auto_page_break(auto=False)
    pdf.add_page()
    draw_fn(pdf, width, height)
    overlay_reader = PdfReader(io.BytesIO(bytes(pdf.output())))
    return overlay_reader.pages[0]


def stamp(page: PageObject, draw_fn: DrawFn) -> None:
    """Draw onto ``page`` in its own (unrotated) coordinate space."""

    left, bottom, width, height = _page_dimensions(page)
    overlay = build_overlay(width, height, draw_fn)
    page.merge_translated_page(overlay, left, bottom)


def _aligned_x(pdf: FPDF, text: str, x: float, alignment: str) -> float:
    text_width = pdf.get_string_width(text)
    if alignment == "center":
        return x - text_width / 2
    if alignment == "right":
        return x - text_width
    return x


# ----------------------------------------------------------------------
# Watermark
# ----------------------------------------------------------------------
def watermark_anchor(position: str, width: float, height: float, font_size: float) -> Tuple[float, float, str]:
    """Anchor point (PDF coordinates) and horizontal alignment for ``position``."""

    margin = WATERMARK_MARGIN
    anchors: Dict[str, Tuple[float, float, str]] = {
        "top-left": (margin, height - margin, "left"),
        "top-center": (width / 2, height - margin, "center"),
        "top-right": (width - margin, height - margin, "right"),
        "center": (width / 2, height / 2, "center"),
        "bottom-left": (margin, margin + font_size, "left"),
        "bottom-center": (width / 2, margin + font_size, "center"),
        "bottom-right": (width - margin, margin + font_size, "right"),
    }
    return anchors.get(position, anchors["center"])


def watermark_decorator(operation: WatermarkOperation) -> Decorator:
    color = hex_to_rgb(operation.color)

    def draw(pdf: FPDF, width: float, height: float) -> None:
        x, y, alignment = watermark_anchor(operation.position, width, height, operation.font_size)
        top = height - y
        fonts.set_font(pdf, operation.text, operation.font_size)
        pdf.set_text_color(*color)
        start = _aligned_x(pdf, operation.text, x, alignment)
        with pdf.local_context(fill_opacity=operation.opacity):
            with pdf.rotation(operation.rotation, x=x, y=top):
                pdf.text(start, top, operation.text)

    def decorate(page: PageObject, index: int) -> None:
        LOGGER.debug("Watermarking output page %s", index + 1)
        stamp(page, draw)

    return decorate


# ----------------------------------------------------------------------
# Page numbers
# ----------------------------------------------------------------------
def page_number_decorator(operation: PageNumberOperation) -> Decorator:
    def decorate(page: PageObject, index: int) -> None:
        number = operation.start_number + index
        label = f"{operation.prefix}{format_page_number(number, operation.number_format)}{operation.suffix}"

        def draw(pdf: FPDF, width: float, height: float) -> None:
            margin = operation.margin
            y = height - margin if operation.position == "header" else margin
            if operation.alignment == "left":
                x = margin
            elif operation.alignment == "right":
                x = width - margin
            else:
                x = width / 2
            fonts.set_font(pdf, label, operation.font_size)
            pdf.set_text_color(0, 0, 0)
            pdf.text(_aligned_x(pdf, label, x, operation.alignment), height - y, label)

        stamp(page, draw)

    return decorate


# ----------------------------------------------------------------------
# Signatures
# ----------------------------------------------------------------------
def _draw_element(pdf: FPDF, element: SignatureElement) -> None:
    # Element boxes use a top-left origin, the same as fpdf2.
    if element.kind == "signature":
        pdf.image(io.BytesIO(element.image), x=element.x, y=element.y, w=element.width, h=element.height)
        return
    fonts.set_font(pdf, element.text, element.font_size)
    pdf.set_text_color(*hex_to_rgb(element.color))
    pdf.text(element.x, element.y + element.font_size, element.text)


def signature_decorator(operation: SignOperation) -> Decorator:
    by_page: Dict[int, List[SignatureElement]] = {}
    for element in operation.elements:
        by_page.setdefault(element.page, []).append(element)

    def decorate(page: PageObject, index: int) -> None:
        elements = by_page.get(index + 1)
        if not elements:
            return

        def draw(pdf: FPDF, width: float, height: float) -> None:
            for element in elements:
                _draw_element(pdf, element)

        LOGGER.debug("Placing %d signature element(s) on page %s", len(elements), index + 1)
        stamp(page, draw)

    return decorate


__all__ = [
    "Decorator",
    "build_overlay",
    "stamp",
    "hex_to_rgb",
    "to_roman",
    "to_alpha",
    "format_page_number",
    "watermark_anchor",
    "watermark_decorator",
    "page_number_decorator",
    "signature_decorator",
]
