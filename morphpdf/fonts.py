"""Font selection for text drawn onto overlays.

fpdf2's core fonts only cover Latin-1. Text outside that range is drawn
with a Unicode TrueType font, looked up in ``MORPHPDF_TTF_PATH`` first and
then in the usual system locations.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from fpdf import FPDF

FONT_PATH_ENV = "MORPHPDF_TTF_PATH"
CORE_FONT = "helvetica"
UNICODE_FONT = "DejaVuSans"

UNICODE_FONT_PATHS = (
    Path("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"),
    Path("/usr/share/fonts/dejavu/DejaVuSans.ttf"),
    Path("/usr/share/fonts/TTF/DejaVuSans.ttf"),
    Path("/usr/share/fonts/DejaVuSans.ttf"),
    Path("/Library/Fonts/DejaVuSans.ttf"),
)


def resolve_unicode_font() -> Optional[Path]:
    """Path of a Unicode-capable TrueType font, or ``None`` if there is none."""

    env_path = os.getenv(FONT_PATH_ENV)
    if env_path:
        candidate = Path(env_path)
        if candidate.is_file():
            return candidate
    for candidate in UNICODE_FONT_PATHS:
        if candidate.is_file():
            return candidate
    return None


def is_latin1(text: str) -> bool:
    try:
        text.encode("latin-1")
    except UnicodeEncodeError:
        return False
    return True


def can_draw(text: str) -> bool:
    return is_latin1(text) or resolve_unicode_font() is not None


def set_font(pdf: FPDF, text: str, size: float) -> None:
    """Select a font on ``pdf`` able to draw ``text``.

    Latin-1 text keeps the core Helvetica font so nothing gets embedded.

    Raises:
        ValueError: If ``text`` needs a Unicode font and none is installed.
    """

    if is_latin1(text):
        pdf.set_font(CORE_FONT, size=size)
        return
    font_path = resolve_unicode_font()
    if font_path is None:
        raise ValueError(f"Unicode font unavailable. Set {FONT_PATH_ENV} to a DejaVuSans.ttf path")
    if UNICODE_FONT.lower() not in pdf.fonts:
        pdf.add_font(UNICODE_FONT, fname=str(font_path))
    pdf.set_font(UNICODE_FONT, size=size)
