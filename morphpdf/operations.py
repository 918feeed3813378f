"""
Operation kinds accepted by the pipeline.

Each operation is a frozen dataclass that carries only the options it
needs and validates them on construction, so an invalid option is
rejected before any input is opened.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from . import fonts
from .compressor import get_preset
from .types import CompressionPreset

WATERMARK_POSITIONS = (
    "center",
    "top-left",
    "top-center",
    "top-right",
    "bottom-left",
    "bottom-center",
    "bottom-right",
)
PAGE_NUMBER_POSITIONS = ("header", "footer")
PAGE_NUMBER_ALIGNMENTS = ("left", "center", "right")
NUMBER_FORMATS = ("arabic", "roman-lower", "roman-upper", "alpha-lower", "alpha-upper")
SIGNATURE_KINDS = ("signature", "text")
IMAGE_PAGE_SIZES = ("auto", "A4", "Letter", "Legal")
ORIENTATIONS = ("auto", "portrait", "landscape")
IMAGE_FORMATS = ("png", "jpg")
SPLIT_MODES = ("ranges", "every", "half")


def _check_choice(label: str, value: str, choices: Tuple[str, ...]) -> None:
    if value not in choices:
        raise ValueError(f"Invalid {label}: {value!r}. Expected one of {', '.join(choices)}")


def _check_text(label: str, text: str) -> None:
    if not fonts.can_draw(text):
        raise ValueError(
            f"{label} contains characters outside Latin-1 and no Unicode font was found. "
            f"Set {fonts.FONT_PATH_ENV} to a TrueType font such as DejaVuSans.ttf"
        )


@dataclass(frozen=True)
class CompressOperation:
    """
    Re-render every page as a downsampled JPEG.

    Attributes:
        level: Preset name (``light``, ``medium`` or ``strong``) or an
            explicit :class:`CompressionPreset`
    """
    level: Union[str, CompressionPreset] = "medium"

    def __post_init__(self) -> None:
        get_preset(self.level)

    @property
    def preset(self) -> CompressionPreset:
        return get_preset(self.level)


@dataclass(frozen=True)
class MergeOperation:
    """Concatenate every input document in the order given."""


@dataclass(frozen=True)
class SplitOperation:
    """
    Break one document into several.

    Attributes:
        ranges: Page selection for ``ranges`` mode; one PDF per selected page
        mode: ``ranges``, ``every`` (chunks of ``pages_per_split`` pages)
            or ``half`` (two parts, the second one taking the odd page)
        pages_per_split: Chunk length for ``every`` mode
    """
    ranges: str = ""
    mode: str = "ranges"
    pages_per_split: int = 5

    def __post_init__(self) -> None:
        _check_choice("split mode", self.mode, SPLIT_MODES)
        if not isinstance(self.ranges, str):
            raise ValueError("ranges must be a string")
        if self.mode == "every" and (not isinstance(self.pages_per_split, int) or self.pages_per_split < 1):
            raise ValueError(f"Pages per split must be a positive integer, got {self.pages_per_split!r}")


@dataclass(frozen=True)
class PageOrder:
    """
    One output page of an organize request.

    Attributes:
        page: 1-based source page number
        rotation: Clockwise rotation in degrees, a multiple of 90
    """
    page: int
    rotation: int = 0

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValueError(f"Page numbers start at 1, got {self.page}")
        if self.rotation % 90 != 0:
            raise ValueError(f"Rotation must be a multiple of 90, got {self.rotation}")


@dataclass(frozen=True)
class OrganizeOperation:
    """Reorder, drop and rotate pages of a single document."""
    pages: Tuple[PageOrder, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "pages", tuple(self.pages))
        if not self.pages:
            raise ValueError("Organize needs at least one page")
        seen = set()
        for order in self.pages:
            if order.page in seen:
                raise ValueError(f"Page {order.page} appears more than once")
            seen.add(order.page)


@dataclass(frozen=True)
class WatermarkOperation:
    text: str
    position: str = "center"
    opacity: float = 0.3
    font_size: float = 48
    color: str = "#666666"
    rotation: float = 45

    def __post_init__(self) -> None:
        if not self.text or not self.text.strip():
            raise ValueError("Watermark text is required")
        _check_choice("position", self.position, WATERMARK_POSITIONS)
        if not 0 <= self.opacity <= 1:
            raise ValueError(f"Opacity must be between 0 and 1, got {self.opacity}")
        if self.font_size <= 0:
            raise ValueError("Font size must be positive")
        _check_text("Watermark text", self.text)


@dataclass(frozen=True)
class PageNumberOperation:
    position: str = "footer"
    alignment: str = "center"
    number_format: str = "arabic"
    start_number: int = 1
    prefix: str = ""
    suffix: str = ""
    font_size: float = 12
    margin: float = 30

    def __post_init__(self) -> None:
        _check_choice("position", self.position, PAGE_NUMBER_POSITIONS)
        _check_choice("alignment", self.alignment, PAGE_NUMBER_ALIGNMENTS)
        _check_choice("number format", self.number_format, NUMBER_FORMATS)
        if self.start_number < 1:
            raise ValueError("Start number must be >= 1")
        if self.font_size <= 0:
            raise ValueError("Font size must be positive")
        if self.margin < 0:
            raise ValueError("Margin must not be negative")
        _check_text("Page number prefix", self.prefix)
        _check_text("Page number suffix", self.suffix)


@dataclass(frozen=True)
class SignatureElement:
    """
    A signature image or a line of text placed on one page.

    Attributes:
        kind: ``"signature"`` (PNG/JPEG image) or ``"text"``
        page: 1-based page the element is drawn on
        x: Left edge in points, measured from the page's left
        y: Top edge in points, measured from the page's top
        width: Box width in points (images only)
        height: Box height in points (images only)
        image: Encoded image bytes for ``signature`` elements
        text: Text for ``text`` elements
        font_size: Text size in points
        color: Text colour as ``#RRGGBB``
    """
    kind: str
    page: int
    x: float
    y: float
    width: float = 0
    height: float = 0
    image: Optional[bytes] = field(default=None, repr=False)
    text: str = ""
    font_size: float = 16
    color: str = "#000000"

    def __post_init__(self) -> None:
        _check_choice("element type", self.kind, SIGNATURE_KINDS)
        if self.page < 1:
            raise ValueError(f"Page numbers start at 1, got {self.page}")
        if self.kind == "signature":
            if not self.image:
                raise ValueError("Signature elements need image data")
            if self.width <= 0 or self.height <= 0:
                raise ValueError("Signature elements need a positive width and height")
        elif not self.text:
            raise ValueError("Text elements need text")
        else:
            _check_text("Signature text", self.text)


@dataclass(frozen=True)
class SignOperation:
    elements: Tuple[SignatureElement, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "elements", tuple(self.elements))
        if not self.elements:
            raise ValueError("Sign needs at least one element")


@dataclass(frozen=True)
class ImagesToPdfOperation:
    """
    Convert images into PDF pages.

    Attributes:
        bundle: One document with a page per image, or one document per image
        page_size: ``auto`` (image pixels as points), ``A4``, ``Letter`` or ``Legal``
        orientation: ``auto`` follows the image, or force ``portrait``/``landscape``
    """
    bundle: bool = True
    page_size: str = "auto"
    orientation: str = "auto"

    def __post_init__(self) -> None:
        _check_choice("page size", self.page_size, IMAGE_PAGE_SIZES)
        _check_choice("orientation", self.orientation, ORIENTATIONS)


@dataclass(frozen=True)
class PdfToImagesOperation:
    """
    Render pages into standalone image files.

    Attributes:
        image_format: ``png`` or ``jpg``
        dpi: Output resolution; 72 renders one pixel per point
        quality: JPEG quality in (0, 1]
        ranges: Optional page selection; blank means every page
    """
    image_format: str = "png"
    dpi: int = 150
    quality: float = 0.9
    ranges: Optional[str] = None

    def __post_init__(self) -> None:
        _check_choice("image format", self.image_format, IMAGE_FORMATS)
        if not 0 < self.dpi <= 1200:
            raise ValueError(f"DPI must be between 1 and 1200, got {self.dpi}")
        if not 0 < self.quality <= 1:
            raise ValueError(f"Quality must be in (0, 1], got {self.quality}")

    @property
    def scale(self) -> float:
        return self.dpi / 72


Operation = Union[
    CompressOperation,
    MergeOperation,
    SplitOperation,
    OrganizeOperation,
    WatermarkOperation,
    PageNumberOperation,
    SignOperation,
    ImagesToPdfOperation,
    PdfToImagesOperation,
]

__all__ = [
    "Operation",
    "CompressOperation",
    "MergeOperation",
    "SplitOperation",
    "PageOrder",
    "OrganizeOperation",
    "WatermarkOperation",
    "PageNumberOperation",
    "SignatureElement",
    "SignOperation",
    "ImagesToPdfOperation",
    "PdfToImagesOperation",
]
