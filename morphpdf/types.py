"""
Type definitions and dataclasses for morphpdf.

This module defines the data structures that flow through a single
transformation request. None of them outlive the request that created them.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple, Union

PDF_MIME_TYPE = "application/pdf"
ZIP_MIME_TYPE = "application/zip"


@dataclass(frozen=True)
class InputFile:
    """
    A caller-supplied file.

    Attributes:
        name: Original filename, used to derive output names
        data: Raw file contents
    """
    name: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    def __repr__(self) -> str:
        return f"InputFile(name={self.name!r}, size={self.size})"


@dataclass(frozen=True)
class PageSize:
    """Intrinsic page size in PDF points (1/72 inch)."""
    width: float
    height: float


@dataclass(frozen=True)
class PageSelection:
    """
    Validated page selection.

    Attributes:
        pages: Unique 1-based page numbers in strictly ascending order
        expression: The raw expression the selection was resolved from
    """
    pages: Tuple[int, ...]
    expression: str = ""

    def __iter__(self):
        return iter(self.pages)

    def __len__(self) -> int:
        return len(self.pages)

    def __contains__(self, page: object) -> bool:
        return page in self.pages

    @property
    def label(self) -> str:
        """Expression with all whitespace removed, as used in archive names."""
        return "".join(self.expression.split())


@dataclass
class RasterSurface:
    """
    Pixel buffer for exactly one rendered page.

    Attributes:
        page_number: 1-based source page number
        scale: Magnification applied to the page's point size
        image: Rendered pixels (a ``PIL.Image.Image``)
    """
    page_number: int
    scale: float
    image: Any

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    def release(self) -> None:
        """Drop the pixel buffer so its memory can be reclaimed."""
        if self.image is not None:
            self.image.close()
            self.image = None


@dataclass(frozen=True)
class CompressedPage:
    """
    Encoded image for one page.

    Attributes:
        page_number: 1-based source page number
        data: Encoded image bytes
        format: Encoder format name (e.g. ``"JPEG"``)
        width: Pixel width of the encoded image
        height: Pixel height of the encoded image
    """
    page_number: int
    data: bytes = field(repr=False)
    format: str
    width: int
    height: int

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class CompressionPreset:
    """
    Size/fidelity trade-off used by the raster compressor.

    Attributes:
        name: Preset name used in output filenames
        quality: Encoder quality in the range (0, 1]
        max_dimension: Largest allowed pixel side before downsampling
    """
    name: str
    quality: float
    max_dimension: int

    def __post_init__(self) -> None:
        if not 0 < self.quality <= 1:
            raise ValueError(f"Preset quality must be in (0, 1], got {self.quality}")
        if self.max_dimension < 1:
            raise ValueError(f"Preset max_dimension must be >= 1, got {self.max_dimension}")


@dataclass(frozen=True)
class Artifact:
    """A single named output blob."""
    name: str
    data: bytes = field(repr=False)
    mime_type: str = PDF_MIME_TYPE

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class TransformResult:
    """
    Terminal artifact of a transformation request.

    Either a single artifact (``archive_name`` is ``None``) or a bundle of
    artifacts together with the archive that packages them.

    Attributes:
        files: Produced artifacts in output order
        archive_name: Archive filename when more than one artifact exists
        archive: Archive bytes when more than one artifact exists
        original_size: Total input size in bytes
    """
    files: Tuple[Artifact, ...]
    archive_name: Optional[str] = None
    archive: Optional[bytes] = field(default=None, repr=False)
    original_size: int = 0

    @classmethod
    def single(cls, artifact: Artifact, *, original_size: int = 0) -> "TransformResult":
        return cls(files=(artifact,), original_size=original_size)

    @classmethod
    def bundle(
        cls,
        files: Tuple[Artifact, ...],
        archive_name: str,
        archive: bytes,
        *,
        original_size: int = 0,
    ) -> "TransformResult":
        return cls(
            files=tuple(files),
            archive_name=archive_name,
            archive=archive,
            original_size=original_size,
        )

    @property
    def is_bundle(self) -> bool:
        return self.archive_name is not None

    @property
    def primary_name(self) -> str:
        return self.archive_name if self.is_bundle else self.files[0].name

    @property
    def primary_bytes(self) -> bytes:
        return self.archive if self.is_bundle else self.files[0].data

    @property
    def primary_mime_type(self) -> str:
        return ZIP_MIME_TYPE if self.is_bundle else self.files[0].mime_type

    @property
    def output_size(self) -> int:
        return len(self.primary_bytes)

    def __str__(self) -> str:
        if self.is_bundle:
            return f"TransformResult(archive='{self.archive_name}', files={len(self.files)})"
        return f"TransformResult(file='{self.files[0].name}', size={self.output_size})"


class Stage(str, enum.Enum):
    """Pipeline stages reported through progress events."""

    LOADING = "loading"
    VALIDATING = "validating"
    RENDERING = "rendering"
    COMPRESSING = "compressing"
    ASSEMBLING = "assembling"
    DECORATING = "decorating"
    PACKAGING = "packaging"
    FINALIZING = "finalizing"
    COMPLETE = "complete"


@dataclass(frozen=True)
class ProgressEvent:
    """Non-terminal progress update."""
    stage: Stage
    percent: float
    message: str = ""

    terminal = False


@dataclass(frozen=True)
class ResultEvent:
    """Terminal event carrying the finished result."""
    result: TransformResult

    terminal = True


@dataclass(frozen=True)
class ErrorEvent:
    """
    Terminal event carrying a failure.

    Attributes:
        kind: Error class name (e.g. ``"OutOfRange"``)
        message: User-facing message
        detail: Full internal detail, for logs only
        exception: The original exception, when available
    """
    kind: str
    message: str
    detail: str = ""
    exception: Optional[BaseException] = field(default=None, repr=False, compare=False)

    terminal = True


Event = Union[ProgressEvent, ResultEvent, ErrorEvent]
