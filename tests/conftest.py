from __future__ import annotations

import io
import math
from pathlib import Path
from typing import Callable, Iterable, Sequence
import sys

import pytest
from PIL import Image
from pypdf import PdfReader, PdfWriter

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from morphpdf.types import InputFile  # noqa: E402

PdfFactory = Callable[..., bytes]


def build_pdf(sizes: Iterable[tuple[float, float]], title: str | None = None, rotate: dict[int, int] | None = None) -> bytes:
    writer = PdfWriter()
    for index, (width, height) in enumerate(sizes):
        page = writer.add_blank_page(width=width, height=height)
        if rotate and index in rotate:
            page.rotate(rotate[index])
    writer.add_metadata({"/Producer": "morphpdf-tests", **({"/Title": title} if title else {})})
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def encode_image(size: tuple[int, int] = (40, 20), fmt: str = "PNG", color: str = "red") -> bytes:
    buffer = io.BytesIO()
    mode = "RGBA" if fmt == "PNG" else "RGB"
    Image.new(mode, size, color).save(buffer, format=fmt)
    return buffer.getvalue()


class FakeRenderDocument:
    """Renders blank pages at the requested scale without a real rasterizer."""

    def __init__(self, backend: "FakeBackend", data: bytes) -> None:
        self.backend = backend
        self.reader = PdfReader(io.BytesIO(data))
        self.closed = False

    def render_page(self, index: int, scale: float) -> Image.Image:
        self.backend.rendered.append((index, scale))
        if index in self.backend.fail_on:
            raise RuntimeError(f"cannot render page index {index}")
        page = self.reader.pages[index]
        width, height = float(page.cropbox.width), float(page.cropbox.height)
        if (page.rotation or 0) % 180 == 90:
            width, height = height, width
        size = (math.ceil(width * scale), math.ceil(height * scale))
        if self.backend.skew:
            size = (size[0] + 1, size[1] - 1)
        return Image.new("RGB", size, "white")

    def close(self) -> None:
        self.closed = True
        self.backend.closed += 1


class FakeBackend:
    name = "fake"

    def __init__(self, fail_on: Sequence[int] = (), skew: bool = False) -> None:
        self.fail_on = set(fail_on)
        self.skew = skew
        self.rendered: list[tuple[int, float]] = []
        self.loaded = 0
        self.closed = 0

    def load(self, data: bytes, password: str | None = None) -> FakeRenderDocument:
        self.loaded += 1
        return FakeRenderDocument(self, data)


@pytest.fixture()
def pdf_factory() -> PdfFactory:
    return build_pdf


@pytest.fixture()
def sample_input() -> InputFile:
    """Five 200x200 pt pages titled "Sample"."""
    return InputFile("sample.pdf", build_pdf([(200, 200)] * 5, title="Sample"))


@pytest.fixture()
def mixed_input() -> InputFile:
    """Pages of different sizes; the second one is rotated a quarter turn."""
    return InputFile(
        "mixed.pdf",
        build_pdf([(612, 792), (400, 300), (100, 50)], title="Mixed", rotate={1: 90}),
    )


@pytest.fixture()
def ten_page_input() -> InputFile:
    return InputFile("ten.pdf", build_pdf([(72, 72)] * 10))


@pytest.fixture()
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def png_bytes() -> bytes:
    return encode_image((40, 20), "PNG")


@pytest.fixture()
def jpeg_bytes() -> bytes:
    return encode_image((30, 60), "JPEG", "blue")
