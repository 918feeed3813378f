from __future__ import annotations

import io

import pytest
from pypdf import PdfWriter

from morphpdf.document import SourceDocument
from morphpdf.exceptions import DocumentOpenError, PageRenderError
from morphpdf.rasterizer import iter_rasterized, pixel_size, rasterize
from morphpdf.types import InputFile, PageSize

from conftest import FakeBackend, build_pdf


def test_open_reports_pages_and_sizes(mixed_input: InputFile, fake_backend: FakeBackend) -> None:
    with SourceDocument(mixed_input, backend=fake_backend) as document:
        assert document.page_count == 3
        assert document.name == "mixed.pdf"
        assert document.base_name == "mixed"
        assert document.byte_length == mixed_input.size
        assert document.page_size(1) == PageSize(612, 792)
        assert document.page_size(3) == PageSize(100, 50)
        assert document.metadata.get("/Title") == "Mixed"


def test_rotated_page_size_is_displayed_size(mixed_input: InputFile, fake_backend: FakeBackend) -> None:
    with SourceDocument(mixed_input, backend=fake_backend) as document:
        assert document.page_size(2) == PageSize(300, 400)
        assert list(document.iter_page_sizes())[1] == PageSize(300, 400)


def test_page_out_of_bounds(sample_input: InputFile, fake_backend: FakeBackend) -> None:
    with SourceDocument(sample_input, backend=fake_backend) as document:
        with pytest.raises(IndexError):
            document.page_size(6)
        with pytest.raises(IndexError):
            document.get_page(0)


def test_corrupted_input_raises() -> None:
    with pytest.raises(DocumentOpenError) as excinfo:
        SourceDocument(InputFile("broken.pdf", b"not a pdf at all"))
    assert excinfo.value.name == "broken.pdf"


def test_document_without_pages_raises() -> None:
    buffer = io.BytesIO()
    PdfWriter().write(buffer)
    with pytest.raises(DocumentOpenError, match="no pages"):
        SourceDocument(InputFile("empty.pdf", buffer.getvalue()))


def test_encrypted_document_needs_password() -> None:
    writer = PdfWriter()
    writer.add_blank_page(width=100, height=100)
    writer.encrypt("secret")
    buffer = io.BytesIO()
    writer.write(buffer)
    source = InputFile("locked.pdf", buffer.getvalue())

    with pytest.raises(DocumentOpenError, match="encrypted"):
        SourceDocument(source)

    with SourceDocument(source, password="secret", backend=FakeBackend()) as document:
        assert document.page_count == 1


def test_renderer_is_loaded_lazily_and_closed(sample_input: InputFile, fake_backend: FakeBackend) -> None:
    document = SourceDocument(sample_input, backend=fake_backend)
    assert fake_backend.loaded == 0

    rasterize(document, 1, 1.0)
    rasterize(document, 2, 1.0)
    assert fake_backend.loaded == 1

    document.close()
    document.close()
    assert fake_backend.closed == 1
    with pytest.raises(RuntimeError):
        document.renderer


def test_pixel_size_rounds_up() -> None:
    assert pixel_size(PageSize(100.2, 50), 2.0) == (201, 100)
    assert pixel_size(PageSize(0.1, 0.1), 1.0) == (1, 1)


def test_rasterize_dimensions(mixed_input: InputFile, fake_backend: FakeBackend) -> None:
    with SourceDocument(mixed_input, backend=fake_backend) as document:
        surface = rasterize(document, 1, 2.0)
        assert (surface.width, surface.height) == (1224, 1584)
        assert surface.page_number == 1
        assert fake_backend.rendered == [(0, 2.0)]


def test_rasterize_corrects_backend_size(sample_input: InputFile) -> None:
    backend = FakeBackend(skew=True)
    with SourceDocument(sample_input, backend=backend) as document:
        surface = rasterize(document, 1, 1.5)
        assert (surface.width, surface.height) == (300, 300)


def test_rasterize_failure_names_the_page(sample_input: InputFile) -> None:
    backend = FakeBackend(fail_on=[2])
    with SourceDocument(sample_input, backend=backend) as document:
        with pytest.raises(PageRenderError) as excinfo:
            rasterize(document, 3, 1.0)
    assert excinfo.value.page_number == 3
    assert excinfo.value.public_message == "Processing failed during rendering."
    assert "page 3" in str(excinfo.value)


def test_rasterize_rejects_bad_scale(sample_input: InputFile, fake_backend: FakeBackend) -> None:
    with SourceDocument(sample_input, backend=fake_backend) as document:
        with pytest.raises(ValueError):
            rasterize(document, 1, 0)


def test_iter_rasterized_releases_each_surface(sample_input: InputFile, fake_backend: FakeBackend) -> None:
    seen = []
    with SourceDocument(sample_input, backend=fake_backend) as document:
        for surface in iter_rasterized(document, 1.0, [2, 4]):
            assert surface.image is not None
            seen.append(surface)
    assert [surface.page_number for surface in seen] == [2, 4]
    assert all(surface.image is None for surface in seen)


def test_iter_rasterized_defaults_to_all_pages(fake_backend: FakeBackend) -> None:
    source = InputFile("three.pdf", build_pdf([(50, 50)] * 3))
    with SourceDocument(source, backend=fake_backend) as document:
        numbers = [surface.page_number for surface in iter_rasterized(document, 1.0)]
    assert numbers == [1, 2, 3]
