from __future__ import annotations

import io
from zipfile import ZIP_DEFLATED, ZipFile

import pytest

from morphpdf.exceptions import PackagingError
from morphpdf.packager import PackEntry, entry_names, pack
from morphpdf.types import Artifact


def test_pack_keeps_names_order_and_content() -> None:
    files = [Artifact(f"doc_page_{n}.pdf", f"page {n}".encode()) for n in (3, 1, 2)]

    archive = pack(files)

    assert entry_names(archive) == ["doc_page_3.pdf", "doc_page_1.pdf", "doc_page_2.pdf"]
    with ZipFile(io.BytesIO(archive)) as bundle:
        assert bundle.read("doc_page_1.pdf") == b"page 1"
        assert all(info.compress_type == ZIP_DEFLATED for info in bundle.infolist())


def test_pack_reads_lazy_sources() -> None:
    archive = pack([PackEntry("a.png", lambda: b"lazy")])
    with ZipFile(io.BytesIO(archive)) as bundle:
        assert bundle.read("a.png") == b"lazy"


def test_pack_nothing_fails() -> None:
    with pytest.raises(PackagingError):
        pack([])


def test_pack_missing_data_fails() -> None:
    with pytest.raises(PackagingError, match="b.pdf"):
        pack([Artifact("a.pdf", b"ok"), PackEntry("b.pdf", None)])


def test_pack_unreadable_source_fails() -> None:
    def unreadable() -> bytes:
        raise OSError("gone")

    with pytest.raises(PackagingError) as excinfo:
        pack([Artifact("a.pdf", b"ok"), PackEntry("b.pdf", unreadable)])
    assert isinstance(excinfo.value.__cause__, OSError)
    assert excinfo.value.public_message == "Processing failed during packaging."


def test_pack_rejects_duplicate_names() -> None:
    with pytest.raises(PackagingError, match="duplicate"):
        pack([Artifact("same.pdf", b"1"), Artifact("same.pdf", b"2")])
