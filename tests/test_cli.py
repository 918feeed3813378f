from __future__ import annotations

from pathlib import Path
from zipfile import ZipFile

import pytest
from click.testing import CliRunner
from pypdf import PdfReader

from morphpdf.cli import cli

from conftest import build_pdf, encode_image


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def sample_pdf(tmp_path: Path) -> Path:
    path = tmp_path / "sample.pdf"
    path.write_bytes(build_pdf([(200, 200)] * 4, title="Sample"))
    return path


def test_info(runner: CliRunner, sample_pdf: Path) -> None:
    result = runner.invoke(cli, ["info", str(sample_pdf)])
    assert result.exit_code == 0, result.output
    assert "Number of Pages" in result.output
    assert "Sample" in result.output


def test_info_rejects_corrupted_file(runner: CliRunner, tmp_path: Path) -> None:
    broken = tmp_path / "broken.pdf"
    broken.write_bytes(b"nope")
    result = runner.invoke(cli, ["info", str(broken)])
    assert result.exit_code == 1
    assert "Error" in result.output


def test_split_writes_archive(runner: CliRunner, sample_pdf: Path, tmp_path: Path) -> None:
    out = tmp_path / "out"
    result = runner.invoke(cli, ["split", str(sample_pdf), "--ranges", "1-2", "-o", str(out)])

    assert result.exit_code == 0, result.output
    archive = out / "sample_pages_1-2.zip"
    with ZipFile(archive) as bundle:
        assert bundle.namelist() == ["sample_page_1.pdf", "sample_page_2.pdf"]


def test_split_bad_range_exits_with_error(runner: CliRunner, sample_pdf: Path, tmp_path: Path) -> None:
    result = runner.invoke(cli, ["split", str(sample_pdf), "-r", "9", "-o", str(tmp_path)])
    assert result.exit_code == 1
    assert "Out of range: 9" in result.output


def test_merge(runner: CliRunner, sample_pdf: Path, tmp_path: Path) -> None:
    out = tmp_path / "merged"
    result = runner.invoke(cli, ["merge", str(sample_pdf), str(sample_pdf), "-o", str(out)])

    assert result.exit_code == 0, result.output
    [merged] = list(out.glob("*_merged.pdf"))
    assert len(PdfReader(str(merged)).pages) == 8


def test_organize(runner: CliRunner, sample_pdf: Path, tmp_path: Path) -> None:
    result = runner.invoke(
        cli,
        ["organize", str(sample_pdf), "--order", "4,2", "--rotate", "2:90", "-o", str(tmp_path)],
    )
    assert result.exit_code == 0, result.output
    reader = PdfReader(str(tmp_path / "sample_organized.pdf"))
    assert [page.rotation for page in reader.pages] == [0, 90]


def test_organize_rejects_bad_order(runner: CliRunner, sample_pdf: Path, tmp_path: Path) -> None:
    result = runner.invoke(cli, ["organize", str(sample_pdf), "--order", "1,1", "-o", str(tmp_path)])
    assert result.exit_code == 2


def test_watermark_and_page_numbers(runner: CliRunner, sample_pdf: Path, tmp_path: Path) -> None:
    result = runner.invoke(cli, ["watermark", str(sample_pdf), "--text", "DRAFT", "-o", str(tmp_path)])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "sample_watermarked.pdf").exists()

    result = runner.invoke(cli, ["page-numbers", str(sample_pdf), "--format", "roman-upper", "-o", str(tmp_path)])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "sample_pagenum.pdf").exists()


def test_watermark_requires_visible_text(runner: CliRunner, sample_pdf: Path, tmp_path: Path) -> None:
    result = runner.invoke(cli, ["watermark", str(sample_pdf), "--text", "   ", "-o", str(tmp_path)])
    assert result.exit_code == 1
    assert "Watermark text is required" in result.output


def test_sign_needs_content(runner: CliRunner, sample_pdf: Path, tmp_path: Path) -> None:
    result = runner.invoke(cli, ["sign", str(sample_pdf), "-o", str(tmp_path)])
    assert result.exit_code == 2

    result = runner.invoke(cli, ["sign", str(sample_pdf), "--text", "Approved", "--page", "2", "-o", str(tmp_path)])
    assert result.exit_code == 0, result.output
    assert "Approved" in PdfReader(str(tmp_path / "sample_signed.pdf")).pages[1].extract_text()


def test_images_to_pdf_separate(runner: CliRunner, tmp_path: Path) -> None:
    first = tmp_path / "a.png"
    second = tmp_path / "b.jpg"
    first.write_bytes(encode_image((20, 20), "PNG"))
    second.write_bytes(encode_image((20, 40), "JPEG"))
    out = tmp_path / "out"

    result = runner.invoke(cli, ["images-to-pdf", str(first), str(second), "--separate", "-o", str(out)])

    assert result.exit_code == 0, result.output
    with ZipFile(out / "converted-pdfs.zip") as bundle:
        assert len(bundle.namelist()) == 2


def test_compress_and_pdf_to_images_render_for_real(runner: CliRunner, sample_pdf: Path, tmp_path: Path) -> None:
    result = runner.invoke(cli, ["compress", str(sample_pdf), "--level", "strong", "-o", str(tmp_path)])
    assert result.exit_code == 0, result.output
    compressed = PdfReader(str(tmp_path / "sample_compressed_strong.pdf"))
    assert len(compressed.pages) == 4

    result = runner.invoke(cli, ["pdf-to-images", str(sample_pdf), "--dpi", "72", "-r", "1,3", "-o", str(tmp_path)])
    assert result.exit_code == 0, result.output
    with ZipFile(tmp_path / "sample_pages.zip") as bundle:
        assert bundle.namelist() == ["sample_page_1.png", "sample_page_3.png"]
        assert bundle.read("sample_page_1.png").startswith(b"\x89PNG")


def test_compress_several_files(runner: CliRunner, sample_pdf: Path, tmp_path: Path) -> None:
    other = tmp_path / "other.pdf"
    other.write_bytes(build_pdf([(100, 100)] * 2))
    out = tmp_path / "out"

    result = runner.invoke(cli, ["compress", str(sample_pdf), str(other), "--level", "light", "-o", str(out)])

    assert result.exit_code == 0, result.output
    with ZipFile(out / "compressed-pdfs.zip") as bundle:
        assert bundle.namelist() == ["sample_compressed_light.pdf", "other_compressed_light.pdf"]


def test_split_every_and_half(runner: CliRunner, sample_pdf: Path, tmp_path: Path) -> None:
    result = runner.invoke(cli, ["split", str(sample_pdf), "--every", "3", "-o", str(tmp_path / "every")])
    assert result.exit_code == 0, result.output
    with ZipFile(tmp_path / "every" / "sample_parts.zip") as bundle:
        assert bundle.namelist() == ["sample_part_1.pdf", "sample_part_2.pdf"]

    result = runner.invoke(cli, ["split", str(sample_pdf), "--half", "-o", str(tmp_path / "half")])
    assert result.exit_code == 0, result.output
    with ZipFile(tmp_path / "half" / "sample_parts.zip") as bundle:
        assert len(bundle.namelist()) == 2


def test_split_needs_exactly_one_mode(runner: CliRunner, sample_pdf: Path, tmp_path: Path) -> None:
    result = runner.invoke(cli, ["split", str(sample_pdf), "-o", str(tmp_path)])
    assert result.exit_code == 2

    result = runner.invoke(cli, ["split", str(sample_pdf), "--half", "-r", "1", "-o", str(tmp_path)])
    assert result.exit_code == 2


def test_unexpected_errors_exit_cleanly(runner: CliRunner, sample_pdf: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def broken_run(*args, **kwargs):
        raise KeyError("boom")

    monkeypatch.setattr("morphpdf.cli._run", broken_run)
    result = runner.invoke(cli, ["merge", str(sample_pdf), "-o", str(tmp_path)])

    assert result.exit_code == 1
    assert "Unexpected error: KeyError" in result.output
    assert isinstance(result.exception, SystemExit)
