from __future__ import annotations

import io

import pytest
from PIL import Image

from morphpdf.compressor import PRESETS, compress, export_image, get_preset, target_size
from morphpdf.exceptions import EncodeError
from morphpdf.types import CompressionPreset, RasterSurface


def _surface(size=(2400, 1200), mode="RGB", page_number=1) -> RasterSurface:
    return RasterSurface(page_number=page_number, scale=2.0, image=Image.new(mode, size, "white"))


def test_presets() -> None:
    assert (PRESETS["light"].quality, PRESETS["light"].max_dimension) == (0.8, 1400)
    assert (PRESETS["medium"].quality, PRESETS["medium"].max_dimension) == (0.7, 1200)
    assert (PRESETS["strong"].quality, PRESETS["strong"].max_dimension) == (0.6, 1000)


def test_get_preset() -> None:
    assert get_preset("light").name == "light"
    custom = CompressionPreset("custom", 0.5, 800)
    assert get_preset(custom) is custom
    with pytest.raises(ValueError, match="Unknown compression level"):
        get_preset("extreme")


@pytest.mark.parametrize(
    "quality, max_dimension",
    [(0, 100), (1.5, 100), (0.5, 0)],
)
def test_preset_validation(quality, max_dimension) -> None:
    with pytest.raises(ValueError):
        CompressionPreset("bad", quality, max_dimension)


def test_target_size() -> None:
    assert target_size(2400, 1200, 1200) == (1200, 600)
    assert target_size(1000, 3000, 1000) == (333, 1000)
    assert target_size(800, 600, 1200) == (800, 600)
    assert target_size(5000, 1, 1000) == (1000, 1)


def test_compress_downsamples_and_encodes_jpeg() -> None:
    page = compress(_surface(), "medium")

    assert page.format == "JPEG"
    assert (page.width, page.height) == (1200, 600)
    assert page.size == len(page.data) > 0
    with Image.open(io.BytesIO(page.data)) as image:
        assert image.format == "JPEG"
        assert image.size == (1200, 600)


def test_compress_keeps_small_surfaces() -> None:
    page = compress(_surface((300, 200)), "strong")
    assert (page.width, page.height) == (300, 200)


def test_compress_converts_alpha_surfaces() -> None:
    surface = _surface((100, 100), mode="RGBA")
    page = compress(surface, "light")
    with Image.open(io.BytesIO(page.data)) as image:
        assert image.mode == "RGB"
    # The caller's surface is left untouched.
    assert surface.image.mode == "RGBA"


def test_stronger_preset_is_smaller() -> None:
    noisy = Image.effect_noise((1600, 1600), 64).convert("RGB")
    light = compress(RasterSurface(1, 2.0, noisy), "light")
    strong = compress(RasterSurface(1, 2.0, noisy), "strong")
    assert strong.size < light.size


def test_encoder_failure_raises_encode_error() -> None:
    class Broken:
        mode = "RGB"
        width = 10
        height = 10

        def save(self, *args, **kwargs):
            raise OSError("encoder exploded")

    with pytest.raises(EncodeError) as excinfo:
        compress(RasterSurface(7, 1.0, Broken()), "medium")
    assert excinfo.value.page_number == 7
    assert excinfo.value.stage == "compressing"


def test_export_png_and_jpeg() -> None:
    png = export_image(_surface((50, 40)), "png")
    jpg = export_image(_surface((50, 40), mode="RGBA"), "jpg", quality=0.5)

    with Image.open(io.BytesIO(png)) as image:
        assert (image.format, image.size) == ("PNG", (50, 40))
    with Image.open(io.BytesIO(jpg)) as image:
        assert (image.format, image.size) == ("JPEG", (50, 40))


def test_export_unknown_format() -> None:
    with pytest.raises(ValueError):
        export_image(_surface((5, 5)), "tiff")
