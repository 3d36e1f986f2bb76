"""Tests for encoding the composite and the artifact lifecycle."""

from __future__ import annotations

import io
import tempfile

import pytest
from PIL import Image

from conftest import RED
from pdf_longimage.estimator import ImageFormat
from pdf_longimage.exporter import (
    ArtifactSlot,
    ExportError,
    RasterLimits,
    export_surface,
)
from pdf_longimage.renderer import PageBitmap
from pdf_longimage.stitcher import stitch_pages


def _surface(width: int = 40, height: int = 60):
    page = PageBitmap(
        page_index=1,
        width=width,
        height=height,
        image=Image.new("RGB", (width, height), RED),
    )
    return stitch_pages([page])


@pytest.fixture(autouse=True)
def _isolated_tempdir(tmp_path, monkeypatch):
    scratch = tmp_path / "scratch"
    scratch.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(scratch))
    return scratch


class TestExportSurface:
    def test_png(self):
        artifact = export_surface(_surface(), image_format=ImageFormat.PNG)

        data = artifact.read_bytes()
        assert data[:8] == b"\x89PNG\r\n\x1a\n"
        assert artifact.mime_type == "image/png"
        assert artifact.byte_length == len(data)
        assert (artifact.width, artifact.height) == (40, 60)
        assert Image.open(io.BytesIO(data)).getpixel((20, 30)) == RED

    def test_jpeg(self):
        artifact = export_surface(_surface(), image_format=ImageFormat.JPEG, quality=0.8)

        data = artifact.read_bytes()
        assert data[:2] == b"\xff\xd8"
        assert artifact.mime_type == "image/jpeg"
        decoded = Image.open(io.BytesIO(data))
        assert decoded.size == (40, 60)
        assert decoded.mode == "RGB"

    def test_lower_quality_gives_smaller_jpeg(self):
        surface = _surface(200, 200)
        surface.image.putpixel((5, 5), (0, 0, 0))
        for x in range(0, 200, 3):
            for y in range(0, 200, 7):
                surface.image.putpixel((x, y), (x % 256, y % 256, 90))

        high = export_surface(surface, image_format=ImageFormat.JPEG, quality=1.0)
        low = export_surface(surface, image_format=ImageFormat.JPEG, quality=0.1)

        assert low.byte_length < high.byte_length

    def test_accepts_format_string(self):
        artifact = export_surface(_surface(), image_format="png")
        assert artifact.image_format is ImageFormat.PNG

    def test_pixel_ceiling_raises(self, _isolated_tempdir):
        with pytest.raises(ExportError, match="pixels"):
            export_surface(
                _surface(),
                image_format=ImageFormat.PNG,
                limits=RasterLimits(max_pixels=100),
            )
        assert list(_isolated_tempdir.iterdir()) == []

    def test_jpeg_side_ceiling_does_not_apply_to_png(self):
        limits = RasterLimits(max_jpeg_side=50)

        with pytest.raises(ExportError, match="JPEG"):
            export_surface(_surface(), image_format=ImageFormat.JPEG, limits=limits)
        export_surface(_surface(), image_format=ImageFormat.PNG, limits=limits)

    def test_encoder_failure_raises_and_cleans_up(self, monkeypatch, _isolated_tempdir):
        surface = _surface()

        def broken_save(*args, **kwargs):
            raise OSError("encoder error -2")

        monkeypatch.setattr(surface.image, "save", broken_save)

        with pytest.raises(ExportError, match="encoder error"):
            export_surface(surface, image_format=ImageFormat.PNG)
        assert list(_isolated_tempdir.iterdir()) == []

    def test_invalid_quality_raises(self):
        with pytest.raises(ValueError, match="quality"):
            export_surface(_surface(), image_format=ImageFormat.JPEG, quality=0)


class TestExportArtifact:
    def test_release_deletes_file_and_is_idempotent(self):
        artifact = export_surface(_surface(), image_format=ImageFormat.PNG)
        assert artifact.path.exists()

        artifact.release()
        artifact.release()

        assert artifact.released
        assert not artifact.path.exists()
        with pytest.raises(ValueError, match="released"):
            artifact.read_bytes()

    def test_suggested_filename(self):
        png = export_surface(_surface(), image_format=ImageFormat.PNG)
        jpeg = export_surface(_surface(), image_format=ImageFormat.JPEG)

        assert png.suggested_filename(1700000000123) == "long_image_1700000000123.png"
        assert jpeg.suggested_filename(1700000000123) == "long_image_1700000000123.jpg"

    def test_save_to_creates_parent_directories(self, tmp_path):
        artifact = export_surface(_surface(), image_format=ImageFormat.PNG)
        out = tmp_path / "nested" / "deep" / "out.png"

        artifact.save_to(out)

        assert out.read_bytes() == artifact.read_bytes()


class TestArtifactSlot:
    def test_replace_releases_previous(self):
        slot = ArtifactSlot()
        first = export_surface(_surface(), image_format=ImageFormat.PNG)
        second = export_surface(_surface(), image_format=ImageFormat.PNG)

        slot.replace(first)
        assert slot.current is first
        assert not first.released

        slot.replace(second)
        assert slot.current is second
        assert first.released
        assert not second.released

    def test_replace_with_same_artifact_keeps_it(self):
        slot = ArtifactSlot()
        artifact = export_surface(_surface(), image_format=ImageFormat.PNG)

        slot.replace(artifact)
        slot.replace(artifact)

        assert not artifact.released

    def test_clear(self):
        slot = ArtifactSlot()
        artifact = export_surface(_surface(), image_format=ImageFormat.PNG)
        slot.replace(artifact)

        slot.clear()

        assert slot.current is None
        assert artifact.released
