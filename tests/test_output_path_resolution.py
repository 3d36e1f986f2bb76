"""Unit tests for output path resolution logic — no rendering required."""

from __future__ import annotations

from pathlib import Path

import pytest

from pdf_longimage import _resolve_output_path
from pdf_longimage.estimator import ImageFormat

TS = 1700000000123


class TestResolveOutputPath:
    def test_none_uses_cwd_with_timestamp_name(self):
        result = _resolve_output_path(output=None, image_format=ImageFormat.PNG, timestamp_ms=TS)
        assert result.name == f"long_image_{TS}.png"
        assert result.is_absolute()

    def test_jpeg_uses_jpg_extension(self):
        result = _resolve_output_path(output=None, image_format=ImageFormat.JPEG, timestamp_ms=TS)
        assert result.name == f"long_image_{TS}.jpg"

    def test_image_suffix_treated_as_file(self, tmp_path: Path):
        result = _resolve_output_path(
            output=str(tmp_path / "custom.png"),
            image_format=ImageFormat.PNG,
            timestamp_ms=TS,
        )
        assert result == (tmp_path / "custom.png").resolve()

    def test_jpeg_suffix_case_insensitive(self, tmp_path: Path):
        result = _resolve_output_path(
            output=str(tmp_path / "custom.JPEG"),
            image_format=ImageFormat.JPEG,
            timestamp_ms=TS,
        )
        assert result == (tmp_path / "custom.JPEG").resolve()

    def test_directory_gets_filename_appended(self, tmp_path: Path):
        result = _resolve_output_path(
            output=str(tmp_path),
            image_format=ImageFormat.PNG,
            timestamp_ms=TS,
        )
        assert result == (tmp_path / f"long_image_{TS}.png").resolve()

    def test_path_output_accepted(self, tmp_path: Path):
        result = _resolve_output_path(
            output=tmp_path / "out",
            image_format=ImageFormat.JPEG,
            timestamp_ms=TS,
        )
        assert result == (tmp_path / "out" / f"long_image_{TS}.jpg").resolve()

    def test_suffix_matching_other_format_raises(self, tmp_path: Path):
        with pytest.raises(ValueError, match="does not match format png"):
            _resolve_output_path(
                output=tmp_path / "out.jpg",
                image_format=ImageFormat.PNG,
                timestamp_ms=TS,
            )

    def test_png_suffix_with_jpeg_format_raises(self, tmp_path: Path):
        with pytest.raises(ValueError, match="does not match format jpeg"):
            _resolve_output_path(
                output=tmp_path / "out.PNG",
                image_format=ImageFormat.JPEG,
                timestamp_ms=TS,
            )
