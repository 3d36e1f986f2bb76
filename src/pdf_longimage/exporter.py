"""Serialize the composite image and manage the exported file's lifetime."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path

from .estimator import ImageFormat
from .probe import LongImageError
from .stitcher import CompositeSurface

log = logging.getLogger(__name__)

_DEFAULT_QUALITY = 0.8


class ExportError(LongImageError):
    """Raised when the composite cannot be serialized."""


@dataclass(frozen=True)
class RasterLimits:
    """Hard ceilings on the size of an image we try to encode."""

    max_jpeg_side: int = 65_535
    max_side: int = 2**31 - 1
    max_pixels: int = 268_435_456

    def check(self, *, width: int, height: int, image_format: ImageFormat) -> None:
        """Raise :class:`ExportError` if the dimensions break a ceiling."""
        max_side = self.max_jpeg_side if image_format.lossy else self.max_side
        if width > max_side or height > max_side:
            raise ExportError(
                f"Image {width}x{height} exceeds the {image_format.value.upper()}"
                f" limit of {max_side}px per side"
            )
        if width * height > self.max_pixels:
            raise ExportError(
                f"Image {width}x{height} has {width * height:,} pixels,"
                f" more than the limit of {self.max_pixels:,}"
            )


class ExportArtifact:
    """An exported image held in a temporary file until released."""

    def __init__(
        self,
        *,
        path: Path,
        image_format: ImageFormat,
        byte_length: int,
        width: int,
        height: int,
    ) -> None:
        self.path = path
        self.width = width
        self.height = height
        self.image_format = image_format
        self.byte_length = byte_length
        self.released = False

    def __repr__(self) -> str:
        state = "released" if self.released else "live"
        return f"<ExportArtifact {self.mime_type} {self.byte_length} bytes {state}>"

    @property
    def mime_type(self) -> str:
        return self.image_format.mime_type

    def suggested_filename(self, timestamp_ms: int) -> str:
        return f"long_image_{timestamp_ms}.{self.image_format.extension}"

    def read_bytes(self) -> bytes:
        self._ensure_live()
        return self.path.read_bytes()

    def save_to(self, output_path: Path) -> Path:
        """Copy the artifact to *output_path*, creating parent directories."""
        self._ensure_live()
        output_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(self.path, output_path)
        return output_path

    def release(self) -> None:
        """Delete the backing file. Safe to call more than once."""
        if self.released:
            return
        self.released = True
        self.path.unlink(missing_ok=True)
        log.debug("Released artifact %s", self.path)

    def _ensure_live(self) -> None:
        if self.released:
            raise ValueError("Artifact has already been released")


class ArtifactSlot:
    """Holds the single live artifact of a session."""

    def __init__(self) -> None:
        self._current: ExportArtifact | None = None

    @property
    def current(self) -> ExportArtifact | None:
        return self._current

    def replace(self, artifact: ExportArtifact) -> None:
        """Make *artifact* current and release the one it replaces."""
        previous, self._current = self._current, artifact
        if previous is not None and previous is not artifact:
            previous.release()

    def clear(self) -> None:
        if self._current is not None:
            self._current.release()
            self._current = None


def export_surface(
    surface: CompositeSurface,
    *,
    image_format: ImageFormat,
    quality: float = _DEFAULT_QUALITY,
    limits: RasterLimits | None = None,
) -> ExportArtifact:
    """Encode *surface* to a temporary file.

    Args:
        surface: The stitched composite.
        image_format: Output format.
        quality: JPEG quality in ``(0, 1]``. Ignored for PNG.
        limits: Raster ceilings to enforce; defaults to :class:`RasterLimits`.

    Returns:
        A live :class:`ExportArtifact`. The caller owns it and must release it.

    Raises:
        ExportError: If the image breaks a ceiling or encoding fails.
    """
    image_format = ImageFormat(image_format)
    (limits or RasterLimits()).check(
        width=surface.width, height=surface.height, image_format=image_format
    )

    save_kwargs: dict[str, object] = {}
    if image_format.lossy:
        if not 0 < quality <= 1:
            raise ValueError(f"quality must be in (0, 1], got {quality}")
        save_kwargs["quality"] = max(1, round(quality * 100))

    fd, name = tempfile.mkstemp(prefix="longimage_", suffix=f".{image_format.extension}")
    path = Path(name)
    try:
        with os.fdopen(fd, "wb") as fh:
            surface.image.save(fh, format=image_format.value.upper(), **save_kwargs)
    except (OSError, ValueError, MemoryError) as exc:
        path.unlink(missing_ok=True)
        raise ExportError(f"Failed to encode {image_format.value.upper()}: {exc}") from exc

    artifact = ExportArtifact(
        path=path,
        image_format=image_format,
        byte_length=path.stat().st_size,
        width=surface.width,
        height=surface.height,
    )
    log.info("Exported %s (%d bytes)", artifact.mime_type, artifact.byte_length)
    return artifact
