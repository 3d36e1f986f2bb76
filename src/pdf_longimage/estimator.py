"""Predict the final image size before doing any rendering."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .backend import round_half_up

# Rough ratio of encoded size to raw RGBA size.
_COMPRESSION_RATIOS = {
    "png": 0.3,
    "jpeg": 0.05,
}

_BYTES_PER_PIXEL = 4
_MAX_SAFE_HEIGHT = 30_000
_MAX_SAFE_PIXELS = 200_000_000


class ImageFormat(str, Enum):
    """Output raster format."""

    PNG = "png"
    JPEG = "jpeg"

    @property
    def mime_type(self) -> str:
        return f"image/{self.value}"

    @property
    def extension(self) -> str:
        return "jpg" if self is ImageFormat.JPEG else "png"

    @property
    def lossy(self) -> bool:
        return self is ImageFormat.JPEG


class SizeLimitWarning(UserWarning):
    """Advisory: the predicted image may exceed common raster ceilings."""


@dataclass(frozen=True)
class Estimate:
    """Predicted dimensions and byte weight of the stitched image."""

    width: int
    height: int
    pixel_count: int
    raw_bytes: int
    estimated_bytes: float
    over_limit: bool
    warnings: tuple[str, ...] = field(default=())

    @property
    def raw_mb(self) -> float:
        return self.raw_bytes / (1024 * 1024)

    @property
    def estimated_mb(self) -> float:
        return self.estimated_bytes / (1024 * 1024)


def estimate_size(
    *,
    base_width: float,
    base_height: float,
    page_count: int,
    scale: float,
    image_format: ImageFormat,
) -> Estimate:
    """Estimate the stitched image for *page_count* pages of the base size.

    Height is rounded once over the whole stack rather than per page, so it
    can differ by a few pixels from the real composite at fractional scales.

    Raises:
        ValueError: If *scale* is not positive or *page_count* is below 1.
    """
    if scale <= 0:
        raise ValueError(f"scale must be positive, got {scale}")
    if page_count < 1:
        raise ValueError(f"page_count must be at least 1, got {page_count}")

    image_format = ImageFormat(image_format)
    width = round_half_up(base_width * scale)
    height = round_half_up(base_height * scale * page_count)
    pixel_count = width * height
    raw_bytes = pixel_count * _BYTES_PER_PIXEL

    warnings: list[str] = []
    if height > _MAX_SAFE_HEIGHT:
        warnings.append(
            f"Height {height}px exceeds the safe limit of {_MAX_SAFE_HEIGHT}px"
        )
    if pixel_count > _MAX_SAFE_PIXELS:
        warnings.append(
            f"{pixel_count:,} pixels exceeds the safe limit of {_MAX_SAFE_PIXELS:,}"
        )

    return Estimate(
        width=width,
        height=height,
        pixel_count=pixel_count,
        raw_bytes=raw_bytes,
        estimated_bytes=raw_bytes * _COMPRESSION_RATIOS[image_format.value],
        over_limit=bool(warnings),
        warnings=tuple(warnings),
    )
