"""Stack rendered pages into a single composite image."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from PIL import Image

from .probe import LongImageError
from .renderer import PageBitmap

log = logging.getLogger(__name__)

_BACKGROUND = (255, 255, 255)


class StitchError(LongImageError):
    """Raised when the composite surface cannot be allocated."""


@dataclass(frozen=True)
class Placement:
    """Where one page lands on the composite."""

    x: int
    y: int
    width: int
    height: int


@dataclass
class CompositeSurface:
    """All pages stacked top to bottom on one RGB image."""

    width: int
    height: int
    image: Image.Image
    placements: list[Placement]


def layout_pages(sizes: Sequence[tuple[int, int]]) -> tuple[int, int, list[Placement]]:
    """Compute composite size and per-page offsets for ``(width, height)`` pairs.

    Pages are centered horizontally and stacked with no gaps, so each
    page's ``y`` is the sum of the heights above it.

    Raises:
        ValueError: If *sizes* is empty.
    """
    if not sizes:
        raise ValueError("sizes must not be empty")

    composite_width = max(w for w, _ in sizes)
    placements: list[Placement] = []
    y = 0
    for w, h in sizes:
        placements.append(Placement(x=(composite_width - w) // 2, y=y, width=w, height=h))
        y += h

    return composite_width, y, placements


def stitch_pages(bitmaps: Sequence[PageBitmap]) -> CompositeSurface:
    """Draw *bitmaps* onto one white surface in their given order.

    The background is always opaque white, whatever the output format, so
    PNG and JPEG exports look the same.

    Raises:
        ValueError: If *bitmaps* is empty.
        StitchError: If the surface is too large to allocate.
    """
    width, height, placements = layout_pages([(b.width, b.height) for b in bitmaps])

    try:
        surface = Image.new("RGB", (width, height), _BACKGROUND)
    except (MemoryError, ValueError, Image.DecompressionBombError) as exc:
        raise StitchError(
            f"Cannot allocate a {width}x{height} composite: {exc}"
        ) from exc

    for bitmap, placement in zip(bitmaps, placements):
        image = bitmap.image
        if image.mode in ("RGBA", "LA"):
            surface.paste(image, (placement.x, placement.y), mask=image)
        else:
            surface.paste(image.convert("RGB"), (placement.x, placement.y))

    log.info("Stitched %d pages into %dx%d", len(bitmaps), width, height)
    return CompositeSurface(
        width=width,
        height=height,
        image=surface,
        placements=placements,
    )
