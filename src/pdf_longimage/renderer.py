"""Sequential page rasterization."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from PIL import Image

from .probe import Document, LongImageError

log = logging.getLogger(__name__)

# Share of the overall progress bar owned by the rendering phase.
RENDER_PROGRESS_SHARE = 80.0


class RenderError(LongImageError):
    """Raised when a single page fails to rasterize."""

    def __init__(self, page_index: int, message: str) -> None:
        super().__init__(f"Page {page_index}: {message}")
        self.page_index = page_index


@dataclass(frozen=True)
class Progress:
    """A progress update: overall percentage plus a phase label."""

    percent: float
    label: str


ProgressCallback = Callable[[Progress], None]


@dataclass
class PageBitmap:
    """One rendered page."""

    page_index: int
    width: int
    height: int
    image: Image.Image


async def render_pages(
    document: Document,
    *,
    scale: float,
    on_progress: ProgressCallback | None = None,
) -> list[PageBitmap]:
    """Render every page of *document* at *scale*, in page order.

    Pages are rendered one at a time; control is yielded to the event loop
    after each page, and the next page only starts once the previous one
    is finished.

    Args:
        document: The probed document.
        scale: Multiplier applied to each page's unit-scale size.
        on_progress: Called before each page with a percentage in the
            0-80 range.

    Returns:
        One :class:`PageBitmap` per page, in document order.

    Raises:
        ValueError: If *scale* is not positive.
        RenderError: If any page fails. Nothing is returned in that case.
    """
    if scale <= 0:
        raise ValueError(f"scale must be positive, got {scale}")

    total = document.page_count
    bitmaps: list[PageBitmap] = []

    for index in range(1, total + 1):
        if on_progress is not None:
            on_progress(Progress(
                percent=(index - 1) / total * RENDER_PROGRESS_SHARE,
                label=f"Rendering page {index}/{total}",
            ))

        try:
            page = document.handle.get_page(index)
            viewport = page.viewport_at(scale)
            width, height = viewport.pixel_size
            image = page.render(viewport)
        except Exception as exc:
            log.error("Rendering page %d/%d failed: %s", index, total, exc)
            raise RenderError(page_index=index, message=str(exc) or type(exc).__name__) from exc

        bitmaps.append(PageBitmap(
            page_index=index,
            width=width,
            height=height,
            image=image,
        ))
        log.debug("Rendered page %d/%d at %dx%d", index, total, width, height)

        await asyncio.sleep(0)

    return bitmaps
