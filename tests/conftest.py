"""Shared test fixtures for pdf-longimage."""

from __future__ import annotations

import io
from collections.abc import Sequence

import img2pdf
import pytest
from PIL import Image

from pdf_longimage.backend import Viewport
from pdf_longimage.probe import Document, describe_document

RED = (255, 0, 0)
GREEN = (0, 255, 0)
BLUE = (0, 0, 255)
WHITE = (255, 255, 255)

# ── Helpers ────────────────────────────────────────────────────────────


def png_bytes(width: int, height: int, color: tuple[int, int, int]) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


def make_pdf(
    sizes: Sequence[tuple[int, int]],
    colors: Sequence[tuple[int, int, int]] | None = None,
) -> bytes:
    """Build a PDF with one solid-colour page per ``(width, height)`` in points.

    Pages are laid out at 72 dpi so one image pixel is one PDF point.
    """
    colors = colors or [RED] * len(sizes)
    layout = img2pdf.get_fixed_dpi_layout_fun((72, 72))
    return img2pdf.convert(
        [png_bytes(w, h, c) for (w, h), c in zip(sizes, colors)],
        layout_fun=layout,
    )


class FakePage:
    def __init__(self, doc: FakeDocument, width: float, height: float, color=RED):
        self.doc = doc
        self.width = width
        self.height = height
        self.color = color
        self.fail = False

    def viewport_at(self, scale: float) -> Viewport:
        return Viewport(width=self.width * scale, height=self.height * scale)

    def render(self, viewport: Viewport) -> Image.Image:
        self.doc.active += 1
        try:
            assert self.doc.active == 1, "pages rendered concurrently"
            if self.fail:
                raise MemoryError("out of memory")
            return Image.new("RGB", viewport.pixel_size, self.color)
        finally:
            self.doc.active -= 1
            self.doc.rendered.append(self.doc.pages.index(self) + 1)


class FakeDocument:
    """In-memory stand-in for an open PDF."""

    def __init__(self, sizes: Sequence[tuple[float, float]], colors=None):
        colors = colors or [RED] * len(sizes)
        self.pages = [FakePage(self, w, h, c) for (w, h), c in zip(sizes, colors)]
        self.requested: list[int] = []
        self.rendered: list[int] = []
        self.active = 0
        self.closed = False

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def get_page(self, index: int) -> FakePage:
        self.requested.append(index)
        return self.pages[index - 1]

    def close(self) -> None:
        self.closed = True


def make_document(
    sizes: Sequence[tuple[float, float]],
    colors=None,
    *,
    fail_on: int | None = None,
) -> Document:
    handle = FakeDocument(sizes, colors)
    if fail_on is not None:
        handle.pages[fail_on - 1].fail = True
    document = describe_document(handle)
    handle.requested.clear()
    return document


# ── Fixtures ───────────────────────────────────────────────────────────


@pytest.fixture
def three_page_pdf() -> bytes:
    return make_pdf([(100, 200), (150, 180), (120, 210)], [RED, GREEN, BLUE])


@pytest.fixture
def pdf_file(tmp_path, three_page_pdf):
    path = tmp_path / "input.pdf"
    path.write_bytes(three_page_pdf)
    return path
