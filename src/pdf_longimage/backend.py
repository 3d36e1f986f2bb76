"""PyMuPDF-backed decode/rasterize capability used by the pipeline."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Protocol

import fitz  # PyMuPDF
from PIL import Image


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with .5 always rounding up."""
    return math.floor(value + 0.5)


@dataclass(frozen=True)
class Viewport:
    """Pixel-space rectangle a page occupies at a given scale."""

    width: float
    height: float

    @property
    def pixel_size(self) -> tuple[int, int]:
        return round_half_up(self.width), round_half_up(self.height)


class PageHandle(Protocol):
    def viewport_at(self, scale: float) -> Viewport: ...

    def render(self, viewport: Viewport) -> Image.Image: ...


class DocumentHandle(Protocol):
    @property
    def page_count(self) -> int: ...

    def get_page(self, index: int) -> PageHandle: ...

    def close(self) -> None: ...


class PdfPage:
    """A single page of an open PDF."""

    def __init__(self, page: fitz.Page) -> None:
        self._page = page

    def viewport_at(self, scale: float) -> Viewport:
        rect = self._page.rect
        return Viewport(width=rect.width * scale, height=rect.height * scale)

    def render(self, viewport: Viewport) -> Image.Image:
        """Rasterize the page to an RGB image of ``viewport.pixel_size``."""
        width, height = viewport.pixel_size
        rect = self._page.rect
        matrix = fitz.Matrix(width / rect.width, height / rect.height)
        pix = self._page.get_pixmap(matrix=matrix, alpha=False)
        image = Image.frombytes("RGB", (pix.width, pix.height), pix.samples)

        # MuPDF snaps the pixmap to its own integer bbox, which can be a
        # pixel off from the rounded viewport.
        if image.size != (width, height):
            image = image.resize((width, height))
        return image


class PdfDocument:
    """Open PDF document; pages are addressed 1-based."""

    def __init__(self, doc: fitz.Document) -> None:
        self._doc = doc

    @property
    def page_count(self) -> int:
        return self._doc.page_count

    @property
    def needs_password(self) -> bool:
        return bool(self._doc.needs_pass)

    def get_page(self, index: int) -> PdfPage:
        if not 1 <= index <= self.page_count:
            raise IndexError(f"Page {index} out of range 1..{self.page_count}")
        return PdfPage(self._doc.load_page(index - 1))

    def close(self) -> None:
        self._doc.close()


def open_pdf(data: bytes) -> PdfDocument:
    """Open PDF bytes with PyMuPDF.

    Raises:
        RuntimeError: ``fitz.FileDataError`` (and subclasses) for data
            MuPDF cannot decode.
    """
    doc = fitz.open(stream=data, filetype="pdf")
    return PdfDocument(doc)
