"""Open a PDF and read the metadata the rest of the pipeline needs."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .backend import DocumentHandle, open_pdf

log = logging.getLogger(__name__)


class LongImageError(Exception):
    """Base exception for pdf-longimage errors."""


class ParseError(LongImageError):
    """Raised when the input bytes do not decode as a usable PDF."""


@dataclass
class Document:
    """An open document plus the page-1 size used for estimates.

    The document owns its handle; call :meth:`close` (or use it as a
    context manager) once the conversion session is done with it.
    """

    handle: DocumentHandle
    page_count: int
    base_page_width: float
    base_page_height: float

    def close(self) -> None:
        self.handle.close()

    def __enter__(self) -> Document:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def describe_document(handle: DocumentHandle) -> Document:
    """Build a :class:`Document` from an already open handle.

    Raises:
        ParseError: If the document has no pages.
    """
    if handle.page_count < 1:
        handle.close()
        raise ParseError("Document has no pages.")

    viewport = handle.get_page(1).viewport_at(1.0)
    return Document(
        handle=handle,
        page_count=handle.page_count,
        base_page_width=viewport.width,
        base_page_height=viewport.height,
    )


def probe_document(data: bytes) -> Document:
    """Decode PDF bytes and report page count and base page size.

    The base size is the unit-scale viewport of page 1; estimates assume
    every page shares it.

    Raises:
        ParseError: If the bytes are not a valid PDF, the PDF needs a
            password, or it contains no pages.
    """
    try:
        pdf = open_pdf(data)
    except (RuntimeError, ValueError) as exc:
        raise ParseError(f"Could not parse document: {exc}") from exc

    if pdf.needs_password:
        pdf.close()
        raise ParseError("Document is password protected.")

    document = describe_document(pdf)
    log.info(
        "Probed document: %d pages, base page %.1f x %.1f",
        document.page_count,
        document.base_page_width,
        document.base_page_height,
    )
    return document
