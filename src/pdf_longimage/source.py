"""Load PDF bytes from a local path or an HTTP(S) URL."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import httpx

from .probe import LongImageError

log = logging.getLogger(__name__)

_DEFAULT_MAX_RETRIES = 3
_DEFAULT_TIMEOUT = 30.0

PDF_MAGIC = b"%PDF-"
_ACCEPTED_CONTENT_TYPES = {"application/pdf", "application/octet-stream"}


class InvalidSourceError(LongImageError):
    """Raised when the input is missing, unreachable, or not a PDF."""


def is_url(source: str | Path) -> bool:
    return isinstance(source, str) and source.lower().startswith(("http://", "https://"))


def check_pdf_bytes(data: bytes, *, origin: str) -> bytes:
    """Return *data* if it looks like a PDF, else raise :class:`InvalidSourceError`."""
    if not data:
        raise InvalidSourceError(f"Empty input: {origin}")
    if data.lstrip()[:5] != PDF_MAGIC:
        raise InvalidSourceError(f"Not a PDF file: {origin}")
    return data


def read_pdf_file(path: Path) -> bytes:
    if not path.exists():
        raise InvalidSourceError(f"File not found: {path}")
    if not path.is_file():
        raise InvalidSourceError(f"Not a file: {path}")
    return check_pdf_bytes(path.read_bytes(), origin=str(path))


async def _fetch(
    client: httpx.AsyncClient,
    url: str,
    *,
    max_retries: int,
    timeout: float,
) -> httpx.Response:
    """GET *url*, retrying transport errors with a linear backoff."""
    for attempt in range(1, max_retries + 1):
        try:
            response = await client.get(url, timeout=timeout, follow_redirects=True)
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as exc:
            raise InvalidSourceError(
                f"Download failed with HTTP {exc.response.status_code}: {url}"
            ) from exc
        except httpx.HTTPError as exc:
            if attempt == max_retries:
                raise InvalidSourceError(f"Download failed: {url} ({exc})") from exc
            log.warning("Download attempt %d/%d failed: %s", attempt, max_retries, exc)
            await asyncio.sleep(1.0 * attempt)

    raise InvalidSourceError(f"Download failed: {url}")


async def fetch_pdf_url(
    url: str,
    *,
    client: httpx.AsyncClient | None = None,
    max_retries: int = _DEFAULT_MAX_RETRIES,
    timeout: float = _DEFAULT_TIMEOUT,
) -> bytes:
    """Download a PDF over HTTP(S) and check its media type.

    Raises:
        InvalidSourceError: On HTTP errors, exhausted retries, a non-PDF
            ``Content-Type``, or a body that is not a PDF.
    """
    if client is None:
        async with httpx.AsyncClient() as own_client:
            return await fetch_pdf_url(
                url, client=own_client, max_retries=max_retries, timeout=timeout
            )

    response = await _fetch(client, url, max_retries=max_retries, timeout=timeout)

    content_type = response.headers.get("content-type", "").split(";")[0].strip().lower()
    if content_type and content_type not in _ACCEPTED_CONTENT_TYPES:
        raise InvalidSourceError(f"Expected a PDF but got {content_type!r}: {url}")

    log.info("Downloaded %s (%d bytes)", url, len(response.content))
    return check_pdf_bytes(response.content, origin=url)


async def load_source(
    source: str | Path,
    *,
    client: httpx.AsyncClient | None = None,
    max_retries: int = _DEFAULT_MAX_RETRIES,
) -> bytes:
    """Return the PDF bytes for a local path or an ``http(s)`` URL.

    Raises:
        InvalidSourceError: If the input is missing, unreachable, or not a PDF.
    """
    if is_url(source):
        return await fetch_pdf_url(str(source), client=client, max_retries=max_retries)
    return read_pdf_file(Path(source))
