"""pdf-longimage: Turn a multi-page PDF into one long PNG or JPEG image."""

from __future__ import annotations

import time
import warnings
from dataclasses import dataclass
from pathlib import Path

from .estimator import Estimate, ImageFormat, SizeLimitWarning, estimate_size
from .exporter import ExportArtifact, ExportError, RasterLimits, export_surface
from .probe import Document, LongImageError, ParseError, probe_document
from .renderer import PageBitmap, Progress, ProgressCallback, RenderError, render_pages
from .session import ConversionSession, RenderParameters, SessionState
from .source import InvalidSourceError, load_source
from .stitcher import CompositeSurface, StitchError, stitch_pages

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "CompositeSurface",
    "ConversionResult",
    "ConversionSession",
    "Document",
    "Estimate",
    "ExportArtifact",
    "ExportError",
    "ImageFormat",
    "InvalidSourceError",
    "LongImageError",
    "PageBitmap",
    "ParseError",
    "Progress",
    "RasterLimits",
    "RenderError",
    "RenderParameters",
    "SessionState",
    "SizeLimitWarning",
    "StitchError",
    "convert_pdf",
    "estimate_size",
    "export_surface",
    "load_source",
    "probe_document",
    "render_pages",
    "stitch_pages",
]

_IMAGE_SUFFIXES = {
    ".png": ImageFormat.PNG,
    ".jpg": ImageFormat.JPEG,
    ".jpeg": ImageFormat.JPEG,
}


@dataclass
class ConversionResult:
    """Outcome of converting one PDF into a long image."""

    page_count: int
    width: int
    height: int
    byte_length: int
    mime_type: str
    estimate: Estimate
    output_path: Path


def _resolve_output_path(
    *,
    output: Path | str | None,
    image_format: ImageFormat,
    timestamp_ms: int,
) -> Path:
    """Resolve the output image file path.

    Rules:
        - ``None`` → ``{cwd}/long_image_{timestamp_ms}.{ext}``
        - Ends in ``.png``, ``.jpg`` or ``.jpeg`` → treated as literal file path;
          the suffix must match *image_format*
        - Otherwise → treated as directory: ``{path}/long_image_{timestamp_ms}.{ext}``

    Raises:
        ValueError: If an image suffix names a different format.
    """
    filename = f"long_image_{timestamp_ms}.{image_format.extension}"
    if output is None:
        return Path(filename).resolve()

    output = Path(output)
    suffix_format = _IMAGE_SUFFIXES.get(output.suffix.lower())
    if suffix_format is not None:
        if suffix_format is not image_format:
            raise ValueError(
                f"Output {output.name} does not match format {image_format.value}"
            )
        return output.resolve()

    return (output / filename).resolve()


async def convert_pdf(
    source: Path | str,
    output: Path | str | None = None,
    *,
    scale: float = 2.0,
    image_format: ImageFormat | str = ImageFormat.PNG,
    quality: float = 0.8,
    on_progress: ProgressCallback | None = None,
) -> ConversionResult:
    """Convert a PDF into one vertically stacked image and save it.

    This is the high-level convenience function that combines loading,
    probing, estimating, rendering, stitching and exporting into one call.

    Args:
        source: Local PDF path or ``http(s)`` URL.
        output: Output path. Omit for ``long_image_<ms>.<ext>`` in the CWD,
            pass an image path to use it literally, or pass a directory to
            save ``long_image_<ms>.<ext>`` inside it.
        scale: Multiplier applied to each page's size (1.0 = 72 dpi).
        image_format: ``"png"`` or ``"jpeg"``.
        quality: JPEG quality in ``(0, 1]``. Ignored for PNG.
        on_progress: Receives :class:`Progress` updates.

    Returns:
        A :class:`ConversionResult` summarizing the outcome.

    Raises:
        ValueError: If the parameters are invalid or *output* has an image
            suffix for a different format.
        InvalidSourceError: If the source is missing or not a PDF.
        ParseError: If the PDF cannot be opened.
        RenderError: If a page fails to render.
        StitchError: If the composite cannot be allocated.
        ExportError: If the composite cannot be encoded.

    Example::

        import asyncio
        from pdf_longimage import convert_pdf

        result = asyncio.run(convert_pdf("slides.pdf", scale=1.5))
        print(f"Saved image to {result.output_path}")
    """
    params = RenderParameters(scale=scale, image_format=image_format, quality=quality)
    output_path = _resolve_output_path(
        output=output,
        image_format=params.image_format,
        timestamp_ms=time.time_ns() // 1_000_000,
    )
    data = await load_source(source)

    with ConversionSession() as session:
        document = session.load(data)
        estimate = session.estimate(params)
        for message in estimate.warnings:
            warnings.warn(message, SizeLimitWarning, stacklevel=2)

        artifact = await session.run(params, on_progress=on_progress)
        artifact.save_to(output_path)

        return ConversionResult(
            page_count=document.page_count,
            width=artifact.width,
            height=artifact.height,
            byte_length=artifact.byte_length,
            mime_type=artifact.mime_type,
            estimate=estimate,
            output_path=output_path,
        )
