"""A single conversion session: one document, one live artifact."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from .estimator import Estimate, ImageFormat, estimate_size
from .exporter import ArtifactSlot, ExportArtifact, RasterLimits, export_surface
from .probe import Document, probe_document
from .renderer import RENDER_PROGRESS_SHARE, Progress, ProgressCallback, render_pages
from .stitcher import layout_pages, stitch_pages

log = logging.getLogger(__name__)

_DEFAULT_SCALE = 2.0
_DEFAULT_QUALITY = 0.8


class SessionState(str, Enum):
    IDLE = "idle"
    PROBED = "probed"
    RENDERING = "rendering"
    STITCHING = "stitching"
    EXPORTING = "exporting"
    DONE = "done"
    FAILED = "failed"


# States from which a new run may be started.
_READY_STATES = {SessionState.PROBED, SessionState.DONE, SessionState.FAILED}
_BUSY_STATES = {SessionState.RENDERING, SessionState.STITCHING, SessionState.EXPORTING}


@dataclass(frozen=True)
class RenderParameters:
    """Settings for one conversion run."""

    scale: float = _DEFAULT_SCALE
    image_format: ImageFormat = ImageFormat.PNG
    quality: float = _DEFAULT_QUALITY

    def __post_init__(self) -> None:
        if self.scale <= 0:
            raise ValueError(f"scale must be positive, got {self.scale}")
        if not 0 < self.quality <= 1:
            raise ValueError(f"quality must be in (0, 1], got {self.quality}")
        object.__setattr__(self, "image_format", ImageFormat(self.image_format))


class ConversionSession:
    """Holds the current document and exported artifact for one user session.

    Example::

        with ConversionSession() as session:
            session.load(pdf_bytes)
            print(session.estimate(RenderParameters(scale=2)))
            artifact = await session.run(RenderParameters(scale=2))
            artifact.save_to(Path(artifact.suggested_filename(ts)))
    """

    def __init__(self, *, limits: RasterLimits | None = None) -> None:
        self.state = SessionState.IDLE
        self.document: Document | None = None
        self.limits = limits
        self._artifacts = ArtifactSlot()

    def __enter__(self) -> ConversionSession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def artifact(self) -> ExportArtifact | None:
        return self._artifacts.current

    @property
    def settings_enabled(self) -> bool:
        return self.state in _READY_STATES

    def load(self, data: bytes) -> Document:
        """Replace the current document with one decoded from *data*.

        Raises:
            ParseError: If *data* is not a usable PDF. The session is left idle.
        """
        self._ensure_not_busy()
        self._close_document()
        self.state = SessionState.IDLE
        return self.load_document(probe_document(data))

    def load_document(self, document: Document) -> Document:
        """Make an already probed *document* the current one."""
        self._ensure_not_busy()
        if document is not self.document:
            self._close_document()
        self.document = document
        self.state = SessionState.PROBED
        return document

    def estimate(self, params: RenderParameters) -> Estimate:
        document = self._require_document()
        return estimate_size(
            base_width=document.base_page_width,
            base_height=document.base_page_height,
            page_count=document.page_count,
            scale=params.scale,
            image_format=params.image_format,
        )

    async def run(
        self,
        params: RenderParameters,
        *,
        on_progress: ProgressCallback | None = None,
    ) -> ExportArtifact:
        """Render, stitch and export the current document.

        On success the new artifact becomes current and the previous one is
        released. On failure the session moves to ``FAILED``, the previous
        artifact is left as it was, and the error propagates.

        Raises:
            RuntimeError: If no document is loaded or a run is in progress.
            RenderError: If a page fails to rasterize.
            StitchError: If the composite cannot be allocated.
            ExportError: If the composite breaks the raster limits (checked
                before it is allocated) or cannot be encoded.
        """
        document = self._require_document()
        if self.state not in _READY_STATES:
            raise RuntimeError(f"Cannot start a conversion in state {self.state.value}")

        def report(percent: float, label: str) -> None:
            if on_progress is not None:
                on_progress(Progress(percent=percent, label=label))

        log.info(
            "Converting %d pages at scale %s to %s",
            document.page_count,
            params.scale,
            params.image_format.value,
        )
        try:
            self.state = SessionState.RENDERING
            bitmaps = await render_pages(document, scale=params.scale, on_progress=on_progress)

            width, height, _ = layout_pages([(b.width, b.height) for b in bitmaps])
            (self.limits or RasterLimits()).check(
                width=width, height=height, image_format=params.image_format
            )

            self.state = SessionState.STITCHING
            report(RENDER_PROGRESS_SHARE, "Stitching pages")
            surface = stitch_pages(bitmaps)
            del bitmaps

            self.state = SessionState.EXPORTING
            report(90.0, "Exporting image")
            artifact = export_surface(
                surface,
                image_format=params.image_format,
                quality=params.quality,
                limits=self.limits,
            )
        except BaseException:
            self.state = SessionState.FAILED
            raise

        self._artifacts.replace(artifact)
        self.state = SessionState.DONE
        report(100.0, "Done")
        return artifact

    def close(self) -> None:
        """Release the document and the current artifact."""
        self._close_document()
        self._artifacts.clear()
        self.state = SessionState.IDLE

    def _ensure_not_busy(self) -> None:
        if self.state in _BUSY_STATES:
            raise RuntimeError("Cannot load a document while a conversion is running")

    def _require_document(self) -> Document:
        if self.document is None:
            raise RuntimeError("No document loaded")
        return self.document

    def _close_document(self) -> None:
        if self.document is not None:
            self.document.close()
            self.document = None
