"""Command-line interface for pdf-longimage."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TimeElapsedColumn,
)

from . import _resolve_output_path
from .estimator import Estimate, ImageFormat
from .probe import LongImageError
from .renderer import Progress as PipelineProgress
from .session import ConversionSession, RenderParameters
from .source import load_source


def _format_size(num_bytes: float) -> str:
    """Format a byte count as a human-readable string."""
    value = float(num_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if abs(value) < 1024:
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} TB"


def _positive_float(text: str) -> float:
    value = float(text)
    if value <= 0:
        raise argparse.ArgumentTypeError(f"must be greater than 0, got {text}")
    return value


def _quality(text: str) -> float:
    value = float(text)
    if not 0 < value <= 1:
        raise argparse.ArgumentTypeError(f"must be in (0, 1], got {text}")
    return value


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pdf-longimage",
        description=(
            "Render every page of a PDF and stack them into one long PNG"
            " (default) or JPEG image."
        ),
    )
    parser.add_argument(
        "source",
        help="PDF file path or http(s) URL",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help=(
            "Output path: an image file path (.png/.jpg/.jpeg), a directory,"
            " or omit for long_image_<timestamp>.<ext> in CWD."
        ),
    )
    parser.add_argument(
        "--scale",
        type=_positive_float,
        default=2.0,
        help="Render scale; 1.0 is 72 dpi (default: 2.0)",
    )
    parser.add_argument(
        "--format",
        dest="image_format",
        type=str.lower,
        choices=[f.value for f in ImageFormat],
        default=ImageFormat.PNG.value,
        help="Output format: png or jpeg (default: png)",
    )
    parser.add_argument(
        "--quality",
        type=_quality,
        default=0.8,
        help="JPEG quality between 0 and 1 (default: 0.8, ignored for PNG)",
    )
    parser.add_argument(
        "--estimate-only",
        action="store_true",
        default=False,
        help="Print the size estimate and exit without rendering",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Show debug logging",
    )
    return parser


def _configure_logging(*, verbose: bool, console: Console) -> RichHandler:
    """Route package logs through *console* so they share it with the progress bar."""
    logger = logging.getLogger("pdf_longimage")
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.handlers.clear()

    handler = RichHandler(console=console, show_path=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.propagate = False
    return handler


def _print_estimate(console: Console, estimate: Estimate) -> None:
    colour = "red" if estimate.over_limit else "green"
    console.print(
        f"Estimated size: [{colour}]{estimate.width} x {estimate.height}[/{colour}]"
        f" (~{_format_size(estimate.estimated_bytes)})"
    )
    for warning in estimate.warnings:
        console.print(f"  [yellow]Warning:[/yellow] {warning}", stderr=True)


async def _async_main(
    args: argparse.Namespace,
    *,
    console: Console,
    output_path: Path,
) -> None:
    start_time = time.monotonic()
    params = RenderParameters(
        scale=args.scale,
        image_format=args.image_format,
        quality=args.quality,
    )

    with console.status("[bold blue]Loading PDF..."):
        data = await load_source(args.source)

    with ConversionSession() as session:
        document = session.load(data)
        console.print(f"Loaded PDF: [bold]{document.page_count}[/bold] pages")
        _print_estimate(console, session.estimate(params))

        if args.estimate_only:
            return

        progress = Progress(
            SpinnerColumn(),
            "[progress.description]{task.description}",
            BarColumn(),
            TaskProgressColumn(),
            TimeElapsedColumn(),
            console=console,
        )
        with progress:
            task_id = progress.add_task(description="Starting", total=100)

            def on_progress(update: PipelineProgress) -> None:
                progress.update(task_id, completed=update.percent, description=update.label)

            artifact = await session.run(params, on_progress=on_progress)

        artifact.save_to(output_path)

        elapsed = time.monotonic() - start_time
        summary_lines = [
            f"[bold]Pages:[/bold] {document.page_count}",
            f"[bold]Dimensions:[/bold] {artifact.width} x {artifact.height}",
            f"[bold]{params.image_format.value.upper()} size:[/bold]"
            f" {_format_size(artifact.byte_length)}",
            f"[bold]Output:[/bold] {output_path}",
        ]
        console.print(Panel(
            "\n".join(summary_lines),
            title=f"[bold green]Done in {elapsed:.1f}s[/bold green]",
            border_style="green",
        ))


def main() -> None:
    """Entry point for the ``pdf-longimage`` CLI command."""
    console = Console()
    err_console = Console(stderr=True)
    parser = _build_parser()
    args = parser.parse_args()
    _configure_logging(verbose=args.verbose, console=console)

    try:
        output_path = _resolve_output_path(
            output=args.output,
            image_format=ImageFormat(args.image_format),
            timestamp_ms=time.time_ns() // 1_000_000,
        )
    except ValueError as exc:
        parser.error(str(exc))

    try:
        asyncio.run(_async_main(args, console=console, output_path=output_path))
    except LongImageError as exc:
        err_console.print(f"[bold red]Error:[/bold red] {exc}")
        sys.exit(1)
    except KeyboardInterrupt:
        err_console.print("\n[dim]Interrupted.[/dim]")
        sys.exit(130)
