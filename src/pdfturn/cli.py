"""Command-line interface for pdfturn."""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from pdfturn import __version__
from pdfturn.config import Config, ConfigError, load_config
from pdfturn.constants import BACKEND_NAMES, DEFAULT_CONTAINER_SIZE
from pdfturn.exceptions import EmptyPlanError, PdfTurnError, ServiceError
from pdfturn.geometry import Size
from pdfturn.logging_config import get_logger
from pdfturn.parsing import ParseFailure, parse_rotation_spec
from pdfturn.plan import RotationPlan, validate_and_repair

logger = get_logger(__name__)


def parse_size(text: str) -> Size:
    """Parse a WIDTHxHEIGHT container size for argparse."""
    try:
        width, height = (float(part) for part in text.lower().split("x"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected WIDTHxHEIGHT, got {text!r}")
    if width <= 0 or height <= 0:
        raise argparse.ArgumentTypeError(f"Size must be positive, got {text!r}")
    return Size(width, height)


def parse_rotations(specs: list[str] | None) -> RotationPlan:
    """
    Build a plan from PAGE[:DEGREES] arguments; no arguments gives the default plan.

    Raises:
        ValueError: If any argument cannot be parsed
    """
    if not specs:
        return RotationPlan.default()
    entries = []
    for spec in specs:
        result = parse_rotation_spec(spec)
        if isinstance(result, ParseFailure):
            raise ValueError(f"Invalid rotation {spec!r}: {result.reason}")
        entries.append(result)
    return RotationPlan.of(entries)


def _load_config(path: Path | None) -> Config:
    return load_config(path) if path else Config()


def _read_pdf(path: Path) -> bytes:
    if not path.is_file():
        raise FileNotFoundError(path)
    if path.suffix.lower() != ".pdf":
        raise ValueError(f"Invalid File Type: {path.name}. Please select a PDF file for rotation.")
    return path.read_bytes()


async def _preview(config: Config, data: bytes, plan: RotationPlan, size: Size, output: Path, page: int | None) -> int:
    from pdfturn.session import RotateSession

    async with RotateSession(config) as session:
        handle = await session.open(data)
        session.editor.set_plan(plan)
        await session.refresh()
        await session.resize_to(size)

        if page is not None:
            if handle is not None and not 1 <= page <= handle.total_pages:
                logger.error("Page %d is outside the document's %d page(s)", page, handle.total_pages)
                return 1
            await session.show_page(page)
            target = session.renderer.target()
            if target.surface is not None:
                target.surface.image.save(output)
                logger.info("Page %d preview written to %s", page, output)
                return 0
            view = target.fallback
            if view is not None:
                logger.warning("%s", view.notice)
                logger.info("Open %s to view the page", view.uri)
                return 0
            logger.error("%s", target.error or "Preview unavailable")
            return 1

        image = session.grid.compose()
        image.save(output)
        for cell in session.grid.cells:
            if cell.target.fallback is not None:
                logger.warning("Page %d: %s", cell.page, cell.target.fallback.notice)
        caption = session.grid.caption()
        if caption:
            logger.info("%s", caption)
        logger.info("Preview of %d page(s) written to %s", len(session.grid.cells), output)
    return 0


def cmd_preview(parsed: argparse.Namespace, config: Config) -> int:
    """Render the rotation preview grid (or one page) to an image file."""
    plan = parse_rotations(parsed.rotation)
    data = _read_pdf(parsed.file)
    return asyncio.run(
        _preview(config, data, plan, parsed.size, parsed.output, parsed.page)
    )


def cmd_plan(parsed: argparse.Namespace, config: Config) -> int:
    """Repair a plan against a page count and print it in wire format."""
    plan = parse_rotations(parsed.rotation)

    total = parsed.pages
    if total is None:
        if parsed.file is None:
            logger.error("Either FILE or --pages is required")
            return 1
        from pdfturn.services import get_default_backend

        total = asyncio.run(get_default_backend().page_count(_read_pdf(parsed.file)))

    try:
        result = validate_and_repair(plan, total)
    except EmptyPlanError as e:
        logger.error("%s", e)
        return 1
    for correction in result.corrections:
        logger.warning("%s", correction.message)
    print(json.dumps(result.plan.to_wire_format(), indent=parsed.indent))
    return 0


async def _rotate(parsed: argparse.Namespace, config: Config, data: bytes, plan: RotationPlan) -> int:
    from pdfturn.editor import PlanEditor
    from pdfturn.services import get_backend

    backend = parsed.backend or config.service.backend.value
    if backend == "http":
        service = get_backend(
            "http",
            base_url=parsed.url or config.service.base_url,
            timeout=config.service.timeout,
            filename=parsed.file.name,
        )
    elif backend == "local":
        service = get_backend("local", bake=parsed.bake)
    else:
        service = get_backend(backend)

    editor = PlanEditor(service)
    await editor.select_document(data, bytes_per_page=config.page_count.bytes_per_page)
    editor.set_plan(plan)
    try:
        result = await editor.submit(data)
    except (EmptyPlanError, ServiceError):
        # The editor has already reported it
        return 1

    output = parsed.output or parsed.file.with_name(f"{parsed.file.stem}_rotated.pdf")
    output.write_bytes(result.output)
    logger.info("Rotated PDF written to %s", output)
    return 0


def cmd_rotate(parsed: argparse.Namespace, config: Config) -> int:
    """Apply a rotation plan through a transformation service."""
    plan = parse_rotations(parsed.rotation)
    data = _read_pdf(parsed.file)
    return asyncio.run(_rotate(parsed, config, data, plan))


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="pdft",
        description="Preview and apply per-page rotations to PDF files.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Rotations are given as PAGE[:DEGREES], degrees clockwise (default 90):
  -r 1 -r 3:180 -r 4:270

Examples:
  pdft preview doc.pdf -r 1:90 -r 2:180 -o grid.png   Render the rotation preview
  pdft preview doc.pdf --page 3 -o page3.png          Render one page to fit 800x600
  pdft plan --pages 4 -r 5:90 -r 2 -r 2:180           Show the repaired plan as JSON
  pdft rotate doc.pdf -r 2:90 -o out.pdf              Rotate locally with pypdf
  pdft rotate doc.pdf -r 2:90 --backend http --url http://host/api
""",
    )

    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"pdfturn {__version__}",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        help="Path to YAML configuration file",
    )

    # Logging options
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for verbose, -vv to include render tracing)",
    )

    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Suppress all output except errors",
    )

    parser.add_argument(
        "--log-file",
        type=Path,
        help="Write logs to file (includes all levels)",
    )

    commands = parser.add_subparsers(dest="command")

    rotation_help = "Rotation as PAGE[:DEGREES]; repeat for more pages"

    preview = commands.add_parser("preview", help="Render the rotation preview to an image")
    preview.add_argument("file", type=Path, help="Input PDF file")
    preview.add_argument("-r", "--rotation", action="append", help=rotation_help)
    preview.add_argument(
        "-o", "--output", type=Path, default=Path("preview.png"),
        help="Image file to write (default: preview.png)",
    )
    preview.add_argument(
        "--size",
        type=parse_size,
        default=Size(*DEFAULT_CONTAINER_SIZE),
        help="Container size as WIDTHxHEIGHT (default: %dx%d)" % DEFAULT_CONTAINER_SIZE,
    )
    preview.add_argument(
        "--page",
        type=int,
        help="Render this single page instead of the grid",
    )

    plan = commands.add_parser("plan", help="Validate a rotation plan and print it as JSON")
    plan.add_argument("file", type=Path, nargs="?", help="PDF file to take the page count from")
    plan.add_argument("-r", "--rotation", action="append", help=rotation_help)
    plan.add_argument("--pages", type=int, help="Page count to validate against")
    plan.add_argument("--indent", type=int, default=None, help="Indent the JSON output")

    rotate = commands.add_parser("rotate", help="Rotate pages and write a new PDF")
    rotate.add_argument("file", type=Path, help="Input PDF file")
    rotate.add_argument("-r", "--rotation", action="append", help=rotation_help)
    rotate.add_argument(
        "-o", "--output", type=Path,
        help="Output PDF (default: <file>_rotated.pdf)",
    )
    rotate.add_argument(
        "--backend",
        choices=BACKEND_NAMES,
        help="Transformation backend (overrides config)",
    )
    rotate.add_argument("--url", help="Service base URL for the http backend")
    rotate.add_argument(
        "--bake",
        action="store_true",
        help="With the local backend, rotate page content instead of setting /Rotate",
    )

    return parser


COMMANDS = {
    "preview": cmd_preview,
    "plan": cmd_plan,
    "rotate": cmd_rotate,
}


def main(args: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    # Setup logging based on CLI flags
    from pdfturn.logging_config import setup_logging

    setup_logging(
        verbosity=parsed.verbose,
        quiet=parsed.quiet,
        log_file=parsed.log_file,
    )

    if parsed.command is None:
        parser.print_help()
        return 1

    try:
        config = _load_config(parsed.config)
        return COMMANDS[parsed.command](parsed, config)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        return 1
    except FileNotFoundError as e:
        logger.error("File not found: %s", e)
        return 1
    except (ValueError, PdfTurnError) as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
