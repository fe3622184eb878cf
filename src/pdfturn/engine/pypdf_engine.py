"""Document engine backed by pypdf (structure) and pdf2image (pixels)."""

import asyncio
import io

from PIL import Image
from pypdf import PageObject, PdfReader

from pdfturn.config import EngineConfig
from pdfturn.engine.base import Document, DocumentEngine, Page, Viewport
from pdfturn.exceptions import RenderFailure
from pdfturn.logging_config import get_logger

logger = get_logger(__name__)

# PDF user space units per inch
POINTS_PER_INCH = 72.0


def natural_page_size(page: PageObject) -> tuple[float, float]:
    """
    Get the displayed size of a page in points.

    Uses the cropbox (the visible area viewers show) and swaps width and
    height when the page carries a quarter-turn /Rotate entry.
    """
    box = page.cropbox
    width = float(box.width)
    height = float(box.height)
    if page.rotation % 180 == 90:
        return height, width
    return width, height


def rasterize_page(
    data: bytes,
    page_number: int,
    size: tuple[int, int],
    dpi: float,
    config: EngineConfig,
) -> Image.Image:
    """
    Rasterize one page of a PDF to a Pillow image of exactly `size`.

    Blocking; call through asyncio.to_thread from async code.

    Raises:
        RenderFailure: If pdf2image or poppler are unavailable or fail
    """
    try:
        from pdf2image import convert_from_bytes
        from pdf2image.exceptions import (
            PDFInfoNotInstalledError,
            PDFPageCountError,
            PDFPopplerTimeoutError,
            PDFSyntaxError,
        )
    except ImportError:
        raise RenderFailure("pdf2image is required for page rendering. Install with: pip install pdf2image")

    try:
        images = convert_from_bytes(
            data,
            dpi=dpi,
            first_page=page_number,
            last_page=page_number,
            size=size,
            use_cropbox=True,
            poppler_path=str(config.poppler_path) if config.poppler_path else None,
            thread_count=config.thread_count,
        )
    except PDFInfoNotInstalledError as e:
        raise RenderFailure(
            "Poppler is not installed or not on PATH",
            context={"poppler_path": config.poppler_path},
        ) from e
    except (PDFPageCountError, PDFSyntaxError, PDFPopplerTimeoutError) as e:
        raise RenderFailure(f"Poppler could not render page: {e}", context={"page": page_number}) from e

    if not images:
        raise RenderFailure("Failed to render page to image", context={"page": page_number})

    image = images[0]
    if image.size != size:
        image = image.resize(size)
    return image


class PypdfPage(Page):
    """A page read with pypdf and drawn with poppler."""

    def __init__(self, document: "PypdfDocument", number: int, page: PageObject):
        self.document = document
        self.number = number
        self._size = natural_page_size(page)

    def get_viewport(self, scale: float) -> Viewport:
        width, height = self._size
        return Viewport(width=width * scale, height=height * scale, scale=scale)

    async def render_into(self, surface: Image.Image, viewport: Viewport) -> None:
        config = self.document.config
        dpi = min(POINTS_PER_INCH * viewport.scale, config.max_dpi)
        logger.debug(
            "Rasterizing page %d at %dx%d (%.1f dpi)",
            self.number, surface.width, surface.height, dpi,
        )
        image = await asyncio.to_thread(
            rasterize_page,
            self.document.data,
            self.number,
            surface.size,
            dpi,
            config,
        )
        surface.paste(image.convert(surface.mode), (0, 0))


class PypdfDocument(Document):
    """A PDF parsed with pypdf. The raw bytes are kept for rasterization."""

    def __init__(self, reader: PdfReader, data: bytes, config: EngineConfig):
        self.reader = reader
        self.data = data
        self.config = config

    @property
    def page_count(self) -> int:
        return len(self.reader.pages)

    async def get_page(self, number: int) -> Page:
        if not 1 <= number <= self.page_count:
            raise RenderFailure(
                f"Page {number} is out of range for {self.page_count} page PDF",
                context={"page": number},
            )
        return PypdfPage(self, number, self.reader.pages[number - 1])

    def close(self) -> None:
        self.reader.stream.close()


class PypdfEngine(DocumentEngine):
    """Engine using pypdf for parsing and pdf2image/poppler for pixels.

    All configuration (poppler location, DPI cap, threads) arrives through
    the EngineConfig given at construction.
    """

    name = "pypdf"

    def __init__(self, config: EngineConfig | None = None):
        self.config = config or EngineConfig()

    async def parse(self, data: bytes) -> Document:
        try:
            reader = await asyncio.to_thread(PdfReader, io.BytesIO(data))
            # Force the page tree to load so corrupt files fail here
            count = len(reader.pages)
        except Exception as e:
            raise RenderFailure(f"Could not read PDF: {e}", context={"bytes": len(data)}) from e

        logger.debug("Parsed document with %d page(s)", count)
        return PypdfDocument(reader, data, self.config)
