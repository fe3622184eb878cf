"""Abstract document engine interface.

The renderer only talks to these classes, so any library that can parse a
document, report page sizes and rasterize a page can back the preview.

Example:
    engine = PypdfEngine(EngineConfig())
    document = await engine.parse(data)
    page = await document.get_page(1)
    viewport = page.get_viewport(0.5)
    surface = Image.new("RGB", (int(viewport.width), int(viewport.height)))
    await page.render_into(surface, viewport)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from PIL import Image


@dataclass(frozen=True)
class Viewport:
    """Size of a page at a given scale (scale 1.0 is the natural size)."""

    width: float
    height: float
    scale: float = 1.0


class Page(ABC):
    """A single page of a parsed document."""

    number: int

    @abstractmethod
    def get_viewport(self, scale: float) -> Viewport:
        """Return the page's size at `scale`, honouring its own /Rotate."""

    @abstractmethod
    async def render_into(self, surface: Image.Image, viewport: Viewport) -> None:
        """Rasterize the page onto `surface`, which is sized to `viewport`.

        Raises:
            RenderFailure: If the page cannot be rasterized
        """


class Document(ABC):
    """A parsed document. Read-only once loaded."""

    @property
    @abstractmethod
    def page_count(self) -> int:
        """Number of pages in the document."""

    @abstractmethod
    async def get_page(self, number: int) -> Page:
        """Return page `number` (1-indexed).

        Raises:
            RenderFailure: If the page does not exist or cannot be read
        """

    def close(self) -> None:
        """Release engine resources held for this document."""


class DocumentEngine(ABC):
    """Parses raw document bytes into Documents."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Engine identifier (e.g., 'pypdf')."""

    @abstractmethod
    async def parse(self, data: bytes) -> Document:
        """Parse a whole document.

        Raises:
            RenderFailure: If the bytes are not a document this engine accepts
        """
