"""Document engines for parsing and rasterizing pages."""

from pdfturn.engine.base import Document, DocumentEngine, Page, Viewport
from pdfturn.engine.pypdf_engine import PypdfEngine, natural_page_size, rasterize_page

__all__ = [
    "Document",
    "DocumentEngine",
    "Page",
    "Viewport",
    "PypdfEngine",
    "natural_page_size",
    "rasterize_page",
]
