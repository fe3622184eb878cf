"""Shared fixtures for pdfturn tests."""

import asyncio
import io
import logging
import shutil
import tempfile
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import yaml
from PIL import Image

from pdfturn.engine.base import Document, DocumentEngine, Page, Viewport
from pdfturn.exceptions import RenderFailure
from pdfturn.logging_config import RENDER_LOGGERS


def make_pdf_bytes(sizes):
    """Build a PDF with one blank page per (width, height) in points."""
    from pypdf import PdfWriter

    writer = PdfWriter()
    for width, height in sizes:
        writer.add_blank_page(width=width, height=height)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


# === Logging ===

@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers installed by setup_logging so they never outlive capsys."""
    yield
    logger = logging.getLogger("pdfturn")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    for name in RENDER_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET)


# === Path/Directory Fixtures ===

@pytest.fixture
def temp_dir():
    """Create a temporary directory for test outputs."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


# === PDF Fixtures ===

@pytest.fixture
def pdf_bytes():
    """A single letter-size page."""
    return make_pdf_bytes([(612, 792)])


@pytest.fixture
def multi_page_pdf_bytes():
    """Four pages: three portrait letter pages and one landscape."""
    return make_pdf_bytes([(612, 792), (612, 792), (612, 792), (792, 612)])


@pytest.fixture
def temp_pdf(temp_dir, multi_page_pdf_bytes):
    """The four page PDF written to disk."""
    pdf_path = temp_dir / "test.pdf"
    pdf_path.write_bytes(multi_page_pdf_bytes)
    return pdf_path


# === Mock pypdf PageObject Fixtures ===

@pytest.fixture
def mock_page():
    """Create a mock pypdf PageObject (portrait letter size, no /Rotate)."""
    page = MagicMock()
    cropbox = MagicMock()
    cropbox.width = 612.0
    cropbox.height = 792.0
    page.cropbox = cropbox
    page.rotation = 0
    return page


# === Fake document engine ===

class FakePage(Page):
    """Page whose render can be held open until a test releases it."""

    def __init__(self, engine, number, size):
        self.engine = engine
        self.number = number
        self.size = size

    def get_viewport(self, scale):
        width, height = self.size
        return Viewport(width * scale, height * scale, scale)

    async def render_into(self, surface, viewport):
        self.engine.render_calls.append((self.number, surface.size))
        gate = self.engine.gates.get(self.number)
        if gate is not None:
            await gate.wait()
        delay = self.engine.delays.get(self.number)
        if delay:
            await asyncio.sleep(delay)
        if self.number in self.engine.failing_pages:
            raise RenderFailure(f"Cannot draw page {self.number}")
        surface.paste((40, 40, 40), (0, 0, surface.width, surface.height))


class FakeDocument(Document):
    def __init__(self, engine):
        self.engine = engine
        self.closed = False

    @property
    def page_count(self):
        return len(self.engine.sizes)

    async def get_page(self, number):
        if not 1 <= number <= self.page_count:
            raise RenderFailure(f"Page {number} is out of range")
        return FakePage(self.engine, number, self.engine.sizes[number - 1])

    def close(self):
        self.closed = True


class FakeEngine(DocumentEngine):
    """In-memory engine.

    Attributes:
        sizes: Natural page sizes, one per page
        gates: page -> asyncio.Event a render of that page waits on
        delays: page -> seconds a render of that page sleeps
        failing_pages: pages whose render raises RenderFailure
        fail_parse: make parse() raise RenderFailure
    """

    name = "fake"

    def __init__(self, sizes=None):
        self.sizes = sizes or [(612, 792)]
        self.gates = {}
        self.delays = {}
        self.failing_pages = set()
        self.fail_parse = False
        self.render_calls = []
        self.documents = []

    async def parse(self, data):
        if self.fail_parse:
            raise RenderFailure("Could not read PDF")
        document = FakeDocument(self)
        self.documents.append(document)
        return document


@pytest.fixture
def fake_engine():
    """Fake engine with three letter pages and one landscape page."""
    return FakeEngine([(612, 792), (612, 792), (612, 792), (792, 612)])


@pytest.fixture
def engine_factory():
    """Build a FakeEngine with given page sizes."""
    return FakeEngine


@pytest.fixture
def surface_image():
    """A small rendered page image."""
    return Image.new("RGB", (60, 80), "white")


# === Config Fixtures ===

@pytest.fixture
def full_config_dict():
    """Configuration dictionary with every section set."""
    return {
        "version": 1,
        "preview": {
            "margin": 0.9,
            "quarter_turn_compensation": 0.7,
            "half_turn_compensation": 0.85,
            "cell_aspect": [2, 3],
            "cell_width": 200,
            "columns": 2,
            "gap": 8,
            "dashed_unchanged": False,
        },
        "render": {"timeout": 5, "fallback": False},
        "resize": {"settle_delay": 0.05},
        "engine": {"poppler_path": "/opt/poppler/bin", "max_dpi": 150, "thread_count": 2},
        "service": {"backend": "http", "base_url": "https://pdf.example.com/api/", "timeout": 30},
        "page_count": {"bytes_per_page": 10000},
    }


@pytest.fixture
def full_config_file(temp_dir, full_config_dict):
    """Write the full config to disk."""
    config_path = temp_dir / "config.yaml"
    with open(config_path, "w") as f:
        yaml.dump(full_config_dict, f)
    return config_path
