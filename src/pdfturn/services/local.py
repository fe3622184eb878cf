"""In-process transformation backend using pypdf."""

import asyncio
import io

from pypdf import PageObject, PdfReader, PdfWriter, Transformation

from pdfturn.exceptions import ServiceError
from pdfturn.logging_config import get_logger
from pdfturn.services.base import TransformationService

logger = get_logger(__name__)


def bake_rotation(page: PageObject, degrees: int) -> PageObject:
    """
    Rotate a page's content clockwise and drop its /Rotate flag.

    The displayed orientation (existing /Rotate plus `degrees`) is baked
    into the content stream, so tools that ignore /Rotate see the same page
    a viewer does.

    Returns:
        The rotated page (mutates in place and returns)
    """
    total = (page.rotation + degrees) % 360
    if "/Rotate" in page:
        del page["/Rotate"]
    if total == 0:
        return page

    box = page.mediabox
    llx, lly = float(box.left), float(box.bottom)
    width, height = float(box.width), float(box.height)

    # Transformation.rotate() turns counter-clockwise around the origin;
    # the translation moves the result back into the positive quadrant
    if total == 90:
        ccw, tx, ty = 270, 0, width
        new_width, new_height = height, width
    elif total == 180:
        ccw, tx, ty = 180, width, height
        new_width, new_height = width, height
    else:
        ccw, tx, ty = 90, height, 0
        new_width, new_height = height, width

    transform = (
        Transformation()
        .translate(tx=-llx, ty=-lly)
        .rotate(ccw)
        .translate(tx=tx, ty=ty)
    )
    page.add_transformation(transform)

    page.mediabox.lower_left = (0, 0)
    page.mediabox.upper_right = (new_width, new_height)
    page.cropbox = page.mediabox
    return page


class LocalBackend(TransformationService):
    """Applies rotation plans with pypdf, without a network round trip.

    By default pages get a /Rotate flag, as a viewer-level rotation. With
    bake=True the rotation is applied to the page content instead. pypdf
    work runs in a worker thread.
    """

    name = "local"

    def __init__(self, bake: bool = False):
        self.bake = bake

    def _read(self, data: bytes) -> PdfReader:
        try:
            return PdfReader(io.BytesIO(data))
        except Exception as e:
            raise ServiceError(f"Could not read PDF: {e}") from e

    async def page_count(self, data: bytes) -> int:
        reader = await asyncio.to_thread(self._read, data)
        return len(reader.pages)

    async def rotate(self, data: bytes, rotations: list[dict[str, int]]) -> bytes:
        return await asyncio.to_thread(self._rotate_pages, data, rotations)

    def _rotate_pages(self, data: bytes, rotations: list[dict[str, int]]) -> bytes:
        reader = self._read(data)
        total = len(reader.pages)

        writer = PdfWriter()
        for page in reader.pages:
            writer.add_page(page)

        for item in rotations:
            page_number, degrees = item["page"], item["degrees"]
            if not 1 <= page_number <= total:
                raise ServiceError(
                    f"Page {page_number} is out of range for {total} page PDF",
                    context={"page": page_number},
                )
            page = writer.pages[page_number - 1]
            if self.bake:
                bake_rotation(page, degrees)
            elif degrees:
                page.rotate(degrees)
            logger.debug("Rotated page %d by %d degrees", page_number, degrees)

        output = io.BytesIO()
        writer.write(output)
        logger.info("Rotated %d page(s) of %d", len(rotations), total)
        return output.getvalue()
