"""Preview grid: one rotated page preview per rotation entry.

Each cell shows its page rendered to fit the cell, rotated about its
centre by the entry's angle and then shrunk by the configured
compensation factor so rotated content stays inside the fixed-aspect
cell. Content that still overflows is clipped at the cell edge.
"""

import asyncio
import math
from dataclasses import dataclass

from PIL import Image, ImageDraw

from pdfturn.config import PreviewConfig
from pdfturn.fallback import FallbackView
from pdfturn.geometry import Size, preview_scale_compensation
from pdfturn.logging_config import get_logger
from pdfturn.plan import RotationEntry, RotationPlan
from pdfturn.renderer import DocumentHandle, PageRenderer, RenderTarget, TargetState

logger = get_logger(__name__)

# (minimum container width, columns), widest first
BREAKPOINTS = ((768, 3), (640, 2))

HEADER_HEIGHT = 24
BORDER_COLOR = (203, 213, 225)
MUTED_COLOR = (148, 163, 184)
TEXT_COLOR = (15, 23, 42)
ACCENT_COLOR = (37, 99, 235)
WARNING_COLOR = (217, 119, 6)
HEADER_FILL = (241, 245, 249)

EMPTY_MESSAGE = "No pages configured for rotation"
CAPTION = "These previews show how your pages will appear after applying the rotations"
UNCHANGED_NOTE = " (pages with 0° rotation will remain unchanged)"

# Clockwise angle -> Pillow transpose (Pillow's ROTATE_* turn counter-clockwise)
_TRANSPOSE = {
    90: Image.Transpose.ROTATE_270,
    180: Image.Transpose.ROTATE_180,
    270: Image.Transpose.ROTATE_90,
}


@dataclass(frozen=True)
class GridLayout:
    """Cell sizes and positions for a grid at one container width."""

    columns: int
    cell_width: int
    cell_height: int
    gap: int
    header_height: int = HEADER_HEIGHT

    @property
    def content_size(self) -> Size:
        """Space for the page itself, below the cell header."""
        return Size(self.cell_width, self.cell_height - self.header_height)

    def origin(self, index: int) -> tuple[int, int]:
        row, column = divmod(index, self.columns)
        return (
            column * (self.cell_width + self.gap),
            row * (self.cell_height + self.gap),
        )

    def canvas_size(self, count: int) -> tuple[int, int]:
        rows = max(1, math.ceil(count / self.columns))
        columns = min(max(count, 1), self.columns)
        return (
            columns * self.cell_width + (columns - 1) * self.gap,
            rows * self.cell_height + (rows - 1) * self.gap,
        )


def grid_layout(container_width: float | None, config: PreviewConfig) -> GridLayout:
    """
    Lay out cells for a container width.

    Narrow containers drop to two or one column; the cell width then fills
    the row. With no width known, cells use the configured width.
    """
    if container_width is None:
        columns = config.columns
        cell_width, cell_height = config.cell_size
    else:
        columns = 1
        for min_width, breakpoint_columns in BREAKPOINTS:
            if container_width >= min_width:
                columns = breakpoint_columns
                break
        columns = min(columns, config.columns)
        cell_width = max(math.floor((container_width - config.gap * (columns - 1)) / columns), 16)
        aspect_w, aspect_h = config.cell_aspect
        cell_height = round(cell_width * aspect_h / aspect_w)
    cell_height = max(cell_height, HEADER_HEIGHT + 16)
    return GridLayout(columns, cell_width, cell_height, config.gap)


@dataclass
class PreviewCell:
    """One grid cell: a plan entry and the render target showing its page."""

    index: int
    entry: RotationEntry
    target: RenderTarget
    compensation: float
    dashed: bool

    @property
    def page(self) -> int:
        return self.entry.page

    @property
    def degrees(self) -> int:
        return self.entry.degrees

    @property
    def title(self) -> str:
        return f"Page {self.page}"

    @property
    def status(self) -> str:
        return "No rotation" if self.degrees == 0 else f"{self.degrees}°"


def page_target_key(page: int) -> tuple[str, int]:
    """Render target key for a page; cells showing the same page share it."""
    return ("page", page)


def transform_surface(
    image: Image.Image,
    degrees: int,
    compensation: float,
    cell: Size,
) -> tuple[Image.Image, tuple[int, int]]:
    """
    Rotate a rendered page clockwise about its centre and scale it.

    Returns:
        The transformed image and the offset that centres it in `cell`
        (negative offsets mean it overflows and will be clipped)
    """
    if degrees in _TRANSPOSE:
        image = image.transpose(_TRANSPOSE[degrees])
    width = max(1, round(image.width * compensation))
    height = max(1, round(image.height * compensation))
    image = image.resize((width, height))
    offset = (
        round((cell.width - width) / 2),
        round((cell.height - height) / 2),
    )
    return image, offset


def draw_dashed_rectangle(
    draw: ImageDraw.ImageDraw,
    box: tuple[int, int, int, int],
    fill: tuple[int, int, int],
    dash: int = 6,
) -> None:
    """Draw a rectangle outline as dashes."""
    left, top, right, bottom = box
    for x in range(left, right, dash * 2):
        draw.line([(x, top), (min(x + dash, right), top)], fill=fill)
        draw.line([(x, bottom), (min(x + dash, right), bottom)], fill=fill)
    for y in range(top, bottom, dash * 2):
        draw.line([(left, y), (left, min(y + dash, bottom))], fill=fill)
        draw.line([(right, y), (right, min(y + dash, bottom))], fill=fill)


def _wrap(text: str, width: int) -> list[str]:
    """Greedy word wrap by character count."""
    lines: list[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}".strip()
        if len(candidate) > width and current:
            lines.append(current)
            current = word
        else:
            current = candidate
    if current:
        lines.append(current)
    return lines


class PreviewGrid:
    """Renders a rotation plan as a grid of rotated page previews.

    Cells whose page is outside the document's known page range are left
    out rather than reported; the plan is only repaired at submission.
    """

    def __init__(
        self,
        renderer: PageRenderer,
        config: PreviewConfig | None = None,
        container_width: float | None = None,
    ):
        self.renderer = renderer
        self.config = config or renderer.preview
        self.layout = grid_layout(container_width, self.config)
        self._plan = RotationPlan()
        self._handle: DocumentHandle | None = None
        self._cells: list[PreviewCell] = []

    @property
    def cells(self) -> list[PreviewCell]:
        return list(self._cells)

    def derive_cells(self, plan: RotationPlan, total_pages: int) -> list[PreviewCell]:
        """Build cells for every plan entry whose page is in [1, total_pages]."""
        cells = []
        for index, entry in enumerate(plan):
            if not 1 <= entry.page <= total_pages:
                logger.debug("Skipping preview for out-of-range page %d", entry.page)
                continue
            cells.append(PreviewCell(
                index=index,
                entry=entry,
                target=self.renderer.target(page_target_key(entry.page)),
                compensation=preview_scale_compensation(entry.degrees, self.config),
                dashed=self.config.dashed_unchanged and entry.degrees == 0,
            ))
        return cells

    def _needs_render(self, target: RenderTarget, page: int) -> bool:
        surface = target.surface
        if target.state != TargetState.READY or surface is None:
            return True
        return surface.page_number != page or surface.container != self.layout.content_size

    async def _render_pages(self) -> None:
        if self._handle is None:
            return
        handle = self._handle
        pages = sorted({cell.page for cell in self._cells})
        jobs = [
            self.renderer.render_or_fallback(
                handle, page, self.layout.content_size, target=page_target_key(page)
            )
            for page in pages
            if self._needs_render(self.renderer.target(page_target_key(page)), page)
        ]
        if jobs:
            logger.debug("Rendering %d preview page(s)", len(jobs))
            await asyncio.gather(*jobs)

    def _drop_unused_targets(self, old_pages: set[int]) -> None:
        for page in old_pages - {cell.page for cell in self._cells}:
            self.renderer.drop_target(page_target_key(page))

    async def update(self, plan: RotationPlan, handle: DocumentHandle | None) -> list[PreviewCell]:
        """Re-derive cells for a new plan or document and render new pages."""
        old_pages = {cell.page for cell in self._cells}
        self._plan = plan
        self._handle = handle
        total = handle.total_pages if handle is not None else 0
        self._cells = self.derive_cells(plan, total)
        self._drop_unused_targets(old_pages)
        await self._render_pages()
        return self.cells

    async def resize(self, container: Size) -> None:
        """Re-lay out for a new container width and re-render at the new cell size."""
        layout = grid_layout(container.width, self.config)
        if layout == self.layout:
            return
        self.layout = layout
        await self._render_pages()

    # ------------------------------------------------------------------
    # Composition
    # ------------------------------------------------------------------

    def caption(self) -> str:
        if not self._cells:
            return ""
        if any(cell.degrees == 0 for cell in self._cells):
            return CAPTION + UNCHANGED_NOTE
        return CAPTION

    def _draw_cell(self, canvas: Image.Image, cell: PreviewCell, origin: tuple[int, int]) -> None:
        layout = self.layout
        x, y = origin
        draw = ImageDraw.Draw(canvas)
        box = (x, y, x + layout.cell_width - 1, y + layout.cell_height - 1)

        draw.rectangle((x, y, box[2], y + layout.header_height), fill=HEADER_FILL)
        draw.text((x + 8, y + 6), cell.title, fill=TEXT_COLOR)
        status_color = MUTED_COLOR if cell.degrees == 0 else ACCENT_COLOR
        status_width = draw.textlength(cell.status)
        draw.text((box[2] - 8 - status_width, y + 6), cell.status, fill=status_color)

        content = layout.content_size
        frame = Image.new("RGB", (int(content.width), int(content.height)), "white")
        target = cell.target

        if target.state == TargetState.READY and target.surface is not None:
            image, offset = transform_surface(
                target.surface.image, cell.degrees, cell.compensation, content
            )
            frame.paste(image, offset)
        elif target.state == TargetState.FALLBACK and target.fallback is not None:
            self._draw_notice(frame, target.fallback)
        elif target.state == TargetState.FAILED:
            self._draw_message(frame, target.error or "Failed to render page", WARNING_COLOR)
        else:
            self._draw_message(frame, f"Loading page {cell.page}...", MUTED_COLOR)

        canvas.paste(frame, (x, y + layout.header_height))

        if cell.dashed:
            draw_dashed_rectangle(draw, box, MUTED_COLOR)
        else:
            draw.rectangle(box, outline=BORDER_COLOR)

    def _draw_notice(self, frame: Image.Image, view: FallbackView) -> None:
        self._draw_message(frame, view.notice, WARNING_COLOR)

    def _draw_message(self, frame: Image.Image, text: str, color: tuple[int, int, int]) -> None:
        draw = ImageDraw.Draw(frame)
        lines = _wrap(text, max(8, frame.width // 7))
        line_height = 14
        top = (frame.height - line_height * len(lines)) // 2
        for i, line in enumerate(lines):
            width = draw.textlength(line)
            draw.text(((frame.width - width) / 2, top + i * line_height), line, fill=color)

    def compose(self) -> Image.Image:
        """Draw the grid as it currently stands into a single image."""
        if not self._cells:
            canvas = Image.new("RGB", (self.layout.cell_width * 2, 256), "white")
            draw = ImageDraw.Draw(canvas)
            draw_dashed_rectangle(draw, (0, 0, canvas.width - 1, canvas.height - 1), MUTED_COLOR)
            self._draw_message(canvas, EMPTY_MESSAGE, MUTED_COLOR)
            return canvas

        canvas = Image.new("RGB", self.layout.canvas_size(len(self._cells)), "white")
        for position, cell in enumerate(self._cells):
            self._draw_cell(canvas, cell, self.layout.origin(position))
        return canvas
