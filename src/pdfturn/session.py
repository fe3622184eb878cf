"""One document's rotation workflow: load, preview, edit and submit."""

import asyncio

from pdfturn.config import Config
from pdfturn.constants import DEFAULT_CONTAINER_SIZE
from pdfturn.editor import Notifier, PlanEditor, SubmissionResult
from pdfturn.engine import DocumentEngine, PypdfEngine
from pdfturn.exceptions import RenderFailure
from pdfturn.fallback import FallbackView
from pdfturn.geometry import Size
from pdfturn.logging_config import get_logger
from pdfturn.page_count import PageCountOracle
from pdfturn.page_selector import PageSelector
from pdfturn.plan import RotationPlan
from pdfturn.preview import PreviewGrid
from pdfturn.renderer import DocumentHandle, PageRenderer, PixelSurface
from pdfturn.resize import ResizeReactiveController
from pdfturn.services import TransformationService, backend_from_config

logger = get_logger(__name__)


class RotateSession:
    """Ties the renderer, preview grid, page selector and plan editor together.

    Selecting a file resets the plan and resolves the page count; plan
    edits re-derive the grid; container resizes re-render both the grid
    and the single-page view.

    Example:
        async with RotateSession(config) as session:
            await session.open(data)
            session.editor.add_entry()
            await session.refresh()
            image = session.grid.compose()
    """

    def __init__(
        self,
        config: Config | None = None,
        engine: DocumentEngine | None = None,
        service: TransformationService | None = None,
        notifier: Notifier | None = None,
    ):
        self.config = config or Config()
        self.engine = engine or PypdfEngine(self.config.engine)
        self.service = service or backend_from_config(self.config.service)
        self.renderer = PageRenderer(self.engine, self.config.render, self.config.preview)
        self.editor = PlanEditor(self.service, notifier)
        self.grid = PreviewGrid(self.renderer, self.config.preview)
        self.selector = PageSelector(1)
        self.resize = ResizeReactiveController(self._on_resize, self.config.resize)
        self.container = Size(*DEFAULT_CONTAINER_SIZE)
        self.data: bytes | None = None
        self._updates: set[asyncio.Task] = set()
        self._dirty = False
        self._opening = False
        self.editor.subscribe(self._plan_changed)

    @property
    def handle(self) -> DocumentHandle | None:
        return self.renderer.handle

    async def open(self, data: bytes, oracle: PageCountOracle | None = None) -> DocumentHandle | None:
        """
        Select a document.

        Returns:
            The loaded document, or None if it could not be parsed; the
            single-page view then offers the compatibility fallback
        """
        self.data = data
        # The grid is updated once at the end instead of per plan change
        self._opening = True
        try:
            count = await self.editor.select_document(
                data, oracle, bytes_per_page=self.config.page_count.bytes_per_page
            )
            self.selector = PageSelector(count.value, 1, self.editor.plan)

            try:
                handle = await self.renderer.load(data)
            except RenderFailure as e:
                logger.warning("Could not open document for preview: %s", e)
                self.renderer.show_load_failure(1, str(e))
                await self.grid.update(self.editor.plan, None)
                return None

            if not count.authoritative or count.value != handle.total_pages:
                self.editor.set_total_pages(handle.total_pages, authoritative=True)
                self.selector.set_total_pages(handle.total_pages)
        finally:
            self._opening = False
        await self.grid.update(self.editor.plan, handle)
        return handle

    def _plan_changed(self, plan: RotationPlan) -> None:
        self.selector.plan = plan
        if self._opening:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._dirty = True
            return
        task = loop.create_task(self.grid.update(plan, self.handle))
        self._updates.add(task)
        task.add_done_callback(self._updates.discard)

    async def refresh(self) -> None:
        """Wait for pending preview updates, bringing the grid up to date."""
        if self._updates:
            await asyncio.gather(*self._updates)
        if self._dirty:
            self._dirty = False
            await self.grid.update(self.editor.plan, self.handle)

    async def show_page(self, page: int | None = None) -> PixelSurface | FallbackView | None:
        """Render the selected page (or `page`) into the single-page view."""
        if page is not None and not self.selector.go_to(page):
            return None
        handle = self.handle
        if handle is None:
            if self.data is None:
                return None
            return self.renderer.show_load_failure(
                self.selector.current_page, "Document could not be opened"
            )
        return await self.renderer.render_or_fallback(
            handle, self.selector.current_page, self.container
        )

    async def _on_resize(self, size: Size) -> None:
        self.container = size
        await self.grid.resize(size)
        if self.handle is not None:
            await self.show_page()

    async def resize_to(self, size: Size) -> None:
        """Report a container size and wait for the resulting re-render."""
        self.resize.notify(size)
        await self.resize.wait_idle()

    async def submit(self) -> SubmissionResult:
        if self.data is None:
            raise RenderFailure("No document selected")
        await self.refresh()
        return await self.editor.submit(self.data)

    def close(self) -> None:
        self.resize.close()
        for task in self._updates:
            task.cancel()
        self.renderer.close()

    async def __aenter__(self) -> "RotateSession":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
