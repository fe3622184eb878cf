"""Page rendering: load a document and rasterize pages into pixel surfaces.

Renders are asynchronous and may overlap. Every render targets a named
RenderTarget (one per on-screen slot) and is tagged with that target's
next generation number. When a render finishes, its result is written to
the target only if no newer render for the same target has started in the
meantime; otherwise it is discarded. The superseded work is not
interrupted, only ignored.
"""

import asyncio
from collections.abc import Hashable
from dataclasses import dataclass
from enum import Enum

from PIL import Image

from pdfturn.config import PreviewConfig, RenderConfig
from pdfturn.engine.base import Document, DocumentEngine
from pdfturn.exceptions import GeometryError, RenderFailure
from pdfturn.fallback import BlobHandle, FallbackView
from pdfturn.geometry import Size, ViewportGeometry, viewport_geometry
from pdfturn.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_TARGET = "default"


class TargetState(str, Enum):
    """What a render target is currently showing."""

    IDLE = "idle"  # Nothing requested yet
    LOADING = "loading"  # A render is in flight
    READY = "ready"  # Showing a rendered surface
    FALLBACK = "fallback"  # Showing the compatibility viewer
    FAILED = "failed"  # Showing an error notice


@dataclass
class DocumentHandle:
    """A loaded document and its best-known page count.

    The page count starts as the engine's count, or an estimate supplied by
    the caller, and may be replaced once an authoritative count is known.
    """

    document: Document
    total_pages: int
    authoritative: bool = True
    serial: int = 0
    valid: bool = True

    def update_page_count(self, total_pages: int, authoritative: bool = True) -> None:
        self.total_pages = total_pages
        self.authoritative = authoritative


@dataclass
class PixelSurface:
    """A page rendered at one scale for one container size."""

    image: Image.Image
    page_number: int
    geometry: ViewportGeometry
    container: Size
    generation: int

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height


@dataclass
class RenderTarget:
    """An output slot whose displayed state only the newest render may change."""

    key: Hashable
    generation: int = 0
    state: TargetState = TargetState.IDLE
    surface: PixelSurface | None = None
    fallback: FallbackView | None = None
    error: str | None = None
    page_number: int | None = None

    def begin(self, page_number: int) -> int:
        """Start a new render and return its generation."""
        self.generation += 1
        self.page_number = page_number
        self.state = TargetState.LOADING
        return self.generation

    def is_current(self, generation: int) -> bool:
        return generation == self.generation

    def invalidate(self) -> None:
        """Supersede any in-flight render and clear what is shown."""
        self.generation += 1
        self._discard_surface()
        self.fallback = None
        self.error = None
        self.page_number = None
        self.state = TargetState.IDLE

    def show_surface(self, surface: PixelSurface) -> None:
        self._discard_surface()
        self.surface = surface
        self.fallback = None
        self.error = None
        self.state = TargetState.READY

    def show_fallback(self, view: FallbackView) -> None:
        self._discard_surface()
        self.fallback = view
        self.error = view.reason
        self.state = TargetState.FALLBACK

    def show_error(self, message: str) -> None:
        self._discard_surface()
        self.fallback = None
        self.error = message
        self.state = TargetState.FAILED

    def _discard_surface(self) -> None:
        if self.surface is not None:
            self.surface.image.close()
            self.surface = None


@dataclass
class _Source:
    """Raw bytes of the selected file and the blob exposing them, if any."""

    data: bytes
    serial: int
    blob: BlobHandle | None = None

    def release(self) -> None:
        if self.blob is not None:
            self.blob.release()
            self.blob = None


class PageRenderer:
    """Loads documents and renders their pages into render targets.

    Example:
        renderer = PageRenderer(PypdfEngine())
        handle = await renderer.load(data)
        result = await renderer.render_or_fallback(handle, 1, Size(300, 300))
    """

    def __init__(
        self,
        engine: DocumentEngine,
        config: RenderConfig | None = None,
        preview: PreviewConfig | None = None,
    ):
        self.engine = engine
        self.config = config or RenderConfig()
        self.preview = preview or PreviewConfig()
        self._targets: dict[Hashable, RenderTarget] = {}
        self._handle: DocumentHandle | None = None
        self._source: _Source | None = None
        self._serial = 0

    @property
    def handle(self) -> DocumentHandle | None:
        return self._handle

    def target(self, key: Hashable = DEFAULT_TARGET) -> RenderTarget:
        """Get (creating if needed) the render target named `key`."""
        if key not in self._targets:
            self._targets[key] = RenderTarget(key=key)
        return self._targets[key]

    def drop_target(self, key: Hashable) -> None:
        """Forget a target, discarding whatever it shows."""
        target = self._targets.pop(key, None)
        if target is not None:
            target.invalidate()

    # ------------------------------------------------------------------
    # Document lifecycle
    # ------------------------------------------------------------------

    def _invalidate(self) -> None:
        """Retire the current document, its blob and every target's output."""
        if self._handle is not None:
            self._handle.valid = False
            self._handle.document.close()
            self._handle = None
        if self._source is not None:
            self._source.release()
            self._source = None
        for target in self._targets.values():
            target.invalidate()

    async def load(self, data: bytes, page_count: int | None = None) -> DocumentHandle:
        """
        Select a new file and parse it, replacing any previous document.

        Args:
            data: The whole document
            page_count: Estimated page count to use instead of the engine's;
                marks the handle as non-authoritative

        Returns:
            Handle for the new document

        Raises:
            RenderFailure: If the engine cannot parse the bytes. The bytes
                stay selected so fallback_view() still works.
        """
        self._invalidate()
        self._serial += 1
        serial = self._serial
        self._source = _Source(data=data, serial=serial)

        document = await self.engine.parse(data)
        if serial != self._serial:
            # Another file was selected while this one was parsing
            document.close()
            raise RenderFailure("Document load superseded by a newer selection")

        if page_count is None:
            handle = DocumentHandle(document, document.page_count, True, serial)
        else:
            handle = DocumentHandle(document, page_count, False, serial)
        self._handle = handle
        logger.info("Loaded document: %d page(s)", handle.total_pages)
        return handle

    def close(self) -> None:
        """Tear down: release the document, its blob and all targets."""
        self._invalidate()
        self._targets.clear()

    def __enter__(self) -> "PageRenderer":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    async def _rasterize(
        self,
        handle: DocumentHandle,
        page_number: int,
        container: Size,
        generation: int,
    ) -> PixelSurface:
        page = await handle.document.get_page(page_number)
        natural = page.get_viewport(1.0)
        geometry = viewport_geometry(
            natural.width,
            natural.height,
            container.width,
            container.height,
            margin=self.preview.margin,
        )
        viewport = page.get_viewport(geometry.scale)
        image = Image.new("RGB", geometry.size, "white")
        await page.render_into(image, viewport)
        return PixelSurface(image, page_number, geometry, container, generation)

    async def render(
        self,
        handle: DocumentHandle,
        page_number: int,
        container_size: Size | tuple[float, float],
        target: Hashable = DEFAULT_TARGET,
    ) -> PixelSurface | None:
        """
        Render a page to fit a container and show it on `target`.

        Args:
            handle: Document to render from
            page_number: 1-indexed page
            container_size: Space available for the page, in pixels
            target: Key of the render target to update

        Returns:
            The new surface, or None if a newer render for the same target
            was issued (or the document was replaced) before this one
            finished; a None result has left the target untouched

        Raises:
            GeometryError: If the page or container size is degenerate
            RenderFailure: If the engine fails or the render times out
        """
        if not isinstance(container_size, Size):
            container_size = Size(*container_size)
        if not handle.valid or handle is not self._handle:
            # A replaced document must not supersede renders of the live one
            logger.debug("Ignoring render of page %d from a replaced document", page_number)
            return None
        slot = self.target(target)
        generation = slot.begin(page_number)
        logger.debug(
            "Render #%d of page %d into %s at %gx%g",
            generation, page_number, target, container_size.width, container_size.height,
        )

        try:
            surface = await asyncio.wait_for(
                self._rasterize(handle, page_number, container_size, generation),
                timeout=self.config.timeout,
            )
        except asyncio.TimeoutError:
            if not self._accepts(handle, slot, generation):
                return None
            raise RenderFailure(
                f"Rendering page {page_number} timed out",
                context={"timeout": self.config.timeout},
            )
        except (GeometryError, RenderFailure):
            if not self._accepts(handle, slot, generation):
                return None
            raise

        if not self._accepts(handle, slot, generation):
            logger.debug("Discarding stale render #%d of page %d", generation, page_number)
            surface.image.close()
            return None

        slot.show_surface(surface)
        return surface

    def _accepts(self, handle: DocumentHandle, slot: RenderTarget, generation: int) -> bool:
        return handle.valid and handle is self._handle and slot.is_current(generation)

    async def render_or_fallback(
        self,
        handle: DocumentHandle,
        page_number: int,
        container_size: Size | tuple[float, float],
        target: Hashable = DEFAULT_TARGET,
    ) -> PixelSurface | FallbackView | None:
        """
        Render like render(), but never raise for render problems.

        On GeometryError or RenderFailure the target shows a FallbackView
        (or, with fallback disabled, an error) and that view is returned.
        None still means the request was superseded.
        """
        try:
            return await self.render(handle, page_number, container_size, target)
        except (GeometryError, RenderFailure) as e:
            logger.warning("Could not render page %d: %s", page_number, e)
            return self._fail(target, page_number, str(e))

    def _fail(self, target: Hashable, page_number: int, reason: str) -> FallbackView | None:
        slot = self.target(target)
        if self.config.fallback_enabled and self._source is not None:
            view = self.fallback_view(page_number, reason)
            slot.show_fallback(view)
            return view
        slot.show_error(f"Failed to render page {page_number}: {reason}")
        return None

    def fallback_view(self, page_number: int, reason: str) -> FallbackView:
        """
        Build a compatibility-mode view of the selected file at a page.

        The backing blob is created on first use and reused until the
        selected file changes or the renderer is closed.

        Raises:
            RenderFailure: If no file is selected
        """
        if self._source is None:
            raise RenderFailure("No document selected")
        if self._source.blob is None:
            self._source.blob = BlobHandle(self._source.data)
        logger.info("Showing page %d in compatibility mode", page_number)
        return FallbackView.for_page(self._source.blob, page_number, reason)

    def show_load_failure(
        self,
        page_number: int,
        reason: str,
        target: Hashable = DEFAULT_TARGET,
    ) -> FallbackView | None:
        """Mark `target` as failed after load() raised, offering the fallback."""
        self.target(target).begin(page_number)
        return self._fail(target, page_number, reason)
