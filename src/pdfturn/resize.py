"""Re-render previews when their container changes size.

Size notifications tend to arrive in bursts (one per frame while a window
edge is dragged). The controller waits for the burst to settle, then runs
one render with the latest size. While that render is running, further
notifications only update the pending size; when it completes, a single
follow-up render is started if the size changed.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from pdfturn.config import ResizeConfig
from pdfturn.geometry import Size
from pdfturn.logging_config import get_logger

logger = get_logger(__name__)

RenderCallback = Callable[[Size], Awaitable[Any]]


class ResizeReactiveController:
    """Debounces container size changes into re-renders.

    Example:
        async def rerender(size):
            await renderer.render_or_fallback(handle, page, size)

        controller = ResizeReactiveController(rerender)
        controller.notify(Size(640, 480))  # from the size observer
        await controller.wait_idle()
    """

    def __init__(self, render: RenderCallback, config: ResizeConfig | None = None):
        self._render = render
        self.config = config or ResizeConfig()
        self._latest: Size | None = None
        self._pending: Size | None = None
        self._rendered: Size | None = None
        self._settle_task: asyncio.Task | None = None
        self._render_task: asyncio.Task | None = None
        self._closed = False

    @property
    def current_size(self) -> Size | None:
        """The size most recently rendered for."""
        return self._rendered

    @property
    def busy(self) -> bool:
        return any(
            task is not None and not task.done()
            for task in (self._settle_task, self._render_task)
        )

    def notify(self, size: Size | tuple[float, float]) -> None:
        """Record a new container size; must be called on the event loop."""
        if self._closed:
            return
        if not isinstance(size, Size):
            size = Size(*size)
        if size == self._rendered and not self.busy:
            return

        self._latest = size
        if self._settle_task is not None and not self._settle_task.done():
            self._settle_task.cancel()
        self._settle_task = asyncio.get_running_loop().create_task(self._settle())

    def refresh(self) -> None:
        """Re-render at the last known size (e.g. the displayed page changed)."""
        size = self._latest or self._rendered
        if size is None:
            return
        self._rendered = None
        self.notify(size)

    async def _settle(self) -> None:
        await asyncio.sleep(self.config.settle_delay)
        self._pending = self._latest
        if self._render_task is not None and not self._render_task.done():
            # The running render picks up the pending size when it finishes
            return
        self._render_task = asyncio.get_running_loop().create_task(self._drain())

    async def _drain(self) -> None:
        while self._pending is not None and not self._closed:
            size = self._pending
            self._pending = None
            if size == self._rendered:
                continue
            logger.debug("Container resized to %gx%g, re-rendering", size.width, size.height)
            try:
                await self._render(size)
            except Exception as e:
                logger.error("Re-render after resize failed: %s", e)
            self._rendered = size

    async def wait_idle(self) -> None:
        """Wait until no settle delay or render is outstanding."""
        while self.busy:
            outstanding = {
                task for task in (self._settle_task, self._render_task)
                if task is not None and not task.done()
            }
            await asyncio.wait(outstanding)

    def close(self) -> None:
        """Stop reacting to size changes; an in-flight render may finish."""
        self._closed = True
        if self._settle_task is not None:
            self._settle_task.cancel()
