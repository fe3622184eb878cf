"""Compatibility-mode presentation for pages the engine cannot rasterize.

When rendering fails the raw document is handed to an external viewer
instead. The bytes are exposed through a temporary file (a BlobHandle),
which must be released when the source document changes or the renderer
is torn down.
"""

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from pdfturn.logging_config import get_logger

logger = get_logger(__name__)

# Viewer hints appended to the file URI
VIEWER_FRAGMENT = "page={page}&view=FitH&toolbar=0&navpanes=0"


class BlobHandle:
    """A temporary file holding document bytes for an external viewer.

    Usage:
        with BlobHandle(data) as blob:
            open_in_viewer(blob.uri)
        # file removed here, even if the viewer raised
    """

    def __init__(self, data: bytes, suffix: str = ".pdf"):
        fd, name = tempfile.mkstemp(prefix="pdfturn-", suffix=suffix)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
        except BaseException:
            Path(name).unlink(missing_ok=True)
            raise
        self.path = Path(name)
        self._released = False
        logger.debug("Created blob handle %s (%d bytes)", self.path, len(data))

    @property
    def released(self) -> bool:
        return self._released

    @property
    def uri(self) -> str:
        if self._released:
            raise ValueError("Blob handle has been released")
        return self.path.as_uri()

    def release(self) -> None:
        """Delete the temporary file. Safe to call more than once."""
        if self._released:
            return
        self._released = True
        self.path.unlink(missing_ok=True)
        logger.debug("Released blob handle %s", self.path)

    def __enter__(self) -> "BlobHandle":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()


@dataclass(frozen=True)
class FallbackView:
    """A degraded preview: the whole document in a viewer, opened at a page.

    The viewer cannot reliably crop to a single page and may show its own
    scrollbars, so the notice must always be displayed with it.
    """

    uri: str
    page_number: int
    reason: str

    @property
    def notice(self) -> str:
        return (
            f"Using compatibility mode for preview. "
            f"Only showing page {self.page_number}."
        )

    @classmethod
    def for_page(cls, blob: BlobHandle, page_number: int, reason: str) -> "FallbackView":
        fragment = VIEWER_FRAGMENT.format(page=page_number)
        return cls(uri=f"{blob.uri}#{fragment}", page_number=page_number, reason=reason)
