"""Exception hierarchy for pdfturn.

Every error raised on purpose derives from PdfTurnError and carries:
- `message`: the text a user can be shown as is
- `context`: page numbers, sizes, URLs and the like, appended by str()
"""

from typing import Any


class PdfTurnError(Exception):
    """Base exception for all pdfturn errors.

    Args:
        message: Human-readable error description
        context: Optional dict of contextual information (page, size, url, etc.)
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} [{details}]"


class ConfigError(PdfTurnError):
    """Configuration file is unreadable or holds an invalid value."""


class GeometryError(PdfTurnError):
    """Page or container dimensions cannot produce a finite, positive scale."""


class RenderFailure(PdfTurnError):
    """The document engine could not parse the file or rasterize a page."""


class EmptyPlanError(PdfTurnError):
    """A rotation plan has nothing to submit."""


class ServiceError(PdfTurnError):
    """A transformation service call failed or returned something unusable."""
