"""Page navigation for the single-page preview."""

from dataclasses import dataclass

from pdfturn.constants import MAX_VISIBLE_PAGE_BUTTONS
from pdfturn.logging_config import get_logger
from pdfturn.parsing import ParseFailure, parse_page_number
from pdfturn.plan import RotationPlan

logger = get_logger(__name__)

ELLIPSIS = "..."


@dataclass(frozen=True)
class PageButton:
    """One entry in the page button strip; page is None for an ellipsis."""

    page: int | None
    is_current: bool = False
    rotated: bool = False

    @property
    def label(self) -> str:
        return ELLIPSIS if self.page is None else str(self.page)


class PageSelector:
    """Tracks the page shown in the preview and builds its button strip.

    Navigation outside [1, total_pages] is ignored rather than clamped, so
    a stray click on a disabled control leaves the selection unchanged.
    """

    def __init__(self, total_pages: int, current_page: int = 1, plan: RotationPlan | None = None):
        self.total_pages = max(1, total_pages)
        self.current_page = current_page if 1 <= current_page <= self.total_pages else 1
        self.plan = plan or RotationPlan()

    @property
    def has_previous(self) -> bool:
        return self.current_page > 1

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages

    def go_to(self, page: int) -> bool:
        """Select a page; returns False (and changes nothing) if out of range."""
        if not 1 <= page <= self.total_pages:
            return False
        self.current_page = page
        return True

    def previous(self) -> bool:
        return self.go_to(self.current_page - 1)

    def next(self) -> bool:
        return self.go_to(self.current_page + 1)

    def jump(self, text: str) -> bool:
        """Select a page typed by the user. Unparseable or out-of-range input is ignored."""
        result = parse_page_number(text)
        if isinstance(result, ParseFailure):
            logger.debug("Ignoring page jump %r: %s", text, result.reason)
            return False
        return self.go_to(result)

    def set_total_pages(self, total_pages: int) -> None:
        """Adopt a new page count, pulling the selection back into range."""
        self.total_pages = max(1, total_pages)
        if self.current_page > self.total_pages:
            self.current_page = self.total_pages

    def current_degrees(self) -> int:
        return self.plan.rotation_for(self.current_page)

    def _button(self, page: int) -> PageButton:
        return PageButton(
            page=page,
            is_current=page == self.current_page,
            rotated=self.plan.rotation_for(page) > 0,
        )

    def visible_pages(self) -> list[int | None]:
        """
        Pages to show as buttons, with None marking a gap.

        Up to MAX_VISIBLE_PAGE_BUTTONS pages are all shown. Beyond that the
        strip has the first page, a window of three around the current page
        and the last page.
        """
        total = self.total_pages
        if total <= MAX_VISIBLE_PAGE_BUTTONS:
            return list(range(1, total + 1))

        start = max(2, self.current_page - 1)
        end = min(total - 1, start + 2)
        # Window touching the last page shifts left to stay three wide
        if end == total - 1:
            start = max(2, end - 2)

        pages: list[int | None] = [1]
        if start > 2:
            pages.append(None)
        pages.extend(range(start, end + 1))
        if end < total - 1:
            pages.append(None)
        pages.append(total)
        return pages

    def buttons(self) -> list[PageButton]:
        return [
            PageButton(None) if page is None else self._button(page)
            for page in self.visible_pages()
        ]
