"""Editing and submitting a rotation plan for one document."""

from collections.abc import Callable
from dataclasses import dataclass, field

from pdfturn.exceptions import EmptyPlanError, ServiceError
from pdfturn.logging_config import get_logger
from pdfturn.page_count import PageCount, PageCountOracle, resolve_page_count
from pdfturn.parsing import ParseFailure, parse_degrees
from pdfturn.plan import (
    Correction,
    DuplicateDropped,
    EntryField,
    PageClamped,
    RotationPlan,
    add_entry,
    remove_entry,
    update_entry,
    validate_and_repair,
)
from pdfturn.services.base import TransformationService

logger = get_logger(__name__)

PlanListener = Callable[[RotationPlan], None]


@dataclass(frozen=True)
class Notice:
    """A message for the user."""

    title: str
    message: str
    level: str = "info"


# Receives every notice the editor raises
Notifier = Callable[[Notice], None]


def log_notice(notice: Notice) -> None:
    """Default notifier: route notices to the log."""
    if notice.level == "error":
        logger.error("%s: %s", notice.title, notice.message)
    elif notice.level == "warning":
        logger.warning("%s: %s", notice.title, notice.message)
    else:
        logger.info("%s: %s", notice.title, notice.message)


def correction_notice(correction: Correction) -> Notice:
    if isinstance(correction, PageClamped):
        title = "Page numbers adjusted"
    elif isinstance(correction, DuplicateDropped):
        title = "Duplicate pages detected"
    else:
        title = "Rotation plan adjusted"
    return Notice(title, correction.message, "warning")


@dataclass
class SubmissionResult:
    """What was sent to the service and what came back."""

    plan: RotationPlan
    output: bytes
    corrections: list[Correction] = field(default_factory=list)


class PlanEditor:
    """Holds the plan being edited and submits it to a transformation service.

    Every edit swaps in a new immutable plan and then tells listeners, so
    the preview always sees a complete plan.
    """

    def __init__(
        self,
        service: TransformationService,
        notifier: Notifier | None = None,
        total_pages: int = 1,
        authoritative: bool = True,
        plan: RotationPlan | None = None,
    ):
        self.service = service
        self.notifier = notifier or log_notice
        self.total_pages = total_pages
        self.authoritative = authoritative
        self._plan = plan if plan is not None else RotationPlan.default()
        self._listeners: list[PlanListener] = []
        self.submitting = False

    @property
    def plan(self) -> RotationPlan:
        return self._plan

    def subscribe(self, listener: PlanListener) -> None:
        self._listeners.append(listener)

    def _set_plan(self, plan: RotationPlan) -> None:
        if plan == self._plan:
            return
        self._plan = plan
        for listener in self._listeners:
            listener(plan)

    def _notify(self, notice: Notice) -> None:
        self.notifier(notice)

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def add_entry(self) -> RotationPlan:
        self._set_plan(add_entry(self._plan, self.total_pages))
        return self._plan

    def remove_entry(self, index: int) -> RotationPlan:
        self._set_plan(remove_entry(self._plan, index))
        return self._plan

    def update_entry(self, index: int, field: EntryField, value: int | float | str) -> RotationPlan:
        self._set_plan(update_entry(self._plan, index, field, value))
        return self._plan

    def set_degrees_text(self, index: int, text: str) -> bool:
        """Set an entry's angle from user text; invalid text leaves the plan alone."""
        degrees = parse_degrees(text)
        if isinstance(degrees, ParseFailure):
            self._notify(Notice("Invalid rotation", str(degrees), "warning"))
            return False
        self.update_entry(index, "degrees", degrees)
        return True

    def set_plan(self, plan: RotationPlan) -> None:
        """Replace the whole plan (e.g. one given on the command line)."""
        self._set_plan(plan)

    def reset(self) -> None:
        """Back to the single default entry, as for a freshly selected file."""
        self._set_plan(RotationPlan.default())

    # ------------------------------------------------------------------
    # Document and page count
    # ------------------------------------------------------------------

    def set_total_pages(self, total_pages: int, authoritative: bool = True) -> list[Correction]:
        """
        Adopt a page count for the current document.

        When an authoritative count replaces an estimate, the plan is
        repaired against it straight away and the corrections are reported,
        so entries the estimate allowed do not linger out of range.

        Returns:
            Corrections applied to the plan (empty when none were needed)
        """
        replacing_estimate = authoritative and not self.authoritative
        self.total_pages = total_pages
        self.authoritative = authoritative
        if not replacing_estimate or not self._plan.entries:
            return []

        logger.debug("Page count confirmed as %d, re-checking plan", total_pages)
        result = validate_and_repair(self._plan, total_pages)
        for correction in result.corrections:
            self._notify(correction_notice(correction))
        self._set_plan(result.plan)
        return result.corrections

    async def select_document(
        self,
        data: bytes,
        oracle: PageCountOracle | None = None,
        bytes_per_page: int | None = None,
    ) -> PageCount:
        """
        Start editing for a newly selected document.

        The page count comes from `oracle` (the service's page count by
        default) or, if that fails, an estimate from the file size.
        """
        if oracle is None:
            oracle = self.service.page_count

        kwargs = {} if bytes_per_page is None else {"bytes_per_page": bytes_per_page}
        count = await resolve_page_count(data, oracle, **kwargs)
        self.total_pages = count.value
        self.authoritative = count.authoritative
        self.reset()
        return count

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit(self, data: bytes) -> SubmissionResult:
        """
        Repair the plan once, report every correction and send it off.

        The repaired plan replaces the edited one, so what the user sees
        matches what was sent.

        Raises:
            EmptyPlanError: If there is nothing to submit
            ServiceError: If the service rejects the request
        """
        if self.submitting:
            raise ServiceError("A submission is already in progress")

        try:
            result = validate_and_repair(self._plan, self.total_pages)
        except EmptyPlanError as e:
            self._notify(Notice("Error", e.message, "error"))
            raise

        for correction in result.corrections:
            self._notify(correction_notice(correction))
        self._set_plan(result.plan)

        wire = result.plan.to_wire_format()
        logger.info("Submitting %d rotation(s) to %s backend", len(wire), self.service.name)
        self.submitting = True
        try:
            output = await self.service.rotate(data, wire)
        except ServiceError as e:
            self._notify(Notice("Error", e.message, "error"))
            raise
        finally:
            self.submitting = False

        self._notify(Notice("Success!", "Your rotated PDF is ready for download."))
        return SubmissionResult(plan=result.plan, output=output, corrections=result.corrections)
