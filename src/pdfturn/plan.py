"""Rotation plans: per-page rotation instructions and their repair rules.

A plan may hold out-of-range or duplicate pages while the user is still
editing it. validate_and_repair() is run once before submission to clamp
pages into range and drop all but the last instruction for each page,
reporting every change it makes.
"""

import math
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field, replace
from typing import Any, Literal

from pdfturn.constants import DEFAULT_DEGREES, ROTATE_ANGLES
from pdfturn.exceptions import EmptyPlanError
from pdfturn.logging_config import get_logger
from pdfturn.parsing import ParseFailure, parse_page_number

logger = get_logger(__name__)

EntryField = Literal["page", "degrees"]


@dataclass(frozen=True)
class RotationEntry:
    """Rotate `page` (1-indexed) clockwise by `degrees`."""

    page: int
    degrees: int = DEFAULT_DEGREES

    def __post_init__(self) -> None:
        if self.degrees not in ROTATE_ANGLES:
            raise ValueError(f"Rotation angle must be 0, 90, 180, or 270, got {self.degrees}")

    def to_wire(self) -> dict[str, int]:
        return {"page": self.page, "degrees": self.degrees}


@dataclass(frozen=True)
class RotationPlan:
    """An insertion-ordered sequence of rotation entries.

    Plans are immutable; every edit returns a new plan, so a reader never
    sees a half-applied change.
    """

    entries: tuple[RotationEntry, ...] = ()

    @classmethod
    def default(cls) -> "RotationPlan":
        """The plan a new document starts with: page 1, 90 degrees."""
        return cls((RotationEntry(1, DEFAULT_DEGREES),))

    @classmethod
    def of(cls, entries: Iterable[RotationEntry | tuple[int, int]]) -> "RotationPlan":
        """Build a plan from entries or (page, degrees) pairs."""
        return cls(tuple(
            e if isinstance(e, RotationEntry) else RotationEntry(*e)
            for e in entries
        ))

    @classmethod
    def from_wire_format(cls, items: Iterable[dict[str, Any]]) -> "RotationPlan":
        """Build a plan from [{"page": int, "degrees": int}, ...]."""
        return cls(tuple(RotationEntry(int(i["page"]), int(i["degrees"])) for i in items))

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[RotationEntry]:
        return iter(self.entries)

    def __getitem__(self, index: int) -> RotationEntry:
        return self.entries[index]

    @property
    def pages(self) -> list[int]:
        return [e.page for e in self.entries]

    def rotation_for(self, page: int) -> int:
        """Degrees that will apply to `page` (last instruction wins, 0 if none)."""
        for entry in reversed(self.entries):
            if entry.page == page:
                return entry.degrees
        return 0

    def to_wire_format(self) -> list[dict[str, int]]:
        """Serialize for the transformation service."""
        return [e.to_wire() for e in self.entries]


# ============================================================================
# Corrections reported by the repair pass
# ============================================================================


@dataclass(frozen=True)
class Correction(ABC):
    """Base class for a change made by validate_and_repair()."""

    @property
    @abstractmethod
    def message(self) -> str:
        """Human-readable description of the change."""

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class PageClamped(Correction):
    """An out-of-range page was moved to the nearest valid page."""

    from_page: int
    to_page: int
    total_pages: int = 0

    @property
    def message(self) -> str:
        return (
            f"Page {self.from_page} is outside the document's "
            f"{self.total_pages} page(s) and was changed to page {self.to_page}"
        )


@dataclass(frozen=True)
class DuplicateDropped(Correction):
    """Earlier instructions for a page were discarded in favour of the last."""

    page: int
    dropped: int = 1

    @property
    def message(self) -> str:
        return (
            f"Duplicate instruction for page {self.page} discarded; "
            f"only the last rotation for that page will be applied"
        )


@dataclass
class RepairResult:
    """A repaired plan and the corrections that produced it."""

    plan: RotationPlan
    corrections: list[Correction] = field(default_factory=list)


# ============================================================================
# Plan operations
# ============================================================================


def next_free_page(plan: RotationPlan, total_pages: int) -> int:
    """Lowest page in [1, total_pages] with no entry, or 1 if all are taken."""
    used = set(plan.pages)
    for page in range(1, total_pages + 1):
        if page not in used:
            return page
    return 1


def add_entry(plan: RotationPlan, total_pages: int) -> RotationPlan:
    """Append an entry for the next free page, rotated by the default angle.

    If every page already has an entry the new one targets page 1; the
    duplicate is resolved when the plan is repaired.
    """
    entry = RotationEntry(next_free_page(plan, total_pages), DEFAULT_DEGREES)
    return RotationPlan(plan.entries + (entry,))


def remove_entry(plan: RotationPlan, index: int) -> RotationPlan:
    """Remove the entry at `index`; a plan's last entry is never removed.

    Raises:
        IndexError: If `index` does not address an entry
    """
    if not -len(plan) <= index < len(plan):
        raise IndexError(f"No rotation entry at index {index}")
    if len(plan) <= 1:
        logger.debug("Refusing to remove the only rotation entry")
        return plan
    entries = list(plan.entries)
    del entries[index]
    return RotationPlan(tuple(entries))


def _coerce_page(value: int | float | str) -> int:
    """Floor a page input and clamp it to at least 1.

    Unparseable or non-finite input becomes page 1.
    """
    if isinstance(value, str):
        parsed = parse_page_number(value)
        if isinstance(parsed, ParseFailure):
            return 1
        value = parsed
    if isinstance(value, float) and not math.isfinite(value):
        return 1
    return max(1, math.floor(value))


def update_entry(
    plan: RotationPlan,
    index: int,
    field: EntryField,
    value: int | float | str,
) -> RotationPlan:
    """
    Change one field of the entry at `index`.

    Page values are floored and clamped to at least 1, but not yet to the
    document's page count, so the user can keep typing.

    Raises:
        IndexError: If `index` does not address an entry
        ValueError: For an unknown field or a non-canonical angle
    """
    entry = plan.entries[index]
    if field == "page":
        updated = replace(entry, page=_coerce_page(value))
    elif field == "degrees":
        updated = replace(entry, degrees=int(value))
    else:
        raise ValueError(f"Unknown rotation entry field: {field}")

    entries = list(plan.entries)
    entries[index] = updated
    return RotationPlan(tuple(entries))


def validate_and_repair(plan: RotationPlan, total_pages: int) -> RepairResult:
    """
    Clamp out-of-range pages and drop duplicate instructions.

    Pages are first clamped into [1, total_pages]; then, for every page
    that appears more than once, only its last entry is kept. Surviving
    entries keep their relative order. Running the repair on its own
    output yields the same plan and no corrections.

    Args:
        plan: Plan as configured by the user
        total_pages: Best-known page count of the document

    Returns:
        RepairResult with the repaired plan and one correction per change

    Raises:
        EmptyPlanError: If the plan is empty or the document has no pages
    """
    if total_pages < 1:
        raise EmptyPlanError(
            "Document has no pages to rotate",
            context={"total_pages": total_pages},
        )
    if not plan.entries:
        raise EmptyPlanError("Add at least one rotation instruction before submitting")

    corrections: list[Correction] = []

    clamped: list[RotationEntry] = []
    for entry in plan.entries:
        page = min(max(entry.page, 1), total_pages)
        if page != entry.page:
            corrections.append(PageClamped(entry.page, page, total_pages))
            entry = replace(entry, page=page)
        clamped.append(entry)

    last_index = {entry.page: i for i, entry in enumerate(clamped)}
    dropped: dict[int, int] = {}
    survivors: list[RotationEntry] = []
    for i, entry in enumerate(clamped):
        if last_index[entry.page] == i:
            survivors.append(entry)
        else:
            dropped[entry.page] = dropped.get(entry.page, 0) + 1

    corrections.extend(DuplicateDropped(page, count) for page, count in dropped.items())

    if not survivors:
        raise EmptyPlanError("No rotation instructions remain after repair")

    for correction in corrections:
        logger.debug("Plan repair: %s", correction.message)

    return RepairResult(plan=RotationPlan(tuple(survivors)), corrections=corrections)
