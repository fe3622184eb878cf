"""Page count resolution with an estimate when no oracle can answer."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from pdfturn.constants import BYTES_PER_PAGE_ESTIMATE
from pdfturn.logging_config import get_logger

logger = get_logger(__name__)

# Returns the authoritative page count for a document's bytes
PageCountOracle = Callable[[bytes], Awaitable[int]]


@dataclass(frozen=True)
class PageCount:
    """A page count and whether it is known or only estimated."""

    value: int
    authoritative: bool

    def __int__(self) -> int:
        return self.value


def estimate_page_count(size_bytes: int, bytes_per_page: int = BYTES_PER_PAGE_ESTIMATE) -> int:
    """Guess a page count from the file size (at least 1)."""
    return max(1, size_bytes // bytes_per_page)


async def resolve_page_count(
    data: bytes,
    oracle: PageCountOracle | None = None,
    bytes_per_page: int = BYTES_PER_PAGE_ESTIMATE,
) -> PageCount:
    """
    Ask the oracle for the page count, estimating if it is missing or fails.

    Args:
        data: The whole document
        oracle: Optional async callable returning the page count
        bytes_per_page: Divisor for the size-based estimate

    Returns:
        PageCount, authoritative only when the oracle answered
    """
    if oracle is not None:
        try:
            count = await oracle(data)
            if isinstance(count, int) and count >= 1:
                return PageCount(count, authoritative=True)
            logger.warning("Page count service returned an unusable value: %r", count)
        except Exception as e:
            logger.warning("Page count service unavailable, estimating from file size: %s", e)

    estimate = estimate_page_count(len(data), bytes_per_page)
    logger.debug("Estimated %d page(s) from %d bytes", estimate, len(data))
    return PageCount(estimate, authoritative=False)
