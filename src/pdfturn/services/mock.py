"""Mock transformation service for testing."""

from pdfturn.exceptions import ServiceError
from pdfturn.services.base import TransformationService


class MockBackend(TransformationService):
    """Mock backend that records calls instead of transforming documents.

    Example:
        backend = MockBackend(pages=4)
        await backend.rotate(data, [{"page": 1, "degrees": 90}])
        assert backend.rotate_calls[0]["rotations"][0]["page"] == 1
    """

    name = "mock"

    def __init__(self, pages: int | None = 1, fail: bool = False, result: bytes = b"%PDF-mock"):
        """Initialize mock backend.

        Args:
            pages: Page count to report; None makes page_count() fail
            fail: If True, rotate() raises ServiceError
            result: Bytes returned from rotate()
        """
        self.pages = pages
        self.fail = fail
        self.result = result
        self.rotate_calls: list[dict] = []
        self.page_count_calls = 0

    async def page_count(self, data: bytes) -> int:
        self.page_count_calls += 1
        if self.pages is None:
            raise ServiceError("Page count unavailable")
        return self.pages

    async def rotate(self, data: bytes, rotations: list[dict[str, int]]) -> bytes:
        self.rotate_calls.append({"size": len(data), "rotations": [dict(r) for r in rotations]})
        if self.fail:
            raise ServiceError("Mock rotation failure")
        return self.result

    def reset(self) -> None:
        """Clear recorded calls."""
        self.rotate_calls.clear()
        self.page_count_calls = 0
