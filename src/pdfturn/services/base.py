"""Abstract base class for transformation service backends."""

from abc import ABC, abstractmethod


class TransformationService(ABC):
    """A service that applies a rotation plan to a document.

    Each backend (in-process pypdf, remote HTTP service, mock) implements
    this interface. The plan arrives in wire format, already repaired:
    [{"page": 1, "degrees": 90}, ...] with 1-indexed, unique pages.

    Example:
        service = get_default_backend()
        count = await service.page_count(data)
        rotated = await service.rotate(data, plan.to_wire_format())
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend identifier (e.g., 'local', 'http', 'mock')."""

    @abstractmethod
    async def page_count(self, data: bytes) -> int:
        """Return the authoritative page count of a document.

        Raises:
            ServiceError: If the document cannot be inspected
        """

    @abstractmethod
    async def rotate(self, data: bytes, rotations: list[dict[str, int]]) -> bytes:
        """Apply clockwise rotations and return the resulting document.

        Args:
            data: The whole source document
            rotations: Repaired plan in wire format

        Returns:
            Bytes of the rotated document

        Raises:
            ServiceError: If the rotation fails
        """
