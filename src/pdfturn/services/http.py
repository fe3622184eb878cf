"""Remote transformation backend speaking multipart HTTP."""

import json

import httpx

from pdfturn.exceptions import ServiceError
from pdfturn.logging_config import get_logger
from pdfturn.services.base import TransformationService

logger = get_logger(__name__)


class HttpBackend(TransformationService):
    """Posts documents to a remote transformation service.

    Endpoints, relative to base_url:
        POST /pdf/rotate  form fields `file` and `rotations` (JSON) -> PDF bytes
        POST /pdf/info    form field `file` -> {"pageCount": n}
    """

    name = "http"

    def __init__(
        self,
        base_url: str,
        timeout: float = 60.0,
        filename: str = "document.pdf",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.filename = filename
        self.transport = transport

    async def _post(self, path: str, data: bytes, fields: dict[str, str] | None = None) -> httpx.Response:
        url = f"{self.base_url}{path}"
        files = {"file": (self.filename, data, "application/pdf")}
        logger.debug("POST %s (%d bytes)", url, len(data))
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(url, data=fields, files=files)
                response.raise_for_status()
                return response
        except httpx.HTTPStatusError as e:
            detail = _error_message(e.response.content)
            raise ServiceError(
                f"Service returned HTTP {e.response.status_code}: {detail}",
                context={"url": url},
            ) from e
        except httpx.TimeoutException as e:
            raise ServiceError(
                "Service timed out",
                context={"url": url, "timeout": self.timeout},
            ) from e
        except httpx.RequestError as e:
            raise ServiceError(f"Could not reach service: {e}", context={"url": url}) from e

    async def page_count(self, data: bytes) -> int:
        response = await self._post("/pdf/info", data)
        try:
            count = response.json()["pageCount"]
        except (ValueError, KeyError, TypeError) as e:
            raise ServiceError("Service returned no page count") from e
        if not isinstance(count, int) or count < 1:
            raise ServiceError(f"Service returned invalid page count: {count!r}")
        return count

    async def rotate(self, data: bytes, rotations: list[dict[str, int]]) -> bytes:
        response = await self._post("/pdf/rotate", data, {"rotations": json.dumps(rotations)})
        payload = response.content
        content_type = response.headers.get("content-type", "")
        if not content_type.startswith("application/pdf") and not payload.startswith(b"%PDF"):
            raise ServiceError(_error_message(payload) or "Error rotating PDF pages")
        return payload


def _error_message(payload: bytes) -> str:
    """Pull a message out of an error body (JSON {"message": ...} or text)."""
    text = payload.decode("utf-8", errors="replace").strip()
    try:
        data = json.loads(text)
    except ValueError:
        return text
    if isinstance(data, dict) and "message" in data:
        return str(data["message"])
    return text
