"""Object storage access used by CSV import."""
from abc import ABC, abstractmethod

import httpx

from adminrest.config.settings import get_settings
from adminrest.core.exceptions import UpstreamError
from adminrest.core.logging import get_logger

logger = get_logger(__name__)


class ObjectStorage(ABC):
    """Returns the raw bytes of a stored file."""

    @abstractmethod
    async def get_file(self, url: str) -> bytes:
        ...

    async def close(self):
        """Release any held connections."""


class HttpObjectStorage(ObjectStorage):
    """
    Object storage reachable over HTTP(S).

    Works with public buckets and pre-signed URLs of S3, GCS and Azure Blob
    Storage alike.
    """

    def __init__(self, timeout: float | None = None):
        settings = get_settings()
        self.timeout = timeout or settings.object_storage_timeout
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def get_file(self, url: str) -> bytes:
        client = await self._get_client()

        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                "object_storage_fetch_failed",
                url=url,
                status_code=e.response.status_code,
            )
            raise UpstreamError(details={"status_code": e.response.status_code}) from e
        except httpx.HTTPError as e:
            logger.error("object_storage_fetch_failed", url=url, error=str(e))
            raise UpstreamError() from e

        return response.content
