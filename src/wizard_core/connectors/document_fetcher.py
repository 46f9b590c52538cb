"""Remote document fetching over HTTP."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx
from pydantic import BaseModel

from wizard_core.exceptions import UpstreamError

logger = logging.getLogger(__name__)


class FetchedDocument(BaseModel):
    url: str
    status_code: int
    text: str

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


class DocumentFetcher:
    """GETs remote credential documents (participants, resources, policies).

    Args:
        timeout: Request timeout in seconds (default: 30)
        client: Optional preconfigured ``httpx.AsyncClient``
    """

    def __init__(self, timeout: float = 30.0, client: httpx.AsyncClient | None = None) -> None:
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={"Accept": "application/json"},
        )

    async def __aenter__(self) -> DocumentFetcher:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def fetch(self, url: str) -> FetchedDocument:
        """Fetch *url* whatever its status.

        Raises:
            UpstreamError: If the request could not be made
        """
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as e:
            logger.warning("Failed to fetch %s: %s", url, e)
            raise UpstreamError("remote.document.unreachable", f"Failed to fetch {url}: {e}") from e
        return FetchedDocument(url=url, status_code=response.status_code, text=response.text)

    async def fetch_text(self, url: str) -> str:
        document = await self.fetch(url)
        if not document.is_success:
            raise UpstreamError(
                "remote.document.unreachable", f"GET {url} returned {document.status_code}"
            )
        return document.text

    async def fetch_json(self, url: str) -> dict[str, Any]:
        """Fetch *url* and decode a JSON object body.

        Raises:
            UpstreamError: On transport errors, non-2xx statuses or non-object bodies
        """
        text = await self.fetch_text(url)
        try:
            body = json.loads(text)
        except ValueError as e:
            raise UpstreamError("remote.document.invalid", f"{url} is not JSON") from e
        if not isinstance(body, dict):
            raise UpstreamError("remote.document.invalid", f"{url} is not a JSON object")
        return body
