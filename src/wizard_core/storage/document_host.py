"""Publicly hosted JSON documents at deterministic URLs."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from wizard_core.exceptions import UpstreamError

if TYPE_CHECKING:
    from wizard_core.storage.base_storage import BaseStorage

logger = logging.getLogger(__name__)


class DocumentHost:
    """Maps storage paths to public URLs under ``base_url``.

    ``{participantId}/{name}.json`` is served at ``{base_url}{participantId}/{name}.json``.
    """

    def __init__(self, storage: BaseStorage, base_url: str) -> None:
        self._storage = storage
        self._base_url = base_url if base_url.endswith("/") else f"{base_url}/"

    @property
    def base_url(self) -> str:
        return self._base_url

    def url_for(self, path: str) -> str:
        return f"{self._base_url}{path.lstrip('/')}"

    def path_for(self, url: str) -> str | None:
        """Inverse of ``url_for``; None for URLs hosted elsewhere."""
        if not url.startswith(self._base_url):
            return None
        return url[len(self._base_url) :]

    async def host_json(self, path: str, document: dict[str, Any]) -> str:
        """Write *document* at *path* (overwriting) and return its public URL."""
        data = json.dumps(document, separators=(",", ":")).encode("utf-8")
        try:
            await self._storage.write(path, data, content_type="application/json")
        except Exception as e:
            logger.error("Failed to host document at %s: %s", path, e)
            raise UpstreamError("document.host.failed", f"Could not host {path}") from e
        url = self.url_for(path)
        logger.debug("Hosted %d bytes at %s", len(data), url)
        return url

    async def exists(self, path: str) -> bool:
        try:
            return await self._storage.exists(path)
        except Exception as e:
            logger.error("Failed to look up hosted document %s: %s", path, e)
            raise UpstreamError("document.host.failed", f"Could not look up {path}") from e

    async def read_json(self, path: str) -> dict[str, Any]:
        """Read a hosted document.

        Raises:
            FileNotFoundError: If nothing is hosted at *path*
        """
        data = await self._storage.read(path)
        document: dict[str, Any] = json.loads(data)
        return document
