"""HTTP client for the external signer service.

The signer owns the cryptography: it receives claims plus key material and
returns signed verifiable-credential documents.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from wizard_core.exceptions import UpstreamError
from wizard_core.settings import SignerSettings

logger = logging.getLogger(__name__)

SERVICE_OFFER_PATH = "/v1/service-offers/sign"
LABEL_LEVEL_PATH = "/v1/label-levels/sign"
TRUST_INDEX = "trustIndex"


def _as_document(value: Any) -> dict[str, Any] | None:
    """Signers return documents either embedded or as JSON strings."""
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError as e:
            raise UpstreamError("signing.failed", "Signer returned an unreadable document") from e
    if not isinstance(value, dict):
        raise UpstreamError("signing.failed", "Signer returned a non-object document")
    return value


def _as_veracity(value: Any) -> dict[str, Any] | None:
    """Veracity data is a document, or a bare trust index wrapped as ``{"trustIndex": n}``."""
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError as e:
            raise UpstreamError("signing.failed", "Signer returned unreadable veracity data") from e
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return {TRUST_INDEX: value}
    return _as_document(value)


class SignerClient:
    """Signer service client.

    Args:
        settings: Signer settings (uses defaults if None)
        client: Optional preconfigured ``httpx.AsyncClient``
    """

    def __init__(self, settings: SignerSettings | None = None, client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings or SignerSettings()
        self._client = client or httpx.AsyncClient(
            base_url=self._settings.url.rstrip("/"),
            timeout=self._settings.timeout,
            headers={"Accept": "application/json"},
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self._client.post(path, json=payload)
        except httpx.HTTPError as e:
            raise UpstreamError("signing.failed", f"Signer unreachable: {e}") from e

        if response.status_code >= 400:
            logger.error("Signer %s returned %d: %s", path, response.status_code, response.text[:500])
            raise UpstreamError("signing.failed", f"Signer returned {response.status_code}")

        try:
            body = response.json()
        except ValueError as e:
            raise UpstreamError("signing.failed", "Signer returned invalid JSON") from e
        if not isinstance(body, dict):
            raise UpstreamError("signing.failed", "Signer returned a non-object response")
        # Some deployments wrap results in {"data": ...}
        data = body.get("data", body)
        return data if isinstance(data, dict) else body

    async def sign_service_offer(self, payload: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any] | None]:
        """Sign a service-offering claim set.

        Returns:
            The signed document and the optional trust/veracity data.
        """
        data = await self._post(SERVICE_OFFER_PATH, payload)
        signed = _as_document(data.get("serviceVc"))
        if signed is None:
            raise UpstreamError("signing.failed", "Signer response has no serviceVc")
        return signed, _as_veracity(data.get(TRUST_INDEX))

    async def sign_label_level(self, payload: dict[str, Any]) -> dict[str, Any] | None:
        """Sign conformity-criteria answers; None when the signer produced nothing."""
        data = await self._post(LABEL_LEVEL_PATH, payload)
        return _as_document(data.get("labelLevelVc"))
