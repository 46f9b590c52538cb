"""HashiCorp Vault client used as the participant secret store.

Each participant owns one KV v2 secret keyed by its id; the signing key
lives under ``pkcs8.key``. Use ``is_configured`` to check before calling.
"""

from __future__ import annotations

import logging
from typing import Any

from wizard_core.settings import VaultSettings

logger = logging.getLogger(__name__)

PRIVATE_KEY_NAME = "pkcs8.key"


class VaultClient:
    """Key-value secret store on top of Vault KV v2."""

    def __init__(self, settings: VaultSettings | None = None) -> None:
        self._settings = settings or VaultSettings()
        self._client: Any = None

    @property
    def is_configured(self) -> bool:
        return self._settings.enabled and bool(self._settings.token)

    def _ensure_client(self) -> Any:
        """Lazily initialize hvac client."""
        if self._client is not None:
            return self._client

        if not self.is_configured:
            msg = "Vault not configured (set VAULT_ENABLED=true and VAULT_TOKEN)"
            raise RuntimeError(msg)

        import hvac

        self._client = hvac.Client(
            url=self._settings.addr,
            token=self._settings.token,
        )
        if not self._client.is_authenticated():
            msg = "Vault authentication failed"
            raise RuntimeError(msg)
        logger.info("Connected to Vault at %s", self._settings.addr)

        return self._client

    def read_secret(self, path: str) -> dict[str, Any]:
        """Read a secret from Vault KV v2."""
        client = self._ensure_client()
        response = client.secrets.kv.v2.read_secret_version(
            path=path, mount_point=self._settings.mount_point, raise_on_deleted_version=True
        )
        result: dict[str, Any] = response["data"]["data"]
        return result

    def write_secret(self, path: str, data: dict[str, Any]) -> None:
        """Write a secret to Vault KV v2."""
        client = self._ensure_client()
        client.secrets.kv.v2.create_or_update_secret(path=path, secret=data, mount_point=self._settings.mount_point)

    def get(self, participant_id: str) -> dict[str, Any]:
        """Return the participant's secrets, or an empty mapping when none are stored."""
        import hvac.exceptions

        try:
            return self.read_secret(participant_id)
        except hvac.exceptions.InvalidPath:
            logger.debug("No secrets stored for participant %s", participant_id)
            return {}

    def put(self, participant_id: str, data: dict[str, Any]) -> None:
        """Merge *data* into the participant's secrets."""
        current = self.get(participant_id)
        current.update(data)
        self.write_secret(participant_id, current)
