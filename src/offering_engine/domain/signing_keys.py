"""Signing key material for a participant."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from wizard_core.exceptions import BadDataError, UpstreamError
from wizard_core.models import SigningContext
from wizard_core.vault.client import PRIVATE_KEY_NAME

if TYPE_CHECKING:
    from offering_engine.repository.protocols import ParticipantRepository
    from wizard_core.models import Participant
    from wizard_core.vault.client import VaultClient

logger = logging.getLogger(__name__)


class SigningKeyResolver:
    """Picks the key the signer uses for a participant.

    Participants with ``key_stored`` sign with the key kept in Vault under
    ``pkcs8.key``; everyone else supplies one per request and may ask for it
    to be stored.
    """

    def __init__(self, vault: VaultClient, participants: ParticipantRepository) -> None:
        self._vault = vault
        self._participants = participants

    async def _secrets(self, participant: Participant) -> dict[str, object]:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self._vault.get, str(participant.id))
        except RuntimeError as e:
            raise UpstreamError("secret.store.unavailable", str(e)) from e

    async def resolve(
        self,
        participant: Participant,
        participant_json_url: str | None,
        private_key: str | None = None,
        verification_method: str | None = None,
        store_vault: bool = False,
    ) -> SigningContext:
        """Build the signing context.

        Raises:
            BadDataError: ``private.key.not.found`` when no usable key exists
        """
        if participant.key_stored:
            secrets = await self._secrets(participant)
            stored_key = secrets.get(PRIVATE_KEY_NAME)
            if not isinstance(stored_key, str) or not stored_key:
                raise BadDataError("private.key.not.found", f"No stored key for participant {participant.id}")
            return SigningContext(
                private_key=stored_key,
                verification_method=participant.did,
                participant_json_url=participant_json_url,
            )

        if not private_key:
            raise BadDataError("private.key.not.found", "privateKey is required")

        if store_vault:
            loop = asyncio.get_running_loop()
            try:
                await loop.run_in_executor(
                    None, self._vault.put, str(participant.id), {PRIVATE_KEY_NAME: private_key}
                )
            except RuntimeError as e:
                raise UpstreamError("secret.store.unavailable", str(e)) from e
            participant.key_stored = True
            await self._participants.update(participant)
            logger.info("Stored signing key for participant %s", participant.id)

        return SigningContext(
            private_key=private_key,
            verification_method=verification_method or participant.did,
            participant_json_url=participant_json_url,
        )
