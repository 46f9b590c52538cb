"""Append-only persistence of signed documents as credentials."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from wizard_core.models import Credential

if TYPE_CHECKING:
    import uuid

    from offering_engine.repository.protocols import CredentialRepository
    from wizard_core.enums import CredentialType
    from wizard_core.models import Participant

logger = logging.getLogger(__name__)


class CredentialService:
    def __init__(self, repo: CredentialRepository) -> None:
        self._repo = repo

    async def persist(
        self,
        raw_json: str | dict[str, Any],
        url: str,
        credential_type: CredentialType,
        participant: Participant,
        metadata: dict[str, Any] | None = None,
    ) -> Credential:
        """Store a new credential; existing ones are never updated."""
        vc_json = raw_json if isinstance(raw_json, str) else json.dumps(raw_json)
        credential = Credential(
            vc_url=url,
            vc_json=vc_json,
            credential_type=credential_type,
            participant_id=participant.id,
            metadata=metadata or {},
        )
        saved = await self._repo.create(credential)
        logger.info("Stored %s credential %s at %s", credential_type, saved.id, url)
        return saved

    async def get_by_participant_and_type(
        self, participant_id: uuid.UUID, credential_type: CredentialType
    ) -> Credential | None:
        return await self._repo.get_latest(participant_id, credential_type)
