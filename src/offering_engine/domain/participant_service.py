"""Resolution of the participant issuing a service offering."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from wizard_core.claims import CREDENTIAL_SUBJECT, LEGAL_NAME, get_term, subject_types, verifiable_credentials
from wizard_core.enums import CredentialType, SubjectKind
from wizard_core.exceptions import BadDataError, EntityNotFoundError
from wizard_core.models import Participant

if TYPE_CHECKING:
    import uuid

    from offering_engine.domain.credential_service import CredentialService
    from offering_engine.domain.reference_resolver import ReferenceResolver
    from offering_engine.repository.protocols import ParticipantRepository

logger = logging.getLogger(__name__)

PARTICIPANT_URL_NOT_FOUND = "participant.url.not.found"


def participant_identity(document: Mapping[str, Any]) -> tuple[str, str] | None:
    """DID and legal name of the legal-participant credential in *document*."""
    for credential in verifiable_credentials(document):
        subject = credential.get(CREDENTIAL_SUBJECT)
        if not isinstance(subject, Mapping) or SubjectKind.LEGAL_PARTICIPANT not in subject_types(subject):
            continue
        issuer = credential.get("issuer")
        if isinstance(issuer, Mapping):
            issuer = issuer.get("id")
        if isinstance(issuer, str) and issuer.strip():
            legal_name = get_term(subject, LEGAL_NAME)
            return issuer, legal_name if isinstance(legal_name, str) else ""
    return None


class ParticipantService:
    def __init__(
        self,
        repo: ParticipantRepository,
        credentials: CredentialService,
        resolver: ReferenceResolver,
    ) -> None:
        self._repo = repo
        self._credentials = credentials
        self._resolver = resolver

    async def resolve_registered(self, participant_id: uuid.UUID) -> tuple[Participant, str]:
        """Load a registered participant and check its participant credential is reachable.

        Returns:
            The participant and the URL of its legal-participant credential.
        """
        participant = await self._repo.get_by_id(participant_id)
        if participant is None:
            raise EntityNotFoundError("participant.not.found", f"Participant {participant_id} not found")

        credential = await self._credentials.get_by_participant_and_type(
            participant.id, CredentialType.LEGAL_PARTICIPANT
        )
        if credential is None:
            raise BadDataError(PARTICIPANT_URL_NOT_FOUND, f"Participant {participant_id} has no credential")
        await self._resolver.resolve([credential.vc_url], PARTICIPANT_URL_NOT_FOUND)
        return participant, credential.vc_url

    async def resolve_external(self, participant_json_url: str | None) -> Participant:
        """Find or register the participant described by a self-hosted participant document."""
        if not participant_json_url:
            raise BadDataError(PARTICIPANT_URL_NOT_FOUND, "participantJsonUrl is required")

        [document] = await self._resolver.resolve([participant_json_url], PARTICIPANT_URL_NOT_FOUND)
        identity = participant_identity(document)
        if identity is None:
            raise BadDataError("participant.not.found", f"{participant_json_url} has no legal participant")
        did, legal_name = identity

        participant = await self._repo.get_by_did(did)
        if participant is not None:
            return participant

        logger.info("Registering external participant %s", did)
        return await self._repo.create(Participant(did=did, legal_name=legal_name, own_did_solution=True))
