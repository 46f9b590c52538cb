"""Label/level conformity credentials attached to service offerings."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from wizard_core.claims import CRITERIA, LABEL_LEVEL, ClaimSet, credential_subjects, get_term
from wizard_core.enums import CredentialType
from wizard_core.exceptions import LabelLevelMissingError, UpstreamError
from wizard_core.models import LabelLevelCredential, ServiceLabelLevel

if TYPE_CHECKING:
    import uuid

    from offering_engine.domain.credential_service import CredentialService
    from offering_engine.repository.protocols import LabelLevelRepository
    from wizard_core.models import Participant, SigningContext
    from wizard_core.signer.client import SignerClient
    from wizard_core.storage.document_host import DocumentHost

logger = logging.getLogger(__name__)


def label_level_url(offering_url: str) -> str:
    base = offering_url.removesuffix(".json")
    return f"{base}_labelLevel.json"


def read_label_level(document: dict[str, Any]) -> str | None:
    for subject in credential_subjects(document):
        value = get_term(subject, LABEL_LEVEL)
        if value is not None:
            return str(value)
    return None


class LabelLevelService:
    """Signs criteria answers and links the resulting credential to an offering."""

    def __init__(
        self,
        signer: SignerClient,
        host: DocumentHost,
        credentials: CredentialService,
        repo: LabelLevelRepository,
    ) -> None:
        self._signer = signer
        self._host = host
        self._credentials = credentials
        self._repo = repo

    async def create_label_level(
        self,
        criteria: Any,
        context: SigningContext,
        offering_url: str,
    ) -> LabelLevelCredential:
        """Sign and host the label/level credential for *criteria*.

        Raises:
            LabelLevelMissingError: If the signer produced no credential
        """
        payload = {
            "criteria": criteria,
            "privateKey": context.private_key,
            "verificationMethod": context.verification_method,
            "participantJsonUrl": context.participant_json_url,
        }
        document = await self._signer.sign_label_level(payload)
        if document is None:
            raise LabelLevelMissingError(f"No label level credential for {offering_url}")

        url = label_level_url(offering_url)
        path = self._host.path_for(url)
        if path is None:
            raise UpstreamError("document.host.failed", f"{url} is not hosted here")
        await self._host.host_json(path, document)
        return LabelLevelCredential(vc_json=document, vc_url=url, label_level=read_label_level(document))

    @staticmethod
    def apply(claims: ClaimSet, credential: LabelLevelCredential) -> None:
        """Replace the criteria answers with a pointer to the signed credential."""
        claims.pop(CRITERIA)
        claims.set(LABEL_LEVEL, credential.vc_url)

    async def link(
        self,
        credential: LabelLevelCredential,
        participant: Participant,
        service_offer_id: uuid.UUID,
    ) -> ServiceLabelLevel:
        stored = await self._credentials.persist(
            credential.vc_json, credential.vc_url, CredentialType.LABEL_LEVEL, participant
        )
        link = await self._repo.create(
            ServiceLabelLevel(
                service_offer_id=service_offer_id,
                participant_id=participant.id,
                credential_id=stored.id,
            )
        )
        logger.info("Linked label level %s to service offer %s", credential.label_level, service_offer_id)
        return link
