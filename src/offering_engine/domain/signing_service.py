"""Signing orchestration: external signature, hosting, DID endpoint registration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from wizard_core.exceptions import UpstreamError
from wizard_core.models import SignedOffering

if TYPE_CHECKING:
    import uuid

    from wizard_core.claims import ClaimSet
    from wizard_core.models import Participant, SigningContext
    from wizard_core.settings import WizardSettings
    from wizard_core.signer.client import SignerClient
    from wizard_core.storage.document_host import DocumentHost

logger = logging.getLogger(__name__)

DID_DOCUMENT = "did.json"


def offering_path(participant_id: object, offering_name: str) -> str:
    return f"{participant_id}/{offering_name}.json"


class SigningService:
    def __init__(self, signer: SignerClient, host: DocumentHost, settings: WizardSettings) -> None:
        self._signer = signer
        self._host = host
        self._settings = settings

    async def sign(
        self,
        participant: Participant,
        claims: ClaimSet,
        offering_name: str,
        context: SigningContext,
        offering_url: str,
    ) -> SignedOffering:
        """Sign the claim set and host the signed offering at *offering_url*.

        Raises:
            UpstreamError: ``signing.failed`` when the signer fails, or a host error
        """
        payload = {
            "name": offering_name,
            "participantId": str(participant.id),
            "issuer": participant.did,
            "serviceHostUrl": offering_url,
            "credentialSubject": claims.to_dict(),
            "privateKey": context.private_key,
            "verificationMethod": context.verification_method,
            "participantJsonUrl": context.participant_json_url,
        }
        signed_vc, veracity = await self._signer.sign_service_offer(payload)

        path = self._host.path_for(offering_url)
        if path is None:
            raise UpstreamError("document.host.failed", f"{offering_url} is not hosted here")
        await self._host.host_json(path, signed_vc)
        logger.info("Signed service offering %s for participant %s", offering_name, participant.id)

        if not participant.own_did_solution:
            await self.register_endpoint(participant.id, offering_url)
        return SignedOffering(signed_vc=signed_vc, veracity=veracity)

    async def register_endpoint(self, participant_id: uuid.UUID, offering_url: str) -> None:
        """Add a link-domain service entry to the participant's hosted DID document.

        Failures are logged and swallowed; the signature stays valid without it.
        """
        path = f"{participant_id}/{DID_DOCUMENT}"
        entry = {
            "id": offering_url,
            "type": self._settings.link_domain_type,
            "serviceEndpoint": offering_url,
        }
        try:
            did_document: dict[str, Any] = await self._host.read_json(path)
            services = [s for s in did_document.get("service") or [] if s.get("id") != offering_url]
            services.append(entry)
            did_document["service"] = services
            await self._host.host_json(path, did_document)
        except Exception:
            logger.warning(
                "Failed to register service endpoint %s for participant %s",
                offering_url,
                participant_id,
                exc_info=True,
            )
