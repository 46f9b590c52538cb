"""ODRL usage policies for service offerings."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from wizard_core.claims import POLICY, ClaimSet, credential_subjects, get_term
from wizard_core.exceptions import BadDataError, WizardError
from wizard_core.models import PolicyDocument

if TYPE_CHECKING:
    from wizard_core.connectors.document_fetcher import DocumentFetcher
    from wizard_core.models import Participant
    from wizard_core.storage.document_host import DocumentHost

logger = logging.getLogger(__name__)

ODRL_CONTEXT = "http://www.w3.org/ns/odrl.jsonld"
ODRL_PROFILE = "http://www.w3.org/ns/odrl/2/odrl.jsonld"
LOCATION_LEFT_OPERAND = "spatial"
LOCATION_OPERATOR = "isAnyOf"
VIEW_ACTION = "view"


def policy_path(participant_id: object, offering_name: str) -> str:
    return f"{participant_id}/{offering_name}_policy.json"


def _location_codes(policy_spec: Any) -> list[str]:
    if not isinstance(policy_spec, Mapping):
        raise BadDataError("invalid.policy", "Policy must be an object")
    location = get_term(policy_spec, "location")
    codes = [location] if isinstance(location, str) else location
    if not isinstance(codes, list) or not codes or not all(isinstance(c, str) and c.strip() for c in codes):
        raise BadDataError("invalid.policy", "Policy location must be a list of subdivision codes")
    return codes


def custom_attribute(policy_spec: Any) -> str | None:
    if not isinstance(policy_spec, Mapping):
        return None
    value = get_term(policy_spec, "customAttribute")
    if isinstance(value, str) and value.strip():
        return value
    return None


def spatial_codes(policy: Mapping[str, Any]) -> list[str]:
    """Right operands of every spatial constraint in an ODRL policy."""
    codes: list[str] = []
    for permission in policy.get("permission") or []:
        if not isinstance(permission, Mapping):
            continue
        for constraint in permission.get("constraint") or []:
            if not isinstance(constraint, Mapping) or constraint.get("leftOperand") != LOCATION_LEFT_OPERAND:
                continue
            operand = constraint.get("rightOperand")
            codes.extend([operand] if isinstance(operand, str) else [c for c in operand or [] if isinstance(c, str)])
    return codes


class PolicyService:
    def __init__(self, host: DocumentHost, fetcher: DocumentFetcher) -> None:
        self._host = host
        self._fetcher = fetcher

    def synthesize(
        self,
        policy_spec: Any,
        participant: Participant,
        offering_url: str,
        offering_name: str,
    ) -> PolicyDocument:
        """Build the ODRL policy restricting the offering to its locations.

        Raises:
            BadDataError: ``invalid.policy`` when the policy claim is malformed
        """
        codes = _location_codes(policy_spec)
        path = policy_path(participant.id, offering_name)
        url = self._host.url_for(path)
        document = {
            "@context": ODRL_CONTEXT,
            "type": "policy",
            "id": url,
            "profile": ODRL_PROFILE,
            "permission": [
                {
                    "target": offering_url,
                    "assigner": participant.did,
                    "action": VIEW_ACTION,
                    "constraint": [
                        {
                            "leftOperand": LOCATION_LEFT_OPERAND,
                            "operator": LOCATION_OPERATOR,
                            "rightOperand": codes,
                        }
                    ],
                }
            ],
        }
        return PolicyDocument(url=url, path=path, document=document)

    async def host(self, policy: PolicyDocument) -> str:
        """Publish the policy, overwriting any previous one at the same path."""
        return await self._host.host_json(policy.path, policy.document)

    @staticmethod
    def apply(claims: ClaimSet, policy: PolicyDocument, attribute: str | None) -> None:
        claims.set(POLICY, [policy.url, attribute] if attribute else [policy.url])

    async def locations_for(self, offering_url: str) -> list[str]:
        """Subdivision codes allowed by the policies of a hosted offering."""
        return await self.locations_in(await self._fetcher.fetch_json(offering_url))

    async def locations_in(self, offering: Mapping[str, Any]) -> list[str]:
        policy_urls: list[str] = []
        for subject in credential_subjects(offering):
            value = get_term(subject, POLICY)
            items = value if isinstance(value, list) else [value]
            policy_urls.extend(v for v in items if isinstance(v, str) and v.startswith(("http://", "https://")))

        codes: list[str] = []
        for url in dict.fromkeys(policy_urls):
            try:
                policy = await self._fetcher.fetch_json(url)
            except WizardError as e:
                logger.warning("Could not read policy %s: %s", url, e)
                continue
            codes.extend(spatial_codes(policy))
        return list(dict.fromkeys(codes))
