"""Service-offering issuance pipeline and offering queries."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from wizard_core.claims import (
    ACCESS_TYPE,
    AGGREGATION_OF,
    CRITERIA,
    DATA_ACCOUNT_EXPORT,
    DATA_PROTECTION_REGIME,
    DEPENDS_ON,
    FORMAT_TYPE,
    POLICY,
    REQUEST_TYPE,
    TERMS_AND_CONDITIONS,
    URL,
    ClaimSet,
    find_subject,
    get_term,
    reference_ids,
)
from wizard_core.enums import RESOURCE_KINDS, SERVICE_KINDS, CredentialType, FilterOperator, OfferColumn
from wizard_core.exceptions import EntityNotFoundError, UpstreamError, WizardError
from wizard_core.models import (
    DataAccountExport,
    FilterCriteria,
    FilterRequest,
    IssuedOffering,
    OfferingDetail,
    Page,
    ServiceOffer,
)

from offering_engine.domain.claim_validator import validate, validate_request
from offering_engine.domain.label_level_service import LabelLevelService
from offering_engine.domain.naming import NameGenerator
from offering_engine.domain.policy_service import PolicyService, custom_attribute
from offering_engine.domain.signing_service import offering_path

if TYPE_CHECKING:
    import uuid

    from wizard_core.connectors.document_fetcher import DocumentFetcher
    from wizard_core.settings import WizardSettings
    from wizard_core.storage.document_host import DocumentHost

    from offering_engine.domain.credential_service import CredentialService
    from offering_engine.domain.participant_service import ParticipantService
    from offering_engine.domain.reference_resolver import ReferenceResolver
    from offering_engine.domain.signing_keys import SigningKeyResolver
    from offering_engine.domain.signing_service import SigningService
    from offering_engine.domain.terms_hasher import TermsHasher
    from offering_engine.repository.protocols import MasterDataRepository, ServiceOfferRepository

logger = logging.getLogger(__name__)

TRUST_INDEX = "trustIndex"
MAX_NAME_ATTEMPTS = 10


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    items = value if isinstance(value, list) else [value]
    return [str(item) for item in items if item is not None]


def protection_regimes(subject: Mapping[str, Any]) -> list[str]:
    return _as_list(get_term(subject, DATA_PROTECTION_REGIME))


def trust_index(veracity_data: str | None) -> float | None:
    """Read the trust index from stored veracity data; None if absent or unreadable."""
    if not veracity_data:
        return None
    try:
        veracity = json.loads(veracity_data)
    except ValueError:
        logger.warning("Stored veracity data is not JSON")
        return None
    value = veracity.get(TRUST_INDEX) if isinstance(veracity, Mapping) else veracity
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def data_account_export(subject: Mapping[str, Any]) -> DataAccountExport | None:
    export = get_term(subject, DATA_ACCOUNT_EXPORT)
    if not isinstance(export, Mapping):
        return None
    request_type = get_term(export, REQUEST_TYPE)
    access_type = get_term(export, ACCESS_TYPE)
    return DataAccountExport(
        request_type=str(request_type) if request_type is not None else None,
        access_type=str(access_type) if access_type is not None else None,
        format_type=set(_as_list(get_term(export, FORMAT_TYPE))),
    )


class ServiceOfferService:
    """Issues service offerings and serves them back.

    Issuance: request check -> claim validation -> reference resolution ->
    participant -> free name -> policy -> signing key -> terms hash -> label
    level -> signature -> credentials and offering. Everything persisted here
    shares the caller's transaction; compliance publishing happens after
    commit, elsewhere. Secrets reach Vault only once all claim checks passed.
    """

    def __init__(
        self,
        *,
        repo: ServiceOfferRepository,
        master_data: MasterDataRepository,
        participants: ParticipantService,
        keys: SigningKeyResolver,
        resolver: ReferenceResolver,
        policies: PolicyService,
        terms: TermsHasher,
        label_levels: LabelLevelService,
        signing: SigningService,
        credentials: CredentialService,
        host: DocumentHost,
        fetcher: DocumentFetcher,
        settings: WizardSettings,
        name_generator: Callable[[], str] | None = None,
    ) -> None:
        self._repo = repo
        self._master_data = master_data
        self._participants = participants
        self._keys = keys
        self._resolver = resolver
        self._policies = policies
        self._terms = terms
        self._label_levels = label_levels
        self._signing = signing
        self._credentials = credentials
        self._host = host
        self._fetcher = fetcher
        self._settings = settings
        self._names = name_generator or NameGenerator()

    async def create(
        self,
        *,
        name: str,
        credential_subject: Mapping[str, Any] | None,
        description: str | None = None,
        participant_id: uuid.UUID | None = None,
        participant_json_url: str | None = None,
        private_key: str | None = None,
        verification_method: str | None = None,
        store_vault: bool = False,
    ) -> IssuedOffering:
        """Run the issuance pipeline for one offering.

        Raises:
            BadDataError: On invalid claims, unresolved references or missing keys
            EntityNotFoundError: If *participant_id* is unknown
            UpstreamError: If the signer or document host fails
        """
        claims = ClaimSet(credential_subject)
        validate_request(name, claims)
        validate(claims)
        await self._resolver.resolve(
            claims.reference_ids(AGGREGATION_OF),
            "aggregation.of.not.found",
            self._settings.aggregation_signature_fields,
        )
        depends_on = claims.reference_ids(DEPENDS_ON)
        if depends_on:
            await self._resolver.resolve(depends_on, "depends.on.not.found")

        if participant_id is not None:
            participant, participant_json_url = await self._participants.resolve_registered(participant_id)
        else:
            participant = await self._participants.resolve_external(participant_json_url)

        offering_name = await self._free_name(participant.id)
        offering_url = self._host.url_for(offering_path(participant.id, offering_name))
        policy_spec = claims.get(POLICY)
        policy = self._policies.synthesize(policy_spec, participant, offering_url, offering_name)

        # Vault writes are outside the transaction; every claim check must pass first
        context = await self._keys.resolve(
            participant,
            participant_json_url,
            private_key=private_key,
            verification_method=verification_method,
            store_vault=store_vault,
        )

        await self._policies.host(policy)
        PolicyService.apply(claims, policy, custom_attribute(policy_spec))

        await self._terms.apply(claims)

        label = None
        if CRITERIA in claims:
            label = await self._label_levels.create_label_level(claims.get(CRITERIA), context, offering_url)
            LabelLevelService.apply(claims, label)

        signed = await self._signing.sign(participant, claims, offering_name, context, offering_url)

        await self._credentials.persist(policy.document, policy.url, CredentialType.ODRL_POLICY, participant)
        credential = await self._credentials.persist(
            signed.signed_vc, offering_url, CredentialType.SERVICE_OFFER, participant
        )

        found = find_subject(signed.signed_vc, SERVICE_KINDS)
        regimes = protection_regimes(found[1]) if found else []
        offer = await self._repo.create(
            ServiceOffer(
                name=name,
                description=description or "",
                participant_id=participant.id,
                credential=credential,
                standard_types=await self._master_data.find_standards_by_type(regimes),
                label_level=label.label_level if label else None,
                veracity_data=json.dumps(signed.veracity) if signed.veracity else None,
            )
        )
        if label is not None:
            await self._label_levels.link(label, participant, offer.id)

        logger.info("Issued service offer %s (%s) at %s", offer.id, offering_name, offering_url)
        return IssuedOffering(
            offer=offer,
            vc_json=[signed.signed_vc],
            compliance_json=signed.signed_vc,
        )

    async def _free_name(self, participant_id: uuid.UUID) -> str:
        """Generate an offering name not yet hosted for this participant."""
        for _ in range(MAX_NAME_ATTEMPTS):
            offering_name = self._names()
            if not await self._host.exists(offering_path(participant_id, offering_name)):
                return offering_name
            logger.info("Offering name %s already hosted for %s, regenerating", offering_name, participant_id)
        raise UpstreamError("offering.name.unavailable", f"No free offering name after {MAX_NAME_ATTEMPTS} attempts")

    async def filter(self, request: FilterRequest, participant_id: uuid.UUID | None = None) -> Page[ServiceOffer]:
        """Page through offerings; a participant id narrows the caller's criteria."""
        criteria = list(request.criteria)
        if participant_id is not None:
            criteria.append(
                FilterCriteria(
                    column=OfferColumn.PARTICIPANT_ID,
                    operator=FilterOperator.CONTAIN,
                    values=[str(participant_id)],
                )
            )
        scoped = request.model_copy(update={"criteria": criteria})
        content, total = await self._repo.filter(scoped)
        return Page[ServiceOffer].of(content, scoped, total)

    async def get_by_id(self, offer_id: uuid.UUID) -> OfferingDetail:
        """Detail view built from the live hosted document, not the stored copy."""
        offer = await self._repo.get_by_id(offer_id)
        if offer is None:
            raise EntityNotFoundError("service.offer.not.found", f"Service offer {offer_id} not found")

        try:
            document = await self._fetcher.fetch_json(offer.vc_url)
        except WizardError as e:
            raise UpstreamError("service.offer.document.unreachable", f"Could not read {offer.vc_url}") from e

        found = find_subject(document, SERVICE_KINDS)
        subject: Mapping[str, Any] = found[1] if found else {}
        terms = get_term(subject, TERMS_AND_CONDITIONS)
        tnc_url = get_term(terms, URL) if isinstance(terms, Mapping) else None

        return OfferingDetail(
            id=offer.id,
            name=offer.name,
            description=offer.description,
            participant_id=offer.participant_id,
            vc_url=offer.vc_url,
            label_level=offer.label_level,
            message_reference_id=offer.message_reference_id,
            created_at=offer.created_at,
            trust_index=trust_index(offer.veracity_data),
            tnc_url=tnc_url if isinstance(tnc_url, str) else None,
            protection_regime=protection_regimes(subject),
            data_account_export=data_account_export(subject),
            locations=await self._policies.locations_in(document),
            resources=await self._resolver.resolve_named(
                reference_ids(get_term(subject, AGGREGATION_OF)), RESOURCE_KINDS
            ),
            depended_services=await self._resolver.resolve_named(
                reference_ids(get_term(subject, DEPENDS_ON)), SERVICE_KINDS
            ),
        )

    async def get_locations(self, offering_url: str) -> list[str]:
        """Names of the subdivisions an offering's policy allows."""
        codes = await self._policies.locations_for(offering_url)
        return await self._master_data.find_subdivision_names(codes)
