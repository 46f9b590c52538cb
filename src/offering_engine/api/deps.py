"""FastAPI dependency injection."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from offering_engine.domain.compliance_publisher import CompliancePublisher
from offering_engine.domain.credential_service import CredentialService
from offering_engine.domain.label_level_service import LabelLevelService
from offering_engine.domain.participant_service import ParticipantService
from offering_engine.domain.policy_service import PolicyService
from offering_engine.domain.reference_resolver import ReferenceResolver
from offering_engine.domain.service_offer_service import ServiceOfferService
from offering_engine.domain.signing_keys import SigningKeyResolver
from offering_engine.domain.signing_service import SigningService
from offering_engine.domain.terms_hasher import TermsHasher
from offering_engine.repository.postgres import (
    PgCredentialRepository,
    PgLabelLevelRepository,
    PgMasterDataRepository,
    PgParticipantRepository,
    PgServiceOfferRepository,
)


async def get_session(request: Request) -> AsyncGenerator[AsyncSession]:
    session_factory = request.app.state.session_factory
    async with session_factory() as session, session.begin():
        yield session


SessionDep = Annotated[AsyncSession, Depends(get_session)]


def get_reference_resolver(request: Request) -> ReferenceResolver:
    return ReferenceResolver(request.app.state.document_fetcher)


def get_credential_service(session: SessionDep) -> CredentialService:
    return CredentialService(repo=PgCredentialRepository(session))


def get_participant_service(
    session: SessionDep,
    credentials: Annotated[CredentialService, Depends(get_credential_service)],
    resolver: Annotated[ReferenceResolver, Depends(get_reference_resolver)],
) -> ParticipantService:
    return ParticipantService(repo=PgParticipantRepository(session), credentials=credentials, resolver=resolver)


def get_service_offer_service(
    request: Request,
    session: SessionDep,
    credentials: Annotated[CredentialService, Depends(get_credential_service)],
    resolver: Annotated[ReferenceResolver, Depends(get_reference_resolver)],
    participants: Annotated[ParticipantService, Depends(get_participant_service)],
) -> ServiceOfferService:
    state = request.app.state
    return ServiceOfferService(
        repo=PgServiceOfferRepository(session),
        master_data=PgMasterDataRepository(session),
        participants=participants,
        keys=SigningKeyResolver(state.vault, PgParticipantRepository(session)),
        resolver=resolver,
        policies=PolicyService(state.document_host, state.document_fetcher),
        terms=TermsHasher(state.document_fetcher),
        label_levels=LabelLevelService(
            state.signer, state.document_host, credentials, PgLabelLevelRepository(session)
        ),
        signing=SigningService(state.signer, state.document_host, state.wizard_settings),
        credentials=credentials,
        host=state.document_host,
        fetcher=state.document_fetcher,
        settings=state.wizard_settings,
        name_generator=state.name_generator,
    )


def get_compliance_publisher(request: Request) -> CompliancePublisher:
    publisher: CompliancePublisher = request.app.state.compliance_publisher
    return publisher


ServiceOfferServiceDep = Annotated[ServiceOfferService, Depends(get_service_offer_service)]
CompliancePublisherDep = Annotated[CompliancePublisher, Depends(get_compliance_publisher)]
