"""Service offering endpoints: /api/v1/service-offers."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, BackgroundTasks, HTTPException
from wizard_core.exceptions import EntityNotFoundError, UpstreamError, WizardError
from wizard_core.models import IssuedOffering

from offering_engine.api.deps import CompliancePublisherDep, ServiceOfferServiceDep, SessionDep
from offering_engine.api.schemas import (
    CreateServiceOfferRequest,
    FilterServiceOffersRequest,
    LocationRequest,
    LocationResponse,
    ServiceOfferDetailResponse,
    ServiceOfferPageResponse,
    ServiceOfferResponse,
    ServiceOfferSummaryResponse,
)

router = APIRouter(prefix="/api/v1", tags=["service-offers"])

_ERROR_RESPONSES: dict[int | str, dict[str, str]] = {
    400: {"description": "Invalid claims or request"},
    404: {"description": "Participant or service offer not found"},
    502: {"description": "Signer, document host or remote document failed"},
}


def _http_error(e: WizardError) -> HTTPException:
    if isinstance(e, EntityNotFoundError):
        return HTTPException(status_code=404, detail=e.code)
    if isinstance(e, UpstreamError):
        return HTTPException(status_code=502, detail=e.code)
    return HTTPException(status_code=400, detail=e.code)


def _issued_response(issued: IssuedOffering) -> ServiceOfferResponse:
    offer = issued.offer
    return ServiceOfferResponse(
        id=offer.id,
        name=offer.name,
        description=offer.description,
        vc_url=offer.vc_url,
        vc_json=issued.vc_json,
        veracity_data=offer.veracity_data,
        label_level=offer.label_level,
    )


async def _issue(
    body: CreateServiceOfferRequest,
    participant_id: uuid.UUID | None,
    service: ServiceOfferServiceDep,
    session: SessionDep,
    publisher: CompliancePublisherDep,
    background_tasks: BackgroundTasks,
) -> ServiceOfferResponse:
    try:
        issued = await service.create(
            name=body.name,
            description=body.description,
            credential_subject=body.credential_subject,
            participant_id=participant_id,
            participant_json_url=body.participant_json_url,
            private_key=body.private_key,
            verification_method=body.verification_method,
            store_vault=body.store_vault,
        )
    except WizardError as e:
        raise _http_error(e) from e

    # The publisher records the broker reference in its own session, so the
    # offering must be committed before it runs.
    await session.commit()
    background_tasks.add_task(publisher.publish_and_log, issued.offer.id, issued.compliance_json)
    return _issued_response(issued)


@router.post("/participants/{participant_id}/service-offers", status_code=201, responses=_ERROR_RESPONSES)
async def create_service_offer(
    participant_id: uuid.UUID,
    body: CreateServiceOfferRequest,
    service: ServiceOfferServiceDep,
    session: SessionDep,
    publisher: CompliancePublisherDep,
    background_tasks: BackgroundTasks,
) -> ServiceOfferResponse:
    return await _issue(body, participant_id, service, session, publisher, background_tasks)


@router.post("/service-offers", status_code=201, responses=_ERROR_RESPONSES)
async def create_external_service_offer(
    body: CreateServiceOfferRequest,
    service: ServiceOfferServiceDep,
    session: SessionDep,
    publisher: CompliancePublisherDep,
    background_tasks: BackgroundTasks,
) -> ServiceOfferResponse:
    """Issue an offering for a participant that hosts its own identity."""
    return await _issue(body, None, service, session, publisher, background_tasks)


@router.post("/service-offers/filter", responses={400: {"description": "Invalid filter"}})
async def filter_service_offers(
    body: FilterServiceOffersRequest,
    service: ServiceOfferServiceDep,
    participant_id: uuid.UUID | None = None,
) -> ServiceOfferPageResponse:
    try:
        page = await service.filter(body.to_filter_request(), participant_id)
    except WizardError as e:
        raise _http_error(e) from e
    return ServiceOfferPageResponse(
        content=[
            ServiceOfferSummaryResponse(
                id=o.id,
                name=o.name,
                description=o.description,
                participant_id=o.participant_id,
                vc_url=o.vc_url,
                label_level=o.label_level,
                created_at=o.created_at,
            )
            for o in page.content
        ],
        page=page.page,
        size=page.size,
        total_elements=page.total_elements,
        total_pages=page.total_pages,
    )


@router.get("/service-offers/{offer_id}", responses=_ERROR_RESPONSES)
async def get_service_offer(offer_id: uuid.UUID, service: ServiceOfferServiceDep) -> ServiceOfferDetailResponse:
    try:
        detail = await service.get_by_id(offer_id)
    except WizardError as e:
        raise _http_error(e) from e
    return ServiceOfferDetailResponse.model_validate(detail, from_attributes=True)


@router.post("/service-offers/locations", responses={502: {"description": "Offering document unreachable"}})
async def get_service_offer_locations(body: LocationRequest, service: ServiceOfferServiceDep) -> LocationResponse:
    try:
        locations = await service.get_locations(body.id)
    except WizardError as e:
        raise _http_error(e) from e
    return LocationResponse(locations=locations)
