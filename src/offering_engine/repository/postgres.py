"""PostgreSQL repository implementations using SQLAlchemy 2.0 async."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

from sqlalchemy import String, cast, func, or_, select, update
from wizard_core.db.tables import (
    CredentialRow,
    ParticipantRow,
    ServiceLabelLevelRow,
    ServiceOfferRow,
    StandardTypeRow,
    SubdivisionCodeRow,
)
from wizard_core.enums import FilterOperator, OfferColumn, SortType
from wizard_core.exceptions import BadDataError
from wizard_core.models import (
    Credential,
    FilterCriteria,
    FilterRequest,
    Participant,
    ServiceLabelLevel,
    ServiceOffer,
    StandardType,
)

if TYPE_CHECKING:
    from sqlalchemy import ColumnElement
    from sqlalchemy.ext.asyncio import AsyncSession
    from wizard_core.enums import CredentialType

_COLUMNS: dict[OfferColumn, Any] = {
    OfferColumn.NAME: ServiceOfferRow.name,
    OfferColumn.DESCRIPTION: ServiceOfferRow.description,
    OfferColumn.LABEL_LEVEL: ServiceOfferRow.label_level,
    OfferColumn.PARTICIPANT_ID: ServiceOfferRow.participant_id,
    OfferColumn.CREATED_AT: ServiceOfferRow.created_at,
}


def _to_credential(row: CredentialRow) -> Credential:
    # ``metadata`` is reserved on declarative classes, hence the explicit mapping
    return Credential(
        id=row.id,
        vc_url=row.vc_url,
        vc_json=row.vc_json,
        credential_type=row.credential_type,
        participant_id=row.participant_id,
        metadata=row.metadata_json or {},
        created_at=row.created_at,
    )


def _to_offer(row: ServiceOfferRow) -> ServiceOffer:
    return ServiceOffer(
        id=row.id,
        name=row.name,
        description=row.description,
        participant_id=row.participant_id,
        credential=_to_credential(row.credential),
        standard_types=[StandardType.model_validate(s) for s in row.standard_types],
        label_level=row.label_level,
        veracity_data=row.veracity_data,
        message_reference_id=row.message_reference_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _criterion(criterion: FilterCriteria) -> ColumnElement[bool]:
    column = _COLUMNS[criterion.column]
    values: list[Any] = list(criterion.values)
    if criterion.operator == FilterOperator.LIKE:
        if criterion.column == OfferColumn.PARTICIPANT_ID:
            column = cast(column, String)
        return or_(*[column.icontains(v, autoescape=True) for v in values])

    if criterion.column == OfferColumn.PARTICIPANT_ID:
        try:
            values = [uuid.UUID(v) for v in values]
        except ValueError as e:
            raise BadDataError("invalid.filter.value", f"Invalid participant id in {values}") from e
    if criterion.operator == FilterOperator.EQUALS and len(values) == 1:
        return column == values[0]
    return column.in_(values)


class PgParticipantRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, participant: Participant) -> Participant:
        row = ParticipantRow(
            id=participant.id,
            did=participant.did,
            legal_name=participant.legal_name,
            key_stored=participant.key_stored,
            own_did_solution=participant.own_did_solution,
            created_at=participant.created_at,
        )
        self._session.add(row)
        await self._session.flush()
        return Participant.model_validate(row)

    async def get_by_id(self, participant_id: uuid.UUID) -> Participant | None:
        row = await self._session.get(ParticipantRow, participant_id)
        if row is None:
            return None
        return Participant.model_validate(row)

    async def get_by_did(self, did: str) -> Participant | None:
        stmt = select(ParticipantRow).where(ParticipantRow.did == did)
        result = await self._session.execute(stmt)
        row = result.scalar_one_or_none()
        if row is None:
            return None
        return Participant.model_validate(row)

    async def update(self, participant: Participant) -> Participant:
        row = await self._session.get(ParticipantRow, participant.id)
        if row is None:
            raise ValueError(f"Participant {participant.id} not found")
        row.key_stored = participant.key_stored
        row.own_did_solution = participant.own_did_solution
        await self._session.flush()
        return Participant.model_validate(row)


class PgCredentialRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, credential: Credential) -> Credential:
        row = CredentialRow(
            id=credential.id,
            vc_url=credential.vc_url,
            vc_json=credential.vc_json,
            credential_type=credential.credential_type,
            participant_id=credential.participant_id,
            metadata_json=credential.metadata,
            created_at=credential.created_at,
        )
        self._session.add(row)
        await self._session.flush()
        return _to_credential(row)

    async def get_latest(self, participant_id: uuid.UUID, credential_type: CredentialType) -> Credential | None:
        stmt = (
            select(CredentialRow)
            .where(
                CredentialRow.participant_id == participant_id,
                CredentialRow.credential_type == credential_type,
            )
            .order_by(CredentialRow.created_at.desc())
            .limit(1)
        )
        result = await self._session.execute(stmt)
        row = result.scalar_one_or_none()
        if row is None:
            return None
        return _to_credential(row)


class PgServiceOfferRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, offer: ServiceOffer) -> ServiceOffer:
        standard_rows: list[StandardTypeRow] = []
        if offer.standard_types:
            stmt = select(StandardTypeRow).where(StandardTypeRow.id.in_([s.id for s in offer.standard_types]))
            standard_rows = list((await self._session.execute(stmt)).scalars())

        row = ServiceOfferRow(
            id=offer.id,
            name=offer.name,
            description=offer.description,
            participant_id=offer.participant_id,
            credential_id=offer.credential.id,
            label_level=offer.label_level,
            veracity_data=offer.veracity_data,
            message_reference_id=offer.message_reference_id,
            created_at=offer.created_at,
            updated_at=offer.updated_at,
            standard_types=standard_rows,
        )
        self._session.add(row)
        await self._session.flush()
        return offer

    async def get_by_id(self, offer_id: uuid.UUID) -> ServiceOffer | None:
        row = await self._session.get(ServiceOfferRow, offer_id)
        if row is None:
            return None
        return _to_offer(row)

    async def filter(self, request: FilterRequest) -> tuple[list[ServiceOffer], int]:
        stmt = select(ServiceOfferRow)
        for criterion in request.criteria:
            if criterion.values:
                stmt = stmt.where(_criterion(criterion))

        count_stmt = select(func.count()).select_from(stmt.subquery())
        total = (await self._session.execute(count_stmt)).scalar_one()

        sort = request.sort
        sort_column = _COLUMNS[sort.column] if sort else ServiceOfferRow.created_at
        ordering = sort_column.asc() if sort and sort.sort_type == SortType.ASC else sort_column.desc()
        stmt = stmt.order_by(ordering).limit(request.size).offset(request.page * request.size)

        result = await self._session.execute(stmt)
        return [_to_offer(r) for r in result.scalars()], total

    async def update_message_reference_id(self, offer_id: uuid.UUID, message_reference_id: str) -> None:
        stmt = (
            update(ServiceOfferRow)
            .where(ServiceOfferRow.id == offer_id)
            .values(message_reference_id=message_reference_id)
        )
        await self._session.execute(stmt)
        await self._session.flush()


class PgLabelLevelRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, link: ServiceLabelLevel) -> ServiceLabelLevel:
        row = ServiceLabelLevelRow(
            id=link.id,
            service_offer_id=link.service_offer_id,
            participant_id=link.participant_id,
            credential_id=link.credential_id,
            created_at=link.created_at,
        )
        self._session.add(row)
        await self._session.flush()
        return ServiceLabelLevel.model_validate(row)


class PgMasterDataRepository:
    """Read-only access to the standards and subdivision master tables."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_standards_by_type(self, names: list[str]) -> list[StandardType]:
        if not names:
            return []
        stmt = select(StandardTypeRow).where(StandardTypeRow.type.in_(names)).order_by(StandardTypeRow.type)
        result = await self._session.execute(stmt)
        return [StandardType.model_validate(r) for r in result.scalars()]

    async def find_subdivision_names(self, codes: list[str]) -> list[str]:
        if not codes:
            return []
        stmt = (
            select(SubdivisionCodeRow.name)
            .where(SubdivisionCodeRow.code.in_(codes))
            .order_by(SubdivisionCodeRow.name)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars())
