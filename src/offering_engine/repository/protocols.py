"""Repository interfaces consumed by the domain services."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    import uuid

    from wizard_core.enums import CredentialType
    from wizard_core.models import (
        Credential,
        FilterRequest,
        Participant,
        ServiceLabelLevel,
        ServiceOffer,
        StandardType,
    )


class ParticipantRepository(Protocol):
    async def create(self, participant: Participant) -> Participant: ...

    async def get_by_id(self, participant_id: uuid.UUID) -> Participant | None: ...

    async def get_by_did(self, did: str) -> Participant | None: ...

    async def update(self, participant: Participant) -> Participant: ...


class CredentialRepository(Protocol):
    async def create(self, credential: Credential) -> Credential: ...

    async def get_latest(self, participant_id: uuid.UUID, credential_type: CredentialType) -> Credential | None: ...


class ServiceOfferRepository(Protocol):
    async def create(self, offer: ServiceOffer) -> ServiceOffer: ...

    async def get_by_id(self, offer_id: uuid.UUID) -> ServiceOffer | None: ...

    async def filter(self, request: FilterRequest) -> tuple[list[ServiceOffer], int]: ...

    async def update_message_reference_id(self, offer_id: uuid.UUID, message_reference_id: str) -> None: ...


class LabelLevelRepository(Protocol):
    async def create(self, link: ServiceLabelLevel) -> ServiceLabelLevel: ...


class MasterDataRepository(Protocol):
    async def find_standards_by_type(self, names: list[str]) -> list[StandardType]: ...

    async def find_subdivision_names(self, codes: list[str]) -> list[str]: ...
