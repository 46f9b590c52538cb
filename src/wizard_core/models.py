"""Pydantic V2 domain models for the service-offering wizard."""

from __future__ import annotations

import math
import uuid
from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from wizard_core.enums import CredentialType, FilterOperator, OfferColumn, SortType

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Participant(BaseModel):
    """A trust-framework participant identified by its DID."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    did: str = Field(min_length=1, max_length=500)
    legal_name: str = Field(default="")
    key_stored: bool = False
    own_did_solution: bool = False
    created_at: datetime = Field(default_factory=_utcnow)


class Credential(BaseModel):
    """An immutable signed document hosted at ``vc_url``.

    Never updated; re-issuing creates a new credential and leaves the old
    row orphaned.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    vc_url: str = Field(min_length=1)
    vc_json: str
    credential_type: CredentialType
    participant_id: uuid.UUID
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_utcnow)


class StandardType(BaseModel):
    """Master data: a data-protection regime (e.g. GDPR2016)."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    type: str = Field(min_length=1, max_length=100)


class ServiceOffer(BaseModel):
    """Aggregate root of an issued service offering."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    name: str = Field(min_length=1, max_length=500)
    description: str = Field(default="")
    participant_id: uuid.UUID
    credential: Credential
    standard_types: list[StandardType] = Field(default_factory=list)
    label_level: str | None = None
    veracity_data: str | None = None
    message_reference_id: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def vc_url(self) -> str:
        return self.credential.vc_url


class ServiceLabelLevel(BaseModel):
    """Link between an offering and its label/level credential."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    service_offer_id: uuid.UUID
    participant_id: uuid.UUID
    credential_id: uuid.UUID
    created_at: datetime = Field(default_factory=_utcnow)


class ReferenceNode(BaseModel):
    """Read-time resolution of an aggregation/dependency target."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    resolved: bool = True


class PolicyDocument(BaseModel):
    url: str
    path: str
    document: dict[str, Any]


class SigningContext(BaseModel):
    """Key material and references handed to the signer."""

    private_key: str | None = None
    verification_method: str | None = None
    participant_json_url: str | None = None


class SignedOffering(BaseModel):
    signed_vc: dict[str, Any]
    veracity: dict[str, Any] | None = None


class LabelLevelCredential(BaseModel):
    vc_json: dict[str, Any]
    vc_url: str
    label_level: str | None = None


class IssuedOffering(BaseModel):
    """Result of a committed issuance; carries the payload the publisher needs."""

    offer: ServiceOffer
    vc_json: list[dict[str, Any]]
    compliance_json: dict[str, Any]


class DataAccountExport(BaseModel):
    request_type: str | None = None
    access_type: str | None = None
    format_type: set[str] = Field(default_factory=set)


class OfferingDetail(BaseModel):
    """Offering as read back from its live hosted document."""

    id: uuid.UUID
    name: str
    description: str
    participant_id: uuid.UUID
    vc_url: str
    label_level: str | None = None
    message_reference_id: str | None = None
    created_at: datetime
    trust_index: float | None = None
    tnc_url: str | None = None
    protection_regime: list[str] = Field(default_factory=list)
    data_account_export: DataAccountExport | None = None
    locations: list[str] = Field(default_factory=list)
    resources: list[ReferenceNode] = Field(default_factory=list)
    depended_services: list[ReferenceNode] = Field(default_factory=list)


class BrokerReceipt(BaseModel):
    status_code: int
    location: str | None = None


class PublishResult(BaseModel):
    ok: bool
    message_reference_id: str | None = None
    error: str | None = None


# ─── Filtering ─────────────────────────────────────────────


class FilterCriteria(BaseModel):
    column: OfferColumn
    operator: FilterOperator = FilterOperator.EQUALS
    values: list[str] = Field(default_factory=list)


class SortRequest(BaseModel):
    column: OfferColumn = OfferColumn.CREATED_AT
    sort_type: SortType = SortType.DESC


class FilterRequest(BaseModel):
    page: int = Field(default=0, ge=0)
    size: int = Field(default=20, ge=1, le=500)
    criteria: list[FilterCriteria] = Field(default_factory=list)
    sort: SortRequest | None = None


class Page(BaseModel, Generic[T]):
    content: list[T]
    page: int
    size: int
    total_elements: int
    total_pages: int
    sort: SortRequest | None = None

    @classmethod
    def of(cls, content: list[T], request: FilterRequest, total: int) -> Page[T]:
        return cls(
            content=content,
            page=request.page,
            size=request.size,
            total_elements=total,
            total_pages=math.ceil(total / request.size) if total else 0,
            sort=request.sort,
        )
