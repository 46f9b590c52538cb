"""API request/response schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field
from wizard_core.enums import FilterOperator, OfferColumn, SortType
from wizard_core.exceptions import BadDataError
from wizard_core.models import (
    DataAccountExport,
    FilterCriteria,
    FilterRequest,
    ReferenceNode,
    SortRequest,
)

_FILTERABLE = frozenset(
    {OfferColumn.NAME, OfferColumn.DESCRIPTION, OfferColumn.LABEL_LEVEL, OfferColumn.PARTICIPANT_ID}
)


def _column(name: str, allowed: frozenset[OfferColumn] | None = None) -> OfferColumn:
    try:
        column = OfferColumn(name)
    except ValueError as e:
        raise BadDataError("invalid.filter.column", f"Unknown column {name}") from e
    if allowed is not None and column not in allowed:
        raise BadDataError("invalid.filter.column", f"Column {name} cannot be filtered")
    return column


# ─── Issuance schemas ────────────────────────────────────


class CreateServiceOfferRequest(BaseModel):
    name: str = Field(default="", max_length=500)
    description: str = Field(default="")
    credential_subject: dict[str, Any] = Field(default_factory=dict)
    participant_json_url: str | None = None
    verification_method: str | None = None
    private_key: str | None = None
    store_vault: bool = False


class ServiceOfferResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: str
    vc_url: str
    vc_json: list[dict[str, Any]]
    veracity_data: str | None = None
    label_level: str | None = None


# ─── Query schemas ───────────────────────────────────────


class FilterCriteriaBody(BaseModel):
    column: str
    operator: FilterOperator = FilterOperator.EQUALS
    values: list[str] = Field(default_factory=list)


class SortBody(BaseModel):
    column: str = OfferColumn.CREATED_AT.value
    sort_type: SortType = SortType.DESC


class FilterServiceOffersRequest(BaseModel):
    page: int = Field(default=0, ge=0)
    size: int = Field(default=20, ge=1, le=500)
    criteria: list[FilterCriteriaBody] = Field(default_factory=list)
    sort: SortBody | None = None

    def to_filter_request(self) -> FilterRequest:
        """Translate column names, rejecting anything outside the whitelist."""
        return FilterRequest(
            page=self.page,
            size=self.size,
            criteria=[
                FilterCriteria(column=_column(c.column, _FILTERABLE), operator=c.operator, values=c.values)
                for c in self.criteria
            ],
            sort=SortRequest(column=_column(self.sort.column), sort_type=self.sort.sort_type) if self.sort else None,
        )


class ServiceOfferSummaryResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: str
    participant_id: uuid.UUID
    vc_url: str
    label_level: str | None = None
    created_at: datetime


class ServiceOfferPageResponse(BaseModel):
    content: list[ServiceOfferSummaryResponse]
    page: int
    size: int
    total_elements: int
    total_pages: int


class ServiceOfferDetailResponse(BaseModel):
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


class LocationRequest(BaseModel):
    id: str = Field(min_length=1, description="Public URL of the hosted service offering")


class LocationResponse(BaseModel):
    locations: list[str]
