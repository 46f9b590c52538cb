"""SQLAlchemy 2.0 ORM mapped classes for the wizard."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Table,
    Text,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

_FK_PARTICIPANT = "participants.id"
_FK_CREDENTIAL = "credentials.id"
_FK_SERVICE_OFFER = "service_offers.id"

# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all ORM models."""


service_offer_standard_types = Table(
    "service_offer_standard_types",
    Base.metadata,
    Column("service_offer_id", ForeignKey(_FK_SERVICE_OFFER), primary_key=True),
    Column("standard_type_id", ForeignKey("standard_type_master.id"), primary_key=True),
)


class ParticipantRow(Base):
    __tablename__ = "participants"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    did: Mapped[str] = mapped_column(String(500), nullable=False, unique=True)
    legal_name: Mapped[str] = mapped_column(String(500), default="")
    key_stored: Mapped[bool] = mapped_column(Boolean, default=False)
    own_did_solution: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))


class CredentialRow(Base):
    """Append-only signed documents."""

    __tablename__ = "credentials"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    vc_url: Mapped[str] = mapped_column(String(1000), nullable=False)
    vc_json: Mapped[str] = mapped_column(Text, nullable=False)
    credential_type: Mapped[str] = mapped_column(String(30), nullable=False)
    participant_id: Mapped[uuid.UUID] = mapped_column(ForeignKey(_FK_PARTICIPANT), nullable=False, index=True)
    metadata_json: Mapped[dict[str, object] | None] = mapped_column("metadata", JSONType, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))

    __table_args__ = (Index("ix_credentials_participant_type", "participant_id", "credential_type"),)


class StandardTypeRow(Base):
    __tablename__ = "standard_type_master"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    type: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)


class SubdivisionCodeRow(Base):
    __tablename__ = "subdivision_code_master"

    code: Mapped[str] = mapped_column(String(10), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    country_code: Mapped[str] = mapped_column(String(2), nullable=False, index=True)


class ServiceOfferRow(Base):
    __tablename__ = "service_offers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    participant_id: Mapped[uuid.UUID] = mapped_column(ForeignKey(_FK_PARTICIPANT), nullable=False, index=True)
    credential_id: Mapped[uuid.UUID] = mapped_column(ForeignKey(_FK_CREDENTIAL), nullable=False, unique=True)
    label_level: Mapped[str | None] = mapped_column(String(20))
    veracity_data: Mapped[str | None] = mapped_column(Text)
    message_reference_id: Mapped[str | None] = mapped_column(String(200))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC)
    )

    credential: Mapped[CredentialRow] = relationship(lazy="selectin")
    standard_types: Mapped[list[StandardTypeRow]] = relationship(
        secondary=service_offer_standard_types, lazy="selectin"
    )

    __table_args__ = (Index("ix_service_offers_participant_created", "participant_id", "created_at"),)


class ServiceLabelLevelRow(Base):
    __tablename__ = "service_label_levels"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    service_offer_id: Mapped[uuid.UUID] = mapped_column(ForeignKey(_FK_SERVICE_OFFER), nullable=False, index=True)
    participant_id: Mapped[uuid.UUID] = mapped_column(ForeignKey(_FK_PARTICIPANT), nullable=False)
    credential_id: Mapped[uuid.UUID] = mapped_column(ForeignKey(_FK_CREDENTIAL), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
