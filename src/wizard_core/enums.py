"""Domain enums for the service-offering wizard."""

from enum import StrEnum


class CredentialType(StrEnum):
    """Kinds of signed documents persisted as credentials."""

    LEGAL_PARTICIPANT = "legal_participant"
    SERVICE_OFFER = "service_offer"
    ODRL_POLICY = "odrl_policy"
    LABEL_LEVEL = "label_level"
    RESOURCE = "resource"


class SubjectKind(StrEnum):
    """Recognised credential-subject ``type`` tags."""

    SERVICE_OFFERING = "gx:ServiceOffering"
    PHYSICAL_RESOURCE = "gx:PhysicalResource"
    VIRTUAL_DATA_RESOURCE = "gx:VirtualDataResource"
    VIRTUAL_SOFTWARE_RESOURCE = "gx:VirtualSoftwareResource"
    INSTANTIATED_VIRTUAL_RESOURCE = "gx:InstantiatedVirtualResource"
    LEGAL_PARTICIPANT = "gx:LegalParticipant"


SERVICE_KINDS: frozenset[SubjectKind] = frozenset({SubjectKind.SERVICE_OFFERING})
RESOURCE_KINDS: frozenset[SubjectKind] = frozenset(
    {
        SubjectKind.PHYSICAL_RESOURCE,
        SubjectKind.VIRTUAL_DATA_RESOURCE,
        SubjectKind.VIRTUAL_SOFTWARE_RESOURCE,
        SubjectKind.INSTANTIATED_VIRTUAL_RESOURCE,
    }
)


class FilterOperator(StrEnum):
    """Operators accepted in offering filter criteria."""

    EQUALS = "EQUALS"
    CONTAIN = "CONTAIN"
    LIKE = "LIKE"


class OfferColumn(StrEnum):
    """Service-offer columns that may be filtered or sorted on."""

    NAME = "name"
    DESCRIPTION = "description"
    LABEL_LEVEL = "labelLevel"
    PARTICIPANT_ID = "participantId"
    CREATED_AT = "createdAt"


class SortType(StrEnum):
    ASC = "ASC"
    DESC = "DESC"


class BrokerBackend(StrEnum):
    """Transport used to publish compliance credentials."""

    HTTP = "http"
    KAFKA = "kafka"
