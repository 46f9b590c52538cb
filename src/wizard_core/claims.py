"""Claim sets and signed credential documents as open JSON trees.

The trust-framework vocabulary is versioned outside this code base, so claims
are never bound to a static schema. Keys are namespaced (``gx:policy``);
lookups match on the local term (``policy``) so a bare key is accepted too.
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Iterable, Iterator, Mapping
from typing import Any

from wizard_core.enums import SubjectKind

GX_PREFIX = "gx:"

# Claim terms
POLICY = "policy"
AGGREGATION_OF = "aggregationOf"
DEPENDS_ON = "dependsOn"
DATA_ACCOUNT_EXPORT = "dataAccountExport"
REQUEST_TYPE = "requestType"
ACCESS_TYPE = "accessType"
FORMAT_TYPE = "formatType"
TERMS_AND_CONDITIONS = "termsAndConditions"
URL = "URL"
HASH = "hash"
CRITERIA = "criteria"
LABEL_LEVEL = "labelLevel"
DATA_PROTECTION_REGIME = "dataProtectionRegime"
NAME = "name"
LEGAL_NAME = "legalName"
ID = "id"

# Document keys
SELF_DESCRIPTION_CREDENTIAL = "selfDescriptionCredential"
VERIFIABLE_CREDENTIAL = "verifiableCredential"
CREDENTIAL_SUBJECT = "credentialSubject"
COMPLIANCE_CREDENTIAL = "complianceCredential"
TYPE = "type"


def local_term(key: str) -> str:
    """``gx:policy`` -> ``policy``."""
    return key.rpartition(":")[2]


def find_key(mapping: Mapping[str, Any], term: str) -> str | None:
    """Return the actual key in *mapping* whose local term is *term*."""
    if term in mapping:
        return term
    for key in mapping:
        if local_term(key) == term:
            return key
    return None


def get_term(mapping: Mapping[str, Any], term: str, default: Any = None) -> Any:
    key = find_key(mapping, term)
    if key is None:
        return default
    return mapping[key]


def is_blank(value: Any) -> bool:
    """True for ``None``, whitespace-only strings and empty containers."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, Mapping | list | tuple | set):
        return len(value) == 0
    return False


def reference_ids(value: Any) -> list[str]:
    """Collect the ``id`` of every object in a reference claim (object or array)."""
    items = value if isinstance(value, list) else [value]
    ids: list[str] = []
    for item in items:
        if isinstance(item, Mapping):
            ref = get_term(item, ID)
            if isinstance(ref, str) and ref.strip():
                ids.append(ref)
    return ids


class ClaimSet:
    """Ordered, mutable claim mapping with term-aware accessors."""

    def __init__(self, claims: Mapping[str, Any] | None = None) -> None:
        self._claims: dict[str, Any] = copy.deepcopy(dict(claims or {}))

    def __len__(self) -> int:
        return len(self._claims)

    def __contains__(self, term: object) -> bool:
        return isinstance(term, str) and find_key(self._claims, term) is not None

    def __iter__(self) -> Iterator[str]:
        return iter(self._claims)

    @property
    def is_empty(self) -> bool:
        return not self._claims

    def get(self, term: str, default: Any = None) -> Any:
        return get_term(self._claims, term, default)

    def set(self, term: str, value: Any) -> None:
        """Set a claim, keeping the caller's key spelling when the term exists."""
        key = find_key(self._claims, term) or f"{GX_PREFIX}{term}"
        self._claims[key] = value

    def pop(self, term: str, default: Any = None) -> Any:
        key = find_key(self._claims, term)
        if key is None:
            return default
        return self._claims.pop(key)

    def has_text(self, term: str) -> bool:
        return term in self and not is_blank(self.get(term))

    def reference_ids(self, term: str) -> list[str]:
        return reference_ids(self.get(term))

    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self._claims)


# ─── Signed documents ─────────────────────────────────────


def verifiable_credentials(document: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    """List the VCs of a signed document.

    Accepts the signer envelope (``selfDescriptionCredential``), a bare
    presentation (``verifiableCredential``) or a single credential.
    """
    container: Any = document.get(SELF_DESCRIPTION_CREDENTIAL, document)
    if not isinstance(container, Mapping):
        return []
    credentials = container.get(VERIFIABLE_CREDENTIAL)
    if credentials is None:
        return [container] if CREDENTIAL_SUBJECT in container else []
    if isinstance(credentials, Mapping):
        return [credentials]
    return [c for c in credentials if isinstance(c, Mapping)]


def credential_subjects(document: Mapping[str, Any]) -> Iterator[Mapping[str, Any]]:
    for credential in verifiable_credentials(document):
        subject = credential.get(CREDENTIAL_SUBJECT)
        subjects = subject if isinstance(subject, list) else [subject]
        for item in subjects:
            if isinstance(item, Mapping):
                yield item


def subject_types(subject: Mapping[str, Any]) -> set[str]:
    declared = subject.get(TYPE)
    if isinstance(declared, str):
        return {declared}
    if isinstance(declared, list):
        return {t for t in declared if isinstance(t, str)}
    return set()


def find_subject(
    document: Mapping[str, Any], kinds: Iterable[SubjectKind]
) -> tuple[SubjectKind, Mapping[str, Any]] | None:
    """First credential subject whose declared type is one of *kinds*."""
    wanted = {str(k): k for k in kinds}
    for subject in credential_subjects(document):
        for declared in subject_types(subject):
            if declared in wanted:
                return wanted[declared], subject
    return None


def _offering_name(subject: Mapping[str, Any]) -> str | None:
    value = get_term(subject, NAME)
    return value if isinstance(value, str) else None


def _participant_name(subject: Mapping[str, Any]) -> str | None:
    value = get_term(subject, LEGAL_NAME)
    return value if isinstance(value, str) else None


NAME_EXTRACTORS: dict[SubjectKind, Callable[[Mapping[str, Any]], str | None]] = {
    SubjectKind.SERVICE_OFFERING: _offering_name,
    SubjectKind.PHYSICAL_RESOURCE: _offering_name,
    SubjectKind.VIRTUAL_DATA_RESOURCE: _offering_name,
    SubjectKind.VIRTUAL_SOFTWARE_RESOURCE: _offering_name,
    SubjectKind.INSTANTIATED_VIRTUAL_RESOURCE: _offering_name,
    SubjectKind.LEGAL_PARTICIPANT: _participant_name,
}


def subject_name(kind: SubjectKind, subject: Mapping[str, Any]) -> str | None:
    return NAME_EXTRACTORS[kind](subject)
