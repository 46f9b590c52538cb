"""Structural validation of service-offering claim sets.

Checks run in a fixed order and stop at the first failure, so the code a
caller sees is always the first structurally required claim that is wrong.
No I/O happens here; reference reachability is the resolver's job.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from wizard_core.claims import (
    ACCESS_TYPE,
    AGGREGATION_OF,
    DATA_ACCOUNT_EXPORT,
    DEPENDS_ON,
    FORMAT_TYPE,
    POLICY,
    REQUEST_TYPE,
    ClaimSet,
    get_term,
    is_blank,
)
from wizard_core.exceptions import BadDataError

_EXPORT_FIELDS: tuple[tuple[str, str], ...] = (
    (REQUEST_TYPE, "requestType.of.not.found"),
    (ACCESS_TYPE, "accessType.of.not.found"),
    (FORMAT_TYPE, "formatType.of.not.found"),
)


def validate_request(name: str | None, claims: ClaimSet) -> None:
    """Reject requests without an offering name or without claims."""
    if is_blank(name):
        raise BadDataError("invalid.service.name")
    if claims.is_empty:
        raise BadDataError("invalid.credential")


def _is_well_formed_reference(value: Any) -> bool:
    if isinstance(value, Mapping):
        return True
    return isinstance(value, list) and all(isinstance(item, Mapping) for item in value)


def validate(claims: ClaimSet) -> None:
    """Validate the claim graph.

    Raises:
        BadDataError: With the code of the first failed check
    """
    if claims.is_empty:
        raise BadDataError("invalid.credential")

    if not claims.has_text(AGGREGATION_OF):
        raise BadDataError("aggregation.of.not.found")

    depends_on = claims.get(DEPENDS_ON)
    if depends_on is not None and not _is_well_formed_reference(depends_on):
        raise BadDataError("depends.on.not.found")

    export = claims.get(DATA_ACCOUNT_EXPORT)
    if not isinstance(export, Mapping):
        raise BadDataError("data.account.export.not.found")
    for field, code in _EXPORT_FIELDS:
        if is_blank(get_term(export, field)):
            raise BadDataError(code)

    if POLICY not in claims:
        raise BadDataError("invalid.policy")
