"""Resolution of credential references (aggregationOf, dependsOn) by URL."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from wizard_core.claims import find_subject, subject_name
from wizard_core.exceptions import BadDataError, WizardError
from wizard_core.models import ReferenceNode

if TYPE_CHECKING:
    from wizard_core.connectors.document_fetcher import DocumentFetcher
    from wizard_core.enums import SubjectKind

logger = logging.getLogger(__name__)

UNKNOWN_NAME = "unknown"


def has_field(document: Any, field: str) -> bool:
    """True when *field* is a key anywhere in the JSON tree."""
    if isinstance(document, Mapping):
        if field in document:
            return True
        return any(has_field(value, field) for value in document.values())
    if isinstance(document, list):
        return any(has_field(item, field) for item in document)
    return False


class ReferenceResolver:
    """Fetches referenced credentials.

    ``resolve`` is a validation gate: every reference must be reachable, or
    the whole set fails. ``resolve_named`` enriches read responses and never
    fails; unreachable references come back named ``unknown``.
    """

    def __init__(self, fetcher: DocumentFetcher) -> None:
        self._fetcher = fetcher

    async def _fetch_verified(self, url: str, error_code: str, required_fields: list[str]) -> dict[str, Any]:
        try:
            document = await self._fetcher.fetch_json(url)
        except WizardError as e:
            logger.info("Reference %s did not resolve: %s", url, e)
            raise BadDataError(error_code, f"Reference {url} did not resolve") from e

        for field in required_fields:
            if not has_field(document, field):
                logger.info("Reference %s lacks required field %s", url, field)
                raise BadDataError(error_code, f"Reference {url} has no {field}")
        return document

    async def resolve(
        self,
        ids: list[str],
        error_code: str,
        required_fields: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch every id concurrently and return the documents in order.

        Raises:
            BadDataError: With *error_code* when ids is empty or any reference fails
        """
        if not ids:
            raise BadDataError(error_code, "No references given")
        fields = required_fields or []
        results = await asyncio.gather(
            *(self._fetch_verified(url, error_code, fields) for url in ids),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return list(results)  # type: ignore[arg-type]

    async def _name_of(self, url: str, kinds: frozenset[SubjectKind]) -> ReferenceNode:
        try:
            document = await self._fetcher.fetch_json(url)
        except WizardError as e:
            logger.warning("Could not fetch reference %s: %s", url, e)
            return ReferenceNode(id=url, name=UNKNOWN_NAME, resolved=False)

        found = find_subject(document, kinds)
        if found is None:
            logger.warning("Reference %s declares none of %s", url, sorted(kinds))
            return ReferenceNode(id=url, name=UNKNOWN_NAME, resolved=False)

        name = subject_name(*found)
        if not name:
            logger.warning("Reference %s has no name", url)
            return ReferenceNode(id=url, name=UNKNOWN_NAME, resolved=False)
        return ReferenceNode(id=url, name=name)

    async def resolve_named(self, ids: Iterable[str], kinds: Iterable[SubjectKind]) -> list[ReferenceNode]:
        """Resolve display names, one node per distinct id in claim order."""
        unique = list(dict.fromkeys(ids))
        wanted = frozenset(kinds)
        return list(await asyncio.gather(*(self._name_of(url, wanted) for url in unique)))
