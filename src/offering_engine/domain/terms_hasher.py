"""SHA-256 fingerprint of an offering's terms and conditions."""

from __future__ import annotations

import hashlib
from collections.abc import Mapping
from typing import TYPE_CHECKING

from wizard_core.claims import GX_PREFIX, HASH, TERMS_AND_CONDITIONS, URL, find_key, get_term

if TYPE_CHECKING:
    from wizard_core.claims import ClaimSet
    from wizard_core.connectors.document_fetcher import DocumentFetcher


def sha256_hex(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


class TermsHasher:
    def __init__(self, fetcher: DocumentFetcher) -> None:
        self._fetcher = fetcher

    async def apply(self, claims: ClaimSet) -> str | None:
        """Add the hash of the referenced terms document to the claim set.

        Returns the hash, or None when there is no terms URL to fetch.
        """
        terms = claims.get(TERMS_AND_CONDITIONS)
        if not isinstance(terms, Mapping):
            return None
        url = get_term(terms, URL)
        if not isinstance(url, str) or not url.strip():
            return None

        digest = sha256_hex(await self._fetcher.fetch_text(url))
        updated = dict(terms)
        updated[find_key(updated, HASH) or f"{GX_PREFIX}{HASH}"] = digest
        claims.set(TERMS_AND_CONDITIONS, updated)
        return digest
