"""Offering name generation."""

from __future__ import annotations

import random
import string

SERVICE_PREFIX = "service_"
_ALPHABET = string.ascii_letters + string.digits


class NameGenerator:
    """Produces ``service_XXXX`` names from a seedable random source."""

    def __init__(self, seed: int | None = None, length: int = 4) -> None:
        self._random = random.Random(seed)
        self._length = length

    def __call__(self) -> str:
        suffix = "".join(self._random.choice(_ALPHABET) for _ in range(self._length))
        return f"{SERVICE_PREFIX}{suffix}"
