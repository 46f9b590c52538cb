"""Base class for document storage backends."""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseStorage(ABC):
    """Abstract base class for storage backends.

    Hosted credential documents are written here and served publicly, so
    writes are overwrites: writing the same path twice keeps the last copy.
    """

    @abstractmethod
    async def read(self, path: str) -> bytes:
        """Read data from storage.

        Args:
            path: Object path/key

        Returns:
            Raw bytes data

        Raises:
            FileNotFoundError: If path doesn't exist
        """
        ...

    @abstractmethod
    async def write(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> None:
        """Write (or overwrite) data at *path*."""
        ...

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """Check if an object is stored at *path*."""
        ...
