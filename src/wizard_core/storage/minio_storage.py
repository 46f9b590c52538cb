"""MinIO storage backend for publicly hosted documents."""

from __future__ import annotations

import io
import logging
from typing import TYPE_CHECKING

from wizard_core.storage.base_storage import BaseStorage

if TYPE_CHECKING:
    from minio import Minio

    from wizard_core.settings import MinIOSettings

logger = logging.getLogger(__name__)


class MinIOStorage(BaseStorage):
    """MinIO object storage.

    Example:
        storage = MinIOStorage(
            endpoint="minio:9000",
            access_key="admin",
            secret_key="password",
            bucket="wizard-documents",
        )

        await storage.write("8f0c.../service_Ab3x.json", data, "application/json")
        data = await storage.read("8f0c.../service_Ab3x.json")
    """

    def __init__(
        self,
        endpoint: str,
        access_key: str,
        secret_key: str,
        bucket: str,
        secure: bool = False,
    ) -> None:
        self._endpoint = endpoint
        self._access_key = access_key
        self._secret_key = secret_key
        self._bucket = bucket
        self._secure = secure
        self._client: Minio | None = None

    @classmethod
    def from_settings(cls, settings: MinIOSettings) -> MinIOStorage:
        return cls(
            endpoint=settings.endpoint,
            access_key=settings.access_key,
            secret_key=settings.secret_key,
            bucket=settings.bucket,
            secure=settings.secure,
        )

    def _get_client(self) -> Minio:
        """Lazily initialize MinIO client."""
        if self._client is not None:
            return self._client

        from minio import Minio

        self._client = Minio(
            self._endpoint,
            access_key=self._access_key,
            secret_key=self._secret_key,
            secure=self._secure,
        )

        # Ensure bucket exists
        if not self._client.bucket_exists(self._bucket):
            self._client.make_bucket(self._bucket)
            logger.info("Created MinIO bucket: %s", self._bucket)

        return self._client

    async def read(self, path: str) -> bytes:
        client = self._get_client()

        try:
            obj = client.get_object(self._bucket, path)
            data = obj.read()
            obj.close()
            obj.release_conn()
            return data
        except Exception as e:
            if "NoSuchKey" in str(e) or "Not Found" in str(e):
                raise FileNotFoundError(f"Object not found: {path}") from e
            raise

    async def write(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> None:
        client = self._get_client()
        client.put_object(
            self._bucket,
            path,
            io.BytesIO(data),
            len(data),
            content_type=content_type,
        )

    async def exists(self, path: str) -> bool:
        client = self._get_client()

        try:
            client.stat_object(self._bucket, path)
            return True
        except Exception as e:
            if "NoSuchKey" in str(e) or "Not Found" in str(e):
                return False
            raise
