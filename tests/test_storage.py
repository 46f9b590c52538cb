"""Tests for MinIO storage and the document host built on it."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from wizard_core.exceptions import UpstreamError
from wizard_core.settings import MinIOSettings
from wizard_core.storage.document_host import DocumentHost
from wizard_core.storage.minio_storage import MinIOStorage


@pytest.fixture()
def mock_minio_client() -> MagicMock:
    client = MagicMock()
    client.bucket_exists.return_value = True
    return client


@pytest.fixture()
def minio_storage(mock_minio_client: MagicMock) -> MinIOStorage:
    s = MinIOStorage(endpoint="minio:9000", access_key="admin", secret_key="secret", bucket="docs")
    s._client = mock_minio_client
    return s


# ──── MinIOStorage ───────────────────────────────────────────


class TestMinIOStorage:
    def test_from_settings(self) -> None:
        s = MinIOStorage.from_settings(MinIOSettings(endpoint="m:9000", bucket="b", secure=True))
        assert s._endpoint == "m:9000"
        assert s._bucket == "b"
        assert s._secure is True

    def test_creates_missing_bucket(self) -> None:
        client = MagicMock()
        client.bucket_exists.return_value = False
        with patch("minio.Minio", return_value=client):
            MinIOStorage(endpoint="m:9000", access_key="a", secret_key="s", bucket="docs")._get_client()
        client.make_bucket.assert_called_once_with("docs")

    async def test_write(self, minio_storage: MinIOStorage, mock_minio_client: MagicMock) -> None:
        await minio_storage.write("p/doc.json", b"{}", "application/json")

        args, kwargs = mock_minio_client.put_object.call_args
        assert args[0] == "docs"
        assert args[1] == "p/doc.json"
        assert args[3] == 2
        assert kwargs["content_type"] == "application/json"

    async def test_read(self, minio_storage: MinIOStorage, mock_minio_client: MagicMock) -> None:
        mock_minio_client.get_object.return_value.read.return_value = b"data"
        assert await minio_storage.read("p/doc.json") == b"data"
        mock_minio_client.get_object.return_value.release_conn.assert_called_once()

    async def test_read_missing_object(self, minio_storage: MinIOStorage, mock_minio_client: MagicMock) -> None:
        mock_minio_client.get_object.side_effect = Exception("NoSuchKey")
        with pytest.raises(FileNotFoundError):
            await minio_storage.read("p/missing.json")

    async def test_read_other_errors_propagate(
        self, minio_storage: MinIOStorage, mock_minio_client: MagicMock
    ) -> None:
        mock_minio_client.get_object.side_effect = ConnectionError("down")
        with pytest.raises(ConnectionError):
            await minio_storage.read("p/doc.json")

    async def test_exists(self, minio_storage: MinIOStorage, mock_minio_client: MagicMock) -> None:
        assert await minio_storage.exists("p/doc.json")
        mock_minio_client.stat_object.assert_called_once_with("docs", "p/doc.json")

    async def test_exists_missing_object(self, minio_storage: MinIOStorage, mock_minio_client: MagicMock) -> None:
        mock_minio_client.stat_object.side_effect = Exception("NoSuchKey")
        assert not await minio_storage.exists("p/missing.json")

    async def test_exists_other_errors_propagate(
        self, minio_storage: MinIOStorage, mock_minio_client: MagicMock
    ) -> None:
        mock_minio_client.stat_object.side_effect = ConnectionError("down")
        with pytest.raises(ConnectionError):
            await minio_storage.exists("p/doc.json")


# ──── DocumentHost ───────────────────────────────────────────


class TestDocumentHost:
    def test_urls_and_paths(self, storage: Any) -> None:
        host = DocumentHost(storage, "https://docs.test/wizard")
        assert host.base_url == "https://docs.test/wizard/"
        assert host.url_for("p/a.json") == "https://docs.test/wizard/p/a.json"
        assert host.path_for("https://docs.test/wizard/p/a.json") == "p/a.json"
        assert host.path_for("https://elsewhere.test/p/a.json") is None

    async def test_host_and_read(self, storage: Any) -> None:
        host = DocumentHost(storage, "https://docs.test/")

        url = await host.host_json("p/a.json", {"a": 1})
        await host.host_json("p/a.json", {"a": 2})

        assert url == "https://docs.test/p/a.json"
        assert await host.read_json("p/a.json") == {"a": 2}

    async def test_storage_failure(self, minio_storage: MinIOStorage, mock_minio_client: MagicMock) -> None:
        mock_minio_client.put_object.side_effect = ConnectionError("down")
        host = DocumentHost(minio_storage, "https://docs.test/")

        with pytest.raises(UpstreamError) as exc_info:
            await host.host_json("p/a.json", {})
        assert exc_info.value.code == "document.host.failed"

    async def test_read_missing(self, storage: Any) -> None:
        with pytest.raises(FileNotFoundError):
            await DocumentHost(storage, "https://docs.test/").read_json("p/none.json")

    async def test_exists(self, storage: Any) -> None:
        host = DocumentHost(storage, "https://docs.test/")
        await host.host_json("p/a.json", {})

        assert await host.exists("p/a.json")
        assert not await host.exists("p/b.json")

    async def test_lookup_failure(self, minio_storage: MinIOStorage, mock_minio_client: MagicMock) -> None:
        mock_minio_client.stat_object.side_effect = ConnectionError("down")
        host = DocumentHost(minio_storage, "https://docs.test/")

        with pytest.raises(UpstreamError) as exc_info:
            await host.exists("p/a.json")
        assert exc_info.value.code == "document.host.failed"
