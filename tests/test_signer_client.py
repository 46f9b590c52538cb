"""Tests for SignerClient."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import httpx
import pytest
from wizard_core.exceptions import UpstreamError
from wizard_core.settings import SignerSettings
from wizard_core.signer.client import SignerClient

if TYPE_CHECKING:
    from pytest_httpx import HTTPXMock

SIGNER = "http://signer.test"


@pytest.fixture
async def client():
    signer = SignerClient(SignerSettings(url=SIGNER))
    yield signer
    await signer.close()


async def test_sign_service_offer(client: SignerClient, httpx_mock: HTTPXMock):
    """The signer may return documents as JSON strings."""
    signed = {"selfDescriptionCredential": {"verifiableCredential": []}}
    httpx_mock.add_response(
        url=f"{SIGNER}/v1/service-offers/sign",
        method="POST",
        json={"data": {"serviceVc": json.dumps(signed), "trustIndex": {"trustIndex": 0.9}}},
    )

    document, veracity = await client.sign_service_offer({"name": "service_0001"})

    assert document == signed
    assert veracity == {"trustIndex": 0.9}
    request = httpx_mock.get_request()
    assert request is not None
    assert json.loads(request.content) == {"name": "service_0001"}


async def test_sign_service_offer_without_veracity(client: SignerClient, httpx_mock: HTTPXMock):
    httpx_mock.add_response(url=f"{SIGNER}/v1/service-offers/sign", json={"serviceVc": {"proof": {}}})

    document, veracity = await client.sign_service_offer({})

    assert document == {"proof": {}}
    assert veracity is None


@pytest.mark.parametrize("trust_index", [0.75, "0.75"])
async def test_bare_trust_index(client: SignerClient, httpx_mock: HTTPXMock, trust_index: object):
    httpx_mock.add_response(
        url=f"{SIGNER}/v1/service-offers/sign", json={"serviceVc": {"proof": {}}, "trustIndex": trust_index}
    )

    _, veracity = await client.sign_service_offer({})

    assert veracity == {"trustIndex": 0.75}


async def test_missing_service_vc(client: SignerClient, httpx_mock: HTTPXMock):
    httpx_mock.add_response(url=f"{SIGNER}/v1/service-offers/sign", json={"data": {}})

    with pytest.raises(UpstreamError) as exc_info:
        await client.sign_service_offer({})
    assert exc_info.value.code == "signing.failed"


async def test_signer_error_status(client: SignerClient, httpx_mock: HTTPXMock):
    httpx_mock.add_response(url=f"{SIGNER}/v1/service-offers/sign", status_code=500, text="boom")

    with pytest.raises(UpstreamError) as exc_info:
        await client.sign_service_offer({})
    assert exc_info.value.code == "signing.failed"


async def test_signer_unreachable(client: SignerClient, httpx_mock: HTTPXMock):
    httpx_mock.add_exception(httpx.ConnectError("refused"))

    with pytest.raises(UpstreamError) as exc_info:
        await client.sign_label_level({})
    assert exc_info.value.code == "signing.failed"


async def test_sign_label_level(client: SignerClient, httpx_mock: HTTPXMock):
    label = {"credentialSubject": {"gx:labelLevel": "L2"}}
    httpx_mock.add_response(url=f"{SIGNER}/v1/label-levels/sign", json={"data": {"labelLevelVc": label}})

    assert await client.sign_label_level({"criteria": {}}) == label


async def test_sign_label_level_without_result(client: SignerClient, httpx_mock: HTTPXMock):
    httpx_mock.add_response(url=f"{SIGNER}/v1/label-levels/sign", json={"data": {"labelLevelVc": None}})

    assert await client.sign_label_level({"criteria": {}}) is None
