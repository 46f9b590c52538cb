"""Shared test fixtures with in-memory mock repositories and fake collaborators."""

from __future__ import annotations

import asyncio
import json
import uuid
from collections.abc import AsyncGenerator
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from fastapi import FastAPI
from httpx import AsyncClient
from offering_engine.domain.compliance_publisher import CompliancePublisher
from offering_engine.domain.credential_service import CredentialService
from offering_engine.domain.label_level_service import LabelLevelService
from offering_engine.domain.participant_service import ParticipantService
from offering_engine.domain.policy_service import PolicyService
from offering_engine.domain.reference_resolver import ReferenceResolver
from offering_engine.domain.service_offer_service import ServiceOfferService
from offering_engine.domain.signing_keys import SigningKeyResolver
from offering_engine.domain.signing_service import SigningService
from offering_engine.domain.terms_hasher import TermsHasher
from wizard_core.connectors.document_fetcher import DocumentFetcher
from wizard_core.enums import CredentialType, FilterOperator, OfferColumn, SortType
from wizard_core.models import (
    BrokerReceipt,
    Credential,
    FilterRequest,
    Participant,
    ServiceLabelLevel,
    ServiceOffer,
    StandardType,
)
from wizard_core.settings import WizardSettings
from wizard_core.storage.base_storage import BaseStorage
from wizard_core.storage.document_host import DocumentHost
from wizard_core.vault.client import PRIVATE_KEY_NAME, VaultClient

from factories import (
    HOST,
    PARTICIPANT_DID,
    PARTICIPANT_URL,
    PRIVATE_KEY,
    RESOURCE_URL,
    SERVICE_URL,
    TERMS_TEXT,
    TERMS_URL,
    participant_document,
    resource_document,
    service_document,
)

# ─── In-memory mock repositories ─────────────────────────


class MockParticipantRepository:
    def __init__(self) -> None:
        self._store: dict[uuid.UUID, Participant] = {}

    async def create(self, participant: Participant) -> Participant:
        await asyncio.sleep(0)
        self._store[participant.id] = participant
        return participant

    async def get_by_id(self, participant_id: uuid.UUID) -> Participant | None:
        await asyncio.sleep(0)
        return self._store.get(participant_id)

    async def get_by_did(self, did: str) -> Participant | None:
        await asyncio.sleep(0)
        return next((p for p in self._store.values() if p.did == did), None)

    async def update(self, participant: Participant) -> Participant:
        return await self.create(participant)


class MockCredentialRepository:
    def __init__(self) -> None:
        self.credentials: list[Credential] = []

    async def create(self, credential: Credential) -> Credential:
        await asyncio.sleep(0)
        self.credentials.append(credential)
        return credential

    async def get_latest(self, participant_id: uuid.UUID, credential_type: CredentialType) -> Credential | None:
        await asyncio.sleep(0)
        matches = [
            c for c in self.credentials if c.participant_id == participant_id and c.credential_type == credential_type
        ]
        return matches[-1] if matches else None

    def of_type(self, credential_type: CredentialType) -> list[Credential]:
        return [c for c in self.credentials if c.credential_type == credential_type]


def _column_value(offer: ServiceOffer, column: OfferColumn) -> str:
    values = {
        OfferColumn.NAME: offer.name,
        OfferColumn.DESCRIPTION: offer.description,
        OfferColumn.LABEL_LEVEL: offer.label_level or "",
        OfferColumn.PARTICIPANT_ID: str(offer.participant_id),
        OfferColumn.CREATED_AT: offer.created_at.isoformat(),
    }
    return values[column]


class MockServiceOfferRepository:
    def __init__(self) -> None:
        self._store: dict[uuid.UUID, ServiceOffer] = {}

    async def create(self, offer: ServiceOffer) -> ServiceOffer:
        await asyncio.sleep(0)
        self._store[offer.id] = offer
        return offer

    async def get_by_id(self, offer_id: uuid.UUID) -> ServiceOffer | None:
        await asyncio.sleep(0)
        return self._store.get(offer_id)

    async def filter(self, request: FilterRequest) -> tuple[list[ServiceOffer], int]:
        await asyncio.sleep(0)
        result = list(self._store.values())
        for criterion in request.criteria:
            if not criterion.values:
                continue
            if criterion.operator == FilterOperator.LIKE:
                result = [
                    o
                    for o in result
                    if any(v.lower() in _column_value(o, criterion.column).lower() for v in criterion.values)
                ]
            else:
                result = [o for o in result if _column_value(o, criterion.column) in criterion.values]

        sort = request.sort
        column = sort.column if sort else OfferColumn.CREATED_AT
        result.sort(key=lambda o: _column_value(o, column), reverse=not sort or sort.sort_type == SortType.DESC)
        start = request.page * request.size
        return result[start : start + request.size], len(result)

    async def update_message_reference_id(self, offer_id: uuid.UUID, message_reference_id: str) -> None:
        await asyncio.sleep(0)
        offer = self._store[offer_id]
        self._store[offer_id] = offer.model_copy(update={"message_reference_id": message_reference_id})

    @property
    def offers(self) -> list[ServiceOffer]:
        return list(self._store.values())


class MockLabelLevelRepository:
    def __init__(self) -> None:
        self.links: list[ServiceLabelLevel] = []

    async def create(self, link: ServiceLabelLevel) -> ServiceLabelLevel:
        await asyncio.sleep(0)
        self.links.append(link)
        return link


class MockMasterDataRepository:
    def __init__(self) -> None:
        self.standards = [StandardType(type="GDPR2016"), StandardType(type="LGPD2019")]
        self.subdivisions = {"BE-BRU": "Brussels", "DE-BE": "Berlin", "FR-IDF": "Ile-de-France"}

    async def find_standards_by_type(self, names: list[str]) -> list[StandardType]:
        await asyncio.sleep(0)
        return [s for s in self.standards if s.type in names]

    async def find_subdivision_names(self, codes: list[str]) -> list[str]:
        await asyncio.sleep(0)
        return sorted(self.subdivisions[c] for c in codes if c in self.subdivisions)


# ─── Fake collaborators ──────────────────────────────────


class InMemoryStorage(BaseStorage):
    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}

    async def read(self, path: str) -> bytes:
        await asyncio.sleep(0)
        if path not in self.objects:
            raise FileNotFoundError(f"Object not found: {path}")
        return self.objects[path]

    async def write(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> None:
        await asyncio.sleep(0)
        self.objects[path] = data

    async def exists(self, path: str) -> bool:
        await asyncio.sleep(0)
        return path in self.objects

    def document(self, path: str) -> dict[str, Any]:
        result: dict[str, Any] = json.loads(self.objects[path])
        return result


class DocumentServer:
    """Serves remote documents and, under the wizard host, the hosted ones."""

    def __init__(self, storage: InMemoryStorage, base_url: str = HOST) -> None:
        self._storage = storage
        self._base_url = base_url
        self.documents: dict[str, tuple[int, str]] = {}
        self.requested: list[str] = []

    def serve(self, url: str, body: dict[str, Any] | str, status_code: int = 200) -> None:
        self.documents[url] = (status_code, body if isinstance(body, str) else json.dumps(body))

    async def handle(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requested.append(url)
        if url.startswith(self._base_url):
            path = url[len(self._base_url) :]
            if path in self._storage.objects:
                return httpx.Response(200, content=self._storage.objects[path])
        if url in self.documents:
            status_code, body = self.documents[url]
            return httpx.Response(status_code, text=body)
        return httpx.Response(404, text="not found")


class FakeSigner:
    """Signer double that wraps claims into a credential envelope."""

    def __init__(self) -> None:
        self.service_payloads: list[dict[str, Any]] = []
        self.label_payloads: list[dict[str, Any]] = []
        self.veracity: dict[str, Any] | None = {"trustIndex": 0.87}
        self.label_document: dict[str, Any] | None = {
            "credentialSubject": {"type": "gx:LabelLevel", "gx:labelLevel": "L1"}
        }
        self.error: Exception | None = None

    async def sign_service_offer(self, payload: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any] | None]:
        await asyncio.sleep(0)
        self.service_payloads.append(payload)
        if self.error is not None:
            raise self.error
        subject = {"type": "gx:ServiceOffering", "id": payload["serviceHostUrl"], **payload["credentialSubject"]}
        signed = {
            "selfDescriptionCredential": {
                "verifiableCredential": [
                    {"issuer": payload["issuer"], "credentialSubject": subject, "proof": {"jws": "signature"}}
                ]
            },
            "complianceCredential": {
                "id": f"urn:compliance:{payload['name']}",
                "credentialSubject": {"id": payload["serviceHostUrl"]},
            },
        }
        return signed, self.veracity

    async def sign_label_level(self, payload: dict[str, Any]) -> dict[str, Any] | None:
        await asyncio.sleep(0)
        self.label_payloads.append(payload)
        return self.label_document


class CountingNames:
    def __init__(self) -> None:
        self._count = 0

    def __call__(self) -> str:
        self._count += 1
        return f"service_{self._count:04d}"


class FakeSession:
    """Stands in for both an AsyncSession and its transaction."""

    def __init__(self) -> None:
        self.commits = 0

    async def __aenter__(self) -> FakeSession:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        return None

    def begin(self) -> FakeSession:
        return self

    async def commit(self) -> None:
        self.commits += 1


# ─── Fixtures ─────────────────────────────────────────────


@pytest.fixture
def wizard_settings() -> WizardSettings:
    return WizardSettings(host=HOST)


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def document_host(storage: InMemoryStorage) -> DocumentHost:
    return DocumentHost(storage, HOST)


@pytest.fixture
def document_server(storage: InMemoryStorage) -> DocumentServer:
    server = DocumentServer(storage)
    server.serve(PARTICIPANT_URL, participant_document())
    server.serve(RESOURCE_URL, resource_document())
    server.serve(SERVICE_URL, service_document())
    server.serve(TERMS_URL, TERMS_TEXT)
    return server


@pytest.fixture
async def fetcher(document_server: DocumentServer) -> AsyncGenerator[DocumentFetcher]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(document_server.handle))
    async with DocumentFetcher(client=client) as document_fetcher:
        yield document_fetcher


@pytest.fixture
def signer() -> FakeSigner:
    return FakeSigner()


@pytest.fixture
def vault() -> MagicMock:
    mock_vault = MagicMock(spec=VaultClient)
    mock_vault.get.return_value = {PRIVATE_KEY_NAME: PRIVATE_KEY}
    return mock_vault


@pytest.fixture
def participant_repo() -> MockParticipantRepository:
    return MockParticipantRepository()


@pytest.fixture
def credential_repo() -> MockCredentialRepository:
    return MockCredentialRepository()


@pytest.fixture
def offer_repo() -> MockServiceOfferRepository:
    return MockServiceOfferRepository()


@pytest.fixture
def label_level_repo() -> MockLabelLevelRepository:
    return MockLabelLevelRepository()


@pytest.fixture
def master_data_repo() -> MockMasterDataRepository:
    return MockMasterDataRepository()


@pytest.fixture
async def participant(
    participant_repo: MockParticipantRepository,
    credential_repo: MockCredentialRepository,
) -> Participant:
    """Registered participant with a stored key and a reachable participant credential."""
    registered = await participant_repo.create(
        Participant(did=PARTICIPANT_DID, legal_name="Acme Cloud", key_stored=True)
    )
    await credential_repo.create(
        Credential(
            vc_url=PARTICIPANT_URL,
            vc_json=json.dumps(participant_document()),
            credential_type=CredentialType.LEGAL_PARTICIPANT,
            participant_id=registered.id,
        )
    )
    return registered


@pytest.fixture
def credential_service(credential_repo: MockCredentialRepository) -> CredentialService:
    return CredentialService(repo=credential_repo)


@pytest.fixture
def resolver(fetcher: DocumentFetcher) -> ReferenceResolver:
    return ReferenceResolver(fetcher)


@pytest.fixture
def policy_service(document_host: DocumentHost, fetcher: DocumentFetcher) -> PolicyService:
    return PolicyService(document_host, fetcher)


@pytest.fixture
def label_level_service(
    signer: FakeSigner,
    document_host: DocumentHost,
    credential_service: CredentialService,
    label_level_repo: MockLabelLevelRepository,
) -> LabelLevelService:
    return LabelLevelService(signer, document_host, credential_service, label_level_repo)  # type: ignore[arg-type]


@pytest.fixture
def signing_service(
    signer: FakeSigner, document_host: DocumentHost, wizard_settings: WizardSettings
) -> SigningService:
    return SigningService(signer, document_host, wizard_settings)  # type: ignore[arg-type]


@pytest.fixture
def participant_service(
    participant_repo: MockParticipantRepository,
    credential_service: CredentialService,
    resolver: ReferenceResolver,
) -> ParticipantService:
    return ParticipantService(repo=participant_repo, credentials=credential_service, resolver=resolver)


@pytest.fixture
def key_resolver(vault: MagicMock, participant_repo: MockParticipantRepository) -> SigningKeyResolver:
    return SigningKeyResolver(vault, participant_repo)


@pytest.fixture
def service_offer_service(
    offer_repo: MockServiceOfferRepository,
    master_data_repo: MockMasterDataRepository,
    participant_service: ParticipantService,
    key_resolver: SigningKeyResolver,
    resolver: ReferenceResolver,
    policy_service: PolicyService,
    fetcher: DocumentFetcher,
    label_level_service: LabelLevelService,
    signing_service: SigningService,
    credential_service: CredentialService,
    document_host: DocumentHost,
    wizard_settings: WizardSettings,
) -> ServiceOfferService:
    return ServiceOfferService(
        repo=offer_repo,
        master_data=master_data_repo,
        participants=participant_service,
        keys=key_resolver,
        resolver=resolver,
        policies=policy_service,
        terms=TermsHasher(fetcher),
        label_levels=label_level_service,
        signing=signing_service,
        credentials=credential_service,
        host=document_host,
        fetcher=fetcher,
        settings=wizard_settings,
        name_generator=CountingNames(),
    )


@pytest.fixture
def broker() -> MagicMock:
    mock_broker = MagicMock()
    mock_broker.publish = AsyncMock(
        return_value=BrokerReceipt(status_code=201, location="https://queue.test/api/v1/messages/msg-42")
    )
    mock_broker.close = AsyncMock()
    return mock_broker


@pytest.fixture
def compliance_publisher(broker: MagicMock, offer_repo: MockServiceOfferRepository) -> CompliancePublisher:
    return CompliancePublisher(
        broker,
        FakeSession,  # type: ignore[arg-type]
        source=HOST,
        repo_factory=lambda _session: offer_repo,
    )


@pytest.fixture
def app(service_offer_service: ServiceOfferService, compliance_publisher: CompliancePublisher) -> FastAPI:
    """Create a test FastAPI app with mocked dependencies."""
    from offering_engine.api.deps import get_compliance_publisher, get_service_offer_service, get_session
    from offering_engine.main import app as main_app

    # Mock session factory to avoid starlette state error
    main_app.state.session_factory = MagicMock()

    async def _session() -> AsyncGenerator[FakeSession]:
        yield FakeSession()

    main_app.dependency_overrides[get_session] = _session
    main_app.dependency_overrides[get_service_offer_service] = lambda: service_offer_service
    main_app.dependency_overrides[get_compliance_publisher] = lambda: compliance_publisher
    return main_app


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create a test client for the FastAPI app."""
    from httpx import ASGITransport, AsyncClient

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
