"""Service-offering wizard FastAPI application."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from wizard_core.connectors.document_fetcher import DocumentFetcher
from wizard_core.db.engine import create_async_engine_factory, get_async_session_factory
from wizard_core.events.broker import create_messaging_queue_client
from wizard_core.settings import (
    DatabaseSettings,
    KafkaSettings,
    MessagingQueueSettings,
    MinIOSettings,
    SignerSettings,
    VaultSettings,
    WizardSettings,
)
from wizard_core.signer.client import SignerClient
from wizard_core.storage import DocumentHost, MinIOStorage
from wizard_core.telemetry import init_telemetry, instrument_app, shutdown_telemetry
from wizard_core.vault.client import VaultClient

from offering_engine.api.routes_service_offers import router as service_offers_router
from offering_engine.domain.compliance_publisher import CompliancePublisher
from offering_engine.domain.naming import NameGenerator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:  # pragma: no cover
    """Manage application lifecycle: OTel, DB engine, document host, signer and broker."""
    engine = create_async_engine_factory(DatabaseSettings())
    init_telemetry(engine)
    app.state.session_factory = get_async_session_factory(engine)

    wizard_settings = WizardSettings()
    app.state.wizard_settings = wizard_settings
    app.state.document_host = DocumentHost(MinIOStorage.from_settings(MinIOSettings()), wizard_settings.host)
    app.state.document_fetcher = DocumentFetcher(timeout=wizard_settings.http_timeout)
    app.state.signer = SignerClient(SignerSettings())
    app.state.vault = VaultClient(VaultSettings())
    app.state.name_generator = NameGenerator()

    messaging_queue = await create_messaging_queue_client(MessagingQueueSettings(), KafkaSettings())
    app.state.compliance_publisher = CompliancePublisher(
        messaging_queue, app.state.session_factory, source=wizard_settings.host
    )
    logger.info("Offer wizard started, hosting documents under %s", wizard_settings.host)

    yield

    await messaging_queue.close()
    await app.state.signer.close()
    await app.state.document_fetcher.close()
    await engine.dispose()
    shutdown_telemetry()


app = FastAPI(
    title="Service Offering Wizard",
    version="0.1.0",
    lifespan=lifespan,
)

instrument_app(app)

app.include_router(service_offers_router)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/ready")
async def ready() -> dict[str, str]:
    return {"status": "ready"}
