"""OTel setup for the offer wizard: providers, exporters and instrumentation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.propagate import set_global_textmap
from opentelemetry.propagators.composite import CompositePropagator
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from wizard_core.settings import OTelSettings

if TYPE_CHECKING:
    from fastapi import FastAPI
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

UNTRACED_URLS = "health,ready"

_tracer_provider: TracerProvider | None = None
_meter_provider: MeterProvider | None = None


def instrument_app(app: FastAPI) -> None:
    """Trace incoming API requests. Must run before the app starts serving."""
    FastAPIInstrumentor.instrument_app(app, excluded_urls=UNTRACED_URLS)


def init_telemetry(engine: AsyncEngine | None = None, settings: OTelSettings | None = None) -> None:
    """Install tracer and meter providers and instrument outbound calls.

    Signer, broker and remote document calls all go through httpx; issuance
    writes go through *engine*. Subsequent calls are no-ops.
    """
    global _tracer_provider, _meter_provider

    if _tracer_provider is not None:
        return

    settings = settings or OTelSettings()
    if not settings.enabled:
        logger.info("OTel telemetry disabled via OTEL_ENABLED=false")
        return

    resource = Resource.create({SERVICE_NAME: settings.service_name})
    endpoint = settings.exporter_otlp_endpoint

    _tracer_provider = TracerProvider(resource=resource)
    _tracer_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, insecure=True)))
    trace.set_tracer_provider(_tracer_provider)

    metric_reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=endpoint, insecure=True),
        export_interval_millis=15_000,
    )
    _meter_provider = MeterProvider(resource=resource, metric_readers=[metric_reader])
    metrics.set_meter_provider(_meter_provider)

    # Trace context travels to the signer and the messaging queue
    set_global_textmap(CompositePropagator([TraceContextTextMapPropagator()]))

    HTTPXClientInstrumentor().instrument()
    if engine is not None:
        SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)

    logger.info("OTel telemetry initialized for '%s' -> %s", settings.service_name, endpoint)


def shutdown_telemetry() -> None:
    """Flush and shut down OTel providers. Call at application shutdown."""
    global _tracer_provider, _meter_provider

    if _tracer_provider is not None:
        _tracer_provider.shutdown()
        _tracer_provider = None
    if _meter_provider is not None:
        _meter_provider.shutdown()
        _meter_provider = None
