"""Message broker clients for compliance credential publication.

Both transports answer with a ``BrokerReceipt``: an HTTP-like status and a
location whose last path segment is the broker's message id.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Protocol

import httpx

from wizard_core.enums import BrokerBackend
from wizard_core.models import BrokerReceipt
from wizard_core.settings import KafkaSettings, MessagingQueueSettings
from wizard_core.telemetry.context import get_trace_headers

if TYPE_CHECKING:
    from aiokafka import AIOKafkaProducer

logger = logging.getLogger(__name__)

STATUS_CREATED = 201


class MessagingQueueClient(Protocol):
    async def publish(self, record: dict[str, Any]) -> BrokerReceipt: ...

    async def close(self) -> None: ...


class HttpMessagingQueueClient:
    """Publishes records to a REST message queue endpoint."""

    def __init__(
        self,
        settings: MessagingQueueSettings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings or MessagingQueueSettings()
        self._client = client or httpx.AsyncClient(timeout=self._settings.timeout)

    async def publish(self, record: dict[str, Any]) -> BrokerReceipt:
        response = await self._client.post(self._settings.url, json=record, headers=get_trace_headers())
        return BrokerReceipt(status_code=response.status_code, location=response.headers.get("location"))

    async def close(self) -> None:
        await self._client.aclose()


class KafkaMessagingQueueClient:
    """Publishes records to a Kafka topic.

    Follows the platform's graceful degradation pattern on connect: when
    Kafka is unavailable the client stays disconnected and every publish
    fails, which the compliance publisher logs and swallows.
    """

    def __init__(self, topic: str = "wizard.service-offers.compliance") -> None:
        self._producer: AIOKafkaProducer | None = None
        self._topic = topic

    async def connect(self, bootstrap_servers: str) -> None:
        """Connect to Kafka cluster."""
        try:
            from aiokafka import AIOKafkaProducer

            self._producer = AIOKafkaProducer(
                bootstrap_servers=bootstrap_servers,
                value_serializer=lambda v: json.dumps(v, default=str).encode("utf-8"),
                acks="all",
            )
            await self._producer.start()
            logger.info("Connected to Kafka at %s", bootstrap_servers)
        except Exception:
            logger.warning(
                "Failed to connect to Kafka at %s, compliance publishing disabled",
                bootstrap_servers,
                exc_info=True,
            )
            self._producer = None

    async def publish(self, record: dict[str, Any]) -> BrokerReceipt:
        if self._producer is None:
            msg = "Kafka producer not connected"
            raise RuntimeError(msg)

        trace_headers = get_trace_headers()
        if trace_headers:
            record.setdefault("_trace", trace_headers)

        metadata = await self._producer.send_and_wait(self._topic, record)
        location = f"kafka://{metadata.topic}/{metadata.partition}/{metadata.offset}"
        return BrokerReceipt(status_code=STATUS_CREATED, location=location)

    async def close(self) -> None:
        if self._producer is not None:
            await self._producer.stop()
            logger.info("Disconnected from Kafka")
            self._producer = None

    @property
    def is_connected(self) -> bool:
        return self._producer is not None


async def create_messaging_queue_client(
    settings: MessagingQueueSettings | None = None,
    kafka_settings: KafkaSettings | None = None,
) -> MessagingQueueClient:
    """Build the broker client selected by ``MESSAGING_QUEUE_BACKEND``."""
    settings = settings or MessagingQueueSettings()
    if settings.backend == BrokerBackend.KAFKA:
        kafka_settings = kafka_settings or KafkaSettings()
        client = KafkaMessagingQueueClient(topic=kafka_settings.compliance_topic)
        await client.connect(kafka_settings.bootstrap_servers)
        return client
    return HttpMessagingQueueClient(settings)
