"""Best-effort publication of compliance credentials to the message broker.

Runs after the issuance transaction commits. Failures are returned as a
``PublishResult``, logged and counted; they never reach the caller of the
issuance and never touch the persisted offering.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from opentelemetry import metrics
from wizard_core.claims import COMPLIANCE_CREDENTIAL
from wizard_core.events.broker import STATUS_CREATED
from wizard_core.models import PublishResult

from offering_engine.repository.postgres import PgServiceOfferRepository

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
    from wizard_core.events.broker import MessagingQueueClient

    from offering_engine.repository.protocols import ServiceOfferRepository

logger = logging.getLogger(__name__)

_meter = metrics.get_meter("wizard.compliance")
_failure_counter = _meter.create_counter(
    name="compliance.publish.failures",
    description="Compliance credentials that could not be published",
    unit="messages",
)


def message_reference_id(location: str | None) -> str | None:
    """Last path segment of a broker location."""
    if not location:
        return None
    segment = location.rstrip("/").rpartition("/")[2]
    return segment or None


class CompliancePublisher:
    def __init__(
        self,
        broker: MessagingQueueClient,
        session_factory: async_sessionmaker[AsyncSession],
        source: str,
        repo_factory: Callable[[AsyncSession], ServiceOfferRepository] = PgServiceOfferRepository,
    ) -> None:
        self._broker = broker
        self._session_factory = session_factory
        self._source = source
        self._repo_factory = repo_factory

    @staticmethod
    def _failed(error: str) -> PublishResult:
        _failure_counter.add(1, attributes={"reason": error.split(":", 1)[0]})
        return PublishResult(ok=False, error=error)

    async def publish(self, offering_id: uuid.UUID, compliance_json: Mapping[str, Any]) -> PublishResult:
        compliance = compliance_json.get(COMPLIANCE_CREDENTIAL)
        if not isinstance(compliance, Mapping):
            logger.error("Service offer %s has no compliance credential to publish", offering_id)
            return self._failed("missing_compliance_credential")

        record = {"source": self._source, "data": dict(compliance)}
        try:
            receipt = await self._broker.publish(record)
        except Exception as e:
            logger.error("Error publishing service offer %s to message queue", offering_id, exc_info=True)
            return self._failed(f"broker_error: {e}")

        if receipt.status_code != STATUS_CREATED:
            logger.error("Message queue rejected service offer %s with %d", offering_id, receipt.status_code)
            return self._failed(f"broker_status: {receipt.status_code}")

        reference = message_reference_id(receipt.location)
        if reference is None:
            logger.error("Message queue returned no location for service offer %s", offering_id)
            return self._failed("missing_location")

        try:
            async with self._session_factory() as session, session.begin():
                await self._repo_factory(session).update_message_reference_id(offering_id, reference)
        except Exception as e:
            logger.error("Could not store message reference for service offer %s", offering_id, exc_info=True)
            return self._failed(f"store_error: {e}")

        logger.info("Published service offer %s as message %s", offering_id, reference)
        return PublishResult(ok=True, message_reference_id=reference)

    async def publish_and_log(self, offering_id: uuid.UUID, compliance_json: Mapping[str, Any]) -> None:
        """Background-task entry point; the result is logged and discarded."""
        result = await self.publish(offering_id, compliance_json)
        if not result.ok:
            logger.warning("Compliance publish for service offer %s failed: %s", offering_id, result.error)
