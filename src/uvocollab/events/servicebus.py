"""Service Bus publisher for collaboration lifecycle events."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from azure.servicebus import ServiceBusMessage
from azure.servicebus.aio import ServiceBusClient, ServiceBusSender

from uvocollab.events.contracts import EventEnvelope

if TYPE_CHECKING:
    from uvocollab.config import ServiceBusConfig

logger = logging.getLogger(__name__)


class ServiceBusPublisher:
    """Publish lifecycle events to an Azure Service Bus topic.

    Publishing is fire-and-forget: failures are logged and never raised.
    """

    def __init__(self, config: ServiceBusConfig) -> None:
        self._config = config
        self._client: ServiceBusClient | None = None
        self._sender: ServiceBusSender | None = None
        self._disabled = not config.connection_string
        if self._disabled:
            logger.warning(
                "AZURE_SERVICEBUS_CONNECTION_STRING is not set — "
                "collaboration events will not be published"
            )

    async def _ensure_sender(self) -> ServiceBusSender:
        """Lazily create the Service Bus client and sender."""
        if self._sender is None:
            self._client = ServiceBusClient.from_connection_string(
                self._config.connection_string
            )
            self._sender = self._client.get_topic_sender(topic_name=self._config.topic_name)
        return self._sender

    async def publish(self, event_type: str, data: dict[str, Any]) -> None:
        """Send an event message to the Service Bus topic."""
        if self._disabled:
            return

        try:
            sender = await self._ensure_sender()
            message = ServiceBusMessage(
                body=EventEnvelope(event=event_type, data=data).model_dump_json(),
                application_properties={"event_type": event_type},
            )
            await sender.send_messages(message)
            logger.debug("Published event=%s to Service Bus", event_type)
        except Exception:  # noqa: BLE001
            logger.warning(
                "Failed to publish event=%s to Service Bus",
                event_type,
                exc_info=True,
            )

    async def close(self) -> None:
        """Close the Service Bus client."""
        if self._sender:
            await self._sender.close()
        if self._client:
            await self._client.close()
