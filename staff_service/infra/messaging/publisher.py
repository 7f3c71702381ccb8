"""Domain event publisher.

Publishes JSON payloads to the main exchange as persistent messages.
There is no retry here: broker and serialization errors reach the caller.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import aio_pika

from .exceptions import ChannelUnavailableError

if TYPE_CHECKING:
    from .connection import BrokerConnectionManager

logger = logging.getLogger(__name__)

CONTENT_TYPE_JSON = "application/json"

_last_message_id = 0


def next_message_id() -> str:
    """Time-based message id: epoch milliseconds, strictly increasing per process."""
    global _last_message_id
    candidate = time.time_ns() // 1_000_000
    _last_message_id = max(candidate, _last_message_id + 1)
    return str(_last_message_id)


@dataclass(frozen=True, slots=True)
class EventEnvelope:
    """An event as it is handed to the broker."""

    routing_key: str
    payload: Mapping[str, Any]
    body: bytes
    message_id: str
    timestamp: datetime
    content_type: str = CONTENT_TYPE_JSON
    persistent: bool = True

    @classmethod
    def create(cls, routing_key: str, data: Mapping[str, Any]) -> EventEnvelope:
        """Serialize ``data`` and stamp the envelope.

        Raises:
            TypeError: If ``data`` contains values JSON cannot encode.
            ValueError: For circular references or non-finite floats.
        """
        body = json.dumps(data, allow_nan=False).encode("utf-8")
        message_id = next_message_id()
        return cls(
            routing_key=routing_key,
            payload=data,
            body=body,
            message_id=message_id,
            timestamp=datetime.fromtimestamp(int(message_id) / 1000, tz=UTC),
        )

    def to_message(self) -> aio_pika.Message:
        return aio_pika.Message(
            body=self.body,
            content_type=self.content_type,
            delivery_mode=(
                aio_pika.DeliveryMode.PERSISTENT
                if self.persistent
                else aio_pika.DeliveryMode.NOT_PERSISTENT
            ),
            message_id=self.message_id,
            timestamp=self.timestamp,
        )


class RabbitEventPublisher:
    """Publishes domain events through a ``BrokerConnectionManager``.

    Example:
        publisher = RabbitEventPublisher(manager)
        await publisher.publish_event("staff.created", {"staffId": "abc", "role": "DRIVER"})
    """

    def __init__(self, manager: BrokerConnectionManager) -> None:
        self._manager = manager

    async def publish_event(self, routing_key: str, data: Mapping[str, Any]) -> EventEnvelope:
        """Publish ``data`` to the event exchange under ``routing_key``.

        Raises:
            BrokerConnectionError: If the connection could not be established.
            ChannelUnavailableError: If there is still no channel afterwards.
            TypeError | ValueError: If ``data`` is not JSON serializable.
        """
        await self._manager.ensure_connection()

        exchange = self._manager.exchange
        if self._manager.channel is None or exchange is None:
            raise ChannelUnavailableError("RabbitMQ channel is not initialized")

        envelope = EventEnvelope.create(routing_key, data)
        await exchange.publish(envelope.to_message(), routing_key=routing_key)

        logger.info(
            "Event published",
            extra={
                "routing_key": routing_key,
                "message_id": envelope.message_id,
                "exchange": self._manager.topology.exchange_name,
                "size_bytes": len(envelope.body),
            },
        )
        return envelope
