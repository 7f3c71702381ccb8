"""Queue consumer with manual acknowledgement.

Per delivered message:

    body is not UTF-8 JSON     -> nack(requeue=False)   handler not called, dead-lettered
    handler(payload) succeeds  -> ack()
    handler(payload) raises    -> nack(requeue=True)    redelivered

With ``max_redeliveries`` set, a message that keeps failing is dead-lettered
once it has been requeued that many times.
"""

from __future__ import annotations

import json
import logging
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from functools import partial
from typing import TYPE_CHECKING, Any

from staff_service.infra.logging import remove_from_log_context, set_log_context

from .exceptions import ChannelUnavailableError

if TYPE_CHECKING:
    from aio_pika.abc import AbstractIncomingMessage, AbstractQueue

    from .connection import BrokerConnectionManager

logger = logging.getLogger(__name__)

MessageHandler = Callable[[Any], Awaitable[None]]

DELIVERY_COUNT_HEADER = "x-delivery-count"
_CONTEXT_KEYS = ("message_id", "routing_key", "queue")
FAILURE_CACHE_SIZE = 10_000


class EventConsumer:
    """Consumes queues through a ``BrokerConnectionManager``.

    One handler per queue per process. Consumers are re-registered on the
    new channel after the manager reconnects.

    Args:
        manager: Connection manager providing the channel.
        prefetch_count: QoS prefetch; defaults to the manager's settings.
        max_redeliveries: Requeue limit for failing handlers; defaults to the
            manager's settings. None requeues forever.
        failure_cache_size: How many message ids the in-process failure
            counter remembers when the broker sends no delivery count. The
            least recently failed ids are dropped first.
    """

    def __init__(
        self,
        manager: BrokerConnectionManager,
        *,
        prefetch_count: int | None = None,
        max_redeliveries: int | None = None,
        failure_cache_size: int = FAILURE_CACHE_SIZE,
    ) -> None:
        self._manager = manager
        self.prefetch_count = prefetch_count or manager.settings.prefetch_count
        self.max_redeliveries = (
            max_redeliveries if max_redeliveries is not None else manager.settings.max_redeliveries
        )
        self._handlers: dict[str, MessageHandler] = {}
        self._consumers: dict[str, tuple[AbstractQueue, str]] = {}
        self.failure_cache_size = failure_cache_size
        self._failures: OrderedDict[str, int] = OrderedDict()
        manager.add_reconnect_listener(self._resubscribe)

    @property
    def queues(self) -> list[str]:
        return list(self._handlers)

    async def start_consuming(self, queue_name: str, handler: MessageHandler) -> str:
        """Register ``handler`` for ``queue_name`` and start consuming.

        Returns:
            The broker consumer tag.

        Raises:
            ValueError: If the queue already has a handler in this process.
            ChannelUnavailableError: If no channel could be obtained.
        """
        if queue_name in self._handlers:
            raise ValueError(f"Queue {queue_name!r} already has a handler")
        self._handlers[queue_name] = handler

        try:
            return await self._subscribe(queue_name, handler)
        except BaseException:
            self._handlers.pop(queue_name, None)
            raise

    async def _subscribe(self, queue_name: str, handler: MessageHandler) -> str:
        await self._manager.ensure_connection()
        channel = self._manager.channel
        if channel is None:
            raise ChannelUnavailableError("RabbitMQ channel is not initialized")

        await channel.set_qos(prefetch_count=self.prefetch_count)

        queue = self._manager.queues.get(queue_name)
        if queue is None:
            queue = await channel.get_queue(queue_name, ensure=True)

        tag = await queue.consume(partial(self._on_message, queue_name, handler), no_ack=False)
        self._consumers[queue_name] = (queue, tag)

        logger.info(
            "Consuming queue",
            extra={"queue": queue_name, "consumer_tag": tag, "prefetch_count": self.prefetch_count},
        )
        return tag

    async def _resubscribe(self) -> None:
        self._consumers.clear()
        for queue_name, handler in list(self._handlers.items()):
            await self._subscribe(queue_name, handler)

    async def stop_consuming(self) -> None:
        """Cancel every consumer and forget the handlers."""
        consumers, self._consumers = self._consumers, {}
        self._handlers.clear()
        self._failures.clear()

        for queue_name, (queue, tag) in consumers.items():
            try:
                await queue.cancel(tag)
            except Exception as e:
                logger.warning(
                    "Failed to cancel consumer",
                    extra={"queue": queue_name, "consumer_tag": tag, "error": str(e)},
                )
            else:
                logger.info("Stopped consuming queue", extra={"queue": queue_name})

    # ──────────────────────────────────────────────────────
    # Delivery
    # ──────────────────────────────────────────────────────

    async def _on_message(
        self,
        queue_name: str,
        handler: MessageHandler,
        message: AbstractIncomingMessage,
    ) -> None:
        set_log_context(
            message_id=message.message_id,
            routing_key=message.routing_key,
            queue=queue_name,
        )
        try:
            await self._process(handler, message)
        finally:
            remove_from_log_context(*_CONTEXT_KEYS)

    async def _process(self, handler: MessageHandler, message: AbstractIncomingMessage) -> None:
        try:
            payload = json.loads(message.body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error("Malformed message body, dead-lettering", extra={"error": str(e)})
            await message.nack(requeue=False)
            return

        try:
            await handler(payload)
        except Exception as e:
            requeue = not self._redeliveries_exhausted(message)
            logger.warning(
                "Message handler failed",
                exc_info=True,
                extra={"error": str(e), "requeue": requeue, "redelivered": message.redelivered},
            )
            await message.nack(requeue=requeue)
            return

        self._forget(message)
        await message.ack()

    def _redeliveries_exhausted(self, message: AbstractIncomingMessage) -> bool:
        if self.max_redeliveries is None:
            return False

        header = (message.headers or {}).get(DELIVERY_COUNT_HEADER)
        if isinstance(header, int):
            failures = header + 1
        elif message.message_id:
            failures = self._record_failure(message.message_id)
        else:
            return False

        if failures > self.max_redeliveries:
            self._forget(message)
            logger.error(
                "Redelivery limit reached, dead-lettering",
                extra={"failures": failures, "max_redeliveries": self.max_redeliveries},
            )
            return True
        return False

    def _record_failure(self, message_id: str) -> int:
        failures = self._failures.pop(message_id, 0) + 1
        self._failures[message_id] = failures
        while len(self._failures) > self.failure_cache_size:
            self._failures.popitem(last=False)
        return failures

    def _forget(self, message: AbstractIncomingMessage) -> None:
        if message.message_id:
            self._failures.pop(message.message_id, None)
