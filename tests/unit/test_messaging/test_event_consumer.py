"""Unit tests for EventConsumer acknowledgement semantics."""
from __future__ import annotations

import json
from typing import Any

import aio_pika
import pytest

from staff_service.infra.logging import get_log_context
from staff_service.infra.messaging import (
    BrokerConnectionManager,
    EventConsumer,
    RabbitEventPublisher,
)
from tests.fake_broker import FakeBroker, wait_until


class RecordingHandler:
    """Handler that records payloads and fails the first ``failures`` calls."""

    def __init__(self, failures: int = 0, exc: type[Exception] = TypeError) -> None:
        self.failures = failures
        self.exc = exc
        self.calls: list[Any] = []

    async def __call__(self, payload: Any) -> None:
        self.calls.append(payload)
        if len(self.calls) <= self.failures:
            raise self.exc("handler failed")


async def publish_raw(manager: BrokerConnectionManager, body: bytes, routing_key: str) -> None:
    await manager.ensure_connection()
    await manager.exchange.publish(
        aio_pika.Message(body=body, message_id="raw-1"), routing_key=routing_key
    )


@pytest.fixture
async def publisher(manager) -> RabbitEventPublisher:
    await manager.initialize()
    return RabbitEventPublisher(manager)


@pytest.mark.unit
class TestDelivery:
    @pytest.mark.asyncio
    async def test_successful_handler_acks_once(self, manager, fake_broker, publisher):
        handler = RecordingHandler()
        consumer = EventConsumer(manager)
        await consumer.start_consuming("staff_events", handler)

        await publisher.publish_event("staff.created", {"staffId": "abc", "role": "DRIVER"})
        delivered = await fake_broker.drain()

        assert delivered == 1
        assert handler.calls == [{"staffId": "abc", "role": "DRIVER"}]
        queue = fake_broker.queues["staff_events"]
        assert len(queue.acked) == 1
        assert not queue.messages

    @pytest.mark.asyncio
    async def test_prefetch_is_applied_to_the_channel(self, manager, fake_broker, rabbit_settings):
        consumer = EventConsumer(manager)
        await consumer.start_consuming("staff_events", RecordingHandler())

        assert manager.channel.prefetch_count == rabbit_settings.prefetch_count

    @pytest.mark.asyncio
    async def test_explicit_prefetch_overrides_settings(self, manager):
        consumer = EventConsumer(manager, prefetch_count=3)
        await consumer.start_consuming("staff_events", RecordingHandler())

        assert manager.channel.prefetch_count == 3

    @pytest.mark.asyncio
    async def test_handler_error_requeues_and_redelivers(self, manager, fake_broker, publisher):
        handler = RecordingHandler(failures=1)
        consumer = EventConsumer(manager)
        await consumer.start_consuming("staff_events", handler)

        await publisher.publish_event("staff.updated", {"staffId": "abc", "updates": {"name": "X"}})
        delivered = await fake_broker.drain()

        assert delivered == 2
        assert handler.calls[0] == handler.calls[1]
        queue = fake_broker.queues["staff_events"]
        assert len(queue.acked) == 1
        assert queue.acked[0].redelivered
        assert fake_broker.messages("staff_events.dead") == []

    @pytest.mark.asyncio
    async def test_handler_errors_requeue_forever_without_limit(
        self, manager, fake_broker, publisher
    ):
        handler = RecordingHandler(failures=1000)
        consumer = EventConsumer(manager)
        await consumer.start_consuming("staff_events", handler)

        await publisher.publish_event("staff.deleted", {"staffId": "abc"})
        delivered = await fake_broker.drain(max_deliveries=6)

        assert delivered == 6
        assert len(handler.calls) == 6
        assert len(fake_broker.messages("staff_events")) == 1

    @pytest.mark.asyncio
    async def test_invalid_json_is_dead_lettered_without_calling_handler(
        self, manager, fake_broker
    ):
        handler = RecordingHandler()
        consumer = EventConsumer(manager)
        await consumer.start_consuming("staff_events", handler)

        await publish_raw(manager, b"{not json", "staff.created")
        await fake_broker.drain()

        assert handler.calls == []
        assert fake_broker.messages("staff_events") == []
        [dead] = fake_broker.messages("staff_events.dead")
        assert dead.body == b"{not json"
        assert dead.routing_key == "staff.created"

    @pytest.mark.asyncio
    async def test_non_utf8_body_is_dead_lettered(self, manager, fake_broker):
        handler = RecordingHandler()
        consumer = EventConsumer(manager)
        await consumer.start_consuming("staff_events", handler)

        await publish_raw(manager, b"\xff\xfe\x00", "staff.deleted")
        await fake_broker.drain()

        assert handler.calls == []
        assert len(fake_broker.messages("staff_events.dead")) == 1

    @pytest.mark.asyncio
    async def test_handler_receives_non_object_json(self, manager, fake_broker):
        handler = RecordingHandler()
        consumer = EventConsumer(manager)
        await consumer.start_consuming("staff_events", handler)

        await publish_raw(manager, json.dumps([1, 2, 3]).encode(), "staff.created")
        await fake_broker.drain()

        assert handler.calls == [[1, 2, 3]]

    @pytest.mark.asyncio
    async def test_log_context_is_bound_during_handling(self, manager, fake_broker, publisher):
        seen: list[dict[str, Any]] = []

        async def handler(payload: Any) -> None:
            seen.append(get_log_context())

        consumer = EventConsumer(manager)
        await consumer.start_consuming("staff_events", handler)
        envelope = await publisher.publish_event("staff.created", {"staffId": "abc"})
        await fake_broker.drain()

        assert seen[0]["message_id"] == envelope.message_id
        assert seen[0]["routing_key"] == "staff.created"
        assert seen[0]["queue"] == "staff_events"
        assert "message_id" not in get_log_context()


@pytest.mark.unit
class TestRedeliveryLimit:
    @pytest.mark.asyncio
    async def test_message_is_dead_lettered_after_max_redeliveries(
        self, manager, fake_broker, publisher
    ):
        handler = RecordingHandler(failures=1000)
        consumer = EventConsumer(manager, max_redeliveries=2)
        await consumer.start_consuming("staff_events", handler)

        await publisher.publish_event("staff.created", {"staffId": "abc"})
        await fake_broker.drain()

        # First delivery plus two redeliveries
        assert len(handler.calls) == 3
        assert fake_broker.messages("staff_events") == []
        assert len(fake_broker.messages("staff_events.dead")) == 1

    @pytest.mark.asyncio
    async def test_delivery_count_header_is_honoured(self, rabbit_settings):
        broker = FakeBroker(quorum_headers=True)
        manager = BrokerConnectionManager(rabbit_settings, connect=broker.connect)
        try:
            handler = RecordingHandler(failures=1000)
            consumer = EventConsumer(manager, max_redeliveries=1)
            await consumer.start_consuming("staff_events", handler)

            await RabbitEventPublisher(manager).publish_event("staff.deleted", {"staffId": "abc"})
            await broker.drain()

            assert len(handler.calls) == 2
            assert len(broker.messages("staff_events.dead")) == 1
        finally:
            await manager.close_connection()

    @pytest.mark.asyncio
    async def test_recovering_handler_is_not_dead_lettered(self, manager, fake_broker, publisher):
        handler = RecordingHandler(failures=2)
        consumer = EventConsumer(manager, max_redeliveries=2)
        await consumer.start_consuming("staff_events", handler)

        await publisher.publish_event("staff.created", {"staffId": "abc"})
        await fake_broker.drain()

        assert len(handler.calls) == 3
        assert len(fake_broker.queues["staff_events"].acked) == 1
        assert fake_broker.messages("staff_events.dead") == []

    @pytest.mark.asyncio
    async def test_failure_counter_keeps_only_recent_messages(
        self, manager, fake_broker, publisher
    ):
        consumer = EventConsumer(manager, max_redeliveries=10, failure_cache_size=2)
        await consumer.start_consuming("staff_events", RecordingHandler(failures=1000))

        envelopes = [
            await publisher.publish_event("staff.created", {"staffId": str(i)}) for i in range(3)
        ]
        await fake_broker.drain(max_deliveries=3)

        assert list(consumer._failures) == [envelopes[1].message_id, envelopes[2].message_id]


@pytest.mark.unit
class TestSubscriptions:
    @pytest.mark.asyncio
    async def test_second_handler_for_same_queue_is_rejected(self, manager, fake_broker):
        consumer = EventConsumer(manager)
        await consumer.start_consuming("staff_events", RecordingHandler())

        with pytest.raises(ValueError, match="already has a handler"):
            await consumer.start_consuming("staff_events", RecordingHandler())

        assert consumer.queues == ["staff_events"]
        assert len(fake_broker.queues["staff_events"].active_consumers()) == 1

    @pytest.mark.asyncio
    async def test_consumes_several_queues(self, manager, fake_broker):
        consumer = EventConsumer(manager)
        await consumer.start_consuming("staff_events", RecordingHandler())
        await consumer.start_consuming("bus_events", RecordingHandler())

        assert consumer.queues == ["staff_events", "bus_events"]
        assert len(fake_broker.queues["bus_events"].active_consumers()) == 1

    @pytest.mark.asyncio
    async def test_stop_consuming_cancels_consumers(self, manager, fake_broker, publisher):
        handler = RecordingHandler()
        consumer = EventConsumer(manager)
        await consumer.start_consuming("staff_events", handler)

        await consumer.stop_consuming()
        await publisher.publish_event("staff.created", {"staffId": "abc"})
        delivered = await fake_broker.drain()

        assert delivered == 0
        assert handler.calls == []
        assert consumer.queues == []
        assert len(fake_broker.messages("staff_events")) == 1

    @pytest.mark.asyncio
    async def test_consumers_are_restored_after_reconnect(self, manager, fake_broker, publisher):
        handler = RecordingHandler()
        consumer = EventConsumer(manager)
        await consumer.start_consuming("staff_events", handler)

        fake_broker.drop_connection()
        await wait_until(
            lambda: manager.is_connected()
            and len(fake_broker.queues["staff_events"].active_consumers()) == 1
        )

        await publisher.publish_event("staff.created", {"staffId": "abc"})
        await fake_broker.drain()

        assert handler.calls == [{"staffId": "abc"}]
