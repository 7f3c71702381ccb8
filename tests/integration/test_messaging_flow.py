"""End-to-end: API mutations reach the broker and the staff_events consumer."""

from __future__ import annotations

import json

import pytest

from staff_service.infra.messaging import EventConsumer

STAFF_URL = "/api/v1/staff/"


class Collector:
    def __init__(self) -> None:
        self.payloads: list[object] = []

    async def __call__(self, payload: object) -> None:
        self.payloads.append(payload)


@pytest.mark.integration
class TestMessagingFlow:
    @pytest.mark.asyncio
    async def test_created_event_is_consumed_from_staff_events(
        self, broker_client, manager, fake_broker, staff_payload
    ):
        collector = Collector()
        await EventConsumer(manager).start_consuming("staff_events", collector)

        response = await broker_client.post(STAFF_URL, json=staff_payload)
        await fake_broker.drain()

        assert fake_broker.exchanges["bus_booking_events"].type == "direct"
        staff_id = response.json()["id"]
        assert collector.payloads == [{"staffId": staff_id, "role": "DRIVER"}]
        [published] = fake_broker.published
        assert published.exchange == "bus_booking_events"
        assert published.routing_key == "staff.created"
        assert published.message.content_type == "application/json"
        assert json.loads(published.message.body) == collector.payloads[0]

    @pytest.mark.asyncio
    async def test_multi_word_keys_do_not_reach_staff_events(
        self, broker_client, fake_broker, staff_payload
    ):
        created = (await broker_client.post(STAFF_URL, json=staff_payload)).json()
        fake_broker.queues["staff_events"].messages.clear()

        await broker_client.post(f"{STAFF_URL}{created['id']}/assign-bus", json={"busId": "b-1"})
        await broker_client.patch(
            f"{STAFF_URL}{created['id']}/status", json={"status": "INACTIVE"}
        )

        assert [p.routing_key for p in fake_broker.published][1:] == [
            "staff.assigned.bus",
            "staff.status.updated",
        ]
        assert fake_broker.messages("staff_events") == []
        assert fake_broker.messages("bus_events") == []

    @pytest.mark.asyncio
    async def test_lost_connection_recovers_for_the_next_write(
        self, broker_client, manager, fake_broker, make_staff_payload
    ):
        fake_broker.drop_connection()

        response = await broker_client.post(STAFF_URL, json=make_staff_payload(1))

        assert response.status_code == 201
        assert manager.is_connected()
        assert fake_broker.messages("staff_events")[-1].routing_key == "staff.created"
