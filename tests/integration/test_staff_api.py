"""Integration tests for the staff API over the SQLite fallback database."""

from __future__ import annotations

from uuid import uuid4

import pytest

from staff_service.infra.messaging import ChannelUnavailableError

STAFF_URL = "/api/v1/staff/"


async def _create(client, payload) -> dict:
    response = await client.post(STAFF_URL, json=payload)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.integration
class TestCreateAndRead:
    @pytest.mark.asyncio
    async def test_create_returns_staff_and_publishes(self, client, published, staff_payload):
        response = await client.post(STAFF_URL, json=staff_payload)

        assert response.status_code == 201
        body = response.json()
        assert body["email"] == "jane.driver@example.com"
        assert body["status"] == "ACTIVE"
        assert body["assigned_bus_id"] is None
        assert published.events == [("staff.created", {"staffId": body["id"], "role": "DRIVER"})]

    @pytest.mark.asyncio
    async def test_duplicate_email_conflicts(self, client, published, staff_payload):
        await _create(client, staff_payload)

        response = await client.post(
            STAFF_URL, json={**staff_payload, "email": "JANE.DRIVER@example.com"}
        )

        assert response.status_code == 409
        assert response.json()["type"] == "staff-email-conflict"
        assert published.routing_keys == ["staff.created"]

    @pytest.mark.asyncio
    async def test_invalid_payload_is_422(self, client, published, staff_payload):
        response = await client.post(
            STAFF_URL, json={**staff_payload, "role": "PILOT", "contact_number": "call me"}
        )

        assert response.status_code == 422
        fields = {error["field"] for error in response.json()["errors"]}
        assert fields == {"role", "contact_number"}
        assert published.events == []

    @pytest.mark.asyncio
    async def test_get_by_id(self, client, staff_payload):
        created = await _create(client, staff_payload)

        response = await client.get(f"{STAFF_URL}{created['id']}")

        assert response.status_code == 200
        assert response.json() == created

    @pytest.mark.asyncio
    async def test_unknown_id_is_404(self, client):
        response = await client.get(f"{STAFF_URL}{uuid4()}")

        assert response.status_code == 404
        assert response.json()["type"] == "staff-not-found"

    @pytest.mark.asyncio
    async def test_malformed_id_is_422(self, client):
        response = await client.get(f"{STAFF_URL}not-a-uuid")

        assert response.status_code == 422


@pytest.mark.integration
class TestList:
    @pytest.mark.asyncio
    async def test_filters_and_pagination(self, client, make_staff_payload):
        for i in range(3):
            await _create(client, make_staff_payload(i))
        conductor = await _create(client, make_staff_payload(10, role="CONDUCTOR"))
        await client.post(f"{STAFF_URL}{conductor['id']}/assign-bus", json={"busId": "bus-7"})
        await client.patch(f"{STAFF_URL}{conductor['id']}/status", json={"status": "INACTIVE"})

        page = (await client.get(STAFF_URL, params={"page": 2, "limit": 3})).json()
        assert page["total"] == 4
        assert page["page"] == 2
        assert len(page["staff"]) == 1

        drivers = (await client.get(STAFF_URL, params={"role": "DRIVER"})).json()
        assert drivers["total"] == 3

        inactive = (await client.get(STAFF_URL, params={"status": "INACTIVE"})).json()
        assert [s["id"] for s in inactive["staff"]] == [conductor["id"]]

        on_bus = (await client.get(STAFF_URL, params={"busId": "bus-7"})).json()
        assert [s["id"] for s in on_bus["staff"]] == [conductor["id"]]

        on_route = (await client.get(STAFF_URL, params={"routeId": "route-1"})).json()
        assert on_route == {"staff": [], "total": 0, "page": 1, "limit": 10}

    @pytest.mark.asyncio
    async def test_limit_is_bounded(self, client):
        response = await client.get(STAFF_URL, params={"limit": 101})

        assert response.status_code == 422


@pytest.mark.integration
class TestUpdateAndDelete:
    @pytest.mark.asyncio
    async def test_update_changes_only_sent_fields(self, client, published, staff_payload):
        created = await _create(client, staff_payload)

        response = await client.put(
            f"{STAFF_URL}{created['id']}", json={"shift_type": "NIGHT", "contact_number": "+1 555"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["shift_type"] == "NIGHT"
        assert body["name"] == created["name"]
        assert published.last() == (
            "staff.updated",
            {
                "staffId": created["id"],
                "updates": {"shiftType": "NIGHT", "contactNumber": "+1 555"},
            },
        )

    @pytest.mark.asyncio
    async def test_empty_update_is_400(self, client, staff_payload):
        created = await _create(client, staff_payload)

        response = await client.put(f"{STAFF_URL}{created['id']}", json={})

        assert response.status_code == 400
        assert response.json()["type"] == "empty-update"

    @pytest.mark.asyncio
    async def test_update_to_taken_email_conflicts(self, client, make_staff_payload):
        first = await _create(client, make_staff_payload(1))
        second = await _create(client, make_staff_payload(2))

        response = await client.put(f"{STAFF_URL}{second['id']}", json={"email": first["email"]})

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_delete(self, client, published, staff_payload):
        created = await _create(client, staff_payload)

        response = await client.delete(f"{STAFF_URL}{created['id']}")

        assert response.status_code == 204
        assert published.last() == ("staff.deleted", {"staffId": created["id"]})
        assert (await client.get(f"{STAFF_URL}{created['id']}")).status_code == 404

    @pytest.mark.asyncio
    async def test_delete_unknown_is_404(self, client, published):
        response = await client.delete(f"{STAFF_URL}{uuid4()}")

        assert response.status_code == 404
        assert published.events == []


@pytest.mark.integration
class TestAssignments:
    @pytest.mark.asyncio
    async def test_assign_and_unassign_bus(self, client, published, staff_payload):
        created = await _create(client, staff_payload)
        url = f"{STAFF_URL}{created['id']}"

        assigned = await client.post(f"{url}/assign-bus", json={"busId": "bus-42"})
        unassigned = await client.post(f"{url}/unassign-bus")

        assert assigned.json()["assigned_bus_id"] == "bus-42"
        assert unassigned.json()["assigned_bus_id"] is None
        assert published.events[-2:] == [
            ("staff.assigned.bus", {"staffId": created["id"], "busId": "bus-42"}),
            (
                "staff.assigned.bus",
                {"staffId": created["id"], "previousBusId": "bus-42", "action": "unassigned"},
            ),
        ]

    @pytest.mark.asyncio
    async def test_assign_route(self, client, published, staff_payload):
        created = await _create(client, staff_payload)

        response = await client.post(
            f"{STAFF_URL}{created['id']}/assign-route", json={"routeId": "route-9"}
        )

        assert response.json()["assigned_route_id"] == "route-9"
        assert published.last() == (
            "staff.assigned.route",
            {"staffId": created["id"], "routeId": "route-9"},
        )

    @pytest.mark.asyncio
    async def test_unassign_without_assignment_is_400(self, client, staff_payload):
        created = await _create(client, staff_payload)

        response = await client.post(f"{STAFF_URL}{created['id']}/unassign-route")

        assert response.status_code == 400
        assert response.json()["type"] == "staff-not-assigned"

    @pytest.mark.asyncio
    async def test_inactive_staff_cannot_be_assigned(self, client, published, staff_payload):
        created = await _create(client, {**staff_payload, "status": "INACTIVE"})

        response = await client.post(
            f"{STAFF_URL}{created['id']}/assign-bus", json={"busId": "bus-1"}
        )

        assert response.status_code == 400
        assert response.json()["type"] == "staff-not-active"
        assert published.routing_keys == ["staff.created"]

    @pytest.mark.asyncio
    async def test_missing_bus_id_is_422(self, client, staff_payload):
        created = await _create(client, staff_payload)

        response = await client.post(f"{STAFF_URL}{created['id']}/assign-bus", json={})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_status_update(self, client, published, staff_payload):
        created = await _create(client, staff_payload)

        response = await client.patch(
            f"{STAFF_URL}{created['id']}/status", json={"status": "INACTIVE"}
        )

        assert response.json()["status"] == "INACTIVE"
        assert published.last() == (
            "staff.status.updated",
            {"staffId": created["id"], "status": "INACTIVE"},
        )


@pytest.mark.integration
class TestMessagingFailures:
    @pytest.mark.asyncio
    async def test_messaging_disabled_rejects_writes_but_serves_reads(
        self, app, client, staff_payload
    ):
        app.state.event_publisher = None

        write = await client.post(STAFF_URL, json=staff_payload)
        read = await client.get(STAFF_URL)

        assert write.status_code == 503
        assert write.json()["type"] == "messaging-unavailable"
        assert read.status_code == 200
        assert read.json()["total"] == 0

    @pytest.mark.asyncio
    async def test_publish_failure_is_500_and_keeps_the_row(
        self, client, published, staff_payload
    ):
        published.fail_with = ChannelUnavailableError("no channel")

        response = await client.post(STAFF_URL, json=staff_payload)

        assert response.status_code == 500
        assert response.json()["type"] == "event-publish-failed"
        listed = (await client.get(STAFF_URL)).json()
        assert listed["total"] == 1
        assert listed["staff"][0]["email"] == "jane.driver@example.com"
