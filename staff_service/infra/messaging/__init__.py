"""RabbitMQ messaging: connection lifecycle, topology, publishing and consuming.

Example:
    from staff_service.core.settings import get_rabbit_settings
    from staff_service.infra.messaging import (
        BrokerConnectionManager,
        EventConsumer,
        RabbitEventPublisher,
    )

    manager = BrokerConnectionManager(get_rabbit_settings())
    await manager.initialize()

    publisher = RabbitEventPublisher(manager)
    await publisher.publish_event("staff.created", {"staffId": "abc", "role": "DRIVER"})

    consumer = EventConsumer(manager)
    await consumer.start_consuming("staff_events", handle_staff_event)
    ...
    await manager.close_connection()
"""

from __future__ import annotations

from .connection import BrokerConnectionManager, ConnectionState
from .consumer import EventConsumer, MessageHandler
from .conventions import (
    BUS_EVENTS_QUEUE,
    QUEUE_NAMES,
    ROUTE_EVENTS_QUEUE,
    STAFF_ASSIGNED_BUS,
    STAFF_ASSIGNED_ROUTE,
    STAFF_CREATED,
    STAFF_DELETED,
    STAFF_EVENTS_QUEUE,
    STAFF_ROUTING_KEYS,
    STAFF_STATUS_UPDATED,
    STAFF_UPDATED,
    get_dead_letter_queue_name,
    get_routing_key_pattern,
)
from .exceptions import BrokerConnectionError, ChannelUnavailableError, MessagingError
from .policy import ReconnectPolicy
from .publisher import EventEnvelope, RabbitEventPublisher
from .topology import Topology, declare_topology

__all__ = [
    "BUS_EVENTS_QUEUE",
    "QUEUE_NAMES",
    "ROUTE_EVENTS_QUEUE",
    "STAFF_ASSIGNED_BUS",
    "STAFF_ASSIGNED_ROUTE",
    "STAFF_CREATED",
    "STAFF_DELETED",
    "STAFF_EVENTS_QUEUE",
    "STAFF_ROUTING_KEYS",
    "STAFF_STATUS_UPDATED",
    "STAFF_UPDATED",
    "BrokerConnectionError",
    "BrokerConnectionManager",
    "ChannelUnavailableError",
    "ConnectionState",
    "EventConsumer",
    "EventEnvelope",
    "MessageHandler",
    "MessagingError",
    "RabbitEventPublisher",
    "ReconnectPolicy",
    "Topology",
    "declare_topology",
    "get_dead_letter_queue_name",
    "get_routing_key_pattern",
]
