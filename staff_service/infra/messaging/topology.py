"""Exchange, queue and binding declarations.

Declared on every (re)connect. All declarations are idempotent on the
broker side as long as their arguments do not change.

Layout with default settings:

    bus_booking_events (direct, durable)
        staff.created, staff.updated, staff.deleted ──> staff_events
                     bus_events          (unbound)
                     route_events        (unbound)

    With exchange_type="topic" the single binding is the pattern staff.*

    bus_booking_events.dlx (direct, durable)
        staff.created, staff.updated, ... ──> staff_events.dead
        bus_events                        ──> bus_events.dead
        route_events                      ──> route_events.dead
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import aio_pika

from .conventions import (
    QUEUE_BINDINGS,
    STAFF_ROUTING_KEYS,
    get_dead_letter_queue_name,
    routing_key_matches,
)

if TYPE_CHECKING:
    from aio_pika.abc import AbstractChannel, AbstractExchange, AbstractQueue

    from staff_service.core.settings import RabbitSettings

logger = logging.getLogger(__name__)

DEAD_LETTER_EXCHANGE_ARG = "x-dead-letter-exchange"


@dataclass(frozen=True, slots=True)
class QueueSpec:
    """A durable queue and the patterns binding it to the main exchange."""

    name: str
    bindings: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Topology:
    """Static description of everything declared on connect."""

    exchange_name: str
    exchange_type: str
    dead_letter_exchange: str
    queues: tuple[QueueSpec, ...]
    dead_letter_queues: bool = True
    known_routing_keys: tuple[str, ...] = STAFF_ROUTING_KEYS

    @classmethod
    def from_settings(cls, settings: RabbitSettings) -> Topology:
        return cls(
            exchange_name=settings.exchange_name,
            exchange_type=settings.exchange_type,
            dead_letter_exchange=settings.dead_letter_exchange,
            queues=tuple(QueueSpec(name, patterns) for name, patterns in QUEUE_BINDINGS.items()),
            dead_letter_queues=settings.dead_letter_queues,
        )

    @property
    def queue_names(self) -> tuple[str, ...]:
        return tuple(queue.name for queue in self.queues)

    def queue_arguments(self) -> dict[str, str]:
        return {DEAD_LETTER_EXCHANGE_ARG: self.dead_letter_exchange}

    def routed_keys(self, queue: QueueSpec) -> tuple[str, ...]:
        """Known routing keys that reach ``queue`` through its bindings."""
        return tuple(
            key
            for key in self.known_routing_keys
            if any(routing_key_matches(pattern, key) for pattern in queue.bindings)
        )

    def exchange_bindings(self, queue: QueueSpec) -> tuple[str, ...]:
        """Binding keys to declare on the main exchange for ``queue``.

        A direct exchange cannot evaluate wildcards, so each pattern is
        expanded into the concrete routing keys it covers.
        """
        if self.exchange_type == "topic":
            return queue.bindings
        return self.routed_keys(queue)

    def dead_letter_bindings(self, queue: QueueSpec) -> tuple[str, ...]:
        """Binding keys for ``<queue>.dead`` on the dead-letter exchange.

        Dead-lettered messages keep their original routing key; messages
        published straight to the queue carry the queue name as key.
        """
        return (*self.routed_keys(queue), queue.name)


@dataclass(slots=True)
class DeclaredTopology:
    """Broker-side objects returned by ``declare_topology``."""

    exchange: AbstractExchange
    dead_letter_exchange: AbstractExchange
    queues: dict[str, AbstractQueue] = field(default_factory=dict)
    dead_letter_queues: dict[str, AbstractQueue] = field(default_factory=dict)


async def declare_topology(channel: AbstractChannel, topology: Topology) -> DeclaredTopology:
    """Declare exchanges, queues and bindings on ``channel``."""
    exchange = await channel.declare_exchange(
        topology.exchange_name,
        aio_pika.ExchangeType(topology.exchange_type),
        durable=True,
    )
    dead_letter_exchange = await channel.declare_exchange(
        topology.dead_letter_exchange,
        aio_pika.ExchangeType.DIRECT,
        durable=True,
    )
    declared = DeclaredTopology(exchange=exchange, dead_letter_exchange=dead_letter_exchange)

    for definition in topology.queues:
        queue = await channel.declare_queue(
            definition.name,
            durable=True,
            arguments=topology.queue_arguments(),
        )
        for binding in topology.exchange_bindings(definition):
            await queue.bind(exchange, routing_key=binding)
        declared.queues[definition.name] = queue

        if topology.dead_letter_queues:
            parking = await channel.declare_queue(
                get_dead_letter_queue_name(definition.name), durable=True
            )
            for binding in topology.dead_letter_bindings(definition):
                await parking.bind(dead_letter_exchange, routing_key=binding)
            declared.dead_letter_queues[definition.name] = parking

    logger.info(
        "Broker topology declared",
        extra={
            "exchange": topology.exchange_name,
            "exchange_type": topology.exchange_type,
            "dead_letter_exchange": topology.dead_letter_exchange,
            "queues": list(topology.queue_names),
        },
    )
    return declared
