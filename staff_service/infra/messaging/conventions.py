"""Exchange, queue and routing key naming conventions.

Centralizes the names shared by the publisher, the consumer, the topology
declaration and the CLI so that they never drift apart.
"""

from __future__ import annotations

# ──────────────────────────────────────────────────────────────────────────────
# Exchange
# ──────────────────────────────────────────────────────────────────────────────

DEFAULT_EXCHANGE_NAME = "bus_booking_events"
"""Main domain events exchange (overridable with RABBIT_EXCHANGE_NAME)."""

DEAD_LETTER_QUEUE_SUFFIX = ".dead"
"""Suffix of the parking queue that collects a queue's dead-lettered messages."""

# ──────────────────────────────────────────────────────────────────────────────
# Queues
# ──────────────────────────────────────────────────────────────────────────────

STAFF_EVENTS_QUEUE = "staff_events"
BUS_EVENTS_QUEUE = "bus_events"
ROUTE_EVENTS_QUEUE = "route_events"

QUEUE_NAMES: tuple[str, ...] = (STAFF_EVENTS_QUEUE, BUS_EVENTS_QUEUE, ROUTE_EVENTS_QUEUE)

# ──────────────────────────────────────────────────────────────────────────────
# Routing keys
# ──────────────────────────────────────────────────────────────────────────────

STAFF_CREATED = "staff.created"
STAFF_UPDATED = "staff.updated"
STAFF_DELETED = "staff.deleted"
STAFF_ASSIGNED_BUS = "staff.assigned.bus"
STAFF_ASSIGNED_ROUTE = "staff.assigned.route"
STAFF_STATUS_UPDATED = "staff.status.updated"

STAFF_ROUTING_KEYS: tuple[str, ...] = (
    STAFF_CREATED,
    STAFF_UPDATED,
    STAFF_DELETED,
    STAFF_ASSIGNED_BUS,
    STAFF_ASSIGNED_ROUTE,
    STAFF_STATUS_UPDATED,
)


def get_routing_key_pattern(event_type_prefix: str) -> str:
    """Generate a single-word wildcard pattern for a topic binding.

    Example:
        >>> get_routing_key_pattern("staff")
        'staff.*'
    """
    return f"{event_type_prefix}.*"


def get_dead_letter_queue_name(queue_name: str) -> str:
    """Name of the parking queue for ``queue_name``.

    Example:
        >>> get_dead_letter_queue_name("staff_events")
        'staff_events.dead'
    """
    return f"{queue_name}{DEAD_LETTER_QUEUE_SUFFIX}"


def routing_key_matches(pattern: str, routing_key: str) -> bool:
    """Match a routing key against an AMQP topic pattern.

    ``*`` matches exactly one word and ``#`` matches zero or more words.
    ``staff.*`` therefore matches ``staff.created`` but not
    ``staff.assigned.bus``.
    """
    return _match_words(pattern.split("."), routing_key.split("."))


def _match_words(pattern: list[str], words: list[str]) -> bool:
    if not pattern:
        return not words
    head, rest = pattern[0], pattern[1:]
    if head == "#":
        return any(_match_words(rest, words[i:]) for i in range(len(words) + 1))
    if not words:
        return False
    if head == "*" or head == words[0]:
        return _match_words(rest, words[1:])
    return False


# Binding patterns per queue. Only staff_events is bound to the exchange;
# bus_events and route_events are declared without bindings.
QUEUE_BINDINGS: dict[str, tuple[str, ...]] = {
    STAFF_EVENTS_QUEUE: (get_routing_key_pattern("staff"),),
    BUS_EVENTS_QUEUE: (),
    ROUTE_EVENTS_QUEUE: (),
}
