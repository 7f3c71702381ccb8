"""Default queue handlers used by the ``consume`` worker.

They log what arrives; downstream services plug in their own handlers
through ``EventConsumer.start_consuming``.
"""

from __future__ import annotations

import logging
from typing import Any

from .consumer import MessageHandler
from .conventions import BUS_EVENTS_QUEUE, ROUTE_EVENTS_QUEUE, STAFF_EVENTS_QUEUE

logger = logging.getLogger(__name__)


async def handle_staff_event(payload: Any) -> None:
    staff_id = payload.get("staffId") if isinstance(payload, dict) else None
    logger.info("Received staff event", extra={"staff_id": staff_id, "payload": payload})


async def handle_bus_event(payload: Any) -> None:
    logger.info("Received bus event", extra={"payload": payload})


async def handle_route_event(payload: Any) -> None:
    logger.info("Received route event", extra={"payload": payload})


HANDLERS: dict[str, MessageHandler] = {
    STAFF_EVENTS_QUEUE: handle_staff_event,
    BUS_EVENTS_QUEUE: handle_bus_event,
    ROUTE_EVENTS_QUEUE: handle_route_event,
}


def get_handler(queue_name: str) -> MessageHandler:
    """Return the default handler for ``queue_name``.

    Raises:
        KeyError: If the queue has no default handler.
    """
    try:
        return HANDLERS[queue_name]
    except KeyError:
        raise KeyError(f"No handler registered for queue {queue_name!r}") from None
