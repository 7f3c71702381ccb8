"""Event publisher dependency.

Route handlers depend on the ``EventPublisher`` protocol rather than the
RabbitMQ implementation, so tests can swap in a recording fake through
``app.dependency_overrides``.

Usage:
    from staff_service.core.dependencies.messaging import EventPublisherDep

    @router.post("/staff")
    async def create_staff(data: StaffCreate, publisher: EventPublisherDep):
        ...
        await publisher.publish_event("staff.created", {"staffId": str(staff.id)})
"""

from __future__ import annotations

from typing import Annotated, Any, Protocol, runtime_checkable

from fastapi import Depends, Request

from staff_service.core.exceptions import ServiceUnavailableException


@runtime_checkable
class EventPublisher(Protocol):
    """Protocol for domain event publishers.

    Structural subtyping (PEP 544): any object with a matching
    ``publish_event`` coroutine satisfies it.
    """

    async def publish_event(self, routing_key: str, data: dict[str, Any]) -> None:
        """Serialize ``data`` and publish it to the event exchange under ``routing_key``.

        Raises:
            ChannelUnavailableError: If no channel could be obtained.
        """
        ...


async def get_event_publisher(request: Request) -> EventPublisher:
    """Return the publisher created during application startup.

    Raises:
        ServiceUnavailableException: 503 when messaging is disabled.
    """
    publisher = getattr(request.app.state, "event_publisher", None)
    if publisher is None:
        raise ServiceUnavailableException(
            detail="Message broker is not configured",
            type="messaging-unavailable",
            extra={"service": "rabbitmq"},
        )
    return publisher


EventPublisherDep = Annotated[EventPublisher, Depends(get_event_publisher)]
