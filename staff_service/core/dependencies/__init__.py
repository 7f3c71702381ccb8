"""FastAPI dependencies shared across features."""

from __future__ import annotations

from .database import DbSession, get_db_session
from .messaging import EventPublisher, EventPublisherDep, get_event_publisher

__all__ = [
    "DbSession",
    "EventPublisher",
    "EventPublisherDep",
    "get_db_session",
    "get_event_publisher",
]
