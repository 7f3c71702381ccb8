"""Database infrastructure package.

Example:
    from staff_service.infra.database import get_async_session

    async with get_async_session() as session:
        result = await session.execute(...)
"""

from __future__ import annotations

from .session import (
    AsyncSessionLocal,
    close_database,
    engine,
    ensure_schema,
    get_async_session,
    init_database,
)

__all__ = [
    "AsyncSessionLocal",
    "close_database",
    "engine",
    "ensure_schema",
    "get_async_session",
    "init_database",
]
