"""Database dependencies for FastAPI route handlers.

Two session getters exist for different use cases:

1. `get_db_session()` (this module) - FastAPI dependency, lifecycle tied
   to the HTTP request.
2. `get_async_session()` (infra.database) - framework-agnostic context
   manager for CLI commands and message handlers.

Both use the same underlying session factory.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from staff_service.infra.database import get_async_session


async def get_db_session() -> AsyncGenerator[AsyncSession]:
    """FastAPI dependency for database session.

    Yields:
        Database session that is automatically closed after request.
    """
    async with get_async_session() as session:
        yield session


DbSession = Annotated[AsyncSession, Depends(get_db_session)]
