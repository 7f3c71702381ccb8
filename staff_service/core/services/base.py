"""Base service class for business logic."""

from __future__ import annotations

import logging


class BaseService:
    """Base class for all service classes.

    Provides a class-named logger for business logic services.

    Example:
        class StaffService(BaseService):
            def __init__(self, session: AsyncSession, publisher: EventPublisher):
                super().__init__()
                self.session = session

            async def get_staff(self, staff_id: UUID) -> Staff:
                self.logger.info("Fetching staff", extra={"staff_id": str(staff_id)})
                ...
    """

    def __init__(self) -> None:
        """Initialize base service with a logger named after the subclass."""
        self.logger = logging.getLogger(self.__class__.__name__)
