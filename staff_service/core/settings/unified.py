"""Unified settings composition for convenient access.

Usage:
    from staff_service.core.settings import get_settings

    settings = get_settings()
    print(settings.app.port)
    print(settings.rabbit.exchange_name)

Each nested settings class still loads from its own environment prefix
(APP_, DB_, RABBIT_, LOG_), not from a unified prefix.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .app import AppSettings
from .logs import LoggingSettings
from .postgres import PostgresSettings
from .rabbit import RabbitSettings


class Settings(BaseSettings):
    """Unified settings composing all domain settings.

    Example:
        settings = Settings()
        assert settings.rabbit.reconnect_delay == 5.0
    """

    model_config = SettingsConfigDict(
        frozen=True,
        extra="ignore",
    )

    app: AppSettings = Field(default_factory=AppSettings)
    db: PostgresSettings = Field(default_factory=PostgresSettings)
    rabbit: RabbitSettings = Field(default_factory=RabbitSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get unified settings instance (cached).

    Returns:
        Settings: Unified settings with all domain configurations.
    """
    return Settings()
