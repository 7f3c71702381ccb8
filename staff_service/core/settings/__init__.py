"""Modular Pydantic Settings v2 configuration.

Settings are split by domain (app/db/rabbit/logging), immutable, and
loaded through LRU-cached loaders:

    from staff_service.core.settings import get_rabbit_settings

Or through the unified object:

    from staff_service.core.settings import get_settings

    settings = get_settings()
    print(settings.rabbit.exchange_name)

Configuration precedence (highest to lowest):
    1. init kwargs (testing/overrides)
    2. YAML/conf.d files (optional, local/dev)
    3. Environment variables (production)
    4. .env file (development only)
    5. secrets_dir (Kubernetes/Docker secrets)
"""

from __future__ import annotations

from .app import AppSettings
from .loader import (
    clear_all_caches,
    get_app_settings,
    get_db_settings,
    get_logging_settings,
    get_rabbit_settings,
)
from .logs import LoggingSettings
from .postgres import PostgresSettings
from .rabbit import RabbitSettings
from .unified import Settings, get_settings

__all__ = [
    "AppSettings",
    "LoggingSettings",
    "PostgresSettings",
    "RabbitSettings",
    "Settings",
    "clear_all_caches",
    "get_app_settings",
    "get_db_settings",
    "get_logging_settings",
    "get_rabbit_settings",
    "get_settings",
]
