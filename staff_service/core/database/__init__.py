"""Core database package: declarative base, mixins and a thin repository."""

from __future__ import annotations

from .base import NAMING_CONVENTION, Base, TimestampMixin, UUIDPKMixin
from .repository import BaseRepository, SearchResult

__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "BaseRepository",
    "SearchResult",
    "TimestampMixin",
    "UUIDPKMixin",
]
