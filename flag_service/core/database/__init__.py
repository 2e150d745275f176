"""Database foundation: declarative base, mixins, repository and sessions."""

from __future__ import annotations

from .base import (
    NAMING_CONVENTION,
    Base,
    SoftDeleteMixin,
    TimestampMixin,
    UUIDv7PKMixin,
    generate_uuid7,
    utcnow,
)
from .repository import BaseRepository

__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "BaseRepository",
    "SoftDeleteMixin",
    "TimestampMixin",
    "UUIDv7PKMixin",
    "generate_uuid7",
    "utcnow",
]
