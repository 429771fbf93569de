"""Data access layer."""

from turbine_tracker.repositories.base import BaseRepository
from turbine_tracker.repositories.indexed_event_repository import (
    IndexedEventRepository,
)

__all__ = ["BaseRepository", "IndexedEventRepository"]
