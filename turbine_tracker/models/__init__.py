"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from turbine_tracker.models.base import Base
from turbine_tracker.models.enums import SyncStatus, ViewMode
from turbine_tracker.models.indexed_event import IndexedEvent
from turbine_tracker.models.sync_checkpoint import (
    CHECKPOINT_ROW_ID,
    SyncCheckpoint,
)

__all__ = [
    "Base",
    "CHECKPOINT_ROW_ID",
    "IndexedEvent",
    "SyncCheckpoint",
    "SyncStatus",
    "ViewMode",
]
