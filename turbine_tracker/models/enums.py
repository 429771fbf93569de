"""
Model enums.

String enums shared by the sync engine, settings and the stats layer.
"""

from enum import StrEnum


class SyncStatus(StrEnum):
    """Sync engine state."""

    IDLE = "IDLE"
    SYNCING = "SYNCING"
    PAUSED = "PAUSED"
    ERROR = "ERROR"
    COMPLETED = "COMPLETED"


class ViewMode(StrEnum):
    """Statistics view selector."""

    ALL = "ALL"
    TODAY = "TODAY"
