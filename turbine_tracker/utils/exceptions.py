"""
Exception types.

Every failure inside a sync session is one of these; the sync engine
treats all of them as transient and schedules a retry.
"""


class IndexerError(Exception):
    """Base exception for indexer errors."""
    pass


class DecodeError(IndexerError):
    """Raised when a raw log lacks a required topic or is malformed."""
    pass


class RpcError(IndexerError):
    """Raised when the node fails on head, timestamp or log requests."""
    pass


class StorageError(IndexerError):
    """Raised when the persistence layer fails."""
    pass


class ConfigLockedError(IndexerError):
    """Raised when changing an option that is locked in the current state."""
    pass
