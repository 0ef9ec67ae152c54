"""
Abstract Storage Interface

DESIGN DECISION: The tracker only needs "read current state, write new state".
Every collection is stored under its own string key as a JSON-serializable
value, with replace-whole-collection semantics. This allows us to:
1. Use in-memory storage for testing
2. Keep a plain JSON directory on disk for local use
3. Put the same data in a Google Sheet without touching business logic

Stores are NOT thread-safe. Callers serialize access.
"""

from abc import ABC, abstractmethod
from typing import Any

from finance_tracker.models.audit import AuditEvent


class EntityStoreInterface(ABC):
    """
    Abstract key-value store for entity collections.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """
        Read the value stored under a key.

        Args:
            key: Collection key (e.g. 'transactions')
            default: Returned when the key has never been written

        Returns:
            The stored JSON-compatible value, or ``default``

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """
        Replace the whole value stored under a key.

        Args:
            key: Collection key
            value: JSON-serializable value

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        """List every key that has been written."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
