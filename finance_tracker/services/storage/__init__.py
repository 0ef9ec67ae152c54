"""
Storage Services Package

Provides the abstract entity store interface and its implementations
(in-memory, JSON directory, Google Sheets).
"""

from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    EntityStoreInterface,
    StorageError,
)
from finance_tracker.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryEntityStore,
)
from finance_tracker.services.storage.json_file import JsonFileEntityStore
from finance_tracker.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsEntityStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "EntityStoreInterface",
    # Exceptions
    "ConnectionError",
    "StorageError",
    # Implementations
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsEntityStore",
    "InMemoryAuditStorage",
    "InMemoryEntityStore",
    "JsonFileEntityStore",
]
