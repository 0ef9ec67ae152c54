"""Services package."""

from finance_tracker.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    EntityStoreInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsEntityStore,
    InMemoryAuditStorage,
    InMemoryEntityStore,
    JsonFileEntityStore,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "ConnectionError",
    "EntityStoreInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsEntityStore",
    "InMemoryAuditStorage",
    "InMemoryEntityStore",
    "JsonFileEntityStore",
    "StorageError",
]
