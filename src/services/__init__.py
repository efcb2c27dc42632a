"""Services package."""

from src.services.storage import (
    AuditStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsCollectionClient,
    InMemoryAuditStorage,
    InMemoryCollectionClient,
    NotFoundError,
    RemoteCollectionClient,
    RemoteUnavailableError,
    StorageError,
    UnauthorizedError,
)

__all__ = [
    "AuditStorageInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsCollectionClient",
    "InMemoryAuditStorage",
    "InMemoryCollectionClient",
    "NotFoundError",
    "RemoteCollectionClient",
    "RemoteUnavailableError",
    "StorageError",
    "UnauthorizedError",
]
