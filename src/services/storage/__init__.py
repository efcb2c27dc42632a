"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Currently implements Google Sheets as the backend, but designed to be swappable.
"""

from src.services.storage.interface import (
    AuditStorageInterface,
    NotFoundError,
    RemoteCollectionClient,
    RemoteUnavailableError,
    StorageError,
    UnauthorizedError,
    error_kind_for,
)
from src.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsCollectionClient,
)
from src.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryCollectionClient,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "RemoteCollectionClient",
    "error_kind_for",
    # Exceptions
    "NotFoundError",
    "RemoteUnavailableError",
    "StorageError",
    "UnauthorizedError",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsCollectionClient",
    # Test doubles
    "InMemoryAuditStorage",
    "InMemoryCollectionClient",
]
