"""
Abstract Storage Interface

DESIGN DECISION: Views and services never talk to a storage backend
directly. They receive a RemoteCollectionClient in their constructor.
This allows us to:
1. Swap Google Sheets for a hosted database later
2. Use in-memory storage for testing
3. Keep view logic decoupled from storage implementation

The collection contract is intentionally small: equality filters, one
ordering field, a row window, and two mutations. Every operation returns
a QueryResult; storage exceptions never cross this boundary.
"""

from abc import ABC, abstractmethod
from typing import Any
from uuid import UUID

from src.models.audit import AuditEvent
from src.models.collection import CollectionQuery, ErrorKind, QueryResult


class RemoteCollectionClient(ABC):
    """
    Abstract interface over named remote collections.

    Implementations translate their own failures into tagged results
    (see `error_kind_for`); callers never see an exception.
    """

    @abstractmethod
    async def fetch(self, query: CollectionQuery) -> QueryResult:
        """
        Read rows matching the query.

        Args:
            query: Collection, equality filters, ordering and row window

        Returns:
            QueryResult whose rows are plain dicts, tagged with
            query.sequence. On failure, `error` is UNAUTHORIZED,
            NOT_FOUND or REMOTE_UNAVAILABLE.
        """
        pass

    @abstractmethod
    async def insert(self, collection_name: str, values: dict[str, Any]) -> QueryResult:
        """
        Insert one row.

        Returns:
            QueryResult holding the inserted row
        """
        pass

    @abstractmethod
    async def update(
        self,
        collection_name: str,
        values: dict[str, Any],
        filters: dict[str, Any],
    ) -> QueryResult:
        """
        Set `values` on every row matching the equality `filters`.

        Returns:
            QueryResult holding the updated rows (possibly none)
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID, in chronological order.
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Collection or entity not found in storage."""
    pass


class UnauthorizedError(StorageError):
    """Credentials missing or rejected by the storage backend."""
    pass


class RemoteUnavailableError(StorageError):
    """Could not reach the storage backend."""
    pass


def error_kind_for(error: Exception) -> ErrorKind:
    """Map a storage failure to the error kind reported to callers."""
    if isinstance(error, NotFoundError):
        return ErrorKind.NOT_FOUND
    if isinstance(error, UnauthorizedError):
        return ErrorKind.UNAUTHORIZED
    return ErrorKind.REMOTE_UNAVAILABLE
