"""
In-Memory Storage

Test doubles implementing the same contracts as the Google Sheets
backends. They are used by the test suite and never wired into the
running application.
"""

from copy import deepcopy
from typing import Any, Optional
from uuid import UUID

from src.models.audit import AuditEvent
from src.models.collection import CollectionQuery, ErrorKind, QueryResult
from src.services.storage.filtering import apply_query, row_matches
from src.services.storage.interface import (
    AuditStorageInterface,
    NotFoundError,
    RemoteCollectionClient,
    StorageError,
    error_kind_for,
)


class InMemoryCollectionClient(RemoteCollectionClient):
    """
    Collections held as lists of dicts.

    Every fetch is recorded in `fetched_queries` so tests can assert
    whether (and how) the store was contacted. A collection can be
    made to fail with `fail_collection`.
    """

    def __init__(self, collections: Optional[dict[str, list[dict[str, Any]]]] = None):
        self._collections: dict[str, list[dict[str, Any]]] = deepcopy(collections or {})
        self._failures: dict[str, tuple[ErrorKind, str]] = {}
        self.fetched_queries: list[CollectionQuery] = []

    def seed(self, collection_name: str, rows: list[dict[str, Any]]) -> None:
        """Replace the contents of a collection."""
        self._collections[collection_name] = deepcopy(rows)

    def rows(self, collection_name: str) -> list[dict[str, Any]]:
        return deepcopy(self._collections.get(collection_name, []))

    def fail_collection(
        self,
        collection_name: str,
        kind: ErrorKind,
        message: str = "Simulated failure",
    ) -> None:
        self._failures[collection_name] = (kind, message)

    def _table(self, collection_name: str) -> list[dict[str, Any]]:
        if collection_name not in self._collections:
            raise NotFoundError(f"Collection not found: {collection_name}")
        return self._collections[collection_name]

    def _check_failure(self, collection_name: str, sequence: int = 0) -> Optional[QueryResult]:
        if collection_name in self._failures:
            kind, message = self._failures[collection_name]
            return QueryResult.failure(kind, message, sequence=sequence)
        return None

    async def fetch(self, query: CollectionQuery) -> QueryResult:
        self.fetched_queries.append(query)
        failed = self._check_failure(query.collection_name, query.sequence)
        if failed:
            return failed
        try:
            rows = apply_query(self._table(query.collection_name), query)
        except StorageError as e:
            return QueryResult.failure(error_kind_for(e), str(e), sequence=query.sequence)
        return QueryResult(rows=deepcopy(rows), sequence=query.sequence)

    async def insert(self, collection_name: str, values: dict[str, Any]) -> QueryResult:
        failed = self._check_failure(collection_name)
        if failed:
            return failed
        try:
            table = self._table(collection_name)
        except StorageError as e:
            return QueryResult.failure(error_kind_for(e), str(e))
        row = deepcopy(values)
        table.append(row)
        return QueryResult(rows=[deepcopy(row)])

    async def update(
        self,
        collection_name: str,
        values: dict[str, Any],
        filters: dict[str, Any],
    ) -> QueryResult:
        failed = self._check_failure(collection_name)
        if failed:
            return failed
        try:
            table = self._table(collection_name)
        except StorageError as e:
            return QueryResult.failure(error_kind_for(e), str(e))
        updated = []
        for row in table:
            if row_matches(row, filters):
                row.update(deepcopy(values))
                updated.append(deepcopy(row))
        return QueryResult(rows=updated)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        matching = [e for e in self.events if e.correlation_id == correlation_id]
        return sorted(matching, key=lambda e: e.timestamp)

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
