"""
Sortable Remote View

Binds one tabular screen's sort state to a remote collection.

FLOW:
1. The user clicks a column header -> toggle_sort replaces the SortState
2. build_query derives a fresh CollectionQuery from filters + state + page
3. refresh() fetches it and applies the result

Rendering is left to the caller: the view only exposes the rows,
the loading/error flags and a SortIndicator per column.

CONCURRENCY: fetches are independent coroutines. Every refresh takes the
next sequence number; a result is applied only if no newer refresh was
issued while it was in flight (last request wins). Stale results are
dropped on arrival rather than cancelled.
"""

from typing import Any, Generic, Optional, TypeVar
from uuid import UUID

import structlog
from pydantic import BaseModel, ValidationError

from src.audit import AuditLogger
from src.models.collection import CollectionQuery, ErrorKind, QueryResult
from src.models.sorting import (
    SortIndicator,
    SortState,
    current_indicator,
    toggle_sort,
)
from src.services.storage import RemoteCollectionClient


logger = structlog.get_logger(__name__)

RowT = TypeVar("RowT")


def build_query(
    collection_name: str,
    base_filters: Optional[dict[str, Any]],
    state: SortState,
    limit: Optional[int] = None,
    offset: int = 0,
    sequence: int = 0,
    columns: tuple[str, ...] = ("*",),
) -> CollectionQuery:
    """
    Derive the query for the current filters and sort state.

    Deterministic. An unsorted state produces no ordering at all.
    """
    order_by = state.key if state.is_sorted else None
    return CollectionQuery(
        collection_name=collection_name,
        filters=dict(base_filters or {}),
        order_by=order_by,
        ascending=state.ascending,
        limit=limit,
        offset=offset,
        columns=columns,
        sequence=sequence,
    )


class SortableRemoteView(Generic[RowT]):
    """
    Sort/filter/page state of one view plus its most recent result.

    Each instance owns its state; nothing is shared between views.
    A disabled view never contacts the client (e.g. a history view
    opened before a transaction is selected).
    """

    def __init__(
        self,
        client: RemoteCollectionClient,
        collection_name: str,
        base_filters: Optional[dict[str, Any]] = None,
        limit: Optional[int] = None,
        row_model: Optional[type[BaseModel]] = None,
        columns: tuple[str, ...] = ("*",),
        audit_logger: Optional[AuditLogger] = None,
        enabled: bool = True,
        correlation_id: Optional[UUID] = None,
    ):
        if limit is not None and limit < 1:
            raise ValueError("Page size must be at least 1")

        self._client = client
        self._collection_name = collection_name
        self._filters: dict[str, Any] = dict(base_filters or {})
        self._limit = limit
        self._row_model = row_model
        self._columns = columns
        self._audit_logger = audit_logger
        self._enabled = enabled
        self._correlation_id = correlation_id

        self._state = SortState()
        self._page = 0
        self._latest_sequence = 0
        self._result: QueryResult = QueryResult()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def collection_name(self) -> str:
        return self._collection_name

    @property
    def state(self) -> SortState:
        return self._state

    @property
    def filters(self) -> dict[str, Any]:
        return dict(self._filters)

    @property
    def page(self) -> int:
        return self._page

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def latest_sequence(self) -> int:
        """Sequence number of the most recently issued fetch."""
        return self._latest_sequence

    @property
    def result(self) -> QueryResult:
        return self._result

    @property
    def rows(self) -> list:
        return self._result.rows

    @property
    def is_loading(self) -> bool:
        return self._result.is_loading

    @property
    def has_next_page(self) -> bool:
        """Best guess: a full page suggests more rows follow."""
        return self._limit is not None and self._result.row_count >= self._limit

    def toggle_sort(self, column_key: str) -> SortState:
        """Apply a header click. Resets to the first page."""
        self._state = toggle_sort(self._state, column_key)
        self._page = 0
        return self._state

    def indicator(self, column_key: str) -> SortIndicator:
        return current_indicator(self._state, column_key)

    def set_filters(self, filters: dict[str, Any]) -> None:
        """Replace the equality filters. Resets to the first page."""
        self._filters = dict(filters)
        self._page = 0

    def next_page(self) -> int:
        if self._limit is not None:
            self._page += 1
        return self._page

    def previous_page(self) -> int:
        self._page = max(0, self._page - 1)
        return self._page

    def current_query(self, sequence: int = 0) -> CollectionQuery:
        offset = self._page * self._limit if self._limit is not None else 0
        return build_query(
            self._collection_name,
            self._filters,
            self._state,
            limit=self._limit,
            offset=offset,
            sequence=sequence,
            columns=self._columns,
        )

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    async def refresh(self) -> QueryResult:
        """
        Fetch the current query and apply it unless superseded.

        Returns the view's result after this call, which is the newer
        result (or still-loading state) when this fetch turned out stale.
        """
        if not self._enabled:
            self._result = QueryResult()
            return self._result

        self._latest_sequence += 1
        sequence = self._latest_sequence
        query = self.current_query(sequence)

        # Previous rows stay visible while loading
        self._result = self._result.model_copy(
            update={"is_loading": True, "sequence": sequence}
        )

        try:
            fetched = await self._client.fetch(query)
        except Exception as e:
            # The client contract forbids raising; treat a breach as unavailability
            fetched = QueryResult.failure(ErrorKind.REMOTE_UNAVAILABLE, str(e), sequence=sequence)
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type="collection_client_raised",
                    error_message=str(e),
                    details={"collection": self._collection_name},
                    correlation_id=self._correlation_id,
                )

        if sequence != self._latest_sequence:
            if self._audit_logger:
                await self._audit_logger.log_stale_result_discarded(
                    collection_name=self._collection_name,
                    stale_sequence=sequence,
                    latest_sequence=self._latest_sequence,
                    correlation_id=self._correlation_id,
                )
            return self._result

        self._result = self._typed(fetched, sequence)

        if self._audit_logger:
            if self._result.error is None:
                await self._audit_logger.log_collection_fetched(
                    collection_name=self._collection_name,
                    statement=query.describe(),
                    row_count=self._result.row_count,
                    sequence=sequence,
                    correlation_id=self._correlation_id,
                )
            else:
                await self._audit_logger.log_collection_fetch_failed(
                    collection_name=self._collection_name,
                    error_kind=self._result.error.value,
                    error_message=self._result.error_message,
                    sequence=sequence,
                    correlation_id=self._correlation_id,
                )

        return self._result

    async def sort_by(self, column_key: str) -> QueryResult:
        """Toggle the sort on `column_key` and refetch."""
        self.toggle_sort(column_key)
        return await self.refresh()

    def _typed(self, fetched: QueryResult, sequence: int) -> QueryResult:
        if fetched.error is not None:
            return QueryResult.failure(fetched.error, fetched.error_message, sequence=sequence)

        if self._row_model is None:
            return QueryResult(rows=list(fetched.rows), sequence=sequence)

        rows = []
        for raw in fetched.rows:
            try:
                rows.append(self._row_model.model_validate(raw))
            except ValidationError as e:
                logger.warning(
                    "row_skipped",
                    collection=self._collection_name,
                    row_id=raw.get("id") if isinstance(raw, dict) else None,
                    errors=e.error_count(),
                )
        return QueryResult(rows=rows, sequence=sequence)
