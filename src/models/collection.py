"""
Remote Collection Models

A CollectionQuery describes one read against a named remote collection:
equality filters, a single ordering field, and a row window.
A QueryResult is what comes back - always a value, never an exception.

DESIGN DECISION: Query values travel as data (the `filters` mapping),
never as text spliced into a query string. `describe()` renders the
logical statement with placeholders only, for logs.
"""

from enum import Enum
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator


RowT = TypeVar("RowT")


class ErrorKind(str, Enum):
    """
    Failure taxonomy shared by the collection client and the assistant.

    INVALID_REQUEST is an alias of INVALID_INPUT.
    """
    INVALID_INPUT = "invalid_input"
    UNAUTHORIZED = "unauthorized"
    REMOTE_UNAVAILABLE = "remote_unavailable"
    NOT_FOUND = "not_found"
    UPSTREAM_FAILURE = "upstream_failure"

    INVALID_REQUEST = "invalid_input"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]


_HTTP_STATUS = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.UPSTREAM_FAILURE: 500,
    ErrorKind.REMOTE_UNAVAILABLE: 503,
}


class CollectionQuery(BaseModel):
    """
    One read against a remote collection.

    Immutable; a new query is built for every fetch.
    `sequence` is assigned by the issuing view (0 outside a view).
    """
    model_config = ConfigDict(frozen=True)

    collection_name: str = Field(..., min_length=1)
    filters: dict[str, Any] = Field(default_factory=dict)
    order_by: Optional[str] = None
    ascending: bool = True
    limit: Optional[int] = Field(default=None, ge=1)
    offset: int = Field(default=0, ge=0)
    columns: tuple[str, ...] = ("*",)
    sequence: int = Field(default=0, ge=0)

    @field_validator("columns")
    @classmethod
    def validate_columns(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        if not v:
            return ("*",)
        return v

    @property
    def selects_all_columns(self) -> bool:
        return "*" in self.columns

    def describe(self) -> str:
        """Logical statement with placeholders, e.g. for log lines."""
        parts = [f"SELECT {', '.join(self.columns)} FROM {self.collection_name}"]
        if self.filters:
            parts.append("WHERE " + " AND ".join(f"{field} = ?" for field in self.filters))
        if self.order_by:
            parts.append(f"ORDER BY {self.order_by} {'ASC' if self.ascending else 'DESC'}")
        if self.limit is not None:
            parts.append(f"LIMIT {self.limit}")
        if self.offset:
            parts.append(f"OFFSET {self.offset}")
        return " ".join(parts)


class QueryResult(BaseModel, Generic[RowT]):
    """
    Outcome of one fetch (or mutation) against a collection.

    Owned by the view that issued the query; never shared.
    """

    rows: list[RowT] = Field(default_factory=list)
    is_loading: bool = False
    error: Optional[ErrorKind] = None
    error_message: Optional[str] = None
    sequence: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None and not self.is_loading

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @classmethod
    def loading(cls, sequence: int = 0) -> "QueryResult":
        return cls(is_loading=True, sequence=sequence)

    @classmethod
    def failure(
        cls,
        error: ErrorKind,
        message: Optional[str] = None,
        sequence: int = 0,
    ) -> "QueryResult":
        return cls(error=error, error_message=message, sequence=sequence)
