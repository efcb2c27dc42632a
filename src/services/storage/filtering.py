"""
Row matching and ordering for stores that filter in Python.

Spreadsheet cells come back loosely typed ("TRUE", 12, "12", ""),
so equality compares normalized values and ordering ranks
numbers before text before blanks.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional

from src.models.collection import CollectionQuery


def _normalize(value: Any) -> Any:
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, str):
        text = value.strip()
        if text.lower() in ("true", "false"):
            return text.lower()
        try:
            number = Decimal(text)
        except InvalidOperation:
            return text
        return number if number.is_finite() else text
    if isinstance(value, (int, float, Decimal)):
        return Decimal(str(value))
    if value is None:
        return ""
    return str(value)


def cell_equals(cell: Any, value: Any) -> bool:
    """Loose equality between a stored cell and a filter value."""
    return _normalize(cell) == _normalize(value)


def row_matches(row: dict[str, Any], filters: dict[str, Any]) -> bool:
    """True when every filter field equals the row's value."""
    return all(cell_equals(row.get(field), value) for field, value in filters.items())


def sort_key(cell: Any) -> tuple:
    """
    Total ordering over mixed cells: numbers, then text, then blanks.
    ISO dates sort correctly as text.
    """
    normalized = _normalize(cell)
    if normalized == "":
        return (2, Decimal(0), "")
    if isinstance(normalized, Decimal):
        return (0, normalized, "")
    return (1, Decimal(0), str(normalized).lower())


def project(row: dict[str, Any], columns: tuple[str, ...]) -> dict[str, Any]:
    if "*" in columns:
        return dict(row)
    return {column: row.get(column) for column in columns}


def apply_query(rows: Iterable[dict[str, Any]], query: CollectionQuery) -> list[dict[str, Any]]:
    """Filter, order, window and project rows as `query` describes."""
    matched = [row for row in rows if row_matches(row, query.filters)]

    if query.order_by:
        # Blanks stay last in both directions
        present = [row for row in matched if _normalize(row.get(query.order_by)) != ""]
        blank = [row for row in matched if _normalize(row.get(query.order_by)) == ""]
        present.sort(key=lambda row: sort_key(row.get(query.order_by)), reverse=not query.ascending)
        matched = present + blank

    end: Optional[int] = None
    if query.limit is not None:
        end = query.offset + query.limit
    return [project(row, query.columns) for row in matched[query.offset:end]]
