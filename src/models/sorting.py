"""
Sort State Models

The sort configuration of one tabular view. A view starts unsorted and
moves between states only through `toggle_sort`, which cycles a column
between ascending and descending and never returns it to unsorted.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator


class SortDirection(str, Enum):
    """Direction of a single-column sort."""
    ASC = "asc"
    DESC = "desc"


class SortIndicator(str, Enum):
    """
    Render-time signal for a column header.

    The glyph is what the front end shows next to the column label.
    """
    UNSORTED = "unsorted"
    SORTED_ASCENDING = "sorted_ascending"
    SORTED_DESCENDING = "sorted_descending"

    @property
    def glyph(self) -> str:
        return _GLYPHS[self]


_GLYPHS = {
    SortIndicator.UNSORTED: "↕",
    SortIndicator.SORTED_ASCENDING: "↑",
    SortIndicator.SORTED_DESCENDING: "↓",
}


class SortState(BaseModel):
    """
    Current sort of one view.

    `direction` is None exactly when `key` is None.
    """
    model_config = ConfigDict(frozen=True)

    key: Optional[str] = None
    direction: Optional[SortDirection] = None

    @model_validator(mode="after")
    def validate_key_direction_pairing(self) -> "SortState":
        if (self.key is None) != (self.direction is None):
            raise ValueError("Sort key and direction must both be set or both be empty")
        return self

    @property
    def is_sorted(self) -> bool:
        return self.key is not None

    @property
    def ascending(self) -> bool:
        """True unless sorted descending (unsorted reads as ascending)."""
        return self.direction != SortDirection.DESC


def toggle_sort(state: SortState, column_key: str) -> SortState:
    """
    Compute the state after the user clicks `column_key`.

    - a different column starts ascending
    - the same column flips asc -> desc -> asc
    """
    if not column_key:
        raise ValueError("Column key is required")

    if column_key != state.key:
        return SortState(key=column_key, direction=SortDirection.ASC)

    if state.direction == SortDirection.ASC:
        return SortState(key=column_key, direction=SortDirection.DESC)
    return SortState(key=column_key, direction=SortDirection.ASC)


def current_indicator(state: SortState, column_key: str) -> SortIndicator:
    """Which indicator the header for `column_key` shows under `state`."""
    if state.key != column_key:
        return SortIndicator.UNSORTED
    if state.direction == SortDirection.ASC:
        return SortIndicator.SORTED_ASCENDING
    return SortIndicator.SORTED_DESCENDING
