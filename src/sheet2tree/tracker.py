"""Carry-forward tracking of hierarchy values across sparse rows."""

from __future__ import annotations

from typing import Any, Iterable, Sequence

from sheet2tree.schemas.table import materialize_cell


class RowValueTracker:
    """Remember the last non-empty value seen in each hierarchy column.

    Category values are usually written only on the first row of their block
    (the merged-cell convention), so continuation rows read the carried value
    instead of starting a new empty sibling.
    """

    def __init__(self, columns: Iterable[int]) -> None:
        self._columns = tuple(columns)
        self._values: dict[int, str] = {}

    def observe(self, row: Sequence[Any]) -> None:
        """Record the non-empty hierarchy cells of ``row``."""
        for column in self._columns:
            if column >= len(row):
                continue
            value = materialize_cell(row[column])
            if value:
                self._values[column] = value

    def current_value(self, column_index: int) -> str:
        """Return the carried value for ``column_index`` or ``""`` if none seen yet."""
        return self._values.get(column_index, "")

    def reset(self) -> None:
        self._values.clear()
