"""Raw table input model."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator


def materialize_cell(value: Any) -> str:
    """Convert a raw cell into the string value used throughout the tree."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def column_letter(column_index: int) -> str:
    """Return the spreadsheet column label for a 0-based index (0 -> A, 26 -> AA)."""
    if column_index < 0:
        raise ValueError(f"Column index must be non-negative, got {column_index}")
    letters = ""
    remaining = column_index + 1
    while remaining:
        remaining, offset = divmod(remaining - 1, 26)
        letters = chr(65 + offset) + letters
    return letters


def placeholder_column_name(column_index: int) -> str:
    """Name used for columns without a header."""
    return f"Column {column_index + 1}"


class RawTable(BaseModel):
    """An already-materialized sheet: header names plus the raw row grid.

    Attributes:
        headers: Header names, one per column.
        data: Row grid; ``data[0]`` is conventionally the header row and the
            remaining rows are data. Rows are kept as supplied so that
            malformed rows can be reported during tree construction.
    """

    headers: list[str] = Field(default_factory=list)
    data: list[Any] = Field(default_factory=list)

    @field_validator("headers", mode="before")
    @classmethod
    def normalize_headers(cls, v: list[Any] | None) -> list[str]:
        """Materialize header cells into stripped strings."""
        if not v:
            return []
        return [materialize_cell(item) for item in v]

    @classmethod
    def from_rows(cls, rows: list[list[Any]]) -> RawTable:
        """Build a table whose headers are taken from the first row."""
        headers = list(rows[0]) if rows else []
        return cls(headers=headers, data=list(rows))

    @property
    def column_count(self) -> int:
        return len(self.headers)

    @property
    def data_row_count(self) -> int:
        return max(len(self.data) - 1, 0)

    def header_name(self, column_index: int) -> str:
        """Return the header for ``column_index`` or its placeholder name."""
        if 0 <= column_index < len(self.headers) and self.headers[column_index]:
            return self.headers[column_index]
        return placeholder_column_name(column_index)
