"""Pydantic models for the sheet API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from server.server_config import MAX_TABLE_ROWS
from sheet2tree.schemas import ColumnRole
from sheet2tree.selection import COMPLETE_OVERVIEW


class LoadTableRequest(BaseModel):
    """Request model for loading a sheet's table.

    Attributes
    ----------
    data : list[Any]
        Row grid. ``data[0]`` is the header row.
    headers : list[Any] | None
        Header names. Taken from ``data[0]`` when omitted.
    title : str
        Sheet title used in export titles. Defaults to the sheet id.

    """

    data: list[Any] = Field(..., description="Row grid including the header row")
    headers: list[Any] | None = Field(default=None, description="Header names")
    title: str = Field(default="", description="Sheet title")

    @field_validator("data")
    @classmethod
    def validate_data(cls, v: list[Any]) -> list[Any]:
        """Validate that ``data`` has a header row and is within the row limit."""
        if not v:
            err = "data must contain at least the header row"
            raise ValueError(err)
        if not isinstance(v[0], list):
            err = "data[0] must be the header row"
            raise ValueError(err)
        if len(v) - 1 > MAX_TABLE_ROWS:
            err = f"data has {len(v) - 1} rows; the limit is {MAX_TABLE_ROWS}"
            raise ValueError(err)
        return v

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Strip surrounding whitespace from ``title``."""
        return v.strip()


class LoadTableResponse(BaseModel):
    """Response model for a loaded table.

    Attributes
    ----------
    source_id : str
        Source the sheet belongs to.
    sheet_id : str
        Sheet identifier.
    columns : int
        Number of header columns.
    rows : int
        Number of data rows.

    """

    source_id: str
    sheet_id: str
    columns: int
    rows: int


class BuildTreeRequest(BaseModel):
    """Request model for building a sheet's tree.

    Attributes
    ----------
    config : dict[str, Any] | None
        Column index -> parent index, ``null`` or ``"ignore"``. When omitted,
        the saved, detected or default configuration is used.
    roles : dict[str, ColumnRole]
        Optional explicit column roles.
    save : bool
        Persist the configuration after a successful build.

    """

    config: dict[str, Any] | None = Field(default=None, description="Hierarchy configuration")
    roles: dict[str, ColumnRole] = Field(default_factory=dict, description="Explicit column roles")
    save: bool = Field(default=False, description="Save the configuration")


class TreeResponse(BaseModel):
    """Response model for a built tree.

    Attributes
    ----------
    headers : list[str]
        Header names of the sheet.
    root : dict[str, Any]
        ``{"children": [...]}`` with the top-level nodes.
    config : dict[str, Any] | None
        Configuration the tree was built with, in wire shape.
    config_source : str | None
        Where the configuration came from.
    skipped : list[str]
        Rows and columns skipped during the build.

    """

    headers: list[str]
    root: dict[str, Any]
    config: dict[str, Any] | None = None
    config_source: str | None = None
    skipped: list[str] = Field(default_factory=list)


class TopLevelResponse(BaseModel):
    """Distinct top-level values, in first-seen order.

    Attributes
    ----------
    values : list[str]
        Top-level values available for export.
    selected : str | None
        Last export choice for the sheet (a value or ``"Complete Overview"``),
        ``None`` when nothing is remembered or the choice is no longer offered.

    """

    values: list[str]
    selected: str | None = Field(default=None, description="Remembered export choice")


class ConfigResponse(BaseModel):
    """Saved configuration of a sheet, ``None`` when nothing is saved."""

    config: dict[str, Any] | None = None


class ExportRequest(BaseModel):
    """Request model for export and preview.

    Attributes
    ----------
    value : str | None
        Top-level value to export. ``None``, an empty string or
        ``"Complete Overview"`` exports every top-level item.
    include_empty : bool
        Show empty cells in the generated document.

    """

    value: str | None = Field(default=None, description="Top-level value to export")
    include_empty: bool = Field(default=True, description="Include empty cells")

    @field_validator("value")
    @classmethod
    def normalize_value(cls, v: str | None) -> str | None:
        """Map the blank and overview choices to ``None``."""
        if v is None:
            return None
        v = v.strip()
        if not v or v == COMPLETE_OVERVIEW:
            return None
        return v


class ErrorResponse(BaseModel):
    """Error response model.

    Attributes
    ----------
    error : str
        Error message describing what went wrong.
    available_values : list[str] | None
        Valid top-level values, set when an export selection matched nothing.

    """

    error: str = Field(..., description="Error message")
    available_values: list[str] | None = Field(default=None, description="Valid top-level values")
