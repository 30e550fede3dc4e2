"""Custom exceptions for sheet2tree."""

from __future__ import annotations


class Sheet2treeError(Exception):
    """Base exception for sheet2tree operations."""


class ConfigError(Sheet2treeError):
    """Hierarchy configuration is cyclic or references an unknown column."""

    def __init__(self, message: str, *, column: int | str | None = None) -> None:
        super().__init__(message)
        self.column = column


class RowDataError(Sheet2treeError):
    """A row or column fragment was skipped during tree construction.

    Never raised out of a build; instances are collected on the resulting
    ``SheetTree.skipped`` list.
    """

    def __init__(
        self,
        message: str,
        *,
        row_index: int | None = None,
        column: int | str | None = None,
    ) -> None:
        super().__init__(message)
        self.row_index = row_index
        self.column = column


class SerializationHazard(Sheet2treeError):
    """A reused or cyclic reference was replaced during safe serialization."""

    def __init__(self, message: str, *, path: str = "$") -> None:
        super().__init__(message)
        self.path = path


class SheetNotLoadedError(Sheet2treeError):
    """No table or tree is cached for the requested sheet."""


class DocumentGenerationError(Sheet2treeError):
    """The document generation service failed."""
