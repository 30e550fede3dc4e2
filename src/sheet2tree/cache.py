"""In-process cache of loaded tables and their built trees."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, NamedTuple

from sheet2tree.exceptions import SheetNotLoadedError
from sheet2tree.sanitizer import clone_without_back_references
from sheet2tree.schemas.node import SheetTree
from sheet2tree.schemas.table import RawTable

logger = logging.getLogger(__name__)


class SheetKey(NamedTuple):
    source_id: str
    sheet_id: str

    def __str__(self) -> str:
        return f"{self.source_id}-{self.sheet_id}"


@dataclass
class CachedSheet:
    """A loaded table and, once built, its canonical tree."""

    table: RawTable
    title: str = ""
    tree: SheetTree | None = None


class SheetTreeCache:
    """Owns the canonical tree of every loaded sheet.

    Reads for export and preview go through ``snapshot()``, which clones the
    tree under the cache lock. In-place edits go through ``edit()``, which
    holds the same lock, so a snapshot never observes a half-applied edit.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._sheets: dict[SheetKey, CachedSheet] = {}

    def load_table(self, source_id: str, sheet_id: str, table: RawTable, *, title: str = "") -> None:
        """Store ``table`` for the sheet, dropping any tree built from an older table."""
        key = SheetKey(source_id, sheet_id)
        with self._lock:
            replaced = key in self._sheets
            self._sheets[key] = CachedSheet(table=table, title=title or sheet_id)
        logger.info(
            "Loaded table for %s (%d data rows)%s",
            key,
            table.data_row_count,
            "; previous tree invalidated" if replaced else "",
        )

    def store_tree(self, source_id: str, sheet_id: str, tree: SheetTree) -> None:
        with self._lock:
            self._require(source_id, sheet_id).tree = tree

    def get(self, source_id: str, sheet_id: str) -> CachedSheet:
        """Return the cached entry.

        Raises:
            SheetNotLoadedError: If no table was loaded for the sheet.
        """
        with self._lock:
            return self._require(source_id, sheet_id)

    def get_tree(self, source_id: str, sheet_id: str) -> SheetTree:
        """Return the canonical tree (not a copy).

        Raises:
            SheetNotLoadedError: If the sheet is unknown or has no tree yet.
        """
        with self._lock:
            entry = self._require(source_id, sheet_id)
            if entry.tree is None:
                raise SheetNotLoadedError(
                    f"No tree has been built for sheet {SheetKey(source_id, sheet_id)}"
                )
            return entry.tree

    def snapshot(self, source_id: str, sheet_id: str) -> SheetTree:
        """Clone the canonical tree under the lock."""
        with self._lock:
            return clone_without_back_references(self.get_tree(source_id, sheet_id))

    def titled_snapshot(self, source_id: str, sheet_id: str) -> tuple[str, SheetTree]:
        """Return the sheet title and a tree snapshot taken under one lock hold."""
        with self._lock:
            return self._require(source_id, sheet_id).title, self.snapshot(source_id, sheet_id)

    @contextmanager
    def edit(self, source_id: str, sheet_id: str) -> Iterator[SheetTree]:
        """Hold the cache lock while the caller mutates the canonical tree."""
        with self._lock:
            yield self.get_tree(source_id, sheet_id)

    def invalidate(self, source_id: str, sheet_id: str | None = None) -> int:
        """Drop one sheet, or every sheet of ``source_id`` when ``sheet_id`` is None.

        Returns:
            The number of sheets removed.
        """
        with self._lock:
            keys = [
                key
                for key in self._sheets
                if key.source_id == source_id and (sheet_id is None or key.sheet_id == sheet_id)
            ]
            for key in keys:
                del self._sheets[key]
        if keys:
            logger.info("Invalidated %d sheet(s) of source %s", len(keys), source_id)
        return len(keys)

    def sheets(self) -> list[SheetKey]:
        with self._lock:
            return list(self._sheets)

    def _require(self, source_id: str, sheet_id: str) -> CachedSheet:
        key = SheetKey(source_id, sheet_id)
        entry = self._sheets.get(key)
        if entry is None:
            raise SheetNotLoadedError(f"Sheet {key} has not been loaded")
        return entry
