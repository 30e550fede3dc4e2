"""Tests for the sheet tree cache."""

from __future__ import annotations

import threading

import pytest

from sheet2tree.builder import build_tree
from sheet2tree.cache import SheetKey, SheetTreeCache
from sheet2tree.exceptions import SheetNotLoadedError
from sheet2tree.sanitizer import find_back_references
from sheet2tree.schemas import RawTable


@pytest.fixture
def cache(course_table: RawTable, course_config: dict) -> SheetTreeCache:
    cache = SheetTreeCache()
    cache.load_table("file-1", "sheet-1", course_table, title="Planning")
    cache.store_tree("file-1", "sheet-1", build_tree(course_table, course_config))
    return cache


class _CountingLock:
    """Re-entrant lock that counts outermost acquisitions."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._depth = 0
        self.holds = 0

    def __enter__(self) -> None:
        self._lock.acquire()
        self._depth += 1
        if self._depth == 1:
            self.holds += 1

    def __exit__(self, *exc_info: object) -> None:
        self._depth -= 1
        self._lock.release()


class TestSheetTreeCache:
    """Tests for SheetTreeCache."""

    def test_get_returns_table_title_and_tree(self, cache: SheetTreeCache) -> None:
        entry = cache.get("file-1", "sheet-1")

        assert entry.title == "Planning"
        assert entry.tree is not None
        assert entry.table.headers[0] == "Block"

    def test_title_defaults_to_sheet_id(self, course_table: RawTable) -> None:
        cache = SheetTreeCache()
        cache.load_table("file-1", "Sheet A", course_table)

        assert cache.get("file-1", "Sheet A").title == "Sheet A"

    def test_unknown_sheet_raises(self) -> None:
        with pytest.raises(SheetNotLoadedError):
            SheetTreeCache().get("nope", "nope")

    def test_tree_missing_until_built(self, course_table: RawTable) -> None:
        cache = SheetTreeCache()
        cache.load_table("file-1", "sheet-1", course_table)

        with pytest.raises(SheetNotLoadedError, match="No tree"):
            cache.get_tree("file-1", "sheet-1")

    def test_store_tree_requires_loaded_table(self, course_table: RawTable, course_config: dict) -> None:
        with pytest.raises(SheetNotLoadedError):
            SheetTreeCache().store_tree("file-1", "sheet-1", build_tree(course_table, course_config))

    def test_reloading_table_drops_tree(self, cache: SheetTreeCache, course_table: RawTable) -> None:
        cache.load_table("file-1", "sheet-1", course_table)

        assert cache.get("file-1", "sheet-1").tree is None

    def test_snapshot_is_detached_copy(self, cache: SheetTreeCache) -> None:
        snapshot = cache.snapshot("file-1", "sheet-1")
        canonical = cache.get_tree("file-1", "sheet-1")

        assert snapshot == canonical
        assert snapshot.children[0] is not canonical.children[0]
        assert find_back_references(snapshot) == []

        snapshot.children.clear()
        assert canonical.children

    def test_titled_snapshot_reads_under_one_lock_hold(self, cache: SheetTreeCache) -> None:
        lock = _CountingLock()
        cache._lock = lock  # type: ignore[assignment]

        title, tree = cache.titled_snapshot("file-1", "sheet-1")

        assert lock.holds == 1
        assert title == "Planning"
        assert tree == cache.get_tree("file-1", "sheet-1")
        assert find_back_references(tree) == []

    def test_edit_mutates_canonical_tree(self, cache: SheetTreeCache) -> None:
        with cache.edit("file-1", "sheet-1") as tree:
            tree.children[0].value = "Renamed"

        assert cache.get_tree("file-1", "sheet-1").children[0].value == "Renamed"
        assert cache.snapshot("file-1", "sheet-1").children[0].value == "Renamed"

    def test_invalidate_source(self, cache: SheetTreeCache, course_table: RawTable) -> None:
        cache.load_table("file-1", "sheet-2", course_table)
        cache.load_table("file-2", "sheet-1", course_table)

        removed = cache.invalidate("file-1")

        assert removed == 2
        assert cache.sheets() == [SheetKey("file-2", "sheet-1")]

    def test_invalidate_single_sheet(self, cache: SheetTreeCache, course_table: RawTable) -> None:
        cache.load_table("file-1", "sheet-2", course_table)

        assert cache.invalidate("file-1", "sheet-2") == 1
        assert cache.sheets() == [SheetKey("file-1", "sheet-1")]

    def test_invalidate_unknown_source(self, cache: SheetTreeCache) -> None:
        assert cache.invalidate("other") == 0

    def test_sheet_key_string(self) -> None:
        assert str(SheetKey("file-1", "sheet-1")) == "file-1-sheet-1"
