"""Tests for the orchestration layer."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

import pytest

from sheet2tree.cache import SheetTreeCache
from sheet2tree.exceptions import ConfigError, SheetNotLoadedError
from sheet2tree.preferences import InMemoryPreferenceStore, load_export_selection, save_hierarchy_config
from sheet2tree.schemas import ExportResult, RawTable, SelectionMiss
from sheet2tree.service import (
    BuildOptions,
    build_sheet_tree,
    export_sheet,
    load_sheet,
    prepare_export,
    preview_sheet,
    resolve_sheet_config,
)


@pytest.fixture
def cache(merged_cell_table: RawTable) -> SheetTreeCache:
    cache = SheetTreeCache()
    load_sheet(cache, "file-1", "sheet-1", merged_cell_table, title="Planning")
    return cache


@pytest.fixture
def prefs() -> InMemoryPreferenceStore:
    return InMemoryPreferenceStore()


@pytest.fixture
def generator() -> AsyncMock:
    generator = AsyncMock()
    generator.generate = AsyncMock(return_value=b"%PDF-1.7")
    generator.preview = AsyncMock(return_value="<html>preview</html>")
    return generator


class TestResolveSheetConfig:
    """Tests for configuration precedence."""

    def test_explicit_wins(self, prefs: InMemoryPreferenceStore) -> None:
        save_hierarchy_config(prefs, "f", "s", {0: None})

        config, source = resolve_sheet_config(prefs, "f", "s", ["Blok", "Week", "Les"], {"1": None})

        assert (config, source) == ({1: None}, "explicit")

    def test_saved_before_detection(self, prefs: InMemoryPreferenceStore) -> None:
        save_hierarchy_config(prefs, "f", "s", {0: None})

        assert resolve_sheet_config(prefs, "f", "s", ["Blok", "Week", "Les"]) == ({0: None}, "saved")

    def test_detected_before_default(self, prefs: InMemoryPreferenceStore) -> None:
        config, source = resolve_sheet_config(prefs, "f", "s", ["Blok", "Week", "Les"])

        assert (config, source) == ({0: None, 1: 0, 2: 1}, "detected")

    def test_default(self, prefs: InMemoryPreferenceStore) -> None:
        assert resolve_sheet_config(prefs, "f", "s", ["X", "Y"]) == ({0: None, 1: 0}, "default")


class TestBuildSheetTree:
    """Tests for build_sheet_tree."""

    def test_builds_and_caches(
        self, cache: SheetTreeCache, prefs: InMemoryPreferenceStore, merged_cell_config: dict
    ) -> None:
        tree, metadata = build_sheet_tree(
            cache, prefs, "file-1", "sheet-1", BuildOptions(config=merged_cell_config)
        )

        assert cache.get_tree("file-1", "sheet-1") is tree
        assert metadata["config_source"] == "explicit"
        assert metadata["skipped"] == []
        assert prefs.get("file-1-sheet-1") is None

    def test_save_persists_config(
        self, cache: SheetTreeCache, prefs: InMemoryPreferenceStore, merged_cell_config: dict
    ) -> None:
        build_sheet_tree(cache, prefs, "file-1", "sheet-1", BuildOptions(config=merged_cell_config, save=True))

        assert prefs.get("file-1-sheet-1") == {"0": None, "1": 0, "2": 1}
        _, metadata = build_sheet_tree(cache, prefs, "file-1", "sheet-1")
        assert metadata["config_source"] == "saved"

    def test_invalid_config_is_neither_cached_nor_saved(
        self, cache: SheetTreeCache, prefs: InMemoryPreferenceStore
    ) -> None:
        with pytest.raises(ConfigError):
            build_sheet_tree(cache, prefs, "file-1", "sheet-1", BuildOptions(config={0: 1, 1: 0}, save=True))

        assert cache.get("file-1", "sheet-1").tree is None
        assert prefs.get("file-1-sheet-1") is None

    def test_unknown_sheet(self, prefs: InMemoryPreferenceStore) -> None:
        with pytest.raises(SheetNotLoadedError):
            build_sheet_tree(SheetTreeCache(), prefs, "file-1", "sheet-1")


class TestExportSheet:
    """Tests for export_sheet and preview_sheet."""

    @pytest.fixture(autouse=True)
    def _built(self, cache: SheetTreeCache, prefs: InMemoryPreferenceStore, merged_cell_config: dict) -> None:
        build_sheet_tree(cache, prefs, "file-1", "sheet-1", BuildOptions(config=merged_cell_config))

    @pytest.mark.asyncio
    async def test_export_matching_value(self, cache: SheetTreeCache, generator: AsyncMock) -> None:
        result = await export_sheet(cache, generator, "file-1", "sheet-1", "A")

        assert isinstance(result, ExportResult)
        assert result.content == b"%PDF-1.7"
        assert result.filename == "Planning___A.pdf"
        payload = generator.generate.await_args.args[0]
        assert payload.title == "Planning - A"
        assert [node["value"] for node in json.loads(payload.serialized_tree)] == ["A"]

    @pytest.mark.asyncio
    async def test_export_everything(self, cache: SheetTreeCache, generator: AsyncMock) -> None:
        result = await export_sheet(cache, generator, "file-1", "sheet-1", None, include_empty=False)

        assert isinstance(result, ExportResult)
        payload = generator.generate.await_args.args[0]
        assert payload.title == "Planning - Complete Overview"
        assert payload.include_empty is False

    @pytest.mark.asyncio
    async def test_miss_does_not_call_generator(self, cache: SheetTreeCache, generator: AsyncMock) -> None:
        """Exporting a value with no top-level node returns a miss and generates nothing."""
        result = await export_sheet(cache, generator, "file-1", "sheet-1", "Z")

        assert isinstance(result, SelectionMiss)
        assert result.available_values == ["A", "B"]
        generator.generate.assert_not_called()

    @pytest.mark.asyncio
    async def test_export_leaves_cached_tree_intact(self, cache: SheetTreeCache, generator: AsyncMock) -> None:
        before = cache.get_tree("file-1", "sheet-1").to_dict()

        await export_sheet(cache, generator, "file-1", "sheet-1", "A")

        tree = cache.get_tree("file-1", "sheet-1")
        assert tree.to_dict() == before
        assert tree.children[0].children[0].parent is tree.children[0]

    @pytest.mark.asyncio
    async def test_preview(self, cache: SheetTreeCache, generator: AsyncMock) -> None:
        result = await preview_sheet(cache, generator, "file-1", "sheet-1", "B")

        assert result == "<html>preview</html>"
        generator.preview.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_preview_miss(self, cache: SheetTreeCache, generator: AsyncMock) -> None:
        result = await preview_sheet(cache, generator, "file-1", "sheet-1", "Z")

        assert isinstance(result, SelectionMiss)
        generator.preview.assert_not_called()

    def test_prepare_export_reads_title_and_tree_together(self, cache: SheetTreeCache) -> None:
        with patch.object(cache, "titled_snapshot", wraps=cache.titled_snapshot) as titled:
            with patch.object(cache, "get", wraps=cache.get) as get:
                payload = prepare_export(cache, "file-1", "sheet-1", "A")

        assert not isinstance(payload, SelectionMiss)
        assert payload.title == "Planning - A"
        titled.assert_called_once_with("file-1", "sheet-1")
        get.assert_not_called()

    @pytest.mark.asyncio
    async def test_successful_export_remembers_choice(
        self, cache: SheetTreeCache, prefs: InMemoryPreferenceStore, generator: AsyncMock
    ) -> None:
        await export_sheet(cache, generator, "file-1", "sheet-1", "B", prefs=prefs)

        assert load_export_selection(prefs, "file-1", "sheet-1", ["A", "B"]) == "B"

    @pytest.mark.asyncio
    async def test_miss_is_not_remembered(
        self, cache: SheetTreeCache, prefs: InMemoryPreferenceStore, generator: AsyncMock
    ) -> None:
        await preview_sheet(cache, generator, "file-1", "sheet-1", None, prefs=prefs)
        await preview_sheet(cache, generator, "file-1", "sheet-1", "Z", prefs=prefs)

        assert load_export_selection(prefs, "file-1", "sheet-1", ["A", "B"]) == "Complete Overview"
