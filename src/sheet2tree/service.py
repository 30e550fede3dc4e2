"""Orchestration: load sheets, build trees and export subtrees."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Mapping

from sheet2tree.builder import build_tree
from sheet2tree.cache import SheetTreeCache
from sheet2tree.export import DocumentGenerator, safe_filename
from sheet2tree.hierarchy import (
    default_hierarchy,
    detect_automatic_hierarchy,
    parse_hierarchy_config,
)
from sheet2tree.preferences import (
    PreferenceStore,
    load_hierarchy_config,
    save_export_selection,
    save_hierarchy_config,
)
from sheet2tree.schemas import (
    ColumnRole,
    ExportPayload,
    ExportResult,
    HierarchyConfig,
    RawTable,
    SelectionMiss,
    SheetTree,
)
from sheet2tree.selection import select_subtree
from sheet2tree.utils.logging_config import get_logger

logger = get_logger(__name__)

ConfigSource = Literal["explicit", "saved", "detected", "default"]


@dataclass
class BuildOptions:
    """Options for building a sheet tree.

    Attributes:
        config: Explicit hierarchy configuration (int or wire-shaped string
            keys). When None, the saved, detected or default one is used.
        roles: Optional explicit column roles.
        save: If True, persist the configuration after a successful build.
    """

    config: Mapping[Any, Any] | None = None
    roles: dict[Any, ColumnRole | str] = field(default_factory=dict)
    save: bool = False


def load_sheet(
    cache: SheetTreeCache,
    source_id: str,
    sheet_id: str,
    table: RawTable,
    *,
    title: str = "",
) -> None:
    """Register ``table`` for the sheet, replacing any earlier table and tree."""
    cache.load_table(source_id, sheet_id, table, title=title)


def resolve_sheet_config(
    prefs: PreferenceStore,
    source_id: str,
    sheet_id: str,
    headers: list[str],
    explicit: Mapping[Any, Any] | None = None,
) -> tuple[HierarchyConfig, ConfigSource]:
    """Pick the configuration for a sheet: explicit, saved, detected, then default.

    Raises:
        ConfigError: If the explicit or saved configuration is malformed.
    """
    if explicit is not None:
        return parse_hierarchy_config(explicit), "explicit"
    saved = load_hierarchy_config(prefs, source_id, sheet_id)
    if saved:
        return saved, "saved"
    detected = detect_automatic_hierarchy(headers)
    if detected is not None:
        return detected, "detected"
    return default_hierarchy(headers), "default"


def build_sheet_tree(
    cache: SheetTreeCache,
    prefs: PreferenceStore,
    source_id: str,
    sheet_id: str,
    options: BuildOptions | None = None,
) -> tuple[SheetTree, dict[str, Any]]:
    """Build and cache the tree of a loaded sheet.

    Args:
        cache: Cache holding the sheet's table; receives the built tree.
        prefs: Store for saved configurations.
        source_id: Identifier of the source file.
        sheet_id: Identifier of the sheet within the source.
        options: Build options. Uses defaults if None.

    Returns:
        Tuple of (tree, metadata) where metadata records the configuration
        used and where it came from.

    Raises:
        SheetNotLoadedError: If no table was loaded for the sheet.
        ConfigError: If the configuration is invalid. Nothing is cached or
            saved in that case.
    """
    opts = options or BuildOptions()
    entry = cache.get(source_id, sheet_id)
    config, config_source = resolve_sheet_config(
        prefs, source_id, sheet_id, entry.table.headers, opts.config
    )

    tree = build_tree(entry.table, config, roles=opts.roles)
    cache.store_tree(source_id, sheet_id, tree)
    if opts.save:
        save_hierarchy_config(prefs, source_id, sheet_id, config)

    logger.info(
        "Sheet tree ready",
        extra={
            "source_id": source_id,
            "sheet_id": sheet_id,
            "config_source": config_source,
            "saved": opts.save,
        },
    )
    metadata: dict[str, Any] = {
        "config": config,
        "config_source": config_source,
        "skipped": [str(error) for error in tree.skipped],
    }
    return tree, metadata


def prepare_export(
    cache: SheetTreeCache,
    source_id: str,
    sheet_id: str,
    value: str | None,
    *,
    include_empty: bool = True,
    prefs: PreferenceStore | None = None,
) -> ExportPayload | SelectionMiss:
    """Select the requested top-level subtree from a snapshot of the cached tree.

    When ``prefs`` is given, a successful selection is remembered for the sheet.
    """
    title, tree = cache.titled_snapshot(source_id, sheet_id)
    selection = select_subtree(tree, value, sheet_title=title, include_empty=include_empty)
    if prefs is not None and not isinstance(selection, SelectionMiss):
        save_export_selection(prefs, source_id, sheet_id, value)
    return selection


async def export_sheet(
    cache: SheetTreeCache,
    generator: DocumentGenerator,
    source_id: str,
    sheet_id: str,
    value: str | None,
    *,
    include_empty: bool = True,
    prefs: PreferenceStore | None = None,
) -> ExportResult | SelectionMiss:
    """Generate the document for a top-level value (``None`` exports everything).

    The generator is not called when nothing matches.

    Raises:
        SheetNotLoadedError: If the sheet or its tree is missing.
        DocumentGenerationError: If the document service fails.
    """
    selection = prepare_export(
        cache, source_id, sheet_id, value, include_empty=include_empty, prefs=prefs
    )
    if isinstance(selection, SelectionMiss):
        logger.info(
            selection.message,
            extra={"source_id": source_id, "sheet_id": sheet_id},
        )
        return selection

    content = await generator.generate(selection)
    logger.info(
        "Generated document",
        extra={"title": selection.title, "nodes": selection.node_count, "bytes": len(content)},
    )
    return ExportResult(filename=safe_filename(selection.title), content=content)


async def preview_sheet(
    cache: SheetTreeCache,
    generator: DocumentGenerator,
    source_id: str,
    sheet_id: str,
    value: str | None,
    *,
    include_empty: bool = True,
    prefs: PreferenceStore | None = None,
) -> str | SelectionMiss:
    """Render the HTML preview for a top-level value."""
    selection = prepare_export(
        cache, source_id, sheet_id, value, include_empty=include_empty, prefs=prefs
    )
    if isinstance(selection, SelectionMiss):
        return selection
    return await generator.preview(selection)
