"""sheet2tree: build categorical trees from spreadsheet tables and export subtrees."""

from sheet2tree.builder import TreeBuilder, build_tree
from sheet2tree.cache import SheetTreeCache
from sheet2tree.exceptions import (
    ConfigError,
    DocumentGenerationError,
    RowDataError,
    SerializationHazard,
    Sheet2treeError,
    SheetNotLoadedError,
)
from sheet2tree.hierarchy import (
    default_hierarchy,
    detect_automatic_hierarchy,
    parse_hierarchy_config,
    resolve_hierarchy,
)
from sheet2tree.sanitizer import (
    clone_without_back_references,
    safe_serialize,
    strip_back_references,
)
from sheet2tree.schemas import (
    ColumnRole,
    ExportPayload,
    RawTable,
    SelectionMiss,
    SheetTree,
    TreeNode,
)
from sheet2tree.selection import list_top_level_values, select_subtree

__all__ = [
    "ColumnRole",
    "ConfigError",
    "DocumentGenerationError",
    "ExportPayload",
    "RawTable",
    "RowDataError",
    "SelectionMiss",
    "SerializationHazard",
    "Sheet2treeError",
    "SheetNotLoadedError",
    "SheetTree",
    "SheetTreeCache",
    "TreeBuilder",
    "TreeNode",
    "build_tree",
    "clone_without_back_references",
    "default_hierarchy",
    "detect_automatic_hierarchy",
    "list_top_level_values",
    "parse_hierarchy_config",
    "resolve_hierarchy",
    "safe_serialize",
    "select_subtree",
    "strip_back_references",
]
