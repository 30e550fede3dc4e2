"""Shared schemas for sheet2tree."""

from sheet2tree.schemas.export import ExportPayload, ExportResult, SelectionMiss
from sheet2tree.schemas.hierarchy import IGNORE, ColumnRole, HierarchyConfig, ParentSpec
from sheet2tree.schemas.node import NodeProperty, SheetTree, SourceCoordinates, TreeNode
from sheet2tree.schemas.table import RawTable

__all__ = [
    "IGNORE",
    "ColumnRole",
    "ExportPayload",
    "ExportResult",
    "HierarchyConfig",
    "NodeProperty",
    "ParentSpec",
    "RawTable",
    "SelectionMiss",
    "SheetTree",
    "SourceCoordinates",
    "TreeNode",
]
