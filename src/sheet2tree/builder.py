"""Build the categorical node tree from table rows."""

from __future__ import annotations

import hashlib
import logging
from typing import Any, Collection, Mapping, Sequence

from sheet2tree.config import SHEET2TREE_DENYLISTED_COLUMNS
from sheet2tree.exceptions import RowDataError
from sheet2tree.hierarchy import ResolvedHierarchy, resolve_hierarchy
from sheet2tree.properties import attach_properties
from sheet2tree.schemas.hierarchy import ColumnRole
from sheet2tree.schemas.node import SheetTree, SourceCoordinates, TreeNode
from sheet2tree.schemas.table import RawTable, column_letter, materialize_cell
from sheet2tree.tracker import RowValueTracker

logger = logging.getLogger(__name__)

# Dedup-key stand-in for an empty cell; no cell value can contain NUL.
_EMPTY_KEY = "\x00empty"


def build_tree(
    table: RawTable,
    config: Mapping[Any, Any],
    *,
    roles: Mapping[Any, ColumnRole | str] | None = None,
    denylist: Collection[str] = SHEET2TREE_DENYLISTED_COLUMNS,
) -> SheetTree:
    """Resolve ``config`` against ``table`` and build its tree.

    Raises:
        ConfigError: If the configuration is invalid. Raised before any row
            is processed.
    """
    hierarchy = resolve_hierarchy(config, table.column_count, roles=roles)
    return TreeBuilder(table, hierarchy, denylist=denylist).build()


def node_id_for(key: str) -> str:
    """Deterministic node id for a dedup key."""
    digest = hashlib.blake2b(key.encode("utf-8"), digest_size=8).hexdigest()
    return f"node-{digest}"


class TreeBuilder:
    """Single-pass construction of a ``SheetTree`` from a ``RawTable``.

    Rows are visited in order. Hierarchy values are carried forward across
    blank continuation rows, and each row either converges onto existing nodes
    (same dedup key) or creates new ones.
    """

    def __init__(
        self,
        table: RawTable,
        hierarchy: ResolvedHierarchy,
        *,
        denylist: Collection[str] = SHEET2TREE_DENYLISTED_COLUMNS,
    ) -> None:
        self._table = table
        self._headers = list(table.headers)
        self._hierarchy = hierarchy
        self._denylist = denylist
        self._skipped: list[RowDataError] = list(hierarchy.skipped)
        self._reported_columns: set[int] = set()

    def build(self) -> SheetTree:
        tree = SheetTree(headers=list(self._headers))
        top_level_index: dict[str, TreeNode] = {}
        tracker = RowValueTracker(self._hierarchy.hierarchy_columns)

        for row_index in range(1, len(self._table.data)):
            row = self._table.data[row_index]
            if not isinstance(row, (list, tuple)):
                self._skip(f"Row {row_index} is missing or malformed", row_index=row_index)
                continue
            if not any(materialize_cell(cell) for cell in row):
                logger.debug("Row %s is blank; skipped", row_index)
                continue

            tracker.observe(row)
            for column in self._hierarchy.top_level_columns:
                value = tracker.current_value(column)
                if not value:
                    continue
                key = f"col{column}-{value}"
                node = top_level_index.get(key)
                if node is None:
                    node = self._new_node(
                        key,
                        column,
                        value,
                        level=0,
                        row_index=row_index,
                        role=self._hierarchy.role_of(column),
                    )
                    top_level_index[key] = node
                    tree.children.append(node)
                self._build_children(node, row, column, row_index, tracker)

        for node in tree.children:
            _discard_child_indexes(node)
        tree.skipped = self._skipped

        logger.info(
            "Built tree",
            extra={
                "top_level_nodes": len(tree.children),
                "nodes": tree.count_nodes(),
                "rows": self._table.data_row_count,
                "skipped": len(self._skipped),
            },
        )
        return tree

    def _build_children(
        self,
        parent: TreeNode,
        row: Sequence[Any],
        parent_column: int,
        row_index: int,
        tracker: RowValueTracker,
    ) -> None:
        child_columns = self._hierarchy.child_columns(parent_column)
        for child_column in child_columns:
            if not 0 <= child_column < len(self._headers):
                if child_column not in self._reported_columns:
                    self._reported_columns.add(child_column)
                    self._skip(
                        f"Child column {child_column} is outside the header bounds",
                        row_index=row_index,
                        column=child_column,
                    )
                continue

            # Empty values are kept as explicit empty nodes.
            value = tracker.current_value(child_column)
            role = self._hierarchy.role_of(child_column)
            if role.is_shared:
                key = f"{parent.id}-col{child_column}-{value or _EMPTY_KEY}"
            else:
                key = f"{parent.id}-col{child_column}-row{row_index}-{value or _EMPTY_KEY}"

            if parent.child_index is None:
                parent.child_index = {}
            child = parent.child_index.get(key)
            if child is None:
                child = self._new_node(
                    key,
                    child_column,
                    value,
                    level=_level_for(parent, child_column, role),
                    row_index=row_index,
                    role=role,
                )
                child.set_parent(parent)
                parent.children.append(child)
                parent.child_index[key] = child

            self._build_children(child, row, child_column, row_index, tracker)

        if not child_columns or not parent.children:
            attach_properties(
                parent,
                row,
                self._headers,
                self._hierarchy.claimed_columns,
                denylist=self._denylist,
            )

    def _new_node(
        self,
        key: str,
        column: int,
        value: str,
        *,
        level: int,
        row_index: int,
        role: ColumnRole,
    ) -> TreeNode:
        letter = column_letter(column)
        spreadsheet_row = row_index + 1
        return TreeNode(
            id=node_id_for(key),
            value=value,
            column_name=self._table.header_name(column),
            column_index=column,
            level=level,
            role=role,
            is_empty=not value,
            source_coordinates=SourceCoordinates(
                column=letter,
                row=spreadsheet_row,
                cell=f"{letter}{spreadsheet_row}",
                row_index=row_index,
            ),
        )

    def _skip(self, message: str, *, row_index: int | None = None, column: int | None = None) -> None:
        logger.warning(message, extra={"row_index": row_index, "column": column})
        self._skipped.append(RowDataError(message, row_index=row_index, column=column))


def _level_for(parent: TreeNode, column: int, role: ColumnRole) -> int:
    # Content columns after a unit column sit directly below that unit.
    if role is ColumnRole.CONTENT:
        for ancestor in (parent, *parent.ancestors()):
            if ancestor.role is ColumnRole.UNIT and column > ancestor.column_index:
                return ancestor.level + 1
    return parent.level + 1


def _discard_child_indexes(node: TreeNode) -> None:
    node.child_index = None
    for child in node.children:
        _discard_child_indexes(child)
