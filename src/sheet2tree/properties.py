"""Attach non-hierarchy columns of a row to a node as properties."""

from __future__ import annotations

from typing import Any, Collection, Sequence

from sheet2tree.config import SHEET2TREE_DENYLISTED_COLUMNS
from sheet2tree.schemas.node import NodeProperty, SourceCoordinates, TreeNode
from sheet2tree.schemas.table import column_letter, materialize_cell, placeholder_column_name


def attach_properties(
    node: TreeNode,
    row: Sequence[Any],
    headers: Sequence[str],
    claimed_columns: Collection[int],
    *,
    denylist: Collection[str] = SHEET2TREE_DENYLISTED_COLUMNS,
) -> None:
    """Attach every unclaimed, non-denylisted column of ``row`` to ``node``.

    A node keeps the first value seen per column index, so calling this once
    per row that revisits the node leaves the first row's snapshot intact.
    """
    for index in range(len(headers)):
        if index in claimed_columns:
            continue
        column_name = headers[index] or placeholder_column_name(index)
        if column_name in denylist:
            continue
        if node.property_for(index) is not None:
            continue

        value = materialize_cell(row[index]) if index < len(row) else ""
        coordinates = None
        if node.source_coordinates is not None:
            letter = column_letter(index)
            spreadsheet_row = node.source_coordinates.row
            coordinates = SourceCoordinates(
                column=letter,
                row=spreadsheet_row,
                cell=f"{letter}{spreadsheet_row}",
                row_index=node.source_coordinates.row_index,
            )
        node.properties.append(
            NodeProperty(
                column_index=index,
                column_name=column_name,
                value=value,
                source_coordinates=coordinates,
            )
        )
