"""Tree node models."""

from __future__ import annotations

import weakref
from dataclasses import dataclass, field
from typing import Any, Iterator

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from sheet2tree.exceptions import RowDataError
from sheet2tree.schemas.hierarchy import ColumnRole


class SourceCoordinates(BaseModel):
    """Where a value came from in the source sheet.

    Attributes:
        column: Spreadsheet column letter (``A``, ``B``, ... ``AA``).
        row: 1-based spreadsheet row number.
        cell: ``A1``-style cell label.
        row_index: 0-based index of the row in ``RawTable.data``.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    column: str
    row: int
    cell: str
    row_index: int


class NodeProperty(BaseModel):
    """A non-hierarchy column value attached to a node."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    column_index: int
    column_name: str
    value: str = ""
    source_coordinates: SourceCoordinates | None = None


@dataclass
class TreeNode:
    """A node of the categorical tree.

    ``parent`` is a weak back-reference for upward navigation only. It is
    never copied, compared or serialized. ``child_index`` is the dedup index
    used while the tree is built and is ``None`` in a finished tree.
    """

    id: str
    value: str
    column_name: str
    column_index: int
    level: int
    role: ColumnRole = ColumnRole.STRUCTURAL
    is_empty: bool = False
    source_coordinates: SourceCoordinates | None = None
    children: list[TreeNode] = field(default_factory=list)
    properties: list[NodeProperty] = field(default_factory=list)
    parent_ref: weakref.ReferenceType[TreeNode] | None = field(
        default=None, repr=False, compare=False
    )
    child_index: dict[str, TreeNode] | None = field(
        default=None, repr=False, compare=False
    )

    @property
    def parent(self) -> TreeNode | None:
        if self.parent_ref is None:
            return None
        return self.parent_ref()

    def set_parent(self, parent: TreeNode | None) -> None:
        self.parent_ref = weakref.ref(parent) if parent is not None else None

    @property
    def has_back_reference(self) -> bool:
        return self.parent_ref is not None

    def property_for(self, column_index: int) -> NodeProperty | None:
        for prop in self.properties:
            if prop.column_index == column_index:
                return prop
        return None

    def walk(self) -> Iterator[TreeNode]:
        """Yield this node and all descendants depth-first."""
        yield self
        for child in self.children:
            yield from child.walk()

    def ancestors(self) -> Iterator[TreeNode]:
        """Yield parents from the closest one upward."""
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def to_dict(self) -> dict[str, Any]:
        """Plain, back-reference free representation of the subtree.

        Keys are camelCase, the shape the document renderer reads.
        """
        return {
            "id": self.id,
            "value": self.value,
            "columnName": self.column_name,
            "columnIndex": self.column_index,
            "level": self.level,
            "role": self.role.value,
            "isEmpty": self.is_empty,
            "sourceCoordinates": (
                self.source_coordinates.model_dump(by_alias=True) if self.source_coordinates else None
            ),
            "properties": [prop.model_dump(by_alias=True) for prop in self.properties],
            "children": [child.to_dict() for child in self.children],
        }


@dataclass
class SheetTree:
    """The root of a built tree: headers plus the top-level nodes."""

    headers: list[str]
    children: list[TreeNode] = field(default_factory=list)
    skipped: list[RowDataError] = field(default_factory=list, compare=False)

    def walk(self) -> Iterator[TreeNode]:
        for node in self.children:
            yield from node.walk()

    def count_nodes(self) -> int:
        return sum(1 for _ in self.walk())

    def find(self, node_id: str) -> TreeNode | None:
        for node in self.walk():
            if node.id == node_id:
                return node
        return None

    def parent_index(self) -> dict[str, str | None]:
        """Map every node id to its parent's id, derived from ``children`` alone."""
        index: dict[str, str | None] = {}

        def _visit(nodes: list[TreeNode], parent_id: str | None) -> None:
            for node in nodes:
                index[node.id] = parent_id
                _visit(node.children, node.id)

        _visit(self.children, None)
        return index

    def to_dict(self) -> dict[str, Any]:
        return {
            "headers": list(self.headers),
            "root": {"children": [node.to_dict() for node in self.children]},
        }
