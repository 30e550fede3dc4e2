"""Remove back-references from subtrees and serialize them safely."""

from __future__ import annotations

import dataclasses
import json
import logging
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable, Iterator, TypeVar, Union

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from sheet2tree.exceptions import SerializationHazard
from sheet2tree.schemas.node import SheetTree, TreeNode

logger = logging.getLogger(__name__)

CIRCULAR_MARKER = "[Circular]"

# Build-time and navigation-only fields; never copied or serialized.
_TRANSIENT_FIELDS = frozenset({"parent_ref", "child_index"})

NodesT = TypeVar("NodesT", bound=Union[TreeNode, SheetTree, list, tuple])


def strip_back_references(nodes: NodesT) -> NodesT:
    """Clear the parent reference of every node in place, depth-first.

    Accepts a node, a sequence of nodes or a ``SheetTree`` and returns it.
    """
    for node in iter_unique_nodes(nodes):
        node.parent_ref = None
    return nodes


def clone_without_back_references(nodes: NodesT) -> NodesT:
    """Return a new structure equal to ``nodes`` minus parent references.

    The parent reference is never read, so this is safe whether or not
    ``strip_back_references`` ran first. Returns the same shape it was given.
    """
    memo: dict[int, TreeNode] = {}
    if isinstance(nodes, TreeNode):
        return _clone(nodes, memo)
    if isinstance(nodes, SheetTree):
        return SheetTree(
            headers=list(nodes.headers),
            children=[_clone(node, memo) for node in nodes.children],
            skipped=list(nodes.skipped),
        )
    return type(nodes)(_clone(node, memo) for node in nodes)


def find_back_references(nodes: TreeNode | SheetTree | Iterable[TreeNode]) -> list[TreeNode]:
    """Return every node that still carries a parent reference."""
    return [node for node in iter_unique_nodes(nodes) if node.has_back_reference]


def safe_serialize(
    value: Any,
    *,
    hazards: list[SerializationHazard] | None = None,
    indent: int | None = None,
) -> str:
    """Serialize ``value`` to JSON, tolerating cycles and shared references.

    Every container reached through a second reference path is replaced by
    ``CIRCULAR_MARKER``. Each replacement is logged and, when ``hazards`` is
    given, recorded on it. Parent references are never followed.
    """
    seen: set[int] = set()

    def _visit(obj: Any, path: str) -> bool:
        marker = id(obj)
        if marker in seen:
            message = f"Reused reference replaced with {CIRCULAR_MARKER} at {path}"
            logger.warning(message)
            if hazards is not None:
                hazards.append(SerializationHazard(message, path=path))
            return False
        seen.add(marker)
        return True

    def _convert(obj: Any, path: str) -> Any:
        if isinstance(obj, Enum):
            return obj.value
        if obj is None or isinstance(obj, (str, int, float, bool)):
            return obj
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()

        if isinstance(obj, TreeNode):
            if not _visit(obj, path):
                return CIRCULAR_MARKER
            result: dict[str, Any] = {}
            for item in dataclasses.fields(obj):
                if item.name in _TRANSIENT_FIELDS:
                    continue
                key = to_camel(item.name)
                result[key] = _convert(getattr(obj, item.name), f"{path}.{key}")
            return result
        if isinstance(obj, SheetTree):
            if not _visit(obj, path):
                return CIRCULAR_MARKER
            return {
                "headers": _convert(obj.headers, f"{path}.headers"),
                "root": {"children": _convert(obj.children, f"{path}.root.children")},
            }
        if isinstance(obj, BaseModel):
            if not _visit(obj, path):
                return CIRCULAR_MARKER
            return obj.model_dump(mode="json", by_alias=True)
        if isinstance(obj, dict):
            if obj and not _visit(obj, path):
                return CIRCULAR_MARKER
            return {str(key): _convert(item, f"{path}.{key}") for key, item in obj.items()}
        if isinstance(obj, (list, tuple, set, frozenset)):
            if obj and not _visit(obj, path):
                return CIRCULAR_MARKER
            return [_convert(item, f"{path}[{index}]") for index, item in enumerate(obj)]
        return str(obj)

    return json.dumps(_convert(value, "$"), ensure_ascii=False, indent=indent)


def iter_unique_nodes(nodes: TreeNode | SheetTree | Iterable[TreeNode]) -> Iterator[TreeNode]:
    """Yield every reachable node once, depth-first, even if ``children`` loop back."""
    seen: set[int] = set()
    stack = list(reversed(list(_roots(nodes))))
    while stack:
        node = stack.pop()
        if id(node) in seen:
            continue
        seen.add(id(node))
        yield node
        stack.extend(reversed(node.children))


def _roots(nodes: TreeNode | SheetTree | Iterable[TreeNode]) -> Iterable[TreeNode]:
    if isinstance(nodes, TreeNode):
        return (nodes,)
    if isinstance(nodes, SheetTree):
        return nodes.children
    return nodes


def _clone(node: TreeNode, memo: dict[int, TreeNode]) -> TreeNode:
    # A node reached twice maps to the same copy, so a cycle is reproduced
    # instead of recursing forever; safe_serialize reports it.
    existing = memo.get(id(node))
    if existing is not None:
        return existing
    copy = TreeNode(
        id=node.id,
        value=node.value,
        column_name=node.column_name,
        column_index=node.column_index,
        level=node.level,
        role=node.role,
        is_empty=node.is_empty,
        source_coordinates=(
            node.source_coordinates.model_copy() if node.source_coordinates else None
        ),
        properties=[prop.model_copy(deep=True) for prop in node.properties],
    )
    memo[id(node)] = copy
    copy.children = [_clone(child, memo) for child in node.children]
    return copy
