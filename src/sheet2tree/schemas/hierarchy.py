"""Hierarchy configuration types."""

from __future__ import annotations

from enum import Enum
from typing import Literal, TypeAlias, Union

IGNORE: Literal["ignore"] = "ignore"

ParentSpec: TypeAlias = Union[int, None, Literal["ignore"]]
HierarchyConfig: TypeAlias = dict[int, ParentSpec]


class ColumnRole(str, Enum):
    """How a hierarchy column's values are keyed while building the tree.

    ``STRUCTURAL`` values are shared categories (one node per distinct value
    under a parent). ``UNIT`` is a structural column whose later-indexed
    content descendants are laid out as its direct children. ``CONTENT``
    values are per-row facts (one node per row).
    """

    STRUCTURAL = "structural"
    UNIT = "unit"
    CONTENT = "content"

    @property
    def is_shared(self) -> bool:
        return self is not ColumnRole.CONTENT
