"""Resolve a column hierarchy configuration into parent/children column maps."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from sheet2tree.exceptions import ConfigError, RowDataError
from sheet2tree.schemas.hierarchy import IGNORE, ColumnRole, HierarchyConfig, ParentSpec

logger = logging.getLogger(__name__)

DEFAULT_LEVEL_NAMES: tuple[str, ...] = ("blok", "week", "les")


@dataclass
class ResolvedHierarchy:
    """Column relationships derived from a ``HierarchyConfig``.

    Attributes:
        top_level_columns: Columns mapped to ``None``, in config order.
        children_of: Parent column -> child columns, in config order.
        claimed_columns: Every mapped column, ``"ignore"`` included. These
            never become node properties.
        roles: Role of every hierarchy column, explicit or inferred.
        skipped: Config entries dropped because their column key was invalid.
    """

    top_level_columns: list[int]
    children_of: dict[int, list[int]]
    claimed_columns: frozenset[int]
    roles: dict[int, ColumnRole] = field(default_factory=dict)
    skipped: list[RowDataError] = field(default_factory=list)

    def child_columns(self, column_index: int) -> list[int]:
        return self.children_of.get(column_index, [])

    def role_of(self, column_index: int) -> ColumnRole:
        return self.roles.get(column_index, ColumnRole.CONTENT)

    @property
    def hierarchy_columns(self) -> list[int]:
        """Top-level and interior columns, each once, top-level first."""
        columns = list(self.top_level_columns)
        for children in self.children_of.values():
            columns.extend(child for child in children if child not in columns)
        return columns


def parse_hierarchy_config(raw: Mapping[Any, Any]) -> HierarchyConfig:
    """Normalize a wire-shaped config (string keys, numeric strings) into ints.

    Invalid column keys are dropped with a warning.

    Raises:
        ConfigError: If a parent value is neither an index, ``None`` nor
            ``"ignore"``.
    """
    config, _ = _normalize_config(raw)
    return config


def hierarchy_config_to_wire(config: HierarchyConfig) -> dict[str, ParentSpec]:
    """Serialize a config to the JSON shape used for persistence."""
    return {str(column): parent for column, parent in sorted(config.items())}


def resolve_hierarchy(
    config: Mapping[Any, Any],
    column_count: int,
    *,
    roles: Mapping[Any, ColumnRole | str] | None = None,
) -> ResolvedHierarchy:
    """Resolve ``config`` into top-level columns and a parent -> children map.

    Args:
        config: Column index -> parent index, ``None`` (top-level) or
            ``"ignore"``. Wire-shaped string keys are accepted.
        column_count: Number of header columns; bounds every index.
        roles: Optional explicit role per hierarchy column. Columns without
            an annotation are ``STRUCTURAL`` when they have child columns and
            ``CONTENT`` otherwise.

    Returns:
        The resolved hierarchy.

    Raises:
        ConfigError: If a parent is out of bounds, a column is its own
            ancestor, or a parent value is malformed.
    """
    normalized, skipped = _normalize_config(config)

    valid: HierarchyConfig = {}
    for column, parent in normalized.items():
        if not 0 <= column < column_count:
            message = f"Column {column} is outside the {column_count} header columns; skipped"
            logger.warning(message)
            skipped.append(RowDataError(message, column=column))
            continue
        valid[column] = parent

    for column, parent in valid.items():
        if isinstance(parent, int) and not 0 <= parent < column_count:
            raise ConfigError(
                f"Column {column} has parent {parent}, which is not one of the "
                f"{column_count} header columns",
                column=column,
            )
    _check_for_cycles(valid, column_count)

    top_level_columns: list[int] = []
    children_of: dict[int, list[int]] = {}
    for column, parent in valid.items():
        if parent is None:
            top_level_columns.append(column)
        elif parent != IGNORE:
            children_of.setdefault(parent, []).append(column)

    for parent in children_of:
        if valid.get(parent, IGNORE) == IGNORE:
            logger.warning(
                "Column %s has child columns %s but is not part of the hierarchy; "
                "those children are unreachable",
                parent,
                children_of[parent],
            )

    resolved = ResolvedHierarchy(
        top_level_columns=top_level_columns,
        children_of=children_of,
        claimed_columns=frozenset(valid),
        skipped=skipped,
    )
    resolved.roles = _assign_roles(resolved, roles or {})
    logger.debug(
        "Resolved hierarchy: top-level %s, children %s",
        top_level_columns,
        children_of,
    )
    return resolved


def default_hierarchy(headers: Sequence[str]) -> HierarchyConfig:
    """Linear hierarchy: the first column is top-level, every column parents the next."""
    return {index: (None if index == 0 else index - 1) for index in range(len(headers))}


def detect_automatic_hierarchy(
    headers: Sequence[str],
    names: Sequence[str] = DEFAULT_LEVEL_NAMES,
) -> HierarchyConfig | None:
    """Detect a standard three-level chain from header names.

    Each entry of ``names`` is matched case-insensitively as a substring of a
    header. With all three found the chain is ``names[0] -> names[1] ->
    names[2]``; with only the last two found, ``names[1]`` becomes top-level.

    Returns:
        The detected config, or ``None`` when the headers match neither chain.
    """
    if len(names) != 3:
        raise ValueError("names must list exactly three level names")

    def _find(name: str) -> int:
        needle = name.lower()
        for index, header in enumerate(headers):
            if header and needle in str(header).lower():
                return index
        return -1

    outer, middle, inner = (_find(name) for name in names)
    if outer >= 0 and middle >= 0 and inner >= 0:
        logger.info("Detected hierarchy %s -> %s -> %s", *names)
        return {outer: None, middle: outer, inner: middle}
    if middle >= 0 and inner >= 0:
        logger.info("Detected hierarchy %s -> %s", names[1], names[2])
        return {middle: None, inner: middle}
    return None


def _normalize_config(raw: Mapping[Any, Any]) -> tuple[HierarchyConfig, list[RowDataError]]:
    config: HierarchyConfig = {}
    skipped: list[RowDataError] = []
    for key, value in raw.items():
        column = _as_index(key)
        if column is None:
            message = f"Hierarchy column key {key!r} is not a column index; skipped"
            logger.warning(message)
            skipped.append(RowDataError(message, column=str(key)))
            continue
        config[column] = _parse_parent(column, value)
    return config, skipped


def _parse_parent(column: int, value: Any) -> ParentSpec:
    if value is None or value == "":
        return None
    if value == IGNORE:
        return IGNORE
    parent = _as_index(value)
    if parent is None:
        raise ConfigError(
            f"Column {column} has an invalid parent {value!r}; expected a column "
            f"index, null or {IGNORE!r}",
            column=column,
        )
    return parent


def _as_index(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


def _check_for_cycles(config: HierarchyConfig, column_count: int) -> None:
    for column, parent in config.items():
        if parent == column:
            raise ConfigError(f"Column {column} is configured as its own parent", column=column)
        current = parent
        steps = 0
        while isinstance(current, int):
            if current == column:
                raise ConfigError(
                    f"Column {column} is its own ancestor in the hierarchy configuration",
                    column=column,
                )
            steps += 1
            if steps > column_count:
                raise ConfigError(
                    f"Ancestry of column {column} does not terminate",
                    column=column,
                )
            current = config.get(current)


def _assign_roles(
    resolved: ResolvedHierarchy,
    explicit: Mapping[Any, ColumnRole | str],
) -> dict[int, ColumnRole]:
    hierarchy_columns = set(resolved.hierarchy_columns)
    roles: dict[int, ColumnRole] = {}
    for key, role in explicit.items():
        column = _as_index(key)
        if column is None or column not in hierarchy_columns:
            logger.warning("Role annotation for column %r ignored: not a hierarchy column", key)
            continue
        try:
            roles[column] = ColumnRole(role)
        except ValueError as exc:
            raise ConfigError(f"Column {column} has an unknown role {role!r}", column=column) from exc

    for column in hierarchy_columns:
        if column not in roles:
            roles[column] = (
                ColumnRole.STRUCTURAL if resolved.child_columns(column) else ColumnRole.CONTENT
            )
    return roles
