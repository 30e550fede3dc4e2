"""Select top-level subtrees and prepare them for export or preview."""

from __future__ import annotations

import logging

from sheet2tree.exceptions import SerializationHazard
from sheet2tree.sanitizer import (
    clone_without_back_references,
    find_back_references,
    iter_unique_nodes,
    safe_serialize,
    strip_back_references,
)
from sheet2tree.schemas.export import ExportPayload, SelectionMiss
from sheet2tree.schemas.node import SheetTree

logger = logging.getLogger(__name__)

COMPLETE_OVERVIEW = "Complete Overview"


def list_top_level_values(tree: SheetTree) -> list[str]:
    """Distinct top-level values in first-seen order."""
    values: list[str] = []
    for node in tree.children:
        if node.value not in values:
            values.append(node.value)
    return values


def export_title(sheet_title: str, value: str | None) -> str:
    """Title in the ``"<sheet> - <selection>"`` form."""
    selection = value if value is not None else COMPLETE_OVERVIEW
    return f"{sheet_title} - {selection}" if sheet_title else selection


def select_subtree(
    tree: SheetTree,
    value: str | None,
    *,
    sheet_title: str = "",
    title: str | None = None,
    include_empty: bool = True,
) -> ExportPayload | SelectionMiss:
    """Extract the top-level node(s) named ``value`` as a sanitized payload.

    Args:
        tree: The canonical tree. It is never modified.
        value: Top-level value to export; ``None`` selects every top-level node.
        sheet_title: Used to derive the title when ``title`` is not given.
        title: Explicit document title.
        include_empty: Passed through to the document generator.

    Returns:
        An ``ExportPayload``, or a ``SelectionMiss`` when nothing matches.
    """
    matching = [node for node in tree.children if value is None or node.value == value]
    if not matching:
        logger.info("No top-level node matches %r", value)
        return SelectionMiss(requested_value=value, available_values=list_top_level_values(tree))

    clones = clone_without_back_references(matching)
    strip_back_references(clones)
    leftovers = find_back_references(clones)
    if leftovers:
        logger.warning(
            "Back-references survived sanitization on %d node(s); stripping again",
            len(leftovers),
        )
        strip_back_references(clones)

    hazards: list[SerializationHazard] = []
    serialized = safe_serialize(clones, hazards=hazards)
    payload = ExportPayload(
        title=title or export_title(sheet_title, value),
        serialized_tree=serialized,
        include_empty=include_empty,
        node_count=sum(1 for _ in iter_unique_nodes(clones)),
        hazards=[hazard.path for hazard in hazards],
    )
    logger.debug(
        "Prepared subtree %r with %d node(s)",
        payload.title,
        payload.node_count,
    )
    return payload
