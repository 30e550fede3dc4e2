"""Export payload and selection result models."""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import BaseModel, Field


class ExportPayload(BaseModel):
    """Everything handed to the document generator for one export/preview.

    Attributes:
        title: Human-readable document title.
        serialized_tree: Back-reference free, circular-safe JSON of the
            selected top-level nodes.
        include_empty: Whether empty cells should be shown in the document.
        node_count: Number of nodes in the serialized subtree.
        hazards: Paths where the serializer substituted a circular marker.
    """

    title: str
    serialized_tree: str
    include_empty: bool = True
    node_count: int = 0
    hazards: list[str] = Field(default_factory=list)


@dataclass(frozen=True)
class SelectionMiss:
    """No top-level node matched the requested value; nothing to export."""

    requested_value: str | None
    available_values: list[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        if self.requested_value is None:
            return "Nothing to export: the sheet has no top-level items"
        return f"Nothing to export: no top-level item named {self.requested_value!r}"


@dataclass(frozen=True)
class ExportResult:
    """A generated document ready for download."""

    filename: str
    content: bytes
    media_type: str = "application/pdf"
