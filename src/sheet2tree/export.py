"""Document generation port and its HTTP adapter."""

from __future__ import annotations

import re
from typing import Protocol

import httpx

from sheet2tree.config import SHEET2TREE_DOCUMENT_SERVICE_URL
from sheet2tree.exceptions import DocumentGenerationError
from sheet2tree.http_utils import post_with_retries
from sheet2tree.schemas.export import ExportPayload

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-z0-9]", re.IGNORECASE)


class DocumentGenerator(Protocol):
    """Turns an ``ExportPayload`` into a paginated document or an HTML preview."""

    async def generate(self, payload: ExportPayload) -> bytes: ...

    async def preview(self, payload: ExportPayload) -> str: ...


class HttpDocumentGenerator:
    """``DocumentGenerator`` backed by the external PDF service.

    The service exposes ``POST {base}/generate-pdf`` (PDF bytes) and
    ``POST {base}/preview-html`` (HTML text), both taking
    ``{"html": <serialized tree>, "filename": <title>, "include_empty": <flag>}``.
    """

    def __init__(
        self,
        base_url: str = SHEET2TREE_DOCUMENT_SERVICE_URL,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client

    async def generate(self, payload: ExportPayload) -> bytes:
        content = await post_with_retries(
            f"{self.base_url}/generate-pdf",
            _request_body(payload),
            client=self._client,
            return_bytes=True,
        )
        if not isinstance(content, bytes):
            raise DocumentGenerationError("Document service returned text instead of a PDF")
        return content

    async def preview(self, payload: ExportPayload) -> str:
        content = await post_with_retries(
            f"{self.base_url}/preview-html",
            _request_body(payload),
            client=self._client,
        )
        if not isinstance(content, str):
            raise DocumentGenerationError("Document service returned bytes instead of an HTML preview")
        return content


def safe_filename(title: str, extension: str = "pdf") -> str:
    """Download name for ``title`` with every non-alphanumeric replaced by ``_``."""
    stem = _UNSAFE_FILENAME_CHARS.sub("_", title) or "export"
    return f"{stem}.{extension}" if extension else stem


def _request_body(payload: ExportPayload) -> dict[str, object]:
    return {
        "html": payload.serialized_tree,
        "filename": payload.title,
        "include_empty": payload.include_empty,
    }
