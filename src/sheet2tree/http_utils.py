"""HTTP utilities for calling the document service with retry logic."""

from __future__ import annotations

import asyncio
from typing import Any, Final

import httpx

from sheet2tree.config import (
    SHEET2TREE_FETCH_BACKOFF_S,
    SHEET2TREE_FETCH_MAX_RETRIES,
    SHEET2TREE_FETCH_TIMEOUT_S,
    SHEET2TREE_USER_AGENT,
)
from sheet2tree.exceptions import DocumentGenerationError

RETRY_STATUS_CODES: Final[frozenset[int]] = frozenset({429, 500, 502, 503, 504})

_MAX_REDIRECTS: Final[int] = 5


async def post_with_retries(
    url: str,
    payload: dict[str, Any],
    *,
    client: httpx.AsyncClient | None = None,
    return_bytes: bool = False,
) -> str | bytes:
    """POST a JSON payload with retry logic for transient failures.

    Args:
        url: The URL to post to.
        payload: JSON-serializable request body.
        client: Optional httpx.AsyncClient for connection pooling. If not
            provided, a new client is created for this request.
        return_bytes: If True, return raw bytes instead of decoded text.

    Returns:
        The response body as a string (default) or bytes (if return_bytes=True).

    Raises:
        DocumentGenerationError: If the request fails after all retries or the
            service answers with a non-retryable error status.
    """
    timeout = httpx.Timeout(SHEET2TREE_FETCH_TIMEOUT_S)
    headers = {"User-Agent": SHEET2TREE_USER_AGENT}
    last_exc: Exception | None = None

    async def do_post(http_client: httpx.AsyncClient) -> str | bytes:
        nonlocal last_exc

        for attempt in range(SHEET2TREE_FETCH_MAX_RETRIES + 1):
            try:
                response = await http_client.post(url, json=payload)

                if response.status_code in RETRY_STATUS_CODES:
                    last_exc = DocumentGenerationError(f"HTTP {response.status_code} from {url}")
                elif response.status_code >= 400:
                    raise DocumentGenerationError(
                        f"Document service rejected the request: HTTP {response.status_code} from {url}"
                    )
                else:
                    return response.content if return_bytes else response.text
            except httpx.RequestError as exc:
                last_exc = exc

            if attempt < SHEET2TREE_FETCH_MAX_RETRIES:
                backoff = SHEET2TREE_FETCH_BACKOFF_S * (2**attempt)
                await asyncio.sleep(backoff)

        raise DocumentGenerationError(f"Failed to post to {url}: {last_exc}")

    if client is not None:
        return await do_post(client)

    async with httpx.AsyncClient(
        timeout=timeout,
        headers=headers,
        follow_redirects=True,
        max_redirects=_MAX_REDIRECTS,
    ) as new_client:
        return await do_post(new_client)
