"""Server configuration."""

from __future__ import annotations

import os

HOST: str = os.getenv("HOST", "0.0.0.0")  # noqa: S104
PORT: int = int(os.getenv("PORT", "8000"))
RELOAD: bool = os.getenv("RELOAD", "false").lower() == "true"

# Largest accepted table, header row excluded.
MAX_TABLE_ROWS: int = int(os.getenv("MAX_TABLE_ROWS", "50000"))
