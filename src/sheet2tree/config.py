"""Local configuration for sheet2tree."""

from __future__ import annotations

import os
from pathlib import Path


DEFAULT_PREFERENCES_FILE = ".sheet2tree_preferences.json"
DEFAULT_DOCUMENT_SERVICE_URL = "http://localhost:3000/pdf"
DEFAULT_FETCH_TIMEOUT_S = 60.0
DEFAULT_FETCH_MAX_RETRIES = 2
DEFAULT_FETCH_BACKOFF_S = 0.5
DEFAULT_USER_AGENT = "sheet2tree/0.1"
# Reserved trailing columns that never become node properties.
DEFAULT_DENYLISTED_COLUMNS = "Column 9,Column 10"
DEFAULT_LOG_LEVEL = "INFO"

SHEET2TREE_PREFERENCES_PATH = (
    Path(os.getenv("SHEET2TREE_PREFERENCES_PATH", DEFAULT_PREFERENCES_FILE)).expanduser().resolve()
)
SHEET2TREE_DOCUMENT_SERVICE_URL = os.getenv("SHEET2TREE_DOCUMENT_SERVICE_URL", DEFAULT_DOCUMENT_SERVICE_URL)
SHEET2TREE_FETCH_TIMEOUT_S = float(os.getenv("SHEET2TREE_FETCH_TIMEOUT_S", str(DEFAULT_FETCH_TIMEOUT_S)))
SHEET2TREE_FETCH_MAX_RETRIES = int(os.getenv("SHEET2TREE_FETCH_MAX_RETRIES", str(DEFAULT_FETCH_MAX_RETRIES)))
SHEET2TREE_FETCH_BACKOFF_S = float(os.getenv("SHEET2TREE_FETCH_BACKOFF_S", str(DEFAULT_FETCH_BACKOFF_S)))
SHEET2TREE_USER_AGENT = os.getenv("SHEET2TREE_USER_AGENT", DEFAULT_USER_AGENT)
SHEET2TREE_DENYLISTED_COLUMNS = frozenset(
    name.strip()
    for name in os.getenv("SHEET2TREE_DENYLISTED_COLUMNS", DEFAULT_DENYLISTED_COLUMNS).split(",")
    if name.strip()
)
SHEET2TREE_LOG_LEVEL = os.getenv("SHEET2TREE_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
