"""Persistence of per-sheet hierarchy configurations and export selections."""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Collection, Protocol

from sheet2tree.config import SHEET2TREE_PREFERENCES_PATH
from sheet2tree.hierarchy import hierarchy_config_to_wire, parse_hierarchy_config
from sheet2tree.schemas.hierarchy import HierarchyConfig
from sheet2tree.selection import COMPLETE_OVERVIEW

logger = logging.getLogger(__name__)


class PreferenceStore(Protocol):
    """Key/value storage for JSON-compatible preference values."""

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemoryPreferenceStore:
    """Preference store kept in a dict; used by tests and ephemeral servers."""

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}

    def get(self, key: str) -> Any | None:
        return self._values.get(key)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)


class JsonFilePreferenceStore:
    """Preference store backed by a single JSON object on disk.

    The file is re-read on every access, so several processes may share it.
    A missing or unreadable file behaves as an empty store.
    """

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path) if path is not None else SHEET2TREE_PREFERENCES_PATH
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            values = self._read()
            values[key] = value
            self._write(values)

    def delete(self, key: str) -> None:
        with self._lock:
            values = self._read()
            if values.pop(key, None) is not None:
                self._write(values)

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable preferences file %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring preferences file %s: not a JSON object", self.path)
            return {}
        return data

    def _write(self, values: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(values, indent=2, sort_keys=True), encoding="utf-8")
        tmp_path.replace(self.path)


def config_key(source_id: str, sheet_id: str) -> str:
    """Storage key of a sheet's hierarchy configuration."""
    return f"{source_id}-{sheet_id}"


def load_hierarchy_config(store: PreferenceStore, source_id: str, sheet_id: str) -> HierarchyConfig | None:
    """Return the saved configuration, or ``None`` when nothing usable is stored.

    Raises:
        ConfigError: If a saved parent value is malformed.
    """
    raw = store.get(config_key(source_id, sheet_id))
    if raw is None:
        return None
    if not isinstance(raw, dict):
        logger.warning("Saved configuration for %s is not an object; ignored", config_key(source_id, sheet_id))
        return None
    return parse_hierarchy_config(raw)


def save_hierarchy_config(
    store: PreferenceStore,
    source_id: str,
    sheet_id: str,
    config: HierarchyConfig,
) -> None:
    store.set(config_key(source_id, sheet_id), hierarchy_config_to_wire(config))
    logger.debug("Saved hierarchy configuration for %s", config_key(source_id, sheet_id))


def clear_hierarchy_config(store: PreferenceStore, source_id: str, sheet_id: str) -> None:
    store.delete(config_key(source_id, sheet_id))


def export_selection_key(source_id: str, sheet_id: str) -> str:
    """Storage key of the last export selection made for a sheet."""
    return f"exportSelection_{config_key(source_id, sheet_id)}"


def save_export_selection(store: PreferenceStore, source_id: str, sheet_id: str, value: str | None) -> None:
    """Remember the export choice; ``None`` is stored as the overview choice."""
    store.set(export_selection_key(source_id, sheet_id), value or COMPLETE_OVERVIEW)


def load_export_selection(
    store: PreferenceStore,
    source_id: str,
    sheet_id: str,
    available_values: Collection[str],
) -> str | None:
    """Return the remembered export choice if it is still offered.

    The overview choice is always offered. A value no longer among
    ``available_values`` is stale and yields ``None``.
    """
    saved = store.get(export_selection_key(source_id, sheet_id))
    if not isinstance(saved, str) or not saved:
        return None
    if saved == COMPLETE_OVERVIEW or saved in available_values:
        return saved
    logger.debug("Saved export selection %r for %s is stale", saved, config_key(source_id, sheet_id))
    return None
