"""Persisted store for the current report and the sort preference.

Usage:
    repo = ReportRepository(FileStore(".a11y-report"))
    repo.save_current_report(report)       # raises StoreError on failure
    report = repo.load_current_report()    # None when absent or unreadable
    repo.save_sort_preference(SortBy.PAGE)

The backend is any object with ``get``/``put``/``delete`` by key; a
directory of JSON files and an in-memory dict are provided.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Protocol

from a11y_report.models import Report, SortBy
from a11y_report.reports.editing import validate_report

logger = logging.getLogger(__name__)

CURRENT_REPORT_KEY = "current-report"
SORT_PREFERENCE_KEY = "sort-preference"


class StoreError(Exception):
    """Raised when the backend cannot be read from or written to."""


# ---------------------------------------------------------------------------
# Key-value backends
# ---------------------------------------------------------------------------

class KeyValueStore(Protocol):
    def get(self, key: str) -> Any | None: ...

    def put(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """Dict-backed store; values are copied through JSON like a real backend."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Any | None:
        raw = self._data.get(key)
        return None if raw is None else json.loads(raw)

    def put(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class FileStore:
    """One ``<key>.json`` file per key inside *root*."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def get(self, key: str) -> Any | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with path.open(encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreError(f"Failed to read '{path}': {exc}") from exc

    def put(self, key: str, value: Any) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as f:
                json.dump(value, f, ensure_ascii=False)
            os.replace(tmp, path)
        except (OSError, TypeError) as exc:
            raise StoreError(f"Failed to write '{path}': {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as exc:
            raise StoreError(f"Failed to delete '{key}': {exc}") from exc


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------

class ReportRepository:
    """Current-report slot and sort-preference slot over a key-value store."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def load_current_report(self) -> Report | None:
        try:
            data = self._store.get(CURRENT_REPORT_KEY)
        except StoreError as exc:
            logger.error("Error loading current report: %s", exc)
            return None
        if data is None:
            logger.debug("No current report stored")
            return None
        if not validate_report(data):
            logger.error("Stored current report is malformed; ignoring it")
            return None
        return Report.from_dict(data)

    def save_current_report(self, report: Report) -> None:
        self._store.put(CURRENT_REPORT_KEY, report.to_dict())
        logger.debug("Report '%s' saved", report.id)

    def delete_current_report(self) -> None:
        self._store.delete(CURRENT_REPORT_KEY)

    def load_sort_preference(self) -> SortBy | None:
        try:
            value = self._store.get(SORT_PREFERENCE_KEY)
        except StoreError as exc:
            logger.error("Error loading sort preference: %s", exc)
            return None
        try:
            return SortBy(value) if value is not None else None
        except ValueError:
            return None

    def save_sort_preference(self, sort_by: SortBy | str) -> None:
        self._store.put(SORT_PREFERENCE_KEY, SortBy(sort_by).value)
