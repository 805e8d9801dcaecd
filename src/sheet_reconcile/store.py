"""Dataset persistence — a JSON file used as a key-value store of datasets."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from sheet_reconcile.errors import StoreFailure
from sheet_reconcile.io import write_json
from sheet_reconcile.models import StoredDataset


class DatasetStore:
    """Key-value store: dataset key -> ``StoredDataset``.

    Every call reads or rewrites the whole file; failures surface as
    ``StoreFailure`` and are never retried.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _read_raw(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StoreFailure(f"Cannot read store {self.path}: {exc}", exc) from exc
        if not text.strip():
            return {}
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise StoreFailure(f"Store {self.path} is not valid JSON: {exc}", exc) from exc
        if not isinstance(payload, dict):
            raise StoreFailure(f"Store {self.path} must contain a JSON object")
        return payload

    def _write_raw(self, payload: dict[str, Any]) -> None:
        try:
            write_json(self.path, payload)
        except (OSError, TypeError, ValueError) as exc:
            raise StoreFailure(f"Cannot write store {self.path}: {exc}", exc) from exc

    def _parse(self, key: str, entry: Any) -> StoredDataset:
        try:
            return StoredDataset.from_dict(entry)
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise StoreFailure(f"Malformed dataset {key!r} in {self.path}: {exc}", exc) from exc

    def load_all(self) -> dict[str, StoredDataset]:
        return {key: self._parse(key, entry) for key, entry in self._read_raw().items()}

    def keys(self) -> list[str]:
        return sorted(self._read_raw())

    def get(self, key: str) -> StoredDataset | None:
        entry = self._read_raw().get(key)
        if entry is None:
            return None
        return self._parse(key, entry)

    def save(self, dataset: StoredDataset) -> None:
        payload = self._read_raw()
        payload[dataset.key] = dataset.to_dict()
        self._write_raw(payload)

    def delete(self, key: str) -> bool:
        """Remove *key*; return False if it was not stored."""
        payload = self._read_raw()
        if key not in payload:
            return False
        del payload[key]
        self._write_raw(payload)
        return True
