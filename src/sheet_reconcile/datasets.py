"""Dataset workflows — create, update (merge + write-through), delete, column visibility."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

from sheet_reconcile.errors import DatasetExists, DatasetNotFound
from sheet_reconcile.io import load_matrix
from sheet_reconcile.models import DatasetMetadata, ImportReport, StoredDataset, Table
from sheet_reconcile.normalize import table_from_matrix
from sheet_reconcile.reconcile import IdentityPolicy, MergeResult, reconcile
from sheet_reconcile.store import DatasetStore


def utcnow_iso() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def import_file(path: Path, delimiter: str | None = None) -> tuple[Table, ImportReport]:
    """Decode *path* and turn its first sheet into a table."""
    return table_from_matrix(load_matrix(path, delimiter=delimiter))


def _require(store: DatasetStore, key: str) -> StoredDataset:
    dataset = store.get(key)
    if dataset is None:
        raise DatasetNotFound(key)
    return dataset


def create_dataset(
    store: DatasetStore,
    dataset_type: str,
    year: int,
    semester: int,
    table: Table,
) -> StoredDataset:
    """Store *table* as a brand-new dataset; every column starts visible."""
    now = utcnow_iso()
    metadata = DatasetMetadata(
        type=dataset_type, year=year, semester=semester, created_at=now, updated_at=now
    )
    if store.get(metadata.key) is not None:
        raise DatasetExists(metadata.key)
    dataset = StoredDataset(
        metadata=metadata, table=table.copy(), visible_columns=list(table.headers)
    )
    store.save(dataset)
    return dataset


def update_dataset(
    store: DatasetStore,
    key: str,
    incoming: Table,
    policy: IdentityPolicy = IdentityPolicy.first_column,
) -> tuple[StoredDataset, MergeResult]:
    """Merge *incoming* into dataset *key* and write the result through.

    Nothing is written if the merge fails (e.g. ``SchemaMismatch``).
    """
    dataset = _require(store, key)
    result = reconcile(dataset.table, incoming, policy)
    updated = StoredDataset(
        metadata=replace(dataset.metadata, updated_at=utcnow_iso()),
        table=result.table,
        visible_columns=list(dataset.visible_columns),
    )
    store.save(updated)
    return updated, result


def set_visible_columns(store: DatasetStore, key: str, columns: Sequence[str]) -> StoredDataset:
    """Persist the visible column list, keeping known headers in header order."""
    dataset = _require(store, key)
    wanted = set(columns)
    unknown = sorted(wanted - set(dataset.table.headers))
    if unknown:
        raise ValueError(f"Unknown columns: {', '.join(unknown)}")
    updated = replace(
        dataset,
        metadata=replace(dataset.metadata, updated_at=utcnow_iso()),
        visible_columns=[name for name in dataset.table.headers if name in wanted],
    )
    store.save(updated)
    return updated


def toggle_column(store: DatasetStore, key: str, column: str) -> StoredDataset:
    dataset = _require(store, key)
    visible = list(dataset.visible_columns)
    if column in visible:
        visible.remove(column)
    else:
        visible.append(column)
    return set_visible_columns(store, key, visible)


def delete_dataset(store: DatasetStore, key: str) -> None:
    if not store.delete(key):
        raise DatasetNotFound(key)
