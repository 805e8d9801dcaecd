"""Import preview helpers — inspect and adjust a freshly imported table before it is stored."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Literal

from sheet_reconcile import PREVIEW_ROWS
from sheet_reconcile.models import Row, Scalar, Table

ColumnStatus = Literal["present", "missing", "none"]


def preview_rows(table: Table, limit: int = PREVIEW_ROWS) -> list[Row]:
    if limit < 0:
        raise ValueError("limit must be >= 0")
    return [dict(row) for row in table.rows[:limit]]


def column_status(
    headers: Sequence[str], existing_headers: Sequence[str] | None
) -> dict[str, ColumnStatus]:
    """Compare imported headers against a stored dataset's headers.

    ``present`` exists in both, ``missing`` only in the stored dataset,
    ``none`` only in the import (or there is nothing stored to compare to).
    """
    if not existing_headers:
        return {name: "none" for name in headers}
    existing = set(existing_headers)
    status: dict[str, ColumnStatus] = {
        name: ("present" if name in existing else "none") for name in headers
    }
    for name in existing_headers:
        if name not in status:
            status[name] = "missing"
    return status


def add_constant_column(table: Table, name: str, value: Scalar) -> Table:
    """Return a copy of *table* with column *name* set to *value* on every row."""
    name = name.strip()
    if not name:
        raise ValueError("Column name must be non-empty")
    if name in table.headers:
        raise ValueError(f"Column {name!r} already exists")
    if isinstance(value, str):
        value = value.strip()
    return Table(
        headers=[*table.headers, name],
        rows=[{**row, name: value} for row in table.rows],
    )


def fill_missing_columns(
    table: Table,
    existing_headers: Sequence[str],
    values: Mapping[str, Scalar] | None = None,
) -> Table:
    """Add the stored dataset's columns absent from *table*.

    Each added column gets ``values[name]`` (default ``""``).  When the
    result carries exactly the stored header set, headers are put in the
    stored order so the merge schema check can pass.
    """
    values = values or {}
    missing = [name for name in existing_headers if name not in table.headers]
    headers = [*table.headers, *missing]
    rows = [{**row, **{name: values.get(name, "") for name in missing}} for row in table.rows]
    if set(headers) == set(existing_headers):
        headers = list(existing_headers)
    return Table(headers=headers, rows=rows)
