"""Data models / typed records used across the package."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from numbers import Integral
from typing import Any, Literal, Union

import pandas as pd

Scalar = Union[str, int, float, bool, None]
"""A single cell value: text, number, boolean or absent."""

Row = dict[str, Scalar]
RawMatrix = list[list[Scalar]]
SortDirection = Literal["ascending", "descending"]


def _to_non_negative_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise TypeError(f"{field_name} must be an integer")
    result = int(value)
    if result < 0:
        raise ValueError(f"{field_name} must be >= 0")
    return result


def _to_string_list(values: Sequence[Any] | None, field_name: str) -> list[str]:
    if values is None:
        return []
    if isinstance(values, str):
        raise TypeError(f"{field_name} must be a sequence of strings")
    normalized: list[str] = []
    for item in values:
        if not isinstance(item, str):
            raise TypeError(f"{field_name} items must be strings")
        normalized.append(item)
    return normalized


# ── Scalars ──────────────────────────────────────────────────────


def to_scalar(value: Any) -> Scalar:
    """Map a decoder cell into the closed ``Scalar`` set.

    Missing markers (``None``, NaN, NaT, ``pd.NA``) become ``None``; numpy
    scalars are unwrapped; dates become ISO-8601 text; anything else that is
    not already a scalar is stringified.
    """
    if value is None:
        return None
    if isinstance(value, (bool, int, str)):
        return value
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    if isinstance(value, float):
        return float(value)
    if isinstance(value, (pd.Timestamp, datetime, date)):
        return value.isoformat()
    item = getattr(value, "item", None)
    if callable(item):
        converted = item()
        if isinstance(converted, (str, int, float, bool)):
            return converted
    return str(value)


def is_number(value: Scalar) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def scalar_text(value: Scalar) -> str:
    """Stringify a scalar the way it is displayed, filtered and keyed.

    ``None`` -> ``""``, booleans -> ``"true"``/``"false"``, integral floats
    drop their fractional part (``2.0`` -> ``"2"``).
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


# ── Tables ───────────────────────────────────────────────────────


@dataclass
class Table:
    """Headers plus keyed rows.

    Contract invariant: every row's key set equals the header set.
    """

    headers: list[str] = field(default_factory=list)
    rows: list[Row] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.headers = _to_string_list(self.headers, "headers")
        self.rows = list(self.rows)
        expected = set(self.headers)
        for idx, row in enumerate(self.rows):
            if not isinstance(row, Mapping):
                raise TypeError(f"rows[{idx}] must be a mapping")
            if set(row) != expected:
                raise ValueError(f"rows[{idx}] keys must equal headers")

    def __len__(self) -> int:
        return len(self.rows)

    def copy(self) -> Table:
        return Table(headers=list(self.headers), rows=[dict(row) for row in self.rows])

    def to_dict(self) -> dict[str, Any]:
        return {
            "headers": list(self.headers),
            "rows": [dict(row) for row in self.rows],
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> Table:
        headers = payload.get("headers", [])
        rows = payload.get("rows", [])
        return cls(
            headers=list(headers),
            rows=[{key: to_scalar(val) for key, val in row.items()} for row in rows],
        )


# ── Reports ──────────────────────────────────────────────────────


@dataclass
class ImportReport:
    """What the header detector and row normalizer did to one file.

    Contract invariant: ``dropped_rows == rows_in - rows_out``.
    """

    header_row_index: int = 0
    rows_in: int = 0
    rows_out: int = 0
    dropped_rows: int = 0
    truncated_columns: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.header_row_index = _to_non_negative_int(self.header_row_index, "header_row_index")
        self.rows_in = _to_non_negative_int(self.rows_in, "rows_in")
        self.rows_out = _to_non_negative_int(self.rows_out, "rows_out")
        self.dropped_rows = _to_non_negative_int(self.dropped_rows, "dropped_rows")
        self.truncated_columns = _to_string_list(self.truncated_columns, "truncated_columns")
        self.warnings = _to_string_list(self.warnings, "warnings")
        if self.rows_out > self.rows_in:
            raise ValueError("rows_out must be <= rows_in")
        if self.dropped_rows != self.rows_in - self.rows_out:
            raise ValueError("dropped_rows must equal rows_in - rows_out")

    def to_dict(self) -> dict[str, Any]:
        return {
            "header_row_index": self.header_row_index,
            "rows_in": self.rows_in,
            "rows_out": self.rows_out,
            "dropped_rows": self.dropped_rows,
            "truncated_columns": list(self.truncated_columns),
            "warnings": list(self.warnings),
        }


@dataclass
class ReconciliationReport:
    """Identities classified during one merge.

    Entries are display strings, not stable identifiers.
    """

    updated_keys: list[str] = field(default_factory=list)
    new_keys: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.updated_keys = _to_string_list(self.updated_keys, "updated_keys")
        self.new_keys = _to_string_list(self.new_keys, "new_keys")

    def to_dict(self) -> dict[str, Any]:
        return {
            "updated": list(self.updated_keys),
            "new": list(self.new_keys),
        }


# ── Query / display state ───────────────────────────────────────


@dataclass(frozen=True)
class SortState:
    key: str
    direction: SortDirection = "ascending"

    def __post_init__(self) -> None:
        if self.direction not in ("ascending", "descending"):
            raise ValueError(f"Invalid sort direction: {self.direction!r}")

    @property
    def descending(self) -> bool:
        return self.direction == "descending"


@dataclass(frozen=True)
class ViewportWindow:
    start_index: int
    end_index: int
    leading_pad: int
    trailing_pad: int

    @property
    def size(self) -> int:
        return max(0, self.end_index - self.start_index + 1)


# ── Stored datasets ─────────────────────────────────────────────


def dataset_key(dataset_type: str, year: int, semester: int) -> str:
    return f"{dataset_type}_{year}_{semester}"


@dataclass
class DatasetMetadata:
    """Identity and timestamps of one stored dataset."""

    type: str
    year: int
    semester: int
    created_at: str = ""
    updated_at: str = ""

    def __post_init__(self) -> None:
        self.type = str(self.type).strip()
        if not self.type:
            raise ValueError("type must be a non-empty string")
        self.year = _to_non_negative_int(self.year, "year")
        self.semester = _to_non_negative_int(self.semester, "semester")
        if self.semester not in (1, 2):
            raise ValueError("semester must be 1 or 2")

    @property
    def key(self) -> str:
        return dataset_key(self.type, self.year, self.semester)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "period": {"year": self.year, "semester": self.semester},
            "key": self.key,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> DatasetMetadata:
        period = payload.get("period") or {}
        return cls(
            type=payload["type"],
            year=period["year"],
            semester=period["semester"],
            created_at=str(payload.get("created_at", "")),
            updated_at=str(payload.get("updated_at", "")),
        )


@dataclass
class StoredDataset:
    """The exact payload committed to the store for one dataset."""

    metadata: DatasetMetadata
    table: Table
    visible_columns: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.visible_columns = _to_string_list(self.visible_columns, "visible_columns")

    @property
    def key(self) -> str:
        return self.metadata.key

    def to_dict(self) -> dict[str, Any]:
        return {
            "metadata": self.metadata.to_dict(),
            "data": self.table.to_dict(),
            "visible_columns": list(self.visible_columns),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> StoredDataset:
        return cls(
            metadata=DatasetMetadata.from_dict(payload["metadata"]),
            table=Table.from_dict(payload["data"]),
            visible_columns=list(payload.get("visible_columns", [])),
        )
