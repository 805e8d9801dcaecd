"""I/O helpers — decode spreadsheet files into raw cell matrices, write JSON artifacts."""

from __future__ import annotations

import json
import math
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Literal, cast

import pandas as pd

from sheet_reconcile.errors import MalformedInput
from sheet_reconcile.models import RawMatrix, to_scalar

EXCEL_SUFFIXES = (".xlsx", ".xlsm", ".xltx", ".xltm")
ACCEPTED_SUFFIXES = (".xls", ".xlsx", ".xlsm", ".csv")

# ── Loading ──────────────────────────────────────────────────────


def is_supported_file(path: Path) -> bool:
    """Admission check run before a file is handed to the decoder."""
    return Path(path).suffix.lower() in ACCEPTED_SUFFIXES


def _csv_cell(value: Any) -> Any:
    """Type a CSV cell the way spreadsheet decoders do: numeric text -> number."""
    if not isinstance(value, str) or not value.strip():
        return value
    try:
        number = pd.to_numeric(value.strip())
    except (TypeError, ValueError):
        return value
    # "nan" / "inf" stay text
    if not math.isfinite(number):
        return value
    return number


def _read_csv(path: Path, delimiter: str | None) -> pd.DataFrame:
    last_exc: Exception | None = None
    sep = delimiter if delimiter else None
    engine: Literal["c", "python"] = "c" if delimiter else "python"
    for encoding in ("utf-8-sig", "utf-8", "latin-1"):
        try:
            frame = pd.read_csv(
                path,
                header=None,
                dtype=object,
                sep=sep,
                engine=engine,
                encoding=encoding,
                encoding_errors="strict",
                keep_default_na=False,
                na_values=[""],
                skip_blank_lines=False,
            )
        except (UnicodeDecodeError, pd.errors.ParserError) as exc:
            last_exc = exc
            continue
        return frame.map(_csv_cell)
    raise MalformedInput(f"Could not read CSV {path} (decode or parse failed)", last_exc) from last_exc


def _read_frame(path: Path, delimiter: str | None) -> pd.DataFrame:
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return _read_csv(path, delimiter)

    read_excel = cast(Callable[..., pd.DataFrame], getattr(pd, "read_excel"))
    if suffix in EXCEL_SUFFIXES:
        return read_excel(path, sheet_name=0, header=None, dtype=object, engine="openpyxl")

    if suffix == ".xls":
        try:
            return read_excel(path, sheet_name=0, header=None, dtype=object, engine="xlrd")
        except ImportError as exc:
            raise MalformedInput(
                "Unsupported .xls input unless 'xlrd' is installed. "
                "Either convert to .xlsx or add dependency: pip install xlrd",
                exc,
            ) from exc

    raise MalformedInput(f"Unsupported file type: {suffix!r}. Use .xls, .xlsx, .xlsm or .csv")


def frame_to_matrix(frame: pd.DataFrame) -> RawMatrix:
    """Turn a header-less DataFrame into rows of scalars (missing -> ``None``)."""
    return [
        [to_scalar(value) for value in row]
        for row in frame.itertuples(index=False, name=None)
    ]


def load_matrix(path: Path, delimiter: str | None = None) -> RawMatrix:
    """Decode the first sheet of *path* into a RawMatrix.

    Raises
    ------
    MalformedInput
        If the file is missing, unsupported, undecodable, empty, or has
        fewer than two rows. Decoder exceptions are chained.
    """
    path = Path(path)
    if not path.exists():
        raise MalformedInput(f"Input file not found: {path}")

    try:
        frame = _read_frame(path, delimiter)
    except MalformedInput:
        raise
    except Exception as exc:
        raise MalformedInput(f"Could not decode {path.name}: {exc}", exc) from exc

    matrix = frame_to_matrix(frame)
    if not matrix:
        raise MalformedInput(f"Input file is empty: {path.name}")
    if len(matrix) < 2:
        raise MalformedInput("Insufficient data: the sheet has fewer than 2 rows")
    return matrix


# ── Writing ──────────────────────────────────────────────────────


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    item = getattr(obj, "item", None)
    if callable(item):
        converted = item()
        if isinstance(converted, (str, int, float, bool)) or converted is None:
            return converted
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def write_json(path: Path, data: Any) -> Path:
    """Write *data* as pretty-printed JSON to *path* (atomic + deterministic)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    payload = json.dumps(
        data,
        indent=2,
        sort_keys=True,
        ensure_ascii=False,
        default=_json_default,
    ) + "\n"
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(payload, encoding="utf-8")
    tmp_path.replace(path)
    return path
