"""Row normalisation — positional cells to keyed rows, pure functions."""

from __future__ import annotations

from collections.abc import Sequence

from sheet_reconcile.headers import detect_header
from sheet_reconcile.models import ImportReport, RawMatrix, Row, Scalar, Table


def _find_duplicate_headers(headers: Sequence[str]) -> list[str]:
    seen: set[str] = set()
    duplicates: set[str] = set()
    for name in headers:
        if name in seen:
            duplicates.add(name)
        seen.add(name)
    return sorted(duplicates)


def zip_row(headers: Sequence[str], cells: Sequence[Scalar]) -> Row:
    """Key *cells* by *headers*; missing trailing cells become ``None``."""
    return {
        name: (cells[idx] if idx < len(cells) else None)
        for idx, name in enumerate(headers)
    }


def normalize_rows(
    matrix: Sequence[Sequence[Scalar]], headers: Sequence[str], header_row_index: int
) -> list[Row]:
    """Return keyed rows for every matrix row after the header row.

    Rows whose every value is ``None`` are dropped. Never fails.
    """
    rows: list[Row] = []
    for cells in matrix[header_row_index + 1:]:
        row = zip_row(headers, cells)
        if any(value is not None for value in row.values()):
            rows.append(row)
    return rows


def table_from_matrix(matrix: RawMatrix) -> tuple[Table, ImportReport]:
    """Detect the header and normalise the data rows of *matrix*.

    Returns ``(table, import_report)``.  Header detection errors
    propagate unchanged.
    """
    detection = detect_header(matrix)
    rows = normalize_rows(matrix, detection.headers, detection.row_index)

    rows_in = max(0, len(matrix) - detection.row_index - 1)
    report = ImportReport(
        header_row_index=detection.row_index,
        rows_in=rows_in,
        rows_out=len(rows),
        dropped_rows=rows_in - len(rows),
        truncated_columns=detection.truncated,
    )

    if detection.row_index != 1:
        report.warnings.append(f"Header detected on row {detection.row_index + 1}")
    if detection.truncated:
        report.warnings.append(
            f"Ignored {len(detection.truncated)} column(s) after a blank header: "
            f"{', '.join(detection.truncated)}"
        )
    duplicates = _find_duplicate_headers(detection.headers)
    if duplicates:
        report.warnings.append(
            f"Duplicate header names (last column wins): {', '.join(duplicates)}"
        )
    if report.dropped_rows:
        report.warnings.append(f"Dropped {report.dropped_rows} blank rows")
    if not rows:
        report.warnings.append("No data rows below the header")

    headers = list(dict.fromkeys(detection.headers))
    return Table(headers=headers, rows=rows), report
