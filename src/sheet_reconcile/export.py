"""Export writers — TSV for the clipboard, styled .xlsx for views and merge reports."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from sheet_reconcile.models import ReconciliationReport, Row, Scalar, scalar_text

# ── Style constants ──────────────────────────────────────────────

HEADER_FONT = Font(name="Calibri", bold=True, size=11, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="2F5496", end_color="2F5496", fill_type="solid")
HEADER_ALIGN = Alignment(horizontal="center", vertical="center", wrap_text=True)

TITLE_FONT = Font(name="Calibri", bold=True, size=14, color="2F5496")
SUBTITLE_FONT = Font(name="Calibri", bold=False, size=10, color="808080")
LABEL_FONT = Font(name="Calibri", bold=True, size=11)
VALUE_FONT = Font(name="Calibri", size=11)
KPI_FILL = PatternFill(start_color="D6E4F0", end_color="D6E4F0", fill_type="solid")

_AUTO_WIDTH_SAMPLE_ROWS = 300
_EXCEL_FORMULA_PREFIXES = ("=", "+", "-", "@")


# ── TSV ──────────────────────────────────────────────────────────


def _tsv_cell(value: Scalar) -> str:
    return scalar_text(value).replace("\t", " ").replace("\r", " ").replace("\n", " ")


def to_tsv(headers: Sequence[str], rows: Sequence[Row]) -> str:
    """Header line plus one tab-separated line per row (``None`` -> empty)."""
    lines = ["\t".join(_tsv_cell(name) for name in headers)]
    lines.extend("\t".join(_tsv_cell(row.get(name)) for name in headers) for row in rows)
    return "\n".join(lines)


# ── Workbook helpers ─────────────────────────────────────────────


def _style_header(ws: Worksheet, ncols: int, row: int = 1) -> None:
    for c in range(1, ncols + 1):
        cell = ws.cell(row=row, column=c)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = HEADER_ALIGN


def _auto_width(ws: Worksheet) -> None:
    max_row = min(ws.max_row, _AUTO_WIDTH_SAMPLE_ROWS + 1)
    for c_idx in range(1, ws.max_column + 1):
        letter = get_column_letter(c_idx)
        width = 0
        for row in ws.iter_rows(min_row=1, max_row=max_row, min_col=c_idx, max_col=c_idx):
            width = max(width, len(str(row[0].value or "")))
        ws.column_dimensions[letter].width = min(width + 4, 40)


def _excel_value(val: Scalar) -> Any:
    if isinstance(val, str):
        if val.startswith("'"):
            return val
        stripped = val.lstrip()
        if stripped and stripped[0] in _EXCEL_FORMULA_PREFIXES:
            return f"'{val}"
    return val


def _save(wb: Workbook, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f"{path.stem}.tmp{path.suffix}")
    wb.save(tmp_path)
    tmp_path.replace(path)
    return path


def _new_workbook() -> Workbook:
    wb = Workbook()
    active_sheet = wb.active
    if active_sheet is not None:
        wb.remove(active_sheet)
    return wb


def _rows_to_sheet(
    wb: Workbook, name: str, headers: Sequence[str], rows: Sequence[Row]
) -> Worksheet:
    ws = wb.create_sheet(title=name[:31])
    if not headers:
        ws.cell(row=1, column=1, value="No data").font = VALUE_FONT
        ws.column_dimensions["A"].width = 18
        return ws

    for c_idx, header in enumerate(headers, 1):
        ws.cell(row=1, column=c_idx, value=header)
    for r_idx, row in enumerate(rows, 2):
        for c_idx, header in enumerate(headers, 1):
            ws.cell(row=r_idx, column=c_idx, value=_excel_value(row.get(header)))
    _style_header(ws, len(headers))
    ws.freeze_panes = "A2"
    if rows:
        ws.auto_filter.ref = ws.dimensions
    _auto_width(ws)
    return ws


# ── Public API ───────────────────────────────────────────────────


def write_view_workbook(
    path: Path, headers: Sequence[str], rows: Sequence[Row], title: str = "Data"
) -> Path:
    """Write the given (already filtered/sorted) rows to an .xlsx file."""
    wb = _new_workbook()
    _rows_to_sheet(wb, title, headers, rows)
    return _save(wb, path)


def write_merge_report(path: Path, report: ReconciliationReport, dataset_key: str = "") -> Path:
    """Write a merge report workbook: a summary sheet plus Updated / New lists."""
    wb = _new_workbook()
    ws = wb.create_sheet(title="Summary")
    ws.cell(row=1, column=1, value="Merge report").font = TITLE_FONT
    generated = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    subtitle = f"{dataset_key}  ·  generated {generated}" if dataset_key else f"Generated {generated}"
    ws.cell(row=2, column=1, value=subtitle).font = SUBTITLE_FONT

    for r_idx, (label, count) in enumerate(
        (("Updated records", len(report.updated_keys)), ("New records", len(report.new_keys))), 4
    ):
        lbl_cell = ws.cell(row=r_idx, column=1, value=label)
        lbl_cell.font = LABEL_FONT
        lbl_cell.fill = KPI_FILL
        val_cell = ws.cell(row=r_idx, column=2, value=count)
        val_cell.font = VALUE_FONT
        val_cell.fill = KPI_FILL
        val_cell.alignment = Alignment(horizontal="right")
    ws.column_dimensions["A"].width = 22
    ws.column_dimensions["B"].width = 12

    _rows_to_sheet(wb, "Updated", ["Record"], [{"Record": key} for key in report.updated_keys])
    _rows_to_sheet(wb, "New", ["Record"], [{"Record": key} for key in report.new_keys])
    return _save(wb, path)
