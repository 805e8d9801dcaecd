from __future__ import annotations

from pathlib import Path

from openpyxl import load_workbook

from sheet_reconcile.export import to_tsv, write_merge_report, write_view_workbook
from sheet_reconcile.models import ReconciliationReport


def test_to_tsv_renders_header_and_rows() -> None:
    text = to_tsv(["ID", "Name"], [{"ID": 1, "Name": "Ana"}, {"ID": 2.0, "Name": None}])

    assert text == "ID\tName\n1\tAna\n2\t"


def test_to_tsv_flattens_tabs_and_newlines() -> None:
    assert to_tsv(["a"], [{"a": "x\ty\nz"}]) == "a\nx y z"


def test_write_view_workbook_styles_header_and_guards_formulas(tmp_path: Path) -> None:
    path = write_view_workbook(
        tmp_path / "out" / "view.xlsx",
        ["ID", "Note"],
        [{"ID": 1, "Note": "=SUM(A1:A2)"}, {"ID": -5, "Note": None}],
        title="Alunos",
    )

    wb = load_workbook(path)
    ws = wb["Alunos"]
    assert [c.value for c in ws[1]] == ["ID", "Note"]
    assert ws["B2"].value == "'=SUM(A1:A2)"
    assert ws["A3"].value == -5
    assert ws["B3"].value is None
    assert ws.freeze_panes == "A2"
    assert ws["A1"].font.bold is True
    assert not (tmp_path / "out" / "view.tmp.xlsx").exists()


def test_write_view_workbook_without_columns(tmp_path: Path) -> None:
    wb = load_workbook(write_view_workbook(tmp_path / "empty.xlsx", [], []))

    assert wb["Data"]["A1"].value == "No data"


def test_write_merge_report_lists_both_classes(tmp_path: Path) -> None:
    report = ReconciliationReport(updated_keys=["2"], new_keys=["3", "4"])

    wb = load_workbook(write_merge_report(tmp_path / "merge.xlsx", report, dataset_key="A_2024_1"))

    assert wb.sheetnames == ["Summary", "Updated", "New"]
    assert wb["Summary"]["B4"].value == 1
    assert wb["Summary"]["B5"].value == 2
    assert [row[0].value for row in wb["New"].iter_rows(min_row=2)] == ["3", "4"]
    assert [row[0].value for row in wb["Updated"].iter_rows(min_row=2)] == ["2"]
