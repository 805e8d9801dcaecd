from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

import pandas as pd
import pytest
from openpyxl import Workbook

from sheet_reconcile.errors import MalformedInput
from sheet_reconcile.io import is_supported_file, load_matrix, write_json
from sheet_reconcile.models import SortState
from sheet_reconcile.normalize import table_from_matrix
from sheet_reconcile.query import run_query


def _write_xlsx(path: Path, rows: list[list[object]]) -> Path:
    wb = Workbook()
    ws = wb.active
    assert ws is not None
    for row in rows:
        ws.append(row)
    wb.save(path)
    return path


def test_load_matrix_reads_first_sheet_without_headers(tmp_path: Path) -> None:
    path = _write_xlsx(
        tmp_path / "students.xlsx",
        [["Students 2024"], ["ID", "Name", "Dept"], [1, "Ana", "Math"], [2, "Bo", None]],
    )

    matrix = load_matrix(path)

    assert matrix == [
        ["Students 2024", None, None],
        ["ID", "Name", "Dept"],
        [1, "Ana", "Math"],
        [2, "Bo", None],
    ]


def test_load_matrix_xlsx_uses_openpyxl_without_header(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    xlsx_path = tmp_path / "data.xlsm"
    xlsx_path.write_bytes(b"x")
    calls: list[dict[str, object]] = []

    def _fake_read_excel(path: Path, **kwargs: object) -> pd.DataFrame:
        calls.append({"path": path, **kwargs})
        return pd.DataFrame([["a", "b"], [1, float("nan")]])

    monkeypatch.setattr(pd, "read_excel", _fake_read_excel)

    matrix = load_matrix(xlsx_path)

    assert matrix == [["a", "b"], [1, None]]
    assert calls[0]["engine"] == "openpyxl"
    assert calls[0]["header"] is None
    assert calls[0]["dtype"] is object
    assert calls[0]["sheet_name"] == 0


def test_load_matrix_csv_keeps_blank_cells_as_none(tmp_path: Path) -> None:
    csv_path = tmp_path / "data.csv"
    csv_path.write_text("Title,,\nID,Name,Dept\n1,Ana,NA\n", encoding="utf-8")

    matrix = load_matrix(csv_path, delimiter=",")

    assert matrix == [["Title", None, None], ["ID", "Name", "Dept"], [1, "Ana", "NA"]]


def test_load_matrix_csv_types_numeric_cells(tmp_path: Path) -> None:
    csv_path = tmp_path / "data.csv"
    csv_path.write_text("ID,Score,Code\n7, 2.5 ,007x\n10,nan,1e\n", encoding="utf-8")

    matrix = load_matrix(csv_path, delimiter=",")

    assert matrix[1] == [7, 2.5, "007x"]
    assert matrix[2] == [10, "nan", "1e"]
    assert isinstance(matrix[1][0], int) and not isinstance(matrix[1][0], bool)
    assert isinstance(matrix[1][1], float)


def test_csv_header_on_first_row_is_detected(tmp_path: Path) -> None:
    csv_path = tmp_path / "students.csv"
    csv_path.write_text("ID,Name,Year\n1,Ana,2024\n2,Bo,2023\n", encoding="utf-8")

    table, report = table_from_matrix(load_matrix(csv_path, delimiter=","))

    assert report.header_row_index == 0
    assert table.headers == ["ID", "Name", "Year"]
    assert table.rows[0] == {"ID": 1, "Name": "Ana", "Year": 2024}


def test_csv_numeric_column_sorts_numerically(tmp_path: Path) -> None:
    csv_path = tmp_path / "ids.csv"
    csv_path.write_text("ID,Name\n9,Ana\n10,Bo\n", encoding="utf-8")

    table, _ = table_from_matrix(load_matrix(csv_path, delimiter=","))
    rows = run_query(table.rows, sort=SortState(key="ID"))

    assert [row["ID"] for row in rows] == [9, 10]


def test_decoder_error_becomes_malformed_input_with_cause(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    xlsx_path = tmp_path / "broken.xlsx"
    xlsx_path.write_bytes(b"not a zip")
    boom = ValueError("File is not a zip file")

    def _fake_read_excel(path: Path, **kwargs: object) -> pd.DataFrame:
        del path, kwargs
        raise boom

    monkeypatch.setattr(pd, "read_excel", _fake_read_excel)

    with pytest.raises(MalformedInput, match="broken.xlsx") as exc_info:
        load_matrix(xlsx_path)

    assert exc_info.value.cause is boom
    assert exc_info.value.__cause__ is boom


def test_xls_without_xlrd_raises_friendly_error(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    xls_path = tmp_path / "legacy.xls"
    xls_path.write_bytes(b"x")

    def _fake_read_excel(path: Path, **kwargs: object) -> pd.DataFrame:
        del path, kwargs
        raise ImportError("No module named xlrd")

    monkeypatch.setattr(pd, "read_excel", _fake_read_excel)

    with pytest.raises(MalformedInput, match="xlrd"):
        load_matrix(xls_path)


@pytest.mark.parametrize(
    ("frame", "message"),
    [
        (pd.DataFrame(), "empty"),
        (pd.DataFrame([["only", "row"]]), "Insufficient data"),
    ],
)
def test_too_little_data_is_malformed(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, frame: pd.DataFrame, message: str
) -> None:
    path = tmp_path / "small.xlsx"
    path.write_bytes(b"x")
    monkeypatch.setattr(pd, "read_excel", lambda *_a, **_k: frame)

    with pytest.raises(MalformedInput, match=message):
        load_matrix(path)


def test_missing_and_unsupported_files_are_malformed(tmp_path: Path) -> None:
    with pytest.raises(MalformedInput, match="not found"):
        load_matrix(tmp_path / "nope.xlsx")

    txt = tmp_path / "notes.txt"
    txt.write_text("a\nb\n", encoding="utf-8")
    with pytest.raises(MalformedInput, match="Unsupported file type"):
        load_matrix(txt)


def test_is_supported_file() -> None:
    assert is_supported_file(Path("a.XLSX"))
    assert is_supported_file(Path("a.xls"))
    assert is_supported_file(Path("a.xlsm"))
    assert not is_supported_file(Path("a.ods"))


def test_write_json_is_sorted_and_handles_dates(tmp_path: Path) -> None:
    out = write_json(tmp_path / "nested" / "x.json", {"b": 1, "a": datetime(2024, 1, 1)})

    text = out.read_text(encoding="utf-8")
    assert text.index('"a"') < text.index('"b"')
    assert json.loads(text) == {"a": "2024-01-01T00:00:00", "b": 1}
    assert not (tmp_path / "nested" / "x.json.tmp").exists()
