from __future__ import annotations

from sheet_reconcile.normalize import normalize_rows, table_from_matrix, zip_row


def test_zip_row_pads_missing_trailing_cells() -> None:
    assert zip_row(["a", "b", "c"], [1]) == {"a": 1, "b": None, "c": None}


def test_fully_blank_rows_are_dropped() -> None:
    rows = normalize_rows([["x", "y"], [1, None], [None, None]], ["x", "y"], 0)

    assert rows == [{"x": 1, "y": None}]


def test_empty_string_is_a_value() -> None:
    rows = normalize_rows([["x"], [""]], ["x"], 0)

    assert rows == [{"x": ""}]


def test_cells_beyond_the_span_are_ignored() -> None:
    rows = normalize_rows([["A", "B"], [1, 2, "note"]], ["A", "B"], 0)

    assert rows == [{"A": 1, "B": 2}]


def test_table_from_matrix_reports_what_happened() -> None:
    matrix = [
        ["Students 2024", None, None, None, None],
        ["ID", "Name", "Dept", None, "Notes"],
        [1, "Ana", "Math", None, "late"],
        [None, None, None, None, "stray"],
        [2, "Bo", None, None, None],
    ]

    table, report = table_from_matrix(matrix)

    assert table.headers == ["ID", "Name", "Dept"]
    assert table.rows == [
        {"ID": 1, "Name": "Ana", "Dept": "Math"},
        {"ID": 2, "Name": "Bo", "Dept": None},
    ]
    assert report.header_row_index == 1
    assert report.rows_in == 3
    assert report.rows_out == 2
    assert report.dropped_rows == 1
    assert report.truncated_columns == ["Notes"]
    assert any("Notes" in w for w in report.warnings)
    assert any("Dropped 1 blank rows" in w for w in report.warnings)


def test_table_with_no_data_rows_is_valid() -> None:
    table, report = table_from_matrix([["Title"], ["a", "b", "c"], [None, None, None]])

    assert table.headers == ["a", "b", "c"]
    assert table.rows == []
    assert report.rows_out == 0
    assert any("No data rows" in w for w in report.warnings)


def test_duplicate_headers_collapse_with_warning() -> None:
    table, report = table_from_matrix([["t"], ["a", "b", "a"], [1, 2, 3]])

    assert table.headers == ["a", "b"]
    assert table.rows == [{"a": 3, "b": 2}]
    assert any("Duplicate header" in w for w in report.warnings)
