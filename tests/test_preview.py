from __future__ import annotations

import pytest

from sheet_reconcile.models import Table
from sheet_reconcile.preview import (
    add_constant_column,
    column_status,
    fill_missing_columns,
    preview_rows,
)


def _table() -> Table:
    return Table(headers=["ID", "Name"], rows=[{"ID": i, "Name": f"n{i}"} for i in range(15)])


def test_preview_rows_limits_and_copies() -> None:
    table = _table()

    rows = preview_rows(table)
    rows[0]["Name"] = "changed"

    assert len(rows) == 10
    assert table.rows[0]["Name"] == "n0"


def test_column_status_against_stored_headers() -> None:
    status = column_status(["ID", "Extra"], ["ID", "Name"])

    assert status == {"ID": "present", "Extra": "none", "Name": "missing"}


def test_column_status_without_stored_dataset() -> None:
    assert column_status(["ID"], None) == {"ID": "none"}


def test_add_constant_column_sets_every_row() -> None:
    table = add_constant_column(_table(), "  Term ", " 2024/1 ")

    assert table.headers == ["ID", "Name", "Term"]
    assert {row["Term"] for row in table.rows} == {"2024/1"}


def test_add_constant_column_rejects_duplicates_and_blank_names() -> None:
    with pytest.raises(ValueError, match="already exists"):
        add_constant_column(_table(), "Name", "x")
    with pytest.raises(ValueError, match="non-empty"):
        add_constant_column(_table(), "   ", "x")


def test_fill_missing_columns_aligns_to_stored_order() -> None:
    table = Table(headers=["Name"], rows=[{"Name": "Ana"}])

    filled = fill_missing_columns(table, ["ID", "Name", "Term"], {"Term": "2024/1"})

    assert filled.headers == ["ID", "Name", "Term"]
    assert filled.rows == [{"Name": "Ana", "ID": "", "Term": "2024/1"}]


def test_fill_missing_columns_keeps_extra_columns_unaligned() -> None:
    table = Table(headers=["Name", "Extra"], rows=[{"Name": "Ana", "Extra": 1}])

    filled = fill_missing_columns(table, ["ID", "Name"])

    assert filled.headers == ["Name", "Extra", "ID"]
