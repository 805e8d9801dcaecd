"""Merge semantics for both identity policies."""

from __future__ import annotations

import copy

import pytest

from sheet_reconcile.errors import SchemaMismatch
from sheet_reconcile.models import Table
from sheet_reconcile.reconcile import IdentityPolicy, reconcile, row_identity


def _table(headers: list[str], rows: list[list[object]]) -> Table:
    return Table(headers=headers, rows=[dict(zip(headers, r)) for r in rows])  # type: ignore[arg-type]


def test_first_column_merge_updates_and_appends() -> None:
    existing = _table(["ID", "Name"], [[1, "Ana"], [2, "Bo"]])
    incoming = _table(["ID", "Name"], [[2, "Bob"], [3, "Cy"]])

    result = reconcile(existing, incoming, IdentityPolicy.first_column)

    assert [[r["ID"], r["Name"]] for r in result.table.rows] == [[1, "Ana"], [2, "Bob"], [3, "Cy"]]
    assert result.report.updated_keys == ["2"]
    assert result.report.new_keys == ["3"]
    assert result.warnings == []


def test_first_column_skips_incoming_rows_without_a_key() -> None:
    existing = _table(["ID", "Name"], [[1, "Ana"]])
    incoming = _table(["ID", "Name"], [[None, "Ghost"], [1, "Ana B"]])

    result = reconcile(existing, incoming)

    assert result.table.rows == [{"ID": 1, "Name": "Ana B"}]
    assert result.report.updated_keys == ["1"]
    assert result.report.new_keys == []
    assert any("Skipped 1" in w for w in result.warnings)


def test_first_column_keeps_stored_rows_without_a_key() -> None:
    existing = _table(["ID", "Name"], [[None, "a"], [None, "b"], [1, "c"]])
    incoming = _table(["ID", "Name"], [[1, "C"]])

    result = reconcile(existing, incoming)

    assert [r["Name"] for r in result.table.rows] == ["a", "b", "C"]


def test_first_column_distinguishes_number_and_text_keys() -> None:
    existing = _table(["ID", "Name"], [[2, "Bo"]])
    incoming = _table(["ID", "Name"], [["2", "Text two"], [2.0, "Float two"]])

    result = reconcile(existing, incoming)

    assert result.report.new_keys == ["2"]
    assert result.report.updated_keys == ["2"]
    assert [r["Name"] for r in result.table.rows] == ["Float two", "Text two"]


def test_repeated_identity_is_reported_once_under_first_classification() -> None:
    existing = _table(["ID", "Name"], [[1, "Ana"]])
    incoming = _table(["ID", "Name"], [[5, "Eve"], [5, "Eve 2"], [1, "A"], [1, "B"]])

    result = reconcile(existing, incoming)

    assert result.report.new_keys == ["5"]
    assert result.report.updated_keys == ["1"]
    assert result.table.rows == [{"ID": 1, "Name": "B"}, {"ID": 5, "Name": "Eve 2"}]


def test_stored_duplicates_collapse_with_warning() -> None:
    existing = _table(["ID", "Name"], [[1, "old"], [2, "Bo"], [1, "newer"]])

    result = reconcile(existing, _table(["ID", "Name"], []))

    assert result.table.rows == [{"ID": 1, "Name": "newer"}, {"ID": 2, "Name": "Bo"}]
    assert any("Collapsed 1" in w for w in result.warnings)


def test_content_hash_merge_into_itself_is_idempotent() -> None:
    table = _table(["A", "B"], [[1, "x"], [2, None], ["3", True]])

    result = reconcile(table, table, IdentityPolicy.content_hash)

    assert result.report.new_keys == []
    assert len(result.report.updated_keys) == 3
    assert len(set(result.report.updated_keys)) == 3
    assert len(result.table) == len(table)
    assert result.table.rows == table.rows


def test_content_hash_any_changed_cell_is_new() -> None:
    existing = _table(["ID", "Name"], [[1, "Ana"], [2, "Bo"]])
    incoming = _table(["ID", "Name"], [[2, "Bob"], [1, "Ana"]])

    result = reconcile(existing, incoming, IdentityPolicy.content_hash)

    assert result.report.updated_keys == ["1 | Ana"]
    assert result.report.new_keys == ["2 | Bob"]
    assert len(result.table) == 3


def test_policies_diverge_on_null_first_column() -> None:
    existing = _table(["ID", "Name"], [[1, "Ana"]])
    incoming = _table(["ID", "Name"], [[None, "Ghost"]])

    by_key = reconcile(existing, incoming, IdentityPolicy.first_column)
    by_content = reconcile(existing, incoming, IdentityPolicy.content_hash)

    assert by_key.report.new_keys == []
    assert by_content.report.new_keys == [" | Ghost"]


def test_policy_accepts_plain_string() -> None:
    table = _table(["A"], [[1]])

    result = reconcile(table, table, "content-hash")  # type: ignore[arg-type]

    assert result.report.updated_keys == ["1"]


def test_schema_mismatch_carries_both_header_lists_and_mutates_nothing() -> None:
    existing = _table(["A", "B"], [[1, 2]])
    incoming = _table(["A", "C"], [[1, 3]])
    before = copy.deepcopy(existing)

    with pytest.raises(SchemaMismatch) as exc_info:
        reconcile(existing, incoming)

    assert exc_info.value.existing_headers == ["A", "B"]
    assert exc_info.value.incoming_headers == ["A", "C"]
    assert existing == before


def test_header_order_matters() -> None:
    with pytest.raises(SchemaMismatch):
        reconcile(_table(["A", "B"], []), _table(["B", "A"], []))


def test_merge_does_not_mutate_inputs() -> None:
    existing = _table(["ID", "Name"], [[1, "Ana"]])
    incoming = _table(["ID", "Name"], [[1, "Ann"], [2, "Bo"]])
    existing_before = copy.deepcopy(existing)
    incoming_before = copy.deepcopy(incoming)

    result = reconcile(existing, incoming)
    result.table.rows[0]["Name"] = "changed"

    assert existing == existing_before
    assert incoming == incoming_before


def test_row_identity_without_headers_is_none() -> None:
    assert row_identity({}, [], IdentityPolicy.first_column) is None
