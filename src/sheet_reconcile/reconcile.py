"""Reconciliation — merge an imported table into a stored one, pure functions.

Two identity policies are supported and they are NOT equivalent:

``first-column``
    The first header's value identifies a row.  Incoming rows whose key is
    ``None`` are skipped (neither merged nor reported).  ``2`` and ``"2"``
    are different keys.

``content-hash``
    The whole row, each value stringified and joined in header order, is
    the identity.  Any row differing in a single cell from every stored row
    is new; identical rows are updates to themselves.
"""

from __future__ import annotations

from collections.abc import Hashable, Sequence
from dataclasses import dataclass, field
from enum import Enum

from sheet_reconcile.errors import SchemaMismatch
from sheet_reconcile.models import ReconciliationReport, Row, Table, is_number, scalar_text

IDENTITY_DELIMITER = "\x1f"
LABEL_DELIMITER = " | "


class IdentityPolicy(str, Enum):
    first_column = "first-column"
    content_hash = "content-hash"


@dataclass
class MergeResult:
    table: Table
    report: ReconciliationReport
    warnings: list[str] = field(default_factory=list)


# ── Identity ─────────────────────────────────────────────────────


def check_schema(existing_headers: Sequence[str], incoming_headers: Sequence[str]) -> None:
    """Raise ``SchemaMismatch`` unless both header lists match in name and order."""
    if list(existing_headers) != list(incoming_headers):
        raise SchemaMismatch(existing_headers, incoming_headers)


def row_identity(
    row: Row, headers: Sequence[str], policy: IdentityPolicy
) -> Hashable | None:
    """Return the identity of *row* under *policy*, or ``None`` if it has none."""
    if not headers:
        return None
    if policy == IdentityPolicy.content_hash:
        return IDENTITY_DELIMITER.join(scalar_text(row.get(name)) for name in headers)

    value = row.get(headers[0])
    if value is None:
        return None
    if isinstance(value, bool):
        return ("bool", value)
    if is_number(value):
        return ("number", value)
    return ("text", value)


def identity_label(row: Row, headers: Sequence[str], policy: IdentityPolicy) -> str:
    """Human-readable form of a row's identity for the merge report."""
    if policy == IdentityPolicy.content_hash:
        return LABEL_DELIMITER.join(scalar_text(row.get(name)) for name in headers)
    return scalar_text(row.get(headers[0]))


# ── Merge ────────────────────────────────────────────────────────


def reconcile(
    existing: Table,
    incoming: Table,
    policy: IdentityPolicy = IdentityPolicy.first_column,
) -> MergeResult:
    """Merge *incoming* into *existing* and classify every incoming row.

    Matching rows overwrite the stored row in place; unmatched rows are
    appended in incoming order.  Each identity is reported at most once,
    under its first classification.  Neither input is mutated.

    Raises
    ------
    SchemaMismatch
        If the header lists differ; nothing is merged.
    """
    check_schema(existing.headers, incoming.headers)
    policy = IdentityPolicy(policy)
    headers = list(existing.headers)
    warnings: list[str] = []

    slots: list[Row] = []
    index: dict[Hashable, int] = {}
    collapsed = 0
    for row in existing.rows:
        identity = row_identity(row, headers, policy)
        if identity is None:
            slots.append(dict(row))
            continue
        if identity in index:
            slots[index[identity]] = dict(row)
            collapsed += 1
            continue
        index[identity] = len(slots)
        slots.append(dict(row))

    if collapsed:
        warnings.append(f"Collapsed {collapsed} stored rows sharing an identity")

    report = ReconciliationReport()
    reported: set[Hashable] = set()
    skipped = 0
    for row in incoming.rows:
        identity = row_identity(row, headers, policy)
        if identity is None:
            skipped += 1
            continue
        if identity in index:
            slots[index[identity]] = dict(row)
            if identity not in reported:
                report.updated_keys.append(identity_label(row, headers, policy))
        else:
            index[identity] = len(slots)
            slots.append(dict(row))
            report.new_keys.append(identity_label(row, headers, policy))
        reported.add(identity)

    if skipped:
        warnings.append(f"Skipped {skipped} incoming rows with an empty {headers[0]!r}")

    return MergeResult(
        table=Table(headers=headers, rows=slots),
        report=report,
        warnings=warnings,
    )
