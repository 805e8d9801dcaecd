"""Header detection — locate the header row of a raw matrix and its column span.

Real exports often put a title in the first row and stray notes to the right
of the data, so detection is positional rather than schema-driven:

1. row 1 is the header if it has >= 3 non-empty cells, all of them text
   (dates decoded to ISO strings do not count as text);
2. otherwise row 2 under the same rule;
3. otherwise the first of rows 0..4 with >= 2 non-empty cells of any type.

The span then runs from the first cell up to (not including) the first blank.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

from sheet_reconcile.errors import HeaderNotFound, MalformedInput, NoValidColumns
from sheet_reconcile.models import Scalar, scalar_text

TEXT_HEADER_CANDIDATES = (1, 2)
TEXT_HEADER_MIN_CELLS = 3
FALLBACK_SCAN_ROWS = 5
FALLBACK_MIN_CELLS = 2


@dataclass(frozen=True)
class HeaderDetection:
    row_index: int
    headers: list[str]
    truncated: list[str] = field(default_factory=list)
    """Non-empty header cells dropped because they sit after a blank."""


def _non_empty(row: Sequence[Scalar]) -> list[Scalar]:
    return [cell for cell in row if scalar_text(cell).strip()]


def _is_header_text(cell: Scalar) -> bool:
    """Text that is not a decoded date (dates arrive as ISO strings)."""
    if not isinstance(cell, str):
        return False
    try:
        datetime.fromisoformat(cell.strip())
    except ValueError:
        return True
    return False


def _is_text_header_row(row: Sequence[Scalar]) -> bool:
    cells = _non_empty(row)
    return len(cells) >= TEXT_HEADER_MIN_CELLS and all(_is_header_text(c) for c in cells)


def find_header_row(matrix: Sequence[Sequence[Scalar]]) -> int:
    """Return the index of the header row in *matrix*.

    Raises
    ------
    MalformedInput
        If the matrix has fewer than two rows.
    HeaderNotFound
        If no candidate row qualifies.
    """
    if len(matrix) < 2:
        raise MalformedInput("Insufficient data: the sheet has fewer than 2 rows")

    for idx in TEXT_HEADER_CANDIDATES:
        if idx < len(matrix) and _is_text_header_row(matrix[idx]):
            return idx

    for idx in range(min(FALLBACK_SCAN_ROWS, len(matrix))):
        if len(_non_empty(matrix[idx])) >= FALLBACK_MIN_CELLS:
            return idx

    raise HeaderNotFound(
        f"Could not detect a header row in the first {FALLBACK_SCAN_ROWS} rows"
    )


def header_span(row: Sequence[Scalar]) -> tuple[list[str], list[str]]:
    """Split a header row into ``(headers, truncated)`` at the first blank cell."""
    headers: list[str] = []
    for idx, cell in enumerate(row):
        text = scalar_text(cell).strip()
        if not text:
            truncated = [scalar_text(c).strip() for c in row[idx + 1:]]
            return headers, [t for t in truncated if t]
        headers.append(text)
    return headers, []


def detect_header(matrix: Sequence[Sequence[Scalar]]) -> HeaderDetection:
    """Find the header row and its valid column span.

    Raises ``MalformedInput``, ``HeaderNotFound`` or ``NoValidColumns``.
    """
    row_index = find_header_row(matrix)
    headers, truncated = header_span(matrix[row_index])
    if not headers:
        raise NoValidColumns(f"No valid columns found in header row {row_index + 1}")
    return HeaderDetection(row_index=row_index, headers=headers, truncated=truncated)
