"""Query pipeline — multi-term column filters and a single typed sort.

Filtering is OR within a column (``"bio;math"`` matches either term) and AND
across columns.  Sorting puts ``None`` last in both directions, compares
numbers numerically and everything else as case-insensitive text.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from functools import cmp_to_key

from sheet_reconcile import FILTER_DEBOUNCE_SECONDS
from sheet_reconcile.models import Row, Scalar, SortState, is_number, scalar_text

FilterState = dict[str, str]
TERM_SEPARATOR = ";"

# ── Filtering ────────────────────────────────────────────────────


def parse_terms(raw: str) -> list[str]:
    """Split a raw filter string into trimmed, lowercased, non-empty terms."""
    return [term for term in (part.strip().lower() for part in raw.split(TERM_SEPARATOR)) if term]


def active_filters(filters: Mapping[str, str]) -> dict[str, list[str]]:
    """Return ``{column: terms}`` for every column with at least one term."""
    active: dict[str, list[str]] = {}
    for column, raw in filters.items():
        if not raw:
            continue
        terms = parse_terms(raw)
        if terms:
            active[column] = terms
    return active


def cell_matches(value: Scalar, terms: Sequence[str]) -> bool:
    if value is None:
        return False
    text = scalar_text(value).lower()
    return any(term in text for term in terms)


def row_matches(row: Row, parsed: Mapping[str, Sequence[str]]) -> bool:
    return all(cell_matches(row.get(column), terms) for column, terms in parsed.items())


def filter_rows(rows: Iterable[Row], filters: Mapping[str, str]) -> list[Row]:
    parsed = active_filters(filters)
    if not parsed:
        return list(rows)
    return [row for row in rows if row_matches(row, parsed)]


# ── Sorting ──────────────────────────────────────────────────────


def toggle_sort(current: SortState | None, key: str) -> SortState:
    """Same key flips direction; a new key starts ascending."""
    if current is not None and current.key == key and current.direction == "ascending":
        return SortState(key=key, direction="descending")
    return SortState(key=key, direction="ascending")


def compare_values(a: Scalar, b: Scalar, *, descending: bool = False) -> int:
    if a is None and b is None:
        return 0
    if a is None:
        return 1
    if b is None:
        return -1

    sign = -1 if descending else 1
    if is_number(a) and is_number(b):
        diff = a - b  # type: ignore[operator]
        return sign * ((diff > 0) - (diff < 0))

    text_a = scalar_text(a).lower()
    text_b = scalar_text(b).lower()
    return sign * ((text_a > text_b) - (text_a < text_b))


def sort_rows(rows: Iterable[Row], sort: SortState | None) -> list[Row]:
    if sort is None:
        return list(rows)

    def _cmp(left: Row, right: Row) -> int:
        return compare_values(left.get(sort.key), right.get(sort.key), descending=sort.descending)

    return sorted(rows, key=cmp_to_key(_cmp))


def run_query(
    rows: Sequence[Row],
    filters: Mapping[str, str] | None = None,
    sort: SortState | None = None,
) -> list[Row]:
    """Filter then sort *rows*; same inputs always give the same output."""
    return sort_rows(filter_rows(rows, filters or {}), sort)


# ── Input debounce ───────────────────────────────────────────────


class FilterDebouncer:
    """Separate the filter the user is typing from the filter being applied.

    ``pending`` changes on every keystroke; ``applied`` catches up with the
    whole pending state once no keystroke arrived for ``delay`` seconds.
    Call ``poll()`` from the event loop tick.
    """

    def __init__(
        self,
        delay: float = FILTER_DEBOUNCE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if delay < 0:
            raise ValueError("delay must be >= 0")
        self.delay = delay
        self._clock = clock
        self.pending: FilterState = {}
        self.applied: FilterState = {}
        self._deadline: float | None = None

    @property
    def is_waiting(self) -> bool:
        return self._deadline is not None

    def set(self, column: str, value: str) -> None:
        self.pending[column] = value
        self._deadline = self._clock() + self.delay

    def poll(self) -> bool:
        """Apply the pending state if the quiet period elapsed; True if applied."""
        if self._deadline is None or self._clock() < self._deadline:
            return False
        return self.flush()

    def flush(self) -> bool:
        self._deadline = None
        if self.applied == self.pending:
            return False
        self.applied = dict(self.pending)
        return True

    def reset(self) -> None:
        self.pending = {}
        self.applied = {}
        self._deadline = None
