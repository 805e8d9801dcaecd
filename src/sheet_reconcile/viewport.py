"""Viewport windowing — materialize only the rows a scroll position can show."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field

from sheet_reconcile import OVERSCAN_COUNT, ROW_HEIGHT
from sheet_reconcile.models import Row, SortState, Table, ViewportWindow
from sheet_reconcile.query import FilterState, run_query


def compute_window(
    total_rows: int,
    scroll_offset: float,
    container_height: float,
    *,
    row_height: int = ROW_HEIGHT,
    overscan: int = OVERSCAN_COUNT,
) -> ViewportWindow:
    """Return the index range to render plus the pad heights around it.

    ``end_index`` is ``-1`` for an empty row set.
    """
    if row_height <= 0:
        raise ValueError("row_height must be > 0")
    if total_rows < 0 or overscan < 0:
        raise ValueError("total_rows and overscan must be >= 0")
    if scroll_offset < 0 or container_height < 0:
        raise ValueError("scroll_offset and container_height must be >= 0")

    start = max(0, math.floor(scroll_offset / row_height) - overscan)
    visible_count = math.ceil(container_height / row_height)
    end = min(total_rows - 1, start + visible_count + 2 * overscan)
    return ViewportWindow(
        start_index=start,
        end_index=end,
        leading_pad=start * row_height,
        trailing_pad=max(0, (total_rows - 1 - end) * row_height),
    )


def slice_window(rows: Sequence[Row], window: ViewportWindow) -> list[Row]:
    if window.end_index < window.start_index:
        return []
    return list(rows[window.start_index:window.end_index + 1])


class ScrollCoalescer:
    """Keep only the latest scroll offset per frame (trailing edge)."""

    def __init__(self) -> None:
        self._latest: float | None = None

    def push(self, offset: float) -> None:
        self._latest = offset

    def frame(self) -> float | None:
        latest, self._latest = self._latest, None
        return latest


# ── Query boundary ───────────────────────────────────────────────


@dataclass
class ViewState:
    """Everything the display layer passes in for one recomputation."""

    filters: FilterState = field(default_factory=dict)
    sort: SortState | None = None
    scroll_offset: float = 0
    container_height: float = ROW_HEIGHT * 10
    visible_columns: list[str] | None = None
    row_height: int = ROW_HEIGHT
    overscan: int = OVERSCAN_COUNT


@dataclass
class ViewSlice:
    headers: list[str]
    rows: list[Row]
    window: ViewportWindow
    total_rows: int

    @property
    def leading_pad(self) -> int:
        return self.window.leading_pad

    @property
    def trailing_pad(self) -> int:
        return self.window.trailing_pad


def visible_headers(table: Table, visible_columns: Sequence[str] | None) -> list[str]:
    """Table headers that are shown, in table order."""
    if visible_columns is None:
        return list(table.headers)
    shown = set(visible_columns)
    return [name for name in table.headers if name in shown]


def render_view(table: Table, state: ViewState) -> ViewSlice:
    """Filter, sort and window *table* for the display layer."""
    matching = run_query(table.rows, state.filters, state.sort)
    window = compute_window(
        len(matching),
        state.scroll_offset,
        state.container_height,
        row_height=state.row_height,
        overscan=state.overscan,
    )
    return ViewSlice(
        headers=visible_headers(table, state.visible_columns),
        rows=slice_window(matching, window),
        window=window,
        total_rows=len(matching),
    )
