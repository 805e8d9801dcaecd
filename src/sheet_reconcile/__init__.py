"""sheet-reconcile — Import spreadsheet exports, merge them into stored datasets, query the result."""

__version__ = "0.2.0"

ROW_HEIGHT: int = 37
"""Fixed display row height (px) used by the viewport windower."""

OVERSCAN_COUNT: int = 3
"""Rows materialized above and below the visible area."""

FILTER_DEBOUNCE_SECONDS: float = 0.3

PREVIEW_ROWS: int = 10

DEFAULT_STORE_PATH: str = ".sheet-reconcile/datasets.json"
