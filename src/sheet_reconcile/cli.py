"""CLI entry point for sheet-reconcile."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table as RichTable

from sheet_reconcile import DEFAULT_STORE_PATH, PREVIEW_ROWS, ROW_HEIGHT, __version__
from sheet_reconcile.datasets import (
    create_dataset,
    delete_dataset,
    import_file,
    set_visible_columns,
    update_dataset,
)
from sheet_reconcile.errors import DatasetNotFound, SchemaMismatch, SheetReconcileError
from sheet_reconcile.export import to_tsv, write_merge_report, write_view_workbook
from sheet_reconcile.io import is_supported_file, write_json
from sheet_reconcile.models import ImportReport, ReconciliationReport, Row, SortState, scalar_text
from sheet_reconcile.preview import (
    add_constant_column,
    column_status,
    fill_missing_columns,
    preview_rows,
)
from sheet_reconcile.query import run_query
from sheet_reconcile.reconcile import IdentityPolicy
from sheet_reconcile.store import DatasetStore
from sheet_reconcile.viewport import ViewState, render_view, visible_headers

app = typer.Typer(
    name="sreconcile",
    help="sheet-reconcile — Import spreadsheet exports and merge them into stored datasets.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()

STORE_ENVVAR = "SHEET_RECONCILE_STORE"
_MAX_REPORT_LINES = 20
REPORT_SUFFIXES = (".xlsx", ".json")


def _noop(*_args: object, **_kwargs: object) -> None:
    return None


def _printer(quiet: bool) -> Callable[..., None]:
    return _noop if quiet else console.print


def _err(msg: str) -> None:
    console.print(f"[red]x[/red] {msg}")


# ── Helpers ──────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"sheet-reconcile v{__version__}")
        raise typer.Exit()


def _store_option() -> Any:
    return typer.Option(
        Path(DEFAULT_STORE_PATH), "--store", "-s",
        envvar=STORE_ENVVAR,
        help="Path of the JSON dataset store.",
    )


def _parse_pairs(raw: list[str] | None, option: str) -> dict[str, str]:
    """Parse repeated ``name=value`` options, keeping the last value per name."""
    if not raw:
        return {}
    pairs: dict[str, str] = {}
    for item in raw:
        if "=" not in item:
            raise ValueError(f"Invalid {option} value: {item!r}  (expected name=value)")
        name, value = item.split("=", 1)
        name = name.strip()
        if not name:
            raise ValueError(f"{option} entries must have a non-empty name (name=value)")
        pairs[name] = value
    return pairs


def _check_columns(names: Sequence[str], headers: Sequence[str]) -> None:
    unknown = [name for name in names if name not in headers]
    if unknown:
        raise ValueError(
            f"Unknown column(s): {', '.join(unknown)}. Available: {', '.join(headers)}"
        )


def _check_input(input_file: Path) -> None:
    if not is_supported_file(input_file):
        raise ValueError(
            f"Unsupported file type: {input_file.suffix!r}. Use .xls, .xlsx, .xlsm or .csv"
        )


def _print_import_report(report: ImportReport, echo: Callable[..., None]) -> None:
    echo(f"  Header row: {report.header_row_index + 1}")
    echo(f"  {report.rows_out} rows kept, {report.dropped_rows} blank rows dropped")
    for warning in report.warnings:
        echo(f"  [yellow]![/yellow] {warning}")


def _rows_table(
    headers: Sequence[str], rows: Sequence[Row], *, title: str, first_row_number: int = 1
) -> RichTable:
    tbl = RichTable(title=title, show_lines=False)
    tbl.add_column("#", style="dim", justify="right")
    for name in headers:
        tbl.add_column(name)
    for offset, row in enumerate(rows):
        tbl.add_row(
            str(first_row_number + offset),
            *(scalar_text(row.get(name)) for name in headers),
        )
    return tbl


def _print_merge_report(report: ReconciliationReport, echo: Callable[..., None]) -> None:
    tbl = RichTable(title="Merge Report", show_lines=True)
    tbl.add_column("Updated", style="cyan")
    tbl.add_column("New", style="green")
    updated = report.updated_keys[:_MAX_REPORT_LINES]
    new = report.new_keys[:_MAX_REPORT_LINES]
    for idx in range(max(len(updated), len(new))):
        tbl.add_row(
            updated[idx] if idx < len(updated) else "",
            new[idx] if idx < len(new) else "",
        )
    echo(tbl)
    echo(
        f"  {len(report.updated_keys)} records updated, "
        f"{len(report.new_keys)} new records added"
    )
    hidden = max(0, len(report.updated_keys) - _MAX_REPORT_LINES) + max(
        0, len(report.new_keys) - _MAX_REPORT_LINES
    )
    if hidden:
        echo(f"  ({hidden} more not shown; use --report-out for the full list)")


def _query_state(
    headers: Sequence[str],
    filters: list[str] | None,
    sort: str | None,
    descending: bool,
) -> tuple[dict[str, str], SortState | None]:
    filter_state = _parse_pairs(filters, "--filter")
    _check_columns(list(filter_state), headers)
    sort_state: SortState | None = None
    if sort:
        _check_columns([sort], headers)
        sort_state = SortState(key=sort, direction="descending" if descending else "ascending")
    return filter_state, sort_state


# ── Callbacks ────────────────────────────────────────────────────


@app.callback()
def main(
    version: bool | None = typer.Option(
        None, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """sheet-reconcile CLI."""


# ── preview command ──────────────────────────────────────────────


@app.command()
def preview(
    input_file: Path = typer.Option(
        ..., "--input", "-i",
        help="Spreadsheet export to inspect (.xls, .xlsx, .xlsm, .csv).",
        exists=True, readable=True,
    ),
    rows: int = typer.Option(PREVIEW_ROWS, "--rows", "-n", min=0, help="Rows to show."),
    dataset: str | None = typer.Option(
        None, "--dataset", "-d",
        help="Compare columns against this stored dataset.",
    ),
    store_path: Path = _store_option(),
) -> None:
    """Show how a file would be imported, without storing anything."""
    try:
        _check_input(input_file)
        table, report = import_file(input_file)
        existing_headers = None
        if dataset:
            stored = DatasetStore(store_path).get(dataset)
            if stored is None:
                raise DatasetNotFound(dataset)
            existing_headers = stored.table.headers
    except (SheetReconcileError, ValueError) as exc:
        _err(str(exc))
        raise typer.Exit(code=2)

    console.print(Panel(
        f"[bold]{input_file.name}[/bold]\n"
        f"{len(table.headers)} columns, {len(table)} rows",
        title="Preview", border_style="cyan",
    ))
    _print_import_report(report, console.print)
    if existing_headers is not None:
        status = column_status(table.headers, existing_headers)
        marks = {"present": "[green]✓[/green]", "missing": "[red]x[/red]", "none": "[dim]-[/dim]"}
        for name, state in status.items():
            console.print(f"  {marks[state]} {name} ({state})")
    console.print(_rows_table(
        table.headers, preview_rows(table, rows),
        title=f"First {min(rows, len(table))} of {len(table)} rows",
    ))


# ── import command ───────────────────────────────────────────────


@app.command("import")
def import_(
    input_file: Path = typer.Option(
        ..., "--input", "-i",
        help="Spreadsheet export to store as a new dataset.",
        exists=True, readable=True,
    ),
    dataset_type: str = typer.Option(..., "--type", "-t", help="Dataset type, e.g. Ofertas."),
    year: int = typer.Option(..., "--year", "-y", min=0, help="Period year."),
    semester: int = typer.Option(1, "--semester", min=1, max=2, help="Period semester (1 or 2)."),
    add_column: list[str] | None = typer.Option(
        None, "--add-column", "-a",
        help="Extra constant column: name=value (repeatable).",
    ),
    store_path: Path = _store_option(),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress informational output."),
) -> None:
    """Import a file as a brand-new dataset."""
    echo = _printer(quiet)
    try:
        _check_input(input_file)
        extra = _parse_pairs(add_column, "--add-column")
        echo("[blue]>[/blue] Loading input file …")
        table, report = import_file(input_file)
        _print_import_report(report, echo)
        for name, value in extra.items():
            table = add_constant_column(table, name, value)
        stored = create_dataset(DatasetStore(store_path), dataset_type, year, semester, table)
    except (SheetReconcileError, ValueError) as exc:
        _err(str(exc))
        raise typer.Exit(code=2)
    except Exception as exc:
        _err(f"Unexpected internal error: {exc}")
        raise typer.Exit(code=1)

    echo(Panel(
        f"[green]Stored[/green] {stored.key}: "
        f"{len(stored.table)} rows x {len(stored.table.headers)} columns\n"
        f"Store: {store_path}",
        title="Import Complete", border_style="green",
    ))


# ── update command ───────────────────────────────────────────────


@app.command()
def update(
    input_file: Path = typer.Option(
        ..., "--input", "-i",
        help="Spreadsheet export with new or changed rows.",
        exists=True, readable=True,
    ),
    dataset: str = typer.Option(..., "--dataset", "-d", help="Key of the dataset to update."),
    policy: IdentityPolicy = typer.Option(
        IdentityPolicy.first_column, "--policy", "-p",
        help="Row identity: first-column value or whole-row content.",
    ),
    fill: list[str] | None = typer.Option(
        None, "--fill",
        help="Value for a stored column missing from the file: name=value (repeatable).",
    ),
    report_out: Path | None = typer.Option(
        None, "--report-out",
        help="Write the merge report to .xlsx or .json.",
    ),
    store_path: Path = _store_option(),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress informational output."),
) -> None:
    """Merge a file into an existing dataset and report updated / new records."""
    echo = _printer(quiet)
    store = DatasetStore(store_path)
    try:
        _check_input(input_file)
        fills = _parse_pairs(fill, "--fill")
        if report_out is not None and report_out.suffix.lower() not in REPORT_SUFFIXES:
            raise ValueError(
                f"Unsupported report type: {report_out.suffix!r}. Use .xlsx or .json"
            )
        echo("[blue]>[/blue] Loading input file …")
        table, report = import_file(input_file)
        _print_import_report(report, echo)
        if fills:
            stored = store.get(dataset)
            if stored is not None:
                table = fill_missing_columns(table, stored.table.headers, fills)

        echo(f"[blue]>[/blue] Merging into {dataset} ({policy.value}) …")
        updated, result = update_dataset(store, dataset, table, policy)
    except SchemaMismatch as exc:
        _err("Headers do not match the stored dataset; nothing was changed.")
        console.print(f"  Existing: {', '.join(exc.existing_headers)}")
        console.print(f"  Incoming: {', '.join(exc.incoming_headers)}")
        console.print("  Hint: import the file as a new dataset, or use --fill name=value")
        raise typer.Exit(code=2)
    except (SheetReconcileError, ValueError) as exc:
        _err(str(exc))
        raise typer.Exit(code=2)
    except Exception as exc:
        _err(f"Unexpected internal error: {exc}")
        raise typer.Exit(code=1)

    for warning in result.warnings:
        echo(f"  [yellow]![/yellow] {warning}")
    _print_merge_report(result.report, echo)

    if report_out is not None:
        try:
            if report_out.suffix.lower() == ".json":
                path = write_json(report_out, {"dataset": updated.key, **result.report.to_dict()})
            else:
                path = write_merge_report(report_out, result.report, dataset_key=updated.key)
        except (OSError, ValueError) as exc:
            _err(f"Merge into {updated.key} was saved, but the report could not be written: {exc}")
            raise typer.Exit(code=2)
        echo(f"  Report -> {path}")


# ── list command ─────────────────────────────────────────────────


@app.command("list")
def list_(store_path: Path = _store_option()) -> None:
    """List stored datasets."""
    try:
        datasets = DatasetStore(store_path).load_all()
    except SheetReconcileError as exc:
        _err(str(exc))
        raise typer.Exit(code=2)

    if not datasets:
        console.print("No datasets stored yet.")
        return

    tbl = RichTable(title="Datasets", show_lines=True)
    tbl.add_column("Key", style="bold", no_wrap=True)
    tbl.add_column("Type")
    tbl.add_column("Period")
    tbl.add_column("Rows", justify="right")
    tbl.add_column("Columns", justify="right")
    tbl.add_column("Updated")
    for key in sorted(datasets):
        ds = datasets[key]
        tbl.add_row(
            key,
            ds.metadata.type,
            f"{ds.metadata.year}/{ds.metadata.semester}",
            str(len(ds.table)),
            f"{len(ds.visible_columns)}/{len(ds.table.headers)}",
            ds.metadata.updated_at,
        )
    console.print(tbl)


# ── show command ─────────────────────────────────────────────────


@app.command()
def show(
    dataset: str = typer.Option(..., "--dataset", "-d", help="Key of the dataset to show."),
    filters: list[str] | None = typer.Option(
        None, "--filter", "-f",
        help="Column filter: column=term1;term2 (repeatable; OR within, AND across).",
    ),
    sort: str | None = typer.Option(None, "--sort", help="Column to sort by."),
    descending: bool = typer.Option(False, "--desc", help="Sort descending."),
    scroll: int = typer.Option(0, "--scroll", min=0, help="Scroll offset in pixels."),
    height: int = typer.Option(
        ROW_HEIGHT * 10, "--height", min=0, help="Visible container height in pixels."
    ),
    store_path: Path = _store_option(),
) -> None:
    """Show the visible window of a filtered, sorted dataset."""
    try:
        stored = DatasetStore(store_path).get(dataset)
        if stored is None:
            raise DatasetNotFound(dataset)
        filter_state, sort_state = _query_state(stored.table.headers, filters, sort, descending)
    except (SheetReconcileError, ValueError) as exc:
        _err(str(exc))
        raise typer.Exit(code=2)

    view = render_view(
        stored.table,
        ViewState(
            filters=filter_state,
            sort=sort_state,
            scroll_offset=scroll,
            container_height=height,
            visible_columns=stored.visible_columns,
        ),
    )
    if view.total_rows == 0:
        console.print("No rows match.")
        return
    first = view.window.start_index + 1
    console.print(_rows_table(
        view.headers, view.rows,
        title=f"{stored.key}: rows {first}-{view.window.end_index + 1} of {view.total_rows}",
        first_row_number=first,
    ))


# ── columns command ──────────────────────────────────────────────


@app.command()
def columns(
    dataset: str = typer.Option(..., "--dataset", "-d", help="Key of the dataset."),
    show_cols: list[str] | None = typer.Option(None, "--show", help="Column to show (repeatable)."),
    hide_cols: list[str] | None = typer.Option(None, "--hide", help="Column to hide (repeatable)."),
    store_path: Path = _store_option(),
) -> None:
    """Show or change which columns are visible."""
    store = DatasetStore(store_path)
    try:
        stored = store.get(dataset)
        if stored is None:
            raise DatasetNotFound(dataset)
        if show_cols or hide_cols:
            _check_columns([*(show_cols or []), *(hide_cols or [])], stored.table.headers)
            visible = (set(stored.visible_columns) | set(show_cols or [])) - set(hide_cols or [])
            stored = set_visible_columns(store, dataset, sorted(visible))
    except (SheetReconcileError, ValueError) as exc:
        _err(str(exc))
        raise typer.Exit(code=2)

    shown = set(stored.visible_columns)
    for name in stored.table.headers:
        mark = "[green]✓[/green]" if name in shown else "[dim]-[/dim]"
        console.print(f"  {mark} {name}")


# ── export command ───────────────────────────────────────────────


@app.command()
def export(
    dataset: str = typer.Option(..., "--dataset", "-d", help="Key of the dataset to export."),
    out: Path = typer.Option(..., "--out", "-o", help="Output file (.xlsx or .tsv)."),
    filters: list[str] | None = typer.Option(
        None, "--filter", "-f", help="Column filter: column=term1;term2 (repeatable).",
    ),
    sort: str | None = typer.Option(None, "--sort", help="Column to sort by."),
    descending: bool = typer.Option(False, "--desc", help="Sort descending."),
    all_columns: bool = typer.Option(False, "--all-columns", help="Include hidden columns."),
    store_path: Path = _store_option(),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress informational output."),
) -> None:
    """Export the filtered, sorted rows of a dataset (visible columns only by default)."""
    echo = _printer(quiet)
    try:
        stored = DatasetStore(store_path).get(dataset)
        if stored is None:
            raise DatasetNotFound(dataset)
        filter_state, sort_state = _query_state(stored.table.headers, filters, sort, descending)
        headers = visible_headers(stored.table, None if all_columns else stored.visible_columns)
        rows = run_query(stored.table.rows, filter_state, sort_state)

        suffix = out.suffix.lower()
        if suffix == ".tsv":
            out.parent.mkdir(parents=True, exist_ok=True)
            out.write_text(to_tsv(headers, rows) + "\n", encoding="utf-8")
        elif suffix == ".xlsx":
            write_view_workbook(out, headers, rows, title=stored.metadata.type)
        else:
            raise ValueError(f"Unsupported export type: {suffix!r}. Use .xlsx or .tsv")
    except (SheetReconcileError, ValueError, OSError) as exc:
        _err(str(exc))
        raise typer.Exit(code=2)

    echo(f"  {len(rows)} rows -> {out}")


# ── delete command ───────────────────────────────────────────────


@app.command()
def delete(
    dataset: str = typer.Option(..., "--dataset", "-d", help="Key of the dataset to delete."),
    yes: bool = typer.Option(False, "--yes", help="Do not ask for confirmation."),
    store_path: Path = _store_option(),
) -> None:
    """Delete a stored dataset."""
    if not yes and not typer.confirm(f"Delete dataset {dataset!r}?"):
        raise typer.Exit(code=1)
    try:
        delete_dataset(DatasetStore(store_path), dataset)
    except SheetReconcileError as exc:
        _err(str(exc))
        raise typer.Exit(code=2)
    console.print(f"[green]Deleted[/green] {dataset}")
