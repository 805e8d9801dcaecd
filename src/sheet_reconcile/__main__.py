"""Allow ``python -m sheet_reconcile``."""

from sheet_reconcile import cli

cli.app()
