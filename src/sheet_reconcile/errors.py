"""Error taxonomy shared by the import, merge and storage layers."""

from __future__ import annotations

from collections.abc import Sequence


class SheetReconcileError(Exception):
    """Base class for every error reported to the caller."""


class MalformedInput(SheetReconcileError):
    """The decoder produced too little data, or failed outright.

    The decoder exception (if any) is chained and kept on ``cause``.
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class HeaderNotFound(SheetReconcileError):
    """No row in the scanned range looks like a header."""


class NoValidColumns(SheetReconcileError):
    """The header row was found but its first cell is blank."""


class SchemaMismatch(SheetReconcileError):
    """Stored and incoming headers differ in name or order."""

    def __init__(self, existing_headers: Sequence[str], incoming_headers: Sequence[str]) -> None:
        self.existing_headers = list(existing_headers)
        self.incoming_headers = list(incoming_headers)
        super().__init__(
            "Headers do not match.\n"
            f"Existing: {', '.join(self.existing_headers)}\n"
            f"Incoming: {', '.join(self.incoming_headers)}"
        )


class StoreFailure(SheetReconcileError):
    """The persistence backend could not be read or written."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class DatasetExists(SheetReconcileError):
    """A new dataset would overwrite one that is already stored."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(
            f"Dataset {key!r} already exists. "
            "Use 'update' to merge new rows into it, or 'delete' to start over."
        )


class DatasetNotFound(SheetReconcileError):
    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Dataset not found: {key!r}")
