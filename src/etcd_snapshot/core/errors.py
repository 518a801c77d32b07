"""Exception hierarchy for snapshot transfer.

Defines all custom exceptions used throughout the implementation.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .types import WriteResult


class EtcdSnapshotError(Exception):
    """Base exception for all snapshot transfer errors."""
    pass


class StoreConnectionError(EtcdSnapshotError):
    """Raised when no store endpoint can be reached."""
    pass


class StoreRequestError(EtcdSnapshotError):
    """Raised when the store rejects a request."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class SnapshotNotFoundError(EtcdSnapshotError):
    """Raised when an import source file does not exist."""

    def __init__(self, path: str):
        super().__init__(f"Snapshot file not found: {path}")
        self.path = path


class MalformedSnapshotError(EtcdSnapshotError):
    """Raised when snapshot data is not a flat string-to-string object."""
    pass


class RangeReadError(EtcdSnapshotError):
    """Raised when a range read fails during export."""

    def __init__(self, message: str, prefix: str, resume_after: str | None = None):
        super().__init__(message)
        self.prefix = prefix
        self.resume_after = resume_after


class WriteError(EtcdSnapshotError):
    """Raised when a key write fails during import.

    Keys written before the failure are kept in the store.
    """

    def __init__(self, key: str, written: int, results: Sequence[WriteResult] = ()):
        super().__init__(f"Failed to write key {key!r} after {written} successful writes")
        self.key = key
        self.written = written
        self.results = list(results)


class StatusQueryError(EtcdSnapshotError):
    """Raised when one or more endpoints fail a status query."""

    def __init__(
        self,
        failed: Mapping[str, str],
        statuses: Mapping[str, Mapping[str, Any]] | None = None,
    ):
        endpoints = ", ".join(failed)
        super().__init__(f"Status query failed for: {endpoints}")
        self.failed = dict(failed)
        self.statuses = dict(statuses or {})


class OperationCancelledError(EtcdSnapshotError):
    """Raised when a transfer is cancelled between store calls."""
    pass
