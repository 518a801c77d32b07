"""Common type definitions for snapshot transfer.

Defines the record, page and result types shared by all components.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

# Core primitive types
Key = bytes
Value = bytes
Revision = int
Record = tuple[Key, Value]
Snapshot = dict[str, str]

ROOT_PREFIX = "/"


@dataclass
class RangePage:
    """One range-read response from the store.

    Attributes:
        records: Records in ascending key order
        more: True if the store holds further matching keys past this page
        revision: Store revision the read was served at
    """

    records: list[Record]
    more: bool
    revision: Revision


class ScanState(Enum):
    """State of a paginated prefix scan."""

    MORE = "more"
    DONE = "done"
    FAILED = "failed"


@dataclass
class ScanCursor:
    """Position of a paginated prefix scan.

    `resume_after` is the last key accepted so far; the next page starts
    strictly after it. `revision` is pinned by the first page.
    """

    prefix: Key
    limit: int
    state: ScanState = ScanState.MORE
    resume_after: Key | None = None
    revision: Revision = 0
    pages: int = 0

    def remaining(self, accepted: int) -> int:
        """Records still allowed under the limit, or 0 when unlimited."""
        if self.limit == 0:
            return 0
        return self.limit - accepted


@dataclass
class WriteResult:
    """Outcome of a single-key write during import."""

    key: str
    revision: Revision | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ExportResult:
    """Summary of a finished export."""

    path: str
    count: int
    revision: Revision
    pages: int


@dataclass
class ImportResult:
    """Summary of a finished import."""

    path: str
    written: int
    results: list[WriteResult] = field(default_factory=list)

    @property
    def revisions(self) -> dict[str, Revision | None]:
        return {r.key: r.revision for r in self.results}
