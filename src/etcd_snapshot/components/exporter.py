"""Snapshot exporter.

Drives paginated prefix range reads and persists the result as one file.
"""

from __future__ import annotations

import logging
import os
import tempfile
import threading
from pathlib import Path

from ..core.errors import MalformedSnapshotError, OperationCancelledError, RangeReadError
from ..core.types import ROOT_PREFIX, ExportResult, RangePage, ScanCursor, ScanState, Snapshot
from ..interfaces.codec import SnapshotCodec
from ..interfaces.store import StoreClient
from .codec import JsonSnapshotCodec

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 1000


def normalize_prefix(prefix: str | None) -> str:
    """Return prefix, or the root prefix if it is empty or not rooted."""
    if not prefix or not prefix.startswith(ROOT_PREFIX):
        return ROOT_PREFIX
    return prefix


def normalize_limit(limit: int | None) -> int:
    """Clamp negative limits to 0 (unlimited)."""
    if not limit or limit < 0:
        return 0
    return limit


def write_atomic(path: Path, data: bytes) -> None:
    """Write data to path via write-temp-then-rename, creating parent dirs."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_path, path)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise


class SnapshotExporter:
    """Exports a prefix-scoped key range to a snapshot file.

    Args:
        client: Connected store client (borrowed, never closed here)
        codec: Snapshot codec, JSON by default
        page_size: Maximum records requested per range read; 0 asks the
            store for everything in one read

    Invariants:
        - All pages are read at the revision of the first page
        - Each page resumes strictly after the last accepted key
        - Never more than `limit` records are accepted
        - The destination file is only replaced after every read succeeded
    """

    def __init__(
        self,
        client: StoreClient,
        codec: SnapshotCodec | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        if page_size < 0:
            raise ValueError(f"page_size must be >= 0, got {page_size}")
        self.client = client
        self.codec = codec or JsonSnapshotCodec()
        self.page_size = page_size

    def export(
        self,
        prefix: str | None,
        limit: int | None,
        destination: str | Path,
        cancel: threading.Event | None = None,
    ) -> ExportResult:
        """Read all keys under prefix (up to limit) and write them to destination."""
        prefix = normalize_prefix(prefix)
        limit = normalize_limit(limit)
        logger.info(f"Exporting {limit or 'all'} rows with prefix {prefix}")

        cursor = ScanCursor(prefix=prefix.encode("utf-8"), limit=limit)
        snapshot = self.scan(cursor, cancel)

        path = Path(destination).resolve()
        write_atomic(path, self.codec.encode(snapshot))

        logger.info(f"Saved snapshot to {path}")
        logger.info(f"Exported {len(snapshot)} records in {cursor.pages} pages")
        return ExportResult(
            path=str(path), count=len(snapshot), revision=cursor.revision, pages=cursor.pages
        )

    def scan(self, cursor: ScanCursor, cancel: threading.Event | None = None) -> Snapshot:
        """Run the scan state machine until DONE; return accumulated records."""
        snapshot: Snapshot = {}
        while cursor.state is ScanState.MORE:
            if cancel is not None and cancel.is_set():
                cursor.state = ScanState.FAILED
                raise OperationCancelledError(f"Export of {cursor.prefix!r} cancelled")

            page = self._read_page(cursor, len(snapshot))
            self._accept(cursor, page, snapshot)
        return snapshot

    def _read_page(self, cursor: ScanCursor, accepted: int) -> RangePage:
        request_limit = self.page_size
        remaining = cursor.remaining(accepted)
        if remaining and (request_limit == 0 or remaining < request_limit):
            request_limit = remaining

        try:
            page = self.client.range_read(
                cursor.prefix,
                limit=request_limit,
                resume_after=cursor.resume_after,
                revision=cursor.revision,
            )
        except Exception as e:
            cursor.state = ScanState.FAILED
            resume_after = _text(cursor.resume_after) if cursor.resume_after else None
            raise RangeReadError(
                f"Range read failed on page {cursor.pages + 1}: {e}",
                prefix=_text(cursor.prefix),
                resume_after=resume_after,
            ) from e

        cursor.pages += 1
        if cursor.revision == 0:
            cursor.revision = page.revision
        logger.debug(
            f"Page {cursor.pages}: {len(page.records)} records, more={page.more}, "
            f"revision={cursor.revision}"
        )
        return page

    def _accept(self, cursor: ScanCursor, page: RangePage, snapshot: Snapshot) -> None:
        for key, value in page.records:
            if cursor.limit and len(snapshot) >= cursor.limit:
                break
            try:
                snapshot[key.decode("utf-8")] = value.decode("utf-8")
            except UnicodeDecodeError as e:
                cursor.state = ScanState.FAILED
                raise MalformedSnapshotError(f"Record {key!r} is not valid UTF-8 text") from e
            cursor.resume_after = key

        if cursor.limit and len(snapshot) >= cursor.limit:
            cursor.state = ScanState.DONE
        elif not page.more or not page.records:
            cursor.state = ScanState.DONE


def _text(key: bytes) -> str:
    return key.decode("utf-8", errors="replace")
