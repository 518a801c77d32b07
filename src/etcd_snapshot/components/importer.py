"""Snapshot importer.

Replays a snapshot file into the store one key at a time, stopping at the
first failed write.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from ..core.errors import OperationCancelledError, SnapshotNotFoundError, WriteError
from ..core.types import ImportResult, Snapshot, WriteResult
from ..interfaces.codec import SnapshotCodec
from ..interfaces.store import StoreClient
from .codec import JsonSnapshotCodec

logger = logging.getLogger(__name__)


class SnapshotImporter:
    """Writes every record of a snapshot file into the store.

    Args:
        client: Connected store client (borrowed, never closed here)
        codec: Snapshot codec, JSON by default

    Invariants:
        - Nothing is written unless the whole file decodes
        - Writes are sequential; the first failure stops the replay
        - Keys written before a failure are not rolled back
    """

    def __init__(self, client: StoreClient, codec: SnapshotCodec | None = None):
        self.client = client
        self.codec = codec or JsonSnapshotCodec()

    def load(self, source: str | Path) -> Snapshot:
        """Read and decode a snapshot file."""
        path = Path(source)
        if not path.is_file():
            raise SnapshotNotFoundError(str(path))
        return self.codec.decode(path.read_bytes())

    def import_file(
        self, source: str | Path, cancel: threading.Event | None = None
    ) -> ImportResult:
        """Load source and write each record to the store."""
        snapshot = self.load(source)
        logger.info(f"Importing {len(snapshot)} records from {source}")
        result = self.replay(snapshot, cancel)
        result.path = str(Path(source).resolve())
        logger.info(f"Imported {result.written} records")
        return result

    def replay(self, snapshot: Snapshot, cancel: threading.Event | None = None) -> ImportResult:
        """Write records in mapping order; raise WriteError at the first failure."""
        results: list[WriteResult] = []
        for key, value in snapshot.items():
            if cancel is not None and cancel.is_set():
                raise OperationCancelledError(
                    f"Import cancelled after {len(results)} of {len(snapshot)} writes"
                )

            try:
                revision = self.client.put(key.encode("utf-8"), value.encode("utf-8"))
            except Exception as e:
                logger.error(f"Write failed for {key}: {e}")
                failed = WriteResult(key=key, error=str(e))
                raise WriteError(key, written=len(results), results=results + [failed]) from e

            results.append(WriteResult(key=key, revision=revision))
            logger.info(f"{key} revision={revision}")

        return ImportResult(path="", written=len(results), results=results)
