"""Protocol definition for the snapshot codec."""

from __future__ import annotations

from typing import Protocol

from ..core.types import Snapshot


class SnapshotCodec(Protocol):
    """Converts between a snapshot mapping and its on-disk form."""

    def encode(self, snapshot: Snapshot) -> bytes:
        """Serialize snapshot; decode(encode(s)) == s."""
        ...

    def decode(self, data: bytes | str) -> Snapshot:
        """Parse serialized data into a snapshot mapping."""
        ...
