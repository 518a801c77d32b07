"""JSON snapshot codec.

A snapshot file holds one flat JSON object whose values are all strings.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping

from ..core.errors import MalformedSnapshotError
from ..core.types import Snapshot

logger = logging.getLogger(__name__)


class JsonSnapshotCodec:
    """Encodes and decodes snapshots as a flat UTF-8 JSON object.

    Args:
        indent: Indentation for encoded output, or None for compact output

    Invariants:
        - Encoded keys are sorted, so equal snapshots encode to equal bytes
        - decode(encode(s)) == s for any str -> str mapping
        - Nested values and non-string values are rejected
    """

    def __init__(self, indent: int | None = None):
        self.indent = indent

    def encode(self, snapshot: Mapping[str, str]) -> bytes:
        """Serialize snapshot to UTF-8 JSON bytes."""
        for key, value in snapshot.items():
            if not isinstance(key, str) or not isinstance(value, str):
                raise MalformedSnapshotError(
                    f"Snapshot entries must be strings, got {type(key).__name__} -> "
                    f"{type(value).__name__} for key {key!r}"
                )
        text = json.dumps(dict(snapshot), ensure_ascii=False, sort_keys=True, indent=self.indent)
        return text.encode("utf-8")

    def decode(self, data: bytes | str) -> Snapshot:
        """Parse a flat JSON object into a snapshot mapping."""
        try:
            if isinstance(data, bytes):
                data = data.decode("utf-8")
            parsed = json.loads(data)
        except UnicodeDecodeError as e:
            raise MalformedSnapshotError(f"Snapshot is not valid UTF-8: {e}") from e
        except json.JSONDecodeError as e:
            raise MalformedSnapshotError(f"Snapshot is not valid JSON: {e}") from e

        if not isinstance(parsed, dict):
            raise MalformedSnapshotError(
                f"Snapshot must be a JSON object, got {type(parsed).__name__}"
            )

        for key, value in parsed.items():
            if not isinstance(value, str):
                raise MalformedSnapshotError(
                    f"Value for key {key!r} must be a string, got {type(value).__name__}"
                )
            try:
                key.encode("utf-8")
                value.encode("utf-8")
            except UnicodeEncodeError as e:
                raise MalformedSnapshotError(f"Record {key!r} is not valid UTF-8 text") from e

        logger.debug(f"Decoded snapshot with {len(parsed)} records")
        return parsed
