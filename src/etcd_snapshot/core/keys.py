"""Key range helpers following etcd's prefix conventions."""

from __future__ import annotations

from .types import Key

# Range end meaning "through the end of the keyspace".
KEYSPACE_END = b"\x00"


def prefix_range_end(prefix: Key) -> Key:
    """Return the exclusive range end covering every key starting with prefix.

    Increments the last byte below 0xff and drops what follows; a prefix of
    only 0xff bytes (or an empty prefix) covers the rest of the keyspace.
    """
    end = bytearray(prefix)
    for i in range(len(end) - 1, -1, -1):
        if end[i] < 0xFF:
            end[i] += 1
            return bytes(end[: i + 1])
    return KEYSPACE_END


def key_after(key: Key) -> Key:
    """Return the smallest key strictly greater than key."""
    return key + b"\x00"
