"""In-process ordered store client.

Uses sortedcontainers.SortedDict to keep keys ordered and keeps every
revision of each key so pinned-revision reads stay consistent.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from sortedcontainers import SortedDict

from ..core.errors import StoreRequestError
from ..core.keys import KEYSPACE_END, key_after, prefix_range_end
from ..core.types import Key, RangePage, Record, Revision, Value


class MemoryStoreClient:
    """Store client backed by process memory.

    Args:
        records: Initial key/value pairs, written in order
        max_page: Maximum records returned by one range read (0 = no cap),
            emulating servers that truncate large responses

    Invariants:
        - Keys are always maintained in sorted order
        - Every put advances the store revision by exactly one
        - A read at revision R sees each key's latest version <= R
    """

    def __init__(self, records: Iterable[tuple[Key, Value]] = (), max_page: int = 0):
        self.max_page = max_page
        self.closed = False
        self._lock = threading.Lock()
        self._revision: Revision = 1
        self._data: SortedDict = SortedDict()
        for key, value in records:
            self.put(key, value)

    @property
    def revision(self) -> Revision:
        return self._revision

    def put(self, key: Key, value: Value) -> Revision:
        """Insert or update key; return the new store revision."""
        with self._lock:
            self._revision += 1
            self._data.setdefault(key, []).append((self._revision, value))
            return self._revision

    def get(self, key: Key) -> Value | None:
        """Return latest value for key or None if not present."""
        history = self._data.get(key)
        if not history:
            return None
        return history[-1][1]

    def items(self) -> Iterator[Record]:
        """Return latest records in sorted key order."""
        for key, history in self._data.items():
            yield (key, history[-1][1])

    def range_read(
        self,
        prefix: Key,
        *,
        limit: int = 0,
        resume_after: Key | None = None,
        revision: Revision = 0,
    ) -> RangePage:
        with self._lock:
            read_rev = revision or self._revision
            if read_rev > self._revision:
                raise StoreRequestError(f"Revision {read_rev} is a future revision")

            cap = min((n for n in (limit, self.max_page) if n > 0), default=0)
            start = key_after(resume_after) if resume_after is not None else prefix
            end = prefix_range_end(prefix)
            maximum = None if end == KEYSPACE_END else end

            records: list[Record] = []
            more = False
            for key in self._data.irange(minimum=start, maximum=maximum, inclusive=(True, False)):
                value = self._visible(key, read_rev)
                if value is None:
                    continue
                if cap and len(records) >= cap:
                    more = True
                    break
                records.append((key, value))

            return RangePage(records=records, more=more, revision=read_rev)

    def _visible(self, key: Key, revision: Revision) -> Value | None:
        for rev, value in reversed(self._data[key]):
            if rev <= revision:
                return value
        return None

    def status(self, endpoint: str) -> Mapping[str, Any]:
        size = sum(len(k) + len(v) for k, history in self._data.items() for _, v in history)
        return {
            "header": {"member_id": "0", "revision": str(self._revision)},
            "version": "memory",
            "dbSize": str(size),
            "leader": "0",
            "endpoint": endpoint,
        }

    def close(self) -> None:
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
