"""Protocol definition for the store client."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from ..core.types import Key, RangePage, Revision, Value


class StoreClient(Protocol):
    """Connected handle to an ordered key-value store.

    Owned by the caller; transfer components borrow it and never close it.
    """

    def range_read(
        self,
        prefix: Key,
        *,
        limit: int = 0,
        resume_after: Key | None = None,
        revision: Revision = 0,
    ) -> RangePage:
        """Return keys starting with prefix in key order.

        Starts strictly after `resume_after` when given. `limit` of 0 means
        no client-side limit; `revision` of 0 means the latest revision.
        """
        ...

    def put(self, key: Key, value: Value) -> Revision:
        """Unconditionally set key to value; return the new revision."""
        ...

    def status(self, endpoint: str) -> Mapping[str, Any]:
        """Return the raw status payload of one cluster member."""
        ...

    def close(self) -> None:
        """Release connections held by the client."""
        ...
