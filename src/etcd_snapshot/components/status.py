"""Cluster status reporter."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from ..core.errors import StatusQueryError
from ..interfaces.store import StoreClient

logger = logging.getLogger(__name__)


class StatusReporter:
    """Collects raw status payloads from cluster members.

    Payloads are returned as the store sent them; nothing is interpreted.
    """

    def __init__(self, client: StoreClient):
        self.client = client

    def status(self, endpoints: Iterable[str]) -> dict[str, Mapping[str, Any]]:
        """Query every endpoint; raise StatusQueryError if any of them failed."""
        statuses: dict[str, Mapping[str, Any]] = {}
        failed: dict[str, str] = {}
        for endpoint in endpoints:
            try:
                statuses[endpoint] = self.client.status(endpoint)
            except Exception as e:
                logger.error(f"Status query failed for {endpoint}: {e}")
                failed[endpoint] = str(e)
                continue
            logger.info(f"{endpoint}: {statuses[endpoint]}")

        if failed:
            raise StatusQueryError(failed, statuses)
        return statuses
