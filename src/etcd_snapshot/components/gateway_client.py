"""etcd v3 store client over the JSON gRPC gateway.

Keys and values travel base64 encoded; int64 fields arrive as strings.
"""

from __future__ import annotations

import base64
import logging
from collections.abc import Mapping
from typing import Any

import requests

from ..core.config import ClientConfig, normalize_endpoint
from ..core.errors import StoreConnectionError, StoreRequestError
from ..core.keys import key_after, prefix_range_end
from ..core.types import Key, RangePage, Revision, Value

logger = logging.getLogger(__name__)


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _unb64(data: str | None) -> bytes:
    return base64.b64decode(data or "")


class EtcdGatewayClient:
    """Store client speaking to etcd's HTTP/JSON gateway.

    Args:
        config: Endpoints and timeouts
        session: Optional preconfigured requests session

    Requests go to the last endpoint that answered; on connection errors
    the next endpoint is tried until every endpoint has failed once.
    """

    def __init__(self, config: ClientConfig, session: requests.Session | None = None):
        if not config.endpoints:
            raise ValueError("At least one endpoint is required")
        self.config = config
        self.session = session or requests.Session()
        self.session.headers.setdefault("Content-Type", "application/json")
        self._current = 0

    @property
    def endpoints(self) -> list[str]:
        return self.config.endpoints

    def _url(self, endpoint: str, path: str) -> str:
        return f"{endpoint}{self.config.api_prefix}{path}"

    def _send(self, endpoint: str, path: str, body: Mapping[str, Any], timeout) -> dict[str, Any]:
        response = self.session.post(self._url(endpoint, path), json=dict(body), timeout=timeout)
        try:
            payload = response.json()
        except ValueError:
            payload = {"message": response.text}
        if not isinstance(payload, dict):
            payload = {"message": str(payload)}

        if response.status_code >= 400 or "error" in payload:
            message = payload.get("message") or payload.get("error") or response.reason
            raise StoreRequestError(
                f"{path} rejected by {endpoint}: {message}", status_code=response.status_code
            )
        return payload

    def _post(self, path: str, body: Mapping[str, Any]) -> dict[str, Any]:
        timeout = (self.config.dial_timeout, self.config.request_timeout)
        errors: list[str] = []
        for attempt in range(len(self.endpoints)):
            index = (self._current + attempt) % len(self.endpoints)
            endpoint = self.endpoints[index]
            try:
                payload = self._send(endpoint, path, body, timeout)
            except requests.ConnectionError as e:
                logger.warning(f"Endpoint {endpoint} unreachable: {e}")
                errors.append(f"{endpoint}: {e}")
                continue
            except requests.Timeout as e:
                raise StoreConnectionError(f"{path} timed out on {endpoint}: {e}") from e
            self._current = index
            return payload

        raise StoreConnectionError(f"No endpoint reachable for {path}: {'; '.join(errors)}")

    def connect(self) -> None:
        """Probe endpoints within the dial timeout; raise if none answers."""
        timeout = (self.config.dial_timeout, self.config.dial_timeout)
        errors: list[str] = []
        for index, endpoint in enumerate(self.endpoints):
            try:
                self._send(endpoint, "/maintenance/status", {}, timeout)
            except (requests.RequestException, StoreRequestError) as e:
                logger.warning(f"Endpoint {endpoint} failed probe: {e}")
                errors.append(f"{endpoint}: {e}")
                continue
            self._current = index
            logger.info(f"Connected to {endpoint}")
            return
        raise StoreConnectionError(f"Cannot connect to cluster: {'; '.join(errors)}")

    def range_read(
        self,
        prefix: Key,
        *,
        limit: int = 0,
        resume_after: Key | None = None,
        revision: Revision = 0,
    ) -> RangePage:
        start = key_after(resume_after) if resume_after is not None else prefix
        body: dict[str, Any] = {
            "key": _b64(start),
            "range_end": _b64(prefix_range_end(prefix)),
        }
        if limit:
            body["limit"] = limit
        if revision:
            body["revision"] = revision

        payload = self._post("/kv/range", body)
        records = [(_unb64(kv.get("key")), _unb64(kv.get("value"))) for kv in payload.get("kvs", [])]
        return RangePage(
            records=records,
            more=bool(payload.get("more", False)),
            revision=int(payload.get("header", {}).get("revision", 0)),
        )

    def put(self, key: Key, value: Value) -> Revision:
        payload = self._post("/kv/put", {"key": _b64(key), "value": _b64(value)})
        return int(payload.get("header", {}).get("revision", 0))

    def status(self, endpoint: str) -> Mapping[str, Any]:
        timeout = (self.config.dial_timeout, self.config.request_timeout)
        endpoint = normalize_endpoint(endpoint)
        try:
            return self._send(endpoint, "/maintenance/status", {}, timeout)
        except requests.RequestException as e:
            raise StoreConnectionError(f"Status query to {endpoint} failed: {e}") from e

    def close(self) -> None:
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
