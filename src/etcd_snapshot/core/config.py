"""Configuration for store connections and transfers.

Defines all tunable parameters for talking to an etcd cluster.
"""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_SCHEME = "http"


def normalize_endpoint(endpoint: str) -> str:
    """Return endpoint as a base URL, adding a scheme to bare host:port."""
    endpoint = endpoint.strip().rstrip("/")
    if "://" not in endpoint:
        endpoint = f"{DEFAULT_SCHEME}://{endpoint}"
    return endpoint


@dataclass
class ClientConfig:
    """Configuration parameters for the store client and transfers.

    Attributes:
        endpoints: Base URLs of cluster members, tried in order
        dial_timeout: Seconds allowed to establish a connection
        request_timeout: Seconds allowed for a single response
        api_prefix: Path prefix of the v3 JSON gateway
        page_size: Maximum records requested per range read
    """

    endpoints: list[str] = field(default_factory=list)
    dial_timeout: float = 5.0
    request_timeout: float = 30.0
    api_prefix: str = "/v3"
    page_size: int = 1000

    def __post_init__(self) -> None:
        self.endpoints = [normalize_endpoint(e) for e in self.endpoints if e.strip()]
        if self.page_size < 0:
            raise ValueError(f"page_size must be >= 0, got {self.page_size}")

    @classmethod
    def from_endpoint_string(cls, endpoint: str, **kwargs) -> ClientConfig:
        """Build a config from a comma-separated `host:port` list."""
        endpoints = [part for part in endpoint.split(",") if part.strip()]
        if not endpoints:
            raise ValueError("At least one endpoint is required")
        return cls(endpoints=endpoints, **kwargs)
