"""etcd snapshot - export and import etcd key ranges as JSON snapshots."""

from .components.codec import JsonSnapshotCodec
from .components.exporter import SnapshotExporter
from .components.gateway_client import EtcdGatewayClient
from .components.importer import SnapshotImporter
from .components.memory_store import MemoryStoreClient
from .components.status import StatusReporter
from .core.config import ClientConfig
from .core.errors import (
    EtcdSnapshotError,
    MalformedSnapshotError,
    OperationCancelledError,
    RangeReadError,
    SnapshotNotFoundError,
    StatusQueryError,
    StoreConnectionError,
    StoreRequestError,
    WriteError,
)
from .core.types import ExportResult, ImportResult, RangePage, Snapshot, WriteResult

__all__ = [
    "ClientConfig",
    "EtcdGatewayClient",
    "EtcdSnapshotError",
    "ExportResult",
    "ImportResult",
    "JsonSnapshotCodec",
    "MalformedSnapshotError",
    "MemoryStoreClient",
    "OperationCancelledError",
    "RangePage",
    "RangeReadError",
    "Snapshot",
    "SnapshotExporter",
    "SnapshotImporter",
    "SnapshotNotFoundError",
    "StatusQueryError",
    "StatusReporter",
    "StoreConnectionError",
    "StoreRequestError",
    "WriteError",
    "WriteResult",
]
