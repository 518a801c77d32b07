"""Snapshot transfer core types, configuration and errors."""

from .config import ClientConfig
from .types import ExportResult, ImportResult, RangePage, ScanCursor, ScanState, WriteResult

__all__ = [
    "ClientConfig",
    "ExportResult",
    "ImportResult",
    "RangePage",
    "ScanCursor",
    "ScanState",
    "WriteResult",
]
