# Command-line entry point: export, import and status against an etcd cluster.
from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Callable
from datetime import datetime

from etcd_snapshot.components.exporter import SnapshotExporter
from etcd_snapshot.components.gateway_client import EtcdGatewayClient
from etcd_snapshot.components.importer import SnapshotImporter
from etcd_snapshot.components.status import StatusReporter
from etcd_snapshot.core.config import ClientConfig
from etcd_snapshot.core.errors import (
    EtcdSnapshotError,
    MalformedSnapshotError,
    OperationCancelledError,
    RangeReadError,
    SnapshotNotFoundError,
    StatusQueryError,
    StoreConnectionError,
    WriteError,
)
from etcd_snapshot.interfaces.store import StoreClient

logger = logging.getLogger(__name__)

DEFAULT_FILE = "load.json"
TIME_TOKEN = "{time}"
TIME_FORMAT = "%Y%m%d%H%M%S"

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CANCELLED = 130

EXIT_CODES: dict[type[EtcdSnapshotError], int] = {
    StoreConnectionError: 3,
    SnapshotNotFoundError: 4,
    MalformedSnapshotError: 5,
    RangeReadError: 6,
    WriteError: 7,
    StatusQueryError: 8,
    OperationCancelledError: EXIT_CANCELLED,
}

ClientFactory = Callable[[ClientConfig], StoreClient]


def resolve_snapshot_path(path: str, now: datetime | None = None) -> str:
    """Replace the time token in path with a timestamp."""
    if TIME_TOKEN not in path:
        return path
    now = now or datetime.now()
    return path.replace(TIME_TOKEN, now.strftime(TIME_FORMAT))


def exit_code_for(error: EtcdSnapshotError) -> int:
    for cls, code in EXIT_CODES.items():
        if isinstance(error, cls):
            return code
    return EXIT_FAILURE


def connect(config: ClientConfig) -> StoreClient:
    client = EtcdGatewayClient(config)
    try:
        client.connect()
    except BaseException:
        client.close()
        raise
    return client


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "-i", "--endpoint", required=True, help="Cluster endpoints, ip:port,ip:port,ip:port"
    )
    p.add_argument(
        "-f",
        "--file",
        default=DEFAULT_FILE,
        help=f"Snapshot file (default: {DEFAULT_FILE}); {TIME_TOKEN} becomes a timestamp on export",
    )
    p.add_argument("--dial-timeout", type=float, default=5.0, help="Connect timeout in seconds")
    p.add_argument(
        "--request-timeout", type=float, default=30.0, help="Per-request timeout in seconds"
    )
    p.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="etcd-snapshot", description="Export and import etcd keys as a JSON snapshot"
    )
    sub = p.add_subparsers(dest="command", required=True)

    export = sub.add_parser("export", help="Export keys from the cluster to a JSON file")
    _add_common(export)
    export.add_argument(
        "-p", "--prefix", default="/", help="Key prefix, must start with / (default: /)"
    )
    export.add_argument(
        "-l", "--limit", type=int, default=0, help="Maximum keys to export (default: all)"
    )
    export.add_argument(
        "--page-size", type=int, default=1000, help="Keys requested per range read"
    )

    imp = sub.add_parser("import", help="Import a JSON file into the cluster")
    _add_common(imp)

    status = sub.add_parser("status", help="Show cluster member status")
    _add_common(status)
    return p


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def run(args: argparse.Namespace, client: StoreClient, config: ClientConfig) -> int:
    if args.command == "export":
        path = resolve_snapshot_path(args.file)
        exporter = SnapshotExporter(client, page_size=config.page_size)
        result = exporter.export(args.prefix, args.limit, path)
        logger.info(f"Export complete: {result.count} records written to {result.path}")
    elif args.command == "import":
        importer = SnapshotImporter(client)
        result = importer.import_file(args.file)
        logger.info(f"Import complete: {result.written} records written from {result.path}")
    else:
        StatusReporter(client).status(config.endpoints)
    return EXIT_OK


def main(argv: list[str] | None = None, client_factory: ClientFactory | None = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        config = ClientConfig.from_endpoint_string(
            args.endpoint,
            dial_timeout=args.dial_timeout,
            request_timeout=args.request_timeout,
            page_size=getattr(args, "page_size", 1000),
        )
    except ValueError as e:
        logger.error(f"Invalid arguments: {e}")
        return 2
    logger.info(f"Endpoints: {config.endpoints}")

    factory = client_factory or connect
    try:
        client = factory(config)
    except EtcdSnapshotError as e:
        logger.error(f"Connection failed: {e}")
        return exit_code_for(e)
    except KeyboardInterrupt:
        logger.error(f"{args.command} cancelled while connecting")
        return EXIT_CANCELLED

    try:
        return run(args, client, config)
    except EtcdSnapshotError as e:
        cause = f" (cause: {e.__cause__})" if e.__cause__ else ""
        logger.error(f"{args.command} failed: {e}{cause}")
        return exit_code_for(e)
    except OSError as e:
        logger.error(f"{args.command} failed: {e}")
        return EXIT_FAILURE
    except KeyboardInterrupt:
        logger.error(f"{args.command} cancelled")
        return EXIT_CANCELLED
    finally:
        client.close()


if __name__ == "__main__":
    raise SystemExit(main())
