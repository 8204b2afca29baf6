"""Command line interface for the track network converter."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from ..domain.models import ConversionOptions
from ..pipeline import convert_and_persist
from ..utils.constants import LOG_FILE_NAME, SCHEMA_JSON_PATH
from ..utils.errors import BuildError


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Convert a track network JSON document into a port graph")
    parser.add_argument("network", type=Path, help="Path to the track network JSON document")
    parser.add_argument(
        "--schema",
        "-sc",
        type=Path,
        default=SCHEMA_JSON_PATH,
        help="Path to the JSON schema (default: network.schema.json)",
    )
    parser.add_argument(
        "--topology-out",
        "-to",
        type=Path,
        help="Where to write the port graph (default: topology.json next to the input)",
    )
    parser.add_argument(
        "--layout",
        "-ly",
        type=Path,
        help="Polyline layout JSON; when given, the graph is exported back to a track network",
    )
    parser.add_argument(
        "--export",
        "-ex",
        type=Path,
        help="Where to write the exported network (default: network.export.json next to the input)",
    )
    parser.add_argument(
        "--log-file",
        "-lf",
        type=Path,
        help=f"Log file path (default: {LOG_FILE_NAME} next to the input)",
    )
    parser.add_argument("--no-console-log", "-nl", action="store_true", help="Disable console logging")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log debug details")
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    return _build_parser().parse_args(argv)


def _build_options(args: argparse.Namespace) -> ConversionOptions:
    return ConversionOptions(
        schema_path=args.schema,
        console_log=not args.no_console_log,
        log_path=args.log_file or args.network.with_name(LOG_FILE_NAME),
        log_level=logging.DEBUG if args.verbose else logging.INFO,
        topology_output=args.topology_out,
        layout_path=args.layout,
        export_path=args.export,
    )


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        persisted = convert_and_persist(args.network, _build_options(args))
    except BuildError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    print(persisted.topology_path)
    if persisted.export_path is not None:
        print(persisted.export_path)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
