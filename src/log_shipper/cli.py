"""Command-line shipper: forwards stdin lines to Elasticsearch as log documents."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from typing import TextIO

from log_shipper.adapters.index_name import index_name
from log_shipper.adapters.transform import LogData, default_transformer, utc_timestamp
from log_shipper.bootstrap.probe import ConnectivityProbe
from log_shipper.config import ShipperConfig, WriterConfig
from log_shipper.store.elasticsearch import ElasticsearchStore
from log_shipper.writer.bulk_writer import BulkWriter
from log_shipper.writer.events import WriterErrorEvent


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="log-shipper",
        description="Ship log lines from stdin to Elasticsearch in bulk",
    )
    parser.add_argument(
        "--node-url",
        type=str,
        default=None,
        help="Elasticsearch URL (default: $LOG_SHIPPER_NODE_URL or http://localhost:9200)",
    )
    parser.add_argument("--index", type=str, default=None, help="Fixed target index")
    parser.add_argument(
        "--index-prefix",
        type=str,
        default=None,
        help="Prefix of dated index names (default: logs)",
    )
    parser.add_argument(
        "--flush-interval",
        type=float,
        default=None,
        help="Seconds between bulk flushes (default: 2.0)",
    )
    parser.add_argument(
        "--level",
        type=str,
        default="info",
        help="Severity recorded for every line (default: info)",
    )
    parser.add_argument(
        "--no-template",
        action="store_true",
        help="Do not provision the index template",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    return parser


def config_from_args(args: argparse.Namespace) -> ShipperConfig:
    """Overlay command-line options on the environment configuration."""
    config = ShipperConfig.from_env()
    if args.node_url:
        config = replace(config, node_url=args.node_url)
    if args.index:
        config = replace(config, index=args.index)
    if args.index_prefix:
        config = replace(config, index_prefix=args.index_prefix)
    if args.flush_interval is not None:
        config = replace(
            config,
            writer=WriterConfig(
                flush_interval=args.flush_interval,
                wait_for_active_shards=config.writer.wait_for_active_shards,
                max_error_events=config.writer.max_error_events,
            ),
        )
    if args.no_template:
        config = replace(config, probe=replace(config.probe, ensure_template=False))
    return config


def _report(event: WriterErrorEvent) -> None:
    print(f"log-shipper: {event.source.value} error: {event.error}", file=sys.stderr)


async def ship(config: ShipperConfig, stream: TextIO, level: str = "info") -> int:
    """Ship every line of ``stream`` and flush before returning.

    Returns:
        int: Number of entries still unsent after the final flush.
    """
    loop = asyncio.get_running_loop()
    async with ElasticsearchStore(config.node_url) as store:
        probe = ConnectivityProbe(
            store,
            replace(config.probe, template_name=config.template_name),
            index_prefix=config.index_prefix,
        )
        async with BulkWriter(store, config.writer, probe=probe, on_error=_report) as writer:
            while line := await loop.run_in_executor(None, stream.readline):
                message = line.rstrip("\n")
                if not message:
                    continue
                document = default_transformer(
                    LogData(message=message, level=level, timestamp=utc_timestamp())
                )
                target = index_name(config.index, config.index_prefix, config.index_date_format)
                writer.append(target, document)
        return writer.pending


def main() -> int:
    """Main entry point for the shipper CLI.

    Returns:
        Exit code (0 when everything was shipped, 1 otherwise).
    """
    args = build_parser().parse_args()
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    try:
        config = config_from_args(args)
    except ValueError as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        return 1

    unsent = asyncio.run(ship(config, sys.stdin, level=args.level))
    if unsent:
        print(f"Error: {unsent} entries could not be shipped", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
