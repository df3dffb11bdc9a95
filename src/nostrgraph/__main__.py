"""CLI entry point: fetch one author's history and write it as JSON lines.

Examples:
    ```bash
    python -m nostrgraph npub1... --days 30
    python -m nostrgraph <hex> --relay wss://yabu.me --relay wss://nos.lol
    python -m nostrgraph <hex> --config config/nostrgraph.yaml --output events.jsonl
    ```
"""

import argparse
import asyncio
import json
import sys
import time
from pathlib import Path
from typing import IO, Any

import yaml

from nostrgraph.core.exceptions import ConfigurationError, ConnectivityError, InvalidIdentifierError
from nostrgraph.core.logger import Logger, setup_logging
from nostrgraph.core.yaml import load_yaml
from nostrgraph.models.constants import SECONDS_PER_DAY
from nostrgraph.models.event import EventRecord
from nostrgraph.models.window import FetchProgress
from nostrgraph.services.fetcher import EventFetcher


logger = Logger("cli")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments for the fetcher."""
    parser = argparse.ArgumentParser(
        prog="nostrgraph",
        description="Fetch a Nostr author's events from relays, one time window at a time",
    )

    parser.add_argument("pubkey", help="Author public key (64-char hex or npub1...)")

    parser.add_argument(
        "--relay",
        action="append",
        dest="relays",
        metavar="URL",
        help="Relay URL; repeat for fan-out (default: from config, else wss://yabu.me)",
    )

    range_group = parser.add_mutually_exclusive_group()
    range_group.add_argument(
        "--days",
        type=int,
        help="Look back this many days from --until (default: config lookback_days)",
    )
    range_group.add_argument("--since", type=int, help="Range start as a unix timestamp")

    parser.add_argument("--until", type=int, help="Range end as a unix timestamp (default: now)")

    parser.add_argument("--config", type=Path, help="YAML config path")

    parser.add_argument(
        "--scan-all",
        action="store_true",
        help="Keep scanning after an empty window",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: config logging.level, else INFO)",
    )

    parser.add_argument(
        "--output",
        type=Path,
        help="Write JSON lines here instead of stdout",
    )

    return parser.parse_args(argv)


def _build_config_dict(args: argparse.Namespace) -> dict[str, Any]:
    """Load the config file (if any) and apply command-line overrides."""
    data: dict[str, Any] = {}
    if args.config is not None:
        try:
            data = load_yaml(str(args.config))
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot load {args.config}: {e}") from e

    if args.relays:
        data["relays"] = args.relays
    if args.scan_all:
        data["stop_on_empty_window"] = False
    return data


def _resolve_range(args: argparse.Namespace, lookback_days: int) -> tuple[int, int]:
    end = args.until if args.until is not None else int(time.time())
    if args.since is not None:
        return args.since, end
    days = args.days if args.days is not None else lookback_days
    return end - days * SECONDS_PER_DAY, end


def _log_progress(progress: FetchProgress, events: list[EventRecord]) -> None:
    logger.info(
        "progress",
        window=progress.window_index,
        total=progress.total_windows,
        percent=f"{progress.percent:.1f}",
        events=len(events),
    )


def write_events(events: list[EventRecord], stream: IO[str]) -> None:
    """Write one compact JSON object per line."""
    for event in events:
        stream.write(json.dumps(event.to_dict(), ensure_ascii=False, separators=(",", ":")))
        stream.write("\n")


async def main(argv: list[str] | None = None) -> int:
    """Main entry point: parse args, build the fetcher, and write results."""
    args = parse_args(argv)
    setup_logging(args.log_level or "INFO")

    try:
        fetcher = EventFetcher.from_dict(_build_config_dict(args))
    except ConfigurationError as e:
        logger.error("config_invalid", error=str(e))
        return 1

    if args.log_level is None:
        setup_logging(fetcher.config.logging.level)

    start, end = _resolve_range(args, fetcher.config.lookback_days)

    try:
        async with fetcher:
            events = await fetcher.get_events(args.pubkey, start, end, on_progress=_log_progress)
    except InvalidIdentifierError as e:
        logger.error("invalid_identifier", error=str(e))
        return 1
    except ConnectivityError as e:
        logger.error("connection_failed", error=str(e))
        return 1
    except KeyboardInterrupt:
        logger.info("interrupted")
        return 130

    if args.output is not None:
        with args.output.open("w", encoding="utf-8") as f:
            write_events(events, f)
    else:
        write_events(events, sys.stdout)

    logger.info("output_written", events=len(events), path=str(args.output or "-"))
    return 0


def cli() -> None:
    """Synchronous entry point for console_scripts."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    cli()
