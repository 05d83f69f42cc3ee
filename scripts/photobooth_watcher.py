#!/usr/bin/env python3
"""Run the photobooth pipeline without the web server.

Useful on the booth machine when the gallery is served elsewhere, and for
operator tasks: inspecting the processed-file ledger or clearing it so the
whole input folder is processed again.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import signal
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from app.services import PhotoboothServices, build_services
from app.utils.config import get_settings


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments."""

    parser = argparse.ArgumentParser(
        description="Watch the photobooth input folder and turn new photos into Halloween videos.",
    )
    parser.add_argument(
        "--input",
        type=Path,
        default=None,
        help="Folder receiving photobooth pictures (default: settings INPUT_DIR).",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Folder receiving generated videos (default: settings OUTPUT_DIR).",
    )
    parser.add_argument(
        "--ledger",
        type=Path,
        default=None,
        help="Processed-file ledger JSON (default: settings LEDGER_PATH).",
    )
    parser.add_argument(
        "--poll",
        type=float,
        default=None,
        help="Seconds between two checks of the input folder.",
    )

    action = parser.add_mutually_exclusive_group()
    action.add_argument(
        "--once",
        action="store_true",
        help="Run a single check and exit.",
    )
    action.add_argument(
        "--reset",
        action="store_true",
        help="Clear the processing history and exit. Every photo will be processed again.",
    )
    action.add_argument(
        "--status",
        action="store_true",
        help="Print ledger status as JSON and exit.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (default: settings LOG_LEVEL).",
    )

    return parser.parse_args(argv)


def services_from_args(args: argparse.Namespace) -> PhotoboothServices:
    """Build services from settings, with CLI overrides applied."""

    overrides = {
        "input_dir": args.input,
        "output_dir": args.output,
        "ledger_path": args.ledger,
        "poll_interval": args.poll,
    }
    settings = get_settings().model_copy(
        update={key: value for key, value in overrides.items() if value is not None}
    )
    return build_services(settings)


async def run_watcher(services: PhotoboothServices, once: bool) -> int:
    """Run the watcher until a signal arrives (or for one check with ``once``)."""

    services.storage.initialize()
    services.ledger.initialize()

    if once:
        count = await services.watcher.check_for_new_files()
        logger.info(f"Single check finished, {count} photo(s) processed")
        return 0

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, stop_event.set)
        except NotImplementedError:  # pragma: no cover - Windows
            signal.signal(signum, lambda *_: loop.call_soon_threadsafe(stop_event.set))

    await services.watcher.start()
    try:
        await stop_event.wait()
        logger.info("Received stop signal, shutting down.")
    finally:
        await services.watcher.stop()

    logger.info("Photobooth watcher stopped.")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the CLI script."""

    args = parse_args(argv)
    level = (args.log_level or get_settings().log_level).upper()

    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        level=level,
    )

    services = services_from_args(args)

    if args.status:
        services.ledger.initialize()
        print(json.dumps(services.ledger.get_status(), indent=2))
        return 0

    if args.reset:
        services.ledger.initialize()
        removed = services.ledger.reset_all()
        logger.info(f"Cleared {removed} record(s) from {services.ledger.tracking_file}")
        return 0

    return asyncio.run(run_watcher(services, once=args.once))


if __name__ == "__main__":  # pragma: no cover - CLI bridge
    sys.exit(main())
