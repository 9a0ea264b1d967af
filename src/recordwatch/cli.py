#!/usr/bin/env python3
"""
CLI for the recording ingestion pipeline.

Usage:
    recordwatch watch --folder /recordings --db data/recordwatch.db
    recordwatch collect --folder /recordings --from 2024-08-01 --to 2024-08-31
    recordwatch gather --folder /recordings --interval 10
    recordwatch serve --folder /recordings --port 8002
"""

import argparse
import logging
import signal
import sys
import time
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .api import RecordWatchAPIService
from .config import RecordWatchConfig
from .exceptions import ConfigError, FolderNotFoundError
from .pipeline import RecordWatchPipeline

logger = logging.getLogger("recordwatch.cli")


class GracefulShutdown:
    """Handle graceful shutdown on SIGINT/SIGTERM."""

    def __init__(self):
        self.should_exit = False
        signal.signal(signal.SIGINT, self._handler)
        signal.signal(signal.SIGTERM, self._handler)

    def _handler(self, signum, frame):
        logger.info("Received shutdown signal, stopping...")
        self.should_exit = True

    def wait(self, seconds: float) -> None:
        """Sleep up to ``seconds``, returning early on shutdown."""
        deadline = time.monotonic() + seconds
        while not self.should_exit and time.monotonic() < deadline:
            time.sleep(min(0.5, max(0.0, deadline - time.monotonic())))


def _parse_time(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid ISO date/time: {value!r}")


def build_config(args) -> RecordWatchConfig:
    """Environment values first, then command-line overrides."""
    config = RecordWatchConfig.from_env()
    overrides = {}
    if args.folder:
        overrides["folder_path"] = Path(args.folder).expanduser().resolve()
    if args.log_dir:
        overrides["log_dir"] = Path(args.log_dir).expanduser()
    if args.db:
        overrides["db_path"] = Path(args.db).expanduser()
    if args.extension:
        overrides["extension"] = args.extension
    if args.no_duration:
        overrides["read_duration"] = False
    if getattr(args, "interval", None):
        overrides["gather_interval_s"] = args.interval
    return replace(config, **overrides) if overrides else config


def cmd_watch(args):
    """Watch the folder until interrupted."""
    config = build_config(args)
    shutdown = GracefulShutdown()

    with RecordWatchPipeline(config) as pipeline:
        try:
            pipeline.start()
        except FolderNotFoundError as e:
            logger.error(str(e))
            sys.exit(1)

        logger.info(f"Watching {config.folder_path} for *{config.extension} files")
        logger.info(f"Database: {config.db_path}")
        logger.info(f"Audit log: {config.log_dir}")
        logger.info("Press Ctrl+C to stop")

        while not shutdown.should_exit:
            shutdown.wait(30)
            status = pipeline.status()
            logger.debug(
                f"primary={status['primary_queue']} retry={status['retry_queue']} "
                f"records={status['records']} enabled={status['watch_enabled']}"
            )

    logger.info("Watcher stopped")


def cmd_collect(args):
    """Scan the folder once and ingest every file found."""
    config = build_config(args)

    with RecordWatchPipeline(config) as pipeline:
        found, ingested = pipeline.collect(args.from_time, args.to_time)

    if found == 0:
        print("No WAV files found.")
        sys.exit(1)
    print(f"{ingested} of {found} files processed")


def cmd_gather(args):
    """Rescan the folder periodically until interrupted."""
    config = build_config(args)
    shutdown = GracefulShutdown()

    with RecordWatchPipeline(config) as pipeline:
        logger.info(f"Gathering from {config.folder_path} every {config.gather_interval_s}s")
        while not shutdown.should_exit:
            try:
                found, ingested = pipeline.collect()
                logger.info(f"Gather pass: found={found} ingested={ingested}")
            except Exception as e:
                logger.error(f"Gather pass failed: {e}", exc_info=True)
            shutdown.wait(config.gather_interval_s)

    logger.info("Gatherer stopped")


def cmd_serve(args):
    """Run the HTTP control API."""
    config = build_config(args)
    shutdown = GracefulShutdown()

    with RecordWatchPipeline(config) as pipeline:
        service = RecordWatchAPIService(args.host, args.port, pipeline)
        service.start()

        if args.autostart:
            try:
                pipeline.start()
            except FolderNotFoundError as e:
                logger.error(str(e))

        while not shutdown.should_exit:
            shutdown.wait(1)

        service.stop()

    logger.info("API server stopped")


def main(argv: Optional[List[str]] = None):
    env_file = Path.cwd() / ".env"
    if env_file.exists():
        load_dotenv(env_file)
    else:
        load_dotenv()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--folder", help="Recordings folder (or RECORDWATCH_FOLDER_PATH env)")
    common.add_argument("--log-dir", help="Audit log directory (or RECORDWATCH_LOG_DIR env)")
    common.add_argument("--db", help="SQLite database path (or RECORDWATCH_DB_PATH env)")
    common.add_argument("--extension", help="Audio file extension (default: .wav)")
    common.add_argument("--no-duration", action="store_true", help="Do not read the audio header")

    parser = argparse.ArgumentParser(
        description="Call recording ingestion pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Watch a folder and ingest new recordings
  recordwatch watch --folder ./recordings --db ./data/recordwatch.db

  # Backfill recordings modified in August 2024
  recordwatch collect --folder ./recordings --from 2024-08-01 --to 2024-09-01

  # Run the HTTP control API and start watching immediately
  recordwatch serve --folder ./recordings --autostart
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    watch_parser = subparsers.add_parser("watch", parents=[common], help="Watch the folder for new recordings")
    watch_parser.set_defaults(func=cmd_watch)

    collect_parser = subparsers.add_parser("collect", parents=[common], help="Scan once and ingest existing recordings")
    collect_parser.add_argument("--from", dest="from_time", type=_parse_time, default=None, help="Earliest modification time (ISO)")
    collect_parser.add_argument("--to", dest="to_time", type=_parse_time, default=None, help="Latest modification time (ISO)")
    collect_parser.set_defaults(func=cmd_collect)

    gather_parser = subparsers.add_parser("gather", parents=[common], help="Rescan the folder periodically")
    gather_parser.add_argument("--interval", type=float, default=None, help="Seconds between scans (default: 10)")
    gather_parser.set_defaults(func=cmd_gather)

    serve_parser = subparsers.add_parser("serve", parents=[common], help="Start the HTTP control API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Server host (default: 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, default=8002, help="Server port (default: 8002)")
    serve_parser.add_argument("--autostart", action="store_true", help="Start watching on launch")
    serve_parser.set_defaults(func=cmd_serve)

    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        args.func(args)
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(2)


if __name__ == "__main__":
    main()
