"""
TSETMC to Excel - entry point

Loads settings, optionally asks for them interactively, then polls until
the user types 'q' (or sends Ctrl+C / SIGTERM).
"""

import argparse
import asyncio
import logging
import signal
import sys
import threading
from typing import Optional

from tsetmc_excel import __version__
from tsetmc_excel.cli.prompts import prompt_settings
from tsetmc_excel.core.config import DEFAULT_CONFIG_FILE, Settings, load_settings
from tsetmc_excel.core.logger import setup_logger
from tsetmc_excel.services.base import ConfigurationError
from tsetmc_excel.services.batch.orchestrator import BatchOrchestrator
from tsetmc_excel.services.data_ingestion.tsetmc_adapter import TseTmcClient
from tsetmc_excel.services.scheduler.poller import Poller
from tsetmc_excel.services.storage.workbook import WorkbookStore

logger = logging.getLogger("tsetmc_excel")

STOP_KEY = "q"


def _watch_stdin(loop: asyncio.AbstractEventLoop, stop_event: asyncio.Event) -> None:
    """Blocking stdin reader run in a daemon thread."""
    for line in sys.stdin:
        if line.strip().lower() == STOP_KEY:
            loop.call_soon_threadsafe(stop_event.set)
            return


def _install_stop_handlers(stop_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            # Windows event loops have no signal handler support
            pass

    if sys.stdin is not None and sys.stdin.isatty():
        threading.Thread(
            target=_watch_stdin,
            args=(loop, stop_event),
            name="stop-key-watcher",
            daemon=True,
        ).start()


async def run(settings: Settings, stop_event: Optional[asyncio.Event] = None) -> None:
    """Poll until stopped, then release the HTTP session."""
    source = TseTmcClient(settings)
    store = WorkbookStore(settings.excel_file_name)
    orchestrator = BatchOrchestrator(settings, source, store)
    poller = Poller(orchestrator, settings.update_interval)

    if stop_event is None:
        stop_event = asyncio.Event()
        _install_stop_handlers(stop_event)

    logger.info(f"Polling {len(settings.instruments)} instruments every {settings.update_interval}s")
    logger.info(f"Writing to {store.path} (sheets: {', '.join(settings.sheet_names)})")
    logger.info(f"Type '{STOP_KEY}' and press Enter to stop the data fetching process.")

    try:
        await poller.run(stop_event)
    finally:
        await source.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tsetmc-excel",
        description="Poll TSETMC market data into an Excel workbook.",
    )
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_FILE,
        help=f"JSON settings file (default: {DEFAULT_CONFIG_FILE})",
    )
    parser.add_argument(
        "--ask",
        action="store_true",
        help="Prompt for settings even if ask_settings is off",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args.config)
        if settings.ask_settings or args.ask:
            settings = prompt_settings(settings)
    except ConfigurationError as e:
        setup_logger("tsetmc_excel", log_to_file=False)
        logger.error(f"Configuration error: {e.message}")
        return 1

    setup_logger(
        "tsetmc_excel",
        log_dir=settings.log_dir,
        level=settings.log_level,
        log_to_file=settings.log_to_file,
    )

    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
