"""
Scripts - Run Ingestion.

============================================================
RESPONSIBILITY
============================================================
Runs the marketplace ingestion pipeline.

- Wires store, event bus, sources and scheduler
- Runs once, or as a daemon on the daily cadence
- Handles graceful shutdown

============================================================
USAGE
============================================================
python -m scripts.run_ingestion

Options:
  --once             Run one ingestion cycle and exit
  --sources          Comma-separated list of sources to run
  --no-startup-run   Daemon mode: wait for the first scheduled slot
  --log-level        DEBUG, INFO, WARNING, ERROR

Environment:
  DATABASE_URL, INGESTION_BATCH_SIZE, INGESTION_FETCH_TIMEOUT,
  INGESTION_TIMEZONE, ALIEXPRESS_API_KEY, TIKTOK_SHOP_TOKEN

============================================================
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent.absolute()
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from data_ingestion import (
    DEFAULT_SOURCES,
    BaseProductSource,
    IngestionEventBus,
    IngestionScheduler,
    IngestionService,
)
from data_ingestion.config import load_scheduler_config, load_service_config
from storage import (
    TrendStore,
    create_all_tables,
    create_database_engine,
    create_session_factory,
)

logger = logging.getLogger("run_ingestion")


# ============================================================
# LOGGING
# ============================================================

def setup_logging(level: str = "INFO") -> None:
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ============================================================
# WIRING
# ============================================================

def build_sources(selected: Optional[List[str]] = None) -> List[BaseProductSource]:
    """
    Instantiate the default adapters from the environment.

    Raises:
        ValueError: If a selected name matches no adapter
    """
    sources = [source_cls.from_env() for source_cls in DEFAULT_SOURCES]
    if not selected:
        return sources

    by_name = {s.name.value: s for s in sources}
    unknown = [name for name in selected if name not in by_name]
    if unknown:
        raise ValueError(
            f"Unknown source(s): {', '.join(unknown)}. "
            f"Available: {', '.join(by_name)}"
        )
    return [by_name[name] for name in selected]


def build_service(sources: List[BaseProductSource]) -> IngestionService:
    engine = create_database_engine()
    create_all_tables(engine)
    store = TrendStore(create_session_factory(engine))
    return IngestionService(
        store=store,
        event_bus=IngestionEventBus(),
        config=load_service_config(),
        sources=sources,
    )


# ============================================================
# RUN MODES
# ============================================================

async def run_once(service: IngestionService) -> int:
    scheduler = IngestionScheduler(service, load_scheduler_config(run_on_startup=False))
    outcome = await scheduler.trigger()

    if outcome.result is not None:
        print(json.dumps(outcome.result.to_dict(), indent=2))
        return 0

    logger.error(f"Ingestion {outcome.status.value}: {outcome.error or outcome.reason}")
    return 1


async def run_daemon(service: IngestionService, run_on_startup: bool) -> int:
    scheduler = IngestionScheduler(service, load_scheduler_config(run_on_startup=run_on_startup))
    stop_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows event loops; KeyboardInterrupt still stops the run
            pass

    await scheduler.start()
    try:
        await stop_event.wait()
        logger.info("Shutdown requested")
    finally:
        await scheduler.stop()
    return 0


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Run the marketplace trend ingestion pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument(
        "--once",
        action="store_true",
        help="Run one ingestion cycle and exit",
    )
    parser.add_argument(
        "--sources",
        default="",
        help="Comma-separated sources to run (default: all)",
    )
    parser.add_argument(
        "--no-startup-run",
        action="store_true",
        help="Do not run immediately on startup in daemon mode",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )

    args = parser.parse_args()

    setup_logging(args.log_level)

    selected = [s.strip().lower() for s in args.sources.split(",") if s.strip()]
    try:
        sources = build_sources(selected)
    except ValueError as e:
        parser.error(str(e))

    service = build_service(sources)

    try:
        if args.once:
            exit_code = asyncio.run(run_once(service))
        else:
            exit_code = asyncio.run(run_daemon(service, not args.no_startup_run))
    except KeyboardInterrupt:
        print("\nShutting down...")
        exit_code = 0

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
