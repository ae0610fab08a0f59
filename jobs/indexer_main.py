"""
Indexer process entry point.

Startup: connect providers, backfill every contract, start live listeners,
then schedule incremental backfill and the reconciliation sweep. SIGINT and
SIGTERM stop scheduling, let in-flight batches finish and shut down in
reverse order.
"""

import asyncio
import contextlib
import signal

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from chainledger.config.database import create_engine, create_session_maker
from chainledger.config.logging import setup_logging
from chainledger.config.settings import Settings, get_settings
from chainledger.services.indexer.runtime import IndexerRuntime
from jobs.health import start_health_server, stop_health_server


def create_scheduler(runtime: IndexerRuntime, settings: Settings) -> AsyncIOScheduler:
    """Scheduler with the periodic backfill and sweep jobs."""
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        runtime.run_backfill_all,
        "interval",
        seconds=settings.backfill_interval_seconds,
        id="incremental_backfill",
        name="Incremental backfill",
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(
        runtime.sweep_once,
        "interval",
        seconds=settings.reconciliation_interval_seconds,
        id="reconciliation_sweep",
        name="Reconciliation sweep",
        max_instances=1,
        coalesce=True,
    )
    return scheduler


async def main() -> None:
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_file)
    logger.info(
        f"Starting chainledger indexer ({settings.environment}): "
        f"{len(settings.contracts)} contracts on {len(settings.chain_ids)} chains"
    )

    engine = create_engine(settings.database_url, echo=settings.database_echo)
    runtime = IndexerRuntime(settings, create_session_maker(engine))

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, runtime.request_stop)

    scheduler = create_scheduler(runtime, settings)
    health_runner = None
    try:
        await runtime.start()
        if runtime.stopping:
            return

        scheduler.start()
        health_runner = await start_health_server(
            runtime, scheduler, port=settings.health_check_port
        )
        logger.success("Indexer started, waiting for stop signal")

        await runtime.stop_event.wait()
    finally:
        logger.info("Shutting down indexer...")
        if scheduler.running:
            scheduler.shutdown(wait=False)
        await runtime.shutdown()
        if health_runner is not None:
            await stop_health_server(health_runner)
        await engine.dispose()
        logger.info("Indexer stopped")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
