"""
Health check server for the indexer process.

Reports scheduler state, provider availability and live listener stats.
"""

import asyncio

from aiohttp import web
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from chainledger.services.indexer.runtime import IndexerRuntime

RUNTIME_KEY = web.AppKey("runtime", IndexerRuntime)
SCHEDULER_KEY = web.AppKey("scheduler", AsyncIOScheduler)


def _job_info(scheduler: AsyncIOScheduler) -> list[dict]:
    jobs = []
    for job in scheduler.get_jobs():
        # Pending jobs of a stopped scheduler have no next_run_time yet
        next_run = getattr(job, "next_run_time", None)
        jobs.append(
            {
                "id": job.id,
                "name": job.name,
                "next_run_time": next_run.isoformat() if next_run else None,
            }
        )
    return jobs


async def health_handler(request: web.Request) -> web.Response:
    """
    Health check endpoint.

    Unhealthy when the scheduler is down or no chain provider is live.
    """
    runtime = request.app[RUNTIME_KEY]
    scheduler = request.app[SCHEDULER_KEY]

    try:
        live_chains = runtime.registry.available_chains()
        healthy = scheduler.running and bool(live_chains) and not runtime.stopping
        return web.json_response(
            {
                "status": "healthy" if healthy else "unhealthy",
                "scheduler_running": scheduler.running,
                "jobs": _job_info(scheduler),
                "live_chains": live_chains,
                **runtime.status(),
            },
            status=200 if healthy else 503,
        )
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return web.json_response({"status": "unhealthy", "error": str(e)}, status=503)


async def readiness_handler(request: web.Request) -> web.Response:
    """Ready once the scheduler runs and at least one chain is live."""
    runtime = request.app[RUNTIME_KEY]
    scheduler = request.app[SCHEDULER_KEY]

    if not scheduler.running or not runtime.registry.available_chains():
        return web.json_response({"status": "not_ready", "ready": False}, status=503)
    return web.json_response({"status": "ready", "ready": True})


async def liveness_handler(request: web.Request) -> web.Response:
    return web.json_response({"status": "alive", "alive": True})


def create_health_app(runtime: IndexerRuntime, scheduler: AsyncIOScheduler) -> web.Application:
    app = web.Application()
    app[RUNTIME_KEY] = runtime
    app[SCHEDULER_KEY] = scheduler
    app.router.add_get("/health", health_handler)
    app.router.add_get("/readiness", readiness_handler)
    app.router.add_get("/liveness", liveness_handler)
    return app


async def start_health_server(
    runtime: IndexerRuntime,
    scheduler: AsyncIOScheduler,
    host: str = "0.0.0.0",
    port: int = 8081,
) -> web.AppRunner:
    """
    Start health check server.

    Args:
        runtime: Indexer runtime to report on
        scheduler: Scheduler running the periodic jobs
        host: Host to bind to
        port: Port to bind to

    Returns:
        AppRunner for cleanup
    """
    runner = web.AppRunner(create_health_app(runtime, scheduler))
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()

    logger.info(f"Health check server started on {host}:{port}")
    logger.info(f"  - Health: http://{host}:{port}/health")
    logger.info(f"  - Readiness: http://{host}:{port}/readiness")
    logger.info(f"  - Liveness: http://{host}:{port}/liveness")
    return runner


async def stop_health_server(runner: web.AppRunner, timeout: int = 5) -> None:
    """Stop health check server gracefully."""
    logger.info("Stopping health check server...")
    try:
        await asyncio.wait_for(runner.cleanup(), timeout=timeout)
        logger.info("Health check server stopped successfully")
    except TimeoutError:
        logger.warning(f"Health check server cleanup timed out after {timeout}s")
