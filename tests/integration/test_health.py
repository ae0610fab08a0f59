"""
Integration tests for the health check server and the job scheduler.
"""

import pytest
import pytest_asyncio
from aiohttp import test_utils

from chainledger.services.indexer.runtime import IndexerRuntime
from jobs.health import create_health_app
from jobs.indexer_main import create_scheduler

from conftest import CHAIN_ID


@pytest_asyncio.fixture
async def runtime(settings, session_factory, web3_factory):
    return IndexerRuntime(settings, session_factory, web3_factory=web3_factory)


@pytest_asyncio.fixture
async def scheduler(runtime, settings):
    scheduler = create_scheduler(runtime, settings)
    yield scheduler
    if scheduler.running:
        scheduler.shutdown(wait=False)


@pytest_asyncio.fixture
async def client(runtime, scheduler):
    client = test_utils.TestClient(test_utils.TestServer(create_health_app(runtime, scheduler)))
    await client.start_server()
    yield client
    await client.close()


class TestScheduler:
    @pytest.mark.asyncio
    async def test_jobs_registered(self, scheduler, settings):
        jobs = {job.id: job for job in scheduler.get_jobs()}

        assert set(jobs) == {"incremental_backfill", "reconciliation_sweep"}
        assert jobs["incremental_backfill"].max_instances == 1
        assert jobs["reconciliation_sweep"].trigger.interval.total_seconds() == (
            settings.reconciliation_interval_seconds
        )


class TestHealthEndpoints:
    """Test health, readiness and liveness."""

    @pytest.mark.asyncio
    async def test_liveness(self, client):
        response = await client.get("/liveness")

        assert response.status == 200
        assert (await response.json())["alive"] is True

    @pytest.mark.asyncio
    async def test_unhealthy_without_live_chain(self, client, scheduler):
        scheduler.start()

        response = await client.get("/health")

        assert response.status == 503
        body = await response.json()
        assert body["status"] == "unhealthy"
        assert body["live_chains"] == []

    @pytest.mark.asyncio
    async def test_healthy_and_ready(self, client, runtime, scheduler):
        await runtime.registry.connect(CHAIN_ID)
        scheduler.start()

        health = await client.get("/health")
        ready = await client.get("/readiness")

        assert health.status == 200
        body = await health.json()
        assert body["status"] == "healthy"
        assert body["live_chains"] == [CHAIN_ID]
        assert body["providers"][str(CHAIN_ID)]["live"] is True
        assert ready.status == 200

    @pytest.mark.asyncio
    async def test_not_ready_before_scheduler_starts(self, client, runtime):
        await runtime.registry.connect(CHAIN_ID)

        response = await client.get("/readiness")

        assert response.status == 503

    @pytest.mark.asyncio
    async def test_unhealthy_while_stopping(self, client, runtime, scheduler):
        await runtime.registry.connect(CHAIN_ID)
        scheduler.start()
        runtime.request_stop()

        response = await client.get("/health")

        assert response.status == 503
        assert (await response.json())["stopping"] is True
