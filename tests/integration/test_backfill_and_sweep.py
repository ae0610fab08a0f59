"""
Integration tests for checkpoints, backfill and the reconciliation sweep.

Tests cover:
- Monotonic checkpoints and resume points
- Batch failure containment during backfill
- Healing of failed batches by the sweep, exactly once
- Stop requests between batches
- Checkpoint held below a log that did not commit
- Pause and single-scan-per-pair guards
"""

import pytest
import pytest_asyncio
from sqlalchemy.exc import OperationalError

from chainledger.models.enums import ContractKind, SyncStatus
from chainledger.repositories.stake_repository import StakeRepository
from chainledger.services.indexer.active_scans import ScanKind
from chainledger.services.indexer.router import route
from chainledger.services.indexer.runtime import IndexerRuntime

from conftest import ALICE, BOB, CAROL, CHAIN_ID, IMPACT_POOL

IMPACT = ContractKind.IMPACT_DAO_POOL


def stake_log(make_log, staker, amount, block, log_index=0):
    return make_log(
        IMPACT,
        "Staked",
        IMPACT_POOL,
        {"staker": staker, "amount": amount, "daoShare": 7900, "stakerShare": 1900, "platformShare": 200},
        block=block,
        log_index=log_index,
    )


async def principal_of(session_factory, staker):
    async with session_factory() as session:
        stake = await StakeRepository(session).get_position(
            CHAIN_ID, IMPACT_POOL, staker, for_update=False
        )
    return None if stake is None else stake.principal


@pytest_asyncio.fixture
async def runtime(settings, session_factory, web3_factory):
    runtime = IndexerRuntime(settings, session_factory, web3_factory=web3_factory)
    await runtime.registry.connect(CHAIN_ID)
    return runtime


class TestCheckpointStore:
    """Test checkpoint persistence."""

    @pytest.mark.asyncio
    async def test_advance_is_monotonic(self, runtime, contracts):
        contract = contracts["impact_pool"]

        await runtime.checkpoints.advance(contract, 500)
        checkpoint = await runtime.checkpoints.advance(contract, 300)

        assert checkpoint.last_block == 500
        assert (await runtime.checkpoints.get(CHAIN_ID, IMPACT_POOL)).last_block == 500

    @pytest.mark.asyncio
    async def test_resume_from_start_block(self, runtime, contracts):
        contract = contracts["impact_pool"].model_copy(update={"start_block": 42})

        assert await runtime.checkpoints.resume_block(contract, head=10_000) == 42

    @pytest.mark.asyncio
    async def test_resume_from_lookback_without_start_block(self, runtime, contracts, settings):
        contract = contracts["impact_pool"].model_copy(update={"start_block": None})

        resume = await runtime.checkpoints.resume_block(contract, head=10_000)

        assert resume == 10_000 - settings.default_lookback_blocks

    @pytest.mark.asyncio
    async def test_resume_after_checkpoint(self, runtime, contracts):
        contract = contracts["impact_pool"]
        await runtime.checkpoints.advance(contract, 777)

        assert await runtime.checkpoints.resume_block(contract, head=10_000) == 778

    @pytest.mark.asyncio
    async def test_status_change_keeps_resume_point(self, runtime, contracts):
        """A paused contract that never scanned still resumes from its start block."""
        contract = contracts["impact_pool"].model_copy(update={"start_block": 42})

        await runtime.checkpoints.set_status(contract, SyncStatus.PAUSED)

        assert await runtime.checkpoints.is_paused(contract) is True
        assert await runtime.checkpoints.resume_block(contract, head=10_000) == 42


class TestBackfill:
    """Test the backfill scanner."""

    @pytest.mark.asyncio
    async def test_backfill_applies_logs_and_syncs(self, runtime, contracts, fake_w3, make_log, session_factory):
        contract = contracts["impact_pool"]
        fake_w3.eth.head = 2500
        fake_w3.eth.logs = [
            stake_log(make_log, ALICE, 1000, block=10),
            stake_log(make_log, ALICE, 500, block=1500),
        ]

        result = await runtime.scanner.backfill_contract(contract)

        assert result["success"] is True
        assert result["batches"] == 3
        assert result["outcomes"] == {"applied": 2}
        assert await principal_of(session_factory, ALICE) == 1500

        checkpoint = await runtime.checkpoints.get(CHAIN_ID, IMPACT_POOL)
        assert checkpoint.last_block == 2500
        assert checkpoint.status == SyncStatus.SYNCED.value

    @pytest.mark.asyncio
    async def test_incremental_backfill_resumes(self, runtime, contracts, fake_w3, make_log):
        contract = contracts["impact_pool"]
        fake_w3.eth.head = 999
        await runtime.scanner.backfill_contract(contract)

        fake_w3.eth.head = 1500
        fake_w3.eth.get_logs_calls.clear()
        await runtime.scanner.backfill_contract(contract)

        assert fake_w3.eth.get_logs_calls == [(1000, 1500)]

    @pytest.mark.asyncio
    async def test_up_to_date(self, runtime, contracts, fake_w3):
        contract = contracts["impact_pool"]
        fake_w3.eth.head = 100
        await runtime.scanner.backfill_contract(contract)

        result = await runtime.scanner.backfill_contract(contract)

        assert result["message"] == "Already up to date"

    @pytest.mark.asyncio
    async def test_confirmations_held_back(self, runtime, contracts, fake_w3):
        runtime.settings.confirmation_blocks = 12
        fake_w3.eth.head = 100

        await runtime.scanner.backfill_contract(contracts["impact_pool"])

        assert fake_w3.eth.get_logs_calls == [(0, 88)]

    @pytest.mark.asyncio
    async def test_paused_contract_skipped(self, runtime, contracts, fake_w3):
        contract = contracts["impact_pool"]
        fake_w3.eth.head = 100
        await runtime.checkpoints.set_status(contract, SyncStatus.PAUSED)

        result = await runtime.scanner.backfill_contract(contract)

        assert result["skipped"] == "paused"
        assert fake_w3.eth.get_logs_calls == []

    @pytest.mark.asyncio
    async def test_one_backfill_per_pair(self, runtime, contracts, fake_w3):
        contract = contracts["impact_pool"]
        runtime.active.try_begin(ScanKind.BACKFILL, contract.key)

        result = await runtime.scanner.backfill_contract(contract)

        assert result["skipped"] == "running"
        assert fake_w3.eth.get_logs_calls == []

    @pytest.mark.asyncio
    async def test_stop_between_batches(self, runtime, contracts, fake_w3):
        contract = contracts["impact_pool"]
        fake_w3.eth.head = 5999
        original_get_logs = fake_w3.eth.get_logs

        async def get_logs_then_stop(params):
            logs = await original_get_logs(params)
            if params["fromBlock"] == 1000:
                runtime.request_stop()
            return logs

        fake_w3.eth.get_logs = get_logs_then_stop

        result = await runtime.scanner.backfill_contract(contract)

        assert result["stopped"] is True
        assert fake_w3.eth.get_logs_calls == [(0, 999), (1000, 1999)]
        checkpoint = await runtime.checkpoints.get(CHAIN_ID, IMPACT_POOL)
        assert checkpoint.last_block == 1999


class TestFailedBatchHealing:
    """A failed batch does not stop the scan and is healed by the sweep."""

    @pytest.mark.asyncio
    async def test_failed_batch_then_sweep(self, runtime, contracts, fake_w3, make_log, session_factory):
        contract = contracts["impact_pool"]
        fake_w3.eth.head = 2999
        fake_w3.eth.logs = [
            stake_log(make_log, ALICE, 1000, block=500),
            stake_log(make_log, BOB, 2000, block=1950),
            stake_log(make_log, CAROL, 3000, block=2050),
        ]
        fake_w3.eth.failing_ranges = {(1000, 1999)}

        result = await runtime.scanner.backfill_contract(contract)

        # Scan continued past the failed batch
        assert fake_w3.eth.get_logs_calls == [(0, 999), (1000, 1999), (2000, 2999)]
        assert result["failed_batches"] == [(1000, 1999)]
        assert result["success"] is False
        assert await principal_of(session_factory, ALICE) == 1000
        assert await principal_of(session_factory, BOB) is None
        assert await principal_of(session_factory, CAROL) == 3000

        checkpoint = await runtime.checkpoints.get(CHAIN_ID, IMPACT_POOL)
        assert checkpoint.last_block == 2999
        assert checkpoint.status == SyncStatus.ERROR.value

        # RPC recovers; the sweep over the trailing range picks up the missed log
        fake_w3.eth.failing_ranges = set()
        swept = await runtime.sweeper.sweep_contract(contract, 1900, 2100)

        assert swept["outcomes"] == {"applied": 1, "duplicate": 1}
        assert await principal_of(session_factory, BOB) == 2000
        assert await principal_of(session_factory, CAROL) == 3000

        # Sweeping again changes nothing
        again = await runtime.sweeper.sweep_contract(contract, 1900, 2100)
        assert again["outcomes"] == {"duplicate": 2}
        assert await principal_of(session_factory, BOB) == 2000

        # The sweep never moves the checkpoint
        after = await runtime.checkpoints.get(CHAIN_ID, IMPACT_POOL)
        assert after.last_block == 2999
        assert after.status == SyncStatus.ERROR.value

    @pytest.mark.asyncio
    async def test_sweep_window(self, runtime, contracts, fake_w3):
        fake_w3.eth.head = 5000

        await runtime.sweeper.sweep_contract(contracts["impact_pool"])

        assert fake_w3.eth.get_logs_calls == [(4800, 5000)]

    @pytest.mark.asyncio
    async def test_sweep_once_covers_live_contracts(self, runtime, fake_w3, settings):
        fake_w3.eth.head = 100

        results = await runtime.sweep_once()

        assert set(results) == {f"{c.chain_id}:{c.address}" for c in settings.contracts}
        assert all(r["success"] for r in results.values())

    @pytest.mark.asyncio
    async def test_sweep_skips_excluded_chain(self, runtime, contracts):
        contract = contracts["impact_pool"].model_copy(update={"chain_id": 80001})

        result = await runtime.sweeper.sweep_contract(contract)

        assert result["success"] is False
        assert "unavailable" in result["error"]
        assert runtime.active.snapshot() == []


def failing_once(failures: dict[str, int]):
    """Router whose handlers raise a database error for the first N calls."""

    def flaky_route(kind, name):
        handler = route(kind, name)
        if handler is None:
            return None

        async def apply(session, event):
            if failures["left"]:
                failures["left"] -= 1
                raise OperationalError("INSERT INTO stakes", {}, Exception("database is locked"))
            await handler(session, event)

        return apply

    return flaky_route


class TestUncommittedLogs:
    """A log that fetched but did not commit is rescanned by the next cycle."""

    @pytest.mark.asyncio
    async def test_failed_log_holds_checkpoint(self, runtime, contracts, fake_w3, make_log, session_factory):
        contract = contracts["impact_pool"]
        fake_w3.eth.head = 5000
        fake_w3.eth.logs = [
            stake_log(make_log, ALICE, 1000, block=10),
            stake_log(make_log, BOB, 2000, block=20),
        ]
        runtime.dispatcher.router = failing_once({"left": 1})

        first = await runtime.scanner.backfill_contract(contract)

        # Scan ended at the failed log; later logs were not applied
        assert first["success"] is False
        assert first["held_at_block"] == 10
        assert first["outcomes"] == {"failed": 1}
        assert fake_w3.eth.get_logs_calls == [(0, 999)]
        assert await principal_of(session_factory, ALICE) is None
        assert await principal_of(session_factory, BOB) is None

        checkpoint = await runtime.checkpoints.get(CHAIN_ID, IMPACT_POOL)
        assert checkpoint.last_block == 9
        assert checkpoint.status == SyncStatus.ERROR.value

        fake_w3.eth.get_logs_calls.clear()
        second = await runtime.scanner.backfill_contract(contract)

        assert second["success"] is True
        assert second["outcomes"] == {"applied": 2}
        assert fake_w3.eth.get_logs_calls[0] == (10, 1009)
        assert await principal_of(session_factory, ALICE) == 1000
        assert await principal_of(session_factory, BOB) == 2000

        checkpoint = await runtime.checkpoints.get(CHAIN_ID, IMPACT_POOL)
        assert checkpoint.last_block == 5000
        assert checkpoint.status == SyncStatus.SYNCED.value

    @pytest.mark.asyncio
    async def test_failed_first_block_keeps_resume_point(self, runtime, contracts, fake_w3, make_log):
        contract = contracts["impact_pool"].model_copy(update={"start_block": 10})
        fake_w3.eth.head = 100
        fake_w3.eth.logs = [stake_log(make_log, ALICE, 1000, block=10)]
        runtime.dispatcher.router = failing_once({"left": 1})

        await runtime.scanner.backfill_contract(contract)

        assert await runtime.checkpoints.resume_block(contract, head=100) == 10

    @pytest.mark.asyncio
    async def test_sweep_does_not_stop_on_failed_log(self, runtime, contracts, fake_w3, make_log, session_factory):
        contract = contracts["impact_pool"]
        fake_w3.eth.head = 100
        fake_w3.eth.logs = [
            stake_log(make_log, ALICE, 1000, block=10),
            stake_log(make_log, BOB, 2000, block=20),
        ]
        runtime.dispatcher.router = failing_once({"left": 1})

        result = await runtime.sweeper.sweep_contract(contract, 0, 100)

        assert result["outcomes"] == {"failed": 1, "applied": 1}
        assert await principal_of(session_factory, BOB) == 2000
        assert await runtime.checkpoints.get(CHAIN_ID, IMPACT_POOL) is None
