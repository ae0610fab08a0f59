"""
Backfill scanner.

Walks a contract's block range in fixed-size batches through eth_getLogs.
Each batch is fetched once under a timeout; a failed batch is logged,
recorded on the checkpoint and left for the reconciliation sweep, and the
scan carries on with the next batch. A log that fetched but did not commit
holds the checkpoint just below its block and ends the scan, so the next
cycle picks it up again.
"""

import asyncio
from collections import Counter
from typing import Any

import aiohttp
from loguru import logger
from web3 import AsyncWeb3
from web3.exceptions import Web3Exception

from chainledger.config.settings import ContractConfig, Settings
from chainledger.models.enums import SyncStatus
from chainledger.services.blockchain.provider_registry import ProviderRegistry
from chainledger.services.blockchain.rpc_wrapper import (
    BlockchainError,
    BlockchainTimeoutError,
    with_timeout,
)
from chainledger.services.indexer.active_scans import ActiveScans, ScanKind
from chainledger.services.indexer.checkpoints import CheckpointStore
from chainledger.services.indexer.dispatcher import DispatchOutcome, EventDispatcher
from chainledger.utils.exceptions import BatchFetchFailed, ProviderUnavailable

FETCH_ERRORS = (
    BlockchainTimeoutError,
    Web3Exception,
    aiohttp.ClientError,
    ConnectionError,
    OSError,
    ValueError,
)


def batch_ranges(from_block: int, to_block: int, batch_size: int) -> list[tuple[int, int]]:
    """Split [from_block, to_block] into inclusive ranges of batch_size blocks."""
    if batch_size < 1:
        raise ValueError("batch_size must be positive")
    ranges = []
    start = from_block
    while start <= to_block:
        end = min(start + batch_size - 1, to_block)
        ranges.append((start, end))
        start = end + 1
    return ranges


class BackfillScanner:
    """Batch log scanner shared by backfill, sweep and on-demand resync."""

    def __init__(
        self,
        settings: Settings,
        registry: ProviderRegistry,
        dispatcher: EventDispatcher,
        checkpoints: CheckpointStore,
        stop_event: asyncio.Event | None = None,
        active: ActiveScans | None = None,
    ) -> None:
        self.settings = settings
        self.registry = registry
        self.dispatcher = dispatcher
        self.checkpoints = checkpoints
        self.stop_event = stop_event or asyncio.Event()
        self.active = active or ActiveScans()

    async def fetch_logs(
        self, w3: AsyncWeb3, contract: ContractConfig, from_block: int, to_block: int
    ) -> list[Any]:
        """
        Fetch one batch of logs. No retry: a failed batch is healed by the sweep.

        Raises:
            BatchFetchFailed: RPC error or timeout
        """
        try:
            logs = await with_timeout(
                w3.eth.get_logs(
                    {
                        "address": contract.address,
                        "fromBlock": from_block,
                        "toBlock": to_block,
                    }
                ),
                timeout=self.settings.rpc_timeout,
                operation_name=f"get_logs {contract.display_name} [{from_block}, {to_block}]",
            )
        except FETCH_ERRORS as e:
            raise BatchFetchFailed(
                contract.chain_id, contract.address, from_block, to_block, str(e)
            ) from e
        return list(logs)

    async def scan(
        self,
        contract: ContractConfig,
        from_block: int,
        to_block: int,
        advance_checkpoint: bool = True,
    ) -> dict[str, Any]:
        """
        Scan [from_block, to_block] of one contract.

        Args:
            contract: Contract to scan
            from_block: First block, inclusive
            to_block: Last block, inclusive
            advance_checkpoint: Move the checkpoint to each batch end

        Returns:
            Result dict with batch, log and outcome counts
        """
        w3 = self.registry.get(contract.chain_id).require_web3()
        ranges = batch_ranges(from_block, to_block, self.settings.index_batch_size)
        outcomes: Counter[str] = Counter()
        failed: list[tuple[int, int]] = []
        logs_seen = 0
        batches_done = 0
        stopped = False
        held_at: int | None = None

        for position, (start, end) in enumerate(ranges):
            if self.stop_event.is_set():
                stopped = True
                logger.info(
                    f"[Backfill] Stop requested, {contract.display_name} halted before block {start}"
                )
                break

            error = None
            try:
                logs = await self.fetch_logs(w3, contract, start, end)
            except BatchFetchFailed as e:
                error = str(e)
                failed.append((start, end))
                logger.warning(f"[Backfill] {e}")
            else:
                logs_seen += len(logs)
                if not advance_checkpoint:
                    outcomes.update(await self.dispatcher.dispatch_many(contract, logs))
                else:
                    held_at = await self._dispatch_batch(contract, logs, outcomes)

            batches_done += 1
            if held_at is not None:
                await self._hold_checkpoint(contract, held_at)
                break
            if advance_checkpoint:
                await self.checkpoints.advance(
                    contract,
                    end,
                    SyncStatus.ERROR if error else SyncStatus.SYNCING,
                    error,
                )

            if position < len(ranges) - 1 and self.settings.index_batch_delay > 0:
                await asyncio.sleep(self.settings.index_batch_delay)

        return {
            "success": not failed and not stopped and held_at is None,
            "contract": contract.display_name,
            "chain_id": contract.chain_id,
            "from_block": from_block,
            "to_block": to_block,
            "batches": batches_done,
            "failed_batches": failed,
            "held_at_block": held_at,
            "logs": logs_seen,
            "outcomes": dict(outcomes),
            "stopped": stopped,
        }

    async def _dispatch_batch(
        self, contract: ContractConfig, logs: list[Any], outcomes: Counter[str]
    ) -> int | None:
        """Dispatch a batch up to its first failed log; return that log's block."""
        results = await self.dispatcher.dispatch_ordered(contract, logs, stop_on_failure=True)
        outcomes.update(outcome.value for _, outcome in results)
        if results and results[-1][1] is DispatchOutcome.FAILED:
            return results[-1][0][0]
        return None

    async def _hold_checkpoint(self, contract: ContractConfig, block: int) -> None:
        """Keep the checkpoint below a block whose log was not committed."""
        error = f"log at block {block} not applied, rescanning from there"
        if block > 0:
            await self.checkpoints.advance(contract, block - 1, SyncStatus.ERROR, error)
        else:
            await self.checkpoints.set_status(contract, SyncStatus.ERROR, error)
        logger.warning(f"[Backfill] {contract.display_name}: {error}")

    async def backfill_contract(self, contract: ContractConfig) -> dict[str, Any]:
        """Catch one contract up from its checkpoint to head minus confirmations."""
        pair = contract.key
        if not self.active.try_begin(ScanKind.BACKFILL, pair):
            logger.debug(f"[Backfill] {contract.display_name} already being backfilled")
            return {"success": False, "contract": contract.display_name, "skipped": "running"}

        try:
            return await self._backfill(contract)
        finally:
            self.active.end(ScanKind.BACKFILL, pair)

    async def _backfill(self, contract: ContractConfig) -> dict[str, Any]:
        if await self.checkpoints.is_paused(contract):
            return {"success": True, "contract": contract.display_name, "skipped": "paused"}

        try:
            head = await self.registry.block_number(contract.chain_id)
        except (ProviderUnavailable, BlockchainError) as e:
            logger.warning(f"[Backfill] {contract.display_name} skipped: {e}")
            return {"success": False, "contract": contract.display_name, "error": str(e)}

        to_block = head - self.settings.confirmation_blocks
        from_block = await self.checkpoints.resume_block(contract, to_block)

        if from_block > to_block:
            return {
                "success": True,
                "contract": contract.display_name,
                "message": "Already up to date",
                "from_block": from_block,
                "to_block": to_block,
            }

        logger.info(
            f"[Backfill] {contract.display_name}: {to_block - from_block + 1} blocks "
            f"({from_block} -> {to_block})"
        )
        result = await self.scan(contract, from_block, to_block)

        if result["stopped"] or result["held_at_block"] is not None:
            return result
        if result["failed_batches"]:
            await self.checkpoints.set_status(
                contract,
                SyncStatus.ERROR,
                f"{len(result['failed_batches'])} batch(es) failed, left to the sweep",
            )
            logger.warning(
                f"[Backfill] {contract.display_name} finished with "
                f"{len(result['failed_batches'])} failed batch(es)"
            )
        else:
            await self.checkpoints.set_status(contract, SyncStatus.SYNCED)
            logger.success(
                f"[Backfill] {contract.display_name} synced to {to_block}: "
                f"{result['logs']} logs {result['outcomes']}"
            )
        return result
