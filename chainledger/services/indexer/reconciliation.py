"""
Reconciliation sweep.

Re-scans the trailing window of every live contract so that logs lost to a
failed batch or a dropped filter are still applied. The sweep never moves
checkpoints; idempotent dispatch turns already-applied logs into duplicates.
"""

import asyncio
from typing import Any

from loguru import logger

from chainledger.config.settings import ContractConfig, Settings
from chainledger.services.blockchain.provider_registry import ProviderRegistry
from chainledger.services.blockchain.rpc_wrapper import BlockchainError
from chainledger.services.indexer.active_scans import ActiveScans, ScanKind
from chainledger.services.indexer.backfill import BackfillScanner
from chainledger.utils.exceptions import ProviderUnavailable


class ReconciliationSweep:
    def __init__(
        self,
        settings: Settings,
        registry: ProviderRegistry,
        scanner: BackfillScanner,
        active: ActiveScans,
    ) -> None:
        self.settings = settings
        self.registry = registry
        self.scanner = scanner
        self.active = active

    def window(self, head: int) -> tuple[int, int]:
        """Block range re-scanned for a chain whose head is `head`."""
        return max(0, head - self.settings.reconciliation_window_blocks), head

    async def sweep_contract(
        self,
        contract: ContractConfig,
        from_block: int | None = None,
        to_block: int | None = None,
    ) -> dict[str, Any]:
        """
        Sweep one contract over the trailing window, or an explicit range.

        Skipped when a sweep of the same contract is already running.
        """
        pair = contract.key
        if not self.active.try_begin(ScanKind.SWEEP, pair):
            logger.debug(f"[Sweep] {contract.display_name} already being swept")
            return {"success": False, "contract": contract.display_name, "skipped": "running"}

        try:
            if from_block is None or to_block is None:
                head = await self.registry.block_number(contract.chain_id)
                from_block, to_block = self.window(head)
            return await self.scanner.scan(
                contract, from_block, to_block, advance_checkpoint=False
            )
        except (ProviderUnavailable, BlockchainError) as e:
            logger.warning(f"[Sweep] {contract.display_name} skipped: {e}")
            return {"success": False, "contract": contract.display_name, "error": str(e)}
        finally:
            self.active.end(ScanKind.SWEEP, pair)

    async def sweep_once(self) -> dict[str, dict[str, Any]]:
        """Sweep every configured contract on a live chain, concurrently."""
        live = set(self.registry.available_chains())
        contracts = [c for c in self.settings.contracts if c.chain_id in live]
        if not contracts:
            logger.debug("[Sweep] No contracts on live chains")
            return {}

        results = await asyncio.gather(*(self.sweep_contract(c) for c in contracts))
        by_pair = {
            f"{c.chain_id}:{c.address}": result for c, result in zip(contracts, results)
        }

        applied = sum(r.get("outcomes", {}).get("applied", 0) for r in results)
        failed = sum(len(r.get("failed_batches", [])) for r in results)
        if failed:
            logger.warning(
                f"[Sweep] Cycle done over {len(contracts)} contracts: "
                f"{applied} missed events applied, {failed} batch(es) failed"
            )
        else:
            logger.success(
                f"[Sweep] Cycle done over {len(contracts)} contracts: {applied} missed events applied"
            )
        return by_pair
