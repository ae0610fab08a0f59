"""
Indexer runtime.

Everything a running indexer shares is held by one IndexerRuntime built at
startup; there is no module-level mutable state.
"""

import asyncio
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chainledger.config.settings import ContractConfig, Settings
from chainledger.services.blockchain.provider_registry import ProviderRegistry, Web3Factory
from chainledger.services.indexer.active_scans import ActiveScans, ScanKind
from chainledger.services.indexer.backfill import BackfillScanner
from chainledger.services.indexer.checkpoints import CheckpointStore
from chainledger.services.indexer.dispatcher import EventDispatcher
from chainledger.services.indexer.live_listener import LiveListener
from chainledger.services.indexer.reconciliation import ReconciliationSweep


class IndexerRuntime:
    """
    Wiring of provider registry, checkpoint store, dispatcher, scanners and
    the live listener around one stop event.

    Example:
        runtime = IndexerRuntime(settings, session_factory)
        await runtime.start()
        ...
        await runtime.shutdown()
    """

    def __init__(
        self,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
        web3_factory: Web3Factory | None = None,
    ) -> None:
        self.settings = settings
        self.session_factory = session_factory
        self.stop_event = asyncio.Event()
        self.active = ActiveScans()

        self.registry = ProviderRegistry(settings, web3_factory=web3_factory)
        self.checkpoints = CheckpointStore(session_factory, settings.default_lookback_blocks)
        self.dispatcher = EventDispatcher(session_factory)
        self.scanner = BackfillScanner(
            settings,
            self.registry,
            self.dispatcher,
            self.checkpoints,
            stop_event=self.stop_event,
            active=self.active,
        )
        self.sweeper = ReconciliationSweep(settings, self.registry, self.scanner, self.active)
        self.listener = LiveListener(settings, self.registry, self.dispatcher)

    @property
    def stopping(self) -> bool:
        return self.stop_event.is_set()

    def request_stop(self) -> None:
        if not self.stop_event.is_set():
            logger.info("[Runtime] Stop requested")
        self.stop_event.set()

    def try_begin(self, kind: ScanKind, pair: tuple[int, str]) -> bool:
        return self.active.try_begin(kind, pair)

    def end(self, kind: ScanKind, pair: tuple[int, str]) -> None:
        self.active.end(kind, pair)

    def live_contracts(self) -> list[ContractConfig]:
        live = set(self.registry.available_chains())
        return [c for c in self.settings.contracts if c.chain_id in live]

    async def start(self, backfill: bool = True, listen: bool = True) -> None:
        """Connect providers, run the startup backfill, then start live listeners."""
        await self.registry.connect_all()
        if backfill:
            await self.run_backfill_all()
        if listen and not self.stopping:
            self.listener.start(self.live_contracts())

    async def run_backfill_all(self) -> dict[str, dict[str, Any]]:
        """Backfill every contract on a live chain; chains run concurrently."""
        if self.stopping:
            return {}

        by_chain: dict[int, list[ContractConfig]] = {}
        for contract in self.live_contracts():
            by_chain.setdefault(contract.chain_id, []).append(contract)

        async def backfill_chain(contracts: list[ContractConfig]) -> dict[str, dict[str, Any]]:
            results = {}
            for contract in contracts:
                if self.stopping:
                    break
                results[f"{contract.chain_id}:{contract.address}"] = (
                    await self.scanner.backfill_contract(contract)
                )
            return results

        merged: dict[str, dict[str, Any]] = {}
        for results in await asyncio.gather(*(backfill_chain(c) for c in by_chain.values())):
            merged.update(results)
        return merged

    async def sweep_once(self) -> dict[str, dict[str, Any]]:
        if self.stopping:
            return {}
        return await self.sweeper.sweep_once()

    def status(self) -> dict[str, Any]:
        return {
            "stopping": self.stopping,
            "providers": self.registry.status(),
            "active_scans": self.active.snapshot(),
            "dispatch": dict(self.dispatcher.stats),
            "live": self.listener.status(),
        }

    async def wait_idle(self, timeout: float = 30.0, poll: float = 0.1) -> bool:
        """Wait until no backfill or sweep is running. False on timeout."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while self.active.snapshot():
            if loop.time() >= deadline:
                logger.warning(f"[Runtime] Scans still running: {self.active.snapshot()}")
                return False
            await asyncio.sleep(poll)
        return True

    async def shutdown(self, timeout: float = 30.0) -> None:
        """Stop scanning and listening; in-flight batches finish first."""
        self.request_stop()
        await self.wait_idle(timeout)
        await self.listener.stop()
