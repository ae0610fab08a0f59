"""
Live subscription listener.

One managed task per (chain, contract) installs a log filter for each of the
contract's event schemas (address plus topic0) and polls them in rounds.
Each round's logs are put in (block, logIndex) order before they go onto a
bounded queue, drained by a single consumer task that dispatches them
through the same dispatcher as backfill. Live delivery never moves
checkpoints.
"""

import asyncio
from collections import Counter
from typing import Any

import aiohttp
from loguru import logger
from web3 import AsyncWeb3
from web3.exceptions import Web3Exception

from chainledger.config.settings import ContractConfig, Settings
from chainledger.services.blockchain.provider_registry import ProviderRegistry
from chainledger.services.blockchain.rpc_wrapper import BlockchainTimeoutError, with_timeout
from chainledger.services.indexer.decoding import EventSchema, log_position, schemas_for
from chainledger.services.indexer.dispatcher import EventDispatcher

FILTER_ERRORS = (
    BlockchainTimeoutError,
    Web3Exception,
    aiohttp.ClientError,
    ConnectionError,
    OSError,
    ValueError,
)

SubscriptionKey = tuple[int, str, str]


class LiveListener:
    """Filter-polling subscriptions feeding one dispatch queue."""

    def __init__(
        self,
        settings: Settings,
        registry: ProviderRegistry,
        dispatcher: EventDispatcher,
    ) -> None:
        self.settings = settings
        self.registry = registry
        self.dispatcher = dispatcher
        self.queue: asyncio.Queue[tuple[ContractConfig, Any]] = asyncio.Queue(
            maxsize=settings.live_queue_size
        )
        self.pollers: dict[tuple[int, str], asyncio.Task] = {}
        self.subscriptions: set[SubscriptionKey] = set()
        self.consumer: asyncio.Task | None = None
        self.stats: Counter[str] = Counter()
        self.failures: Counter[str] = Counter()

    @property
    def running(self) -> bool:
        return self.consumer is not None and not self.consumer.done()

    def start(self, contracts: list[ContractConfig] | None = None) -> int:
        """
        Start subscriptions for every contract on a live chain.

        Returns:
            Number of subscriptions (event filters) started
        """
        if self.consumer is None or self.consumer.done():
            self.consumer = asyncio.create_task(self._consume(), name="live-consumer")

        started = 0
        for contract in contracts if contracts is not None else self.settings.contracts:
            if not self.registry.is_available(contract.chain_id):
                continue
            task = self.pollers.get(contract.key)
            if task is not None and not task.done():
                continue
            schemas = schemas_for(contract.kind)
            self.pollers[contract.key] = asyncio.create_task(
                self._poll(contract, schemas),
                name=f"live-{contract.chain_id}-{contract.address[:10]}",
            )
            self.subscriptions.update(
                (contract.chain_id, contract.address, schema.name) for schema in schemas
            )
            started += len(schemas)

        logger.info(f"[Live] {started} subscriptions started ({len(self.subscriptions)} total)")
        return started

    async def _install_filter(self, w3: AsyncWeb3, contract: ContractConfig, schema: EventSchema):
        return await with_timeout(
            w3.eth.filter({"address": contract.address, "topics": [schema.topic0]}),
            timeout=self.settings.rpc_timeout,
            operation_name=f"install filter {schema.name}",
        )

    async def _poll_schema(
        self, w3: AsyncWeb3, contract: ContractConfig, schema: EventSchema, filters: dict[str, Any]
    ) -> list[Any]:
        label = f"{contract.display_name}.{schema.name}"
        try:
            if schema.topic0 not in filters:
                filters[schema.topic0] = await self._install_filter(w3, contract, schema)
                logger.debug(f"[Live] Filter installed for {label}")

            return list(
                await with_timeout(
                    w3.eth.get_filter_changes(filters[schema.topic0].filter_id),
                    timeout=self.settings.rpc_timeout,
                    operation_name=f"filter changes {schema.name}",
                )
            )
        except FILTER_ERRORS as e:
            self.failures[label] += 1
            logger.warning(f"[Live] Filter for {label} failed, reinstalling: {e}")
            filters.pop(schema.topic0, None)
            return []

    async def _poll(self, contract: ContractConfig, schemas: list[EventSchema]) -> None:
        w3 = self.registry.get(contract.chain_id).require_web3()
        filters: dict[str, Any] = {}

        while True:
            changes = []
            for schema in schemas:
                changes.extend(await self._poll_schema(w3, contract, schema, filters))

            # Filters of one contract report independently; restore chain order
            for raw_log in sorted(changes, key=log_position):
                self.stats["received"] += 1
                await self.queue.put((contract, raw_log))

            await asyncio.sleep(self.settings.live_poll_interval)

    async def _consume(self) -> None:
        while True:
            contract, raw_log = await self.queue.get()
            try:
                outcome = await self.dispatcher.dispatch(contract, raw_log)
                self.stats["dispatched"] += 1
                self.stats[outcome.value] += 1
            except Exception as e:
                logger.exception(f"[Live] Unexpected dispatch error for {contract.display_name}: {e}")
            finally:
                self.queue.task_done()

    async def stop(self, drain_timeout: float = 10.0) -> None:
        """Cancel subscriptions, let the consumer drain the queue, then stop it."""
        tasks = list(self.pollers.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self.pollers.clear()
        self.subscriptions.clear()

        if self.consumer is not None:
            if not self.consumer.done():
                try:
                    async with asyncio.timeout(drain_timeout):
                        await self.queue.join()
                except TimeoutError:
                    logger.warning(
                        f"[Live] Queue not drained in {drain_timeout}s, "
                        f"{self.queue.qsize()} logs left to the sweep"
                    )
            self.consumer.cancel()
            await asyncio.gather(self.consumer, return_exceptions=True)
            self.consumer = None

        logger.info(f"[Live] Stopped: {dict(self.stats)}")

    def status(self) -> dict[str, Any]:
        return {
            "running": self.running,
            "subscriptions": len(self.subscriptions),
            "queued": self.queue.qsize(),
            "stats": dict(self.stats),
            "failures": dict(self.failures),
        }
