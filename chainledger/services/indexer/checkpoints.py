"""
Sync checkpoint store.

Each operation runs in its own short transaction so a checkpoint write never
shares fate with the events of the batch it follows.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chainledger.config.settings import ContractConfig
from chainledger.models.enums import SyncStatus
from chainledger.models.sync_checkpoint import SyncCheckpoint
from chainledger.repositories.checkpoint_repository import CheckpointRepository


class CheckpointStore:
    """Per-contract watermarks of the backfill scanner."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        default_lookback_blocks: int = 1000,
    ) -> None:
        self.session_factory = session_factory
        self.default_lookback_blocks = default_lookback_blocks

    async def get(self, chain_id: int, contract_address: str) -> SyncCheckpoint | None:
        async with self.session_factory() as session:
            return await CheckpointRepository(session).get_for_contract(
                chain_id, contract_address
            )

    async def advance(
        self,
        contract: ContractConfig,
        block: int,
        status: SyncStatus = SyncStatus.SYNCING,
        error: str | None = None,
    ) -> SyncCheckpoint:
        """Move the watermark to block (never backwards) and set status."""
        async with self.session_factory() as session:
            checkpoint = await CheckpointRepository(session).advance(
                contract.chain_id,
                contract.address,
                contract.kind.value,
                block,
                status,
                error,
            )
            await session.commit()
        logger.debug(
            f"[Checkpoint] {contract.display_name} -> {checkpoint.last_block} ({status.value})"
        )
        return checkpoint

    async def set_status(
        self,
        contract: ContractConfig,
        status: SyncStatus,
        error: str | None = None,
    ) -> SyncCheckpoint:
        async with self.session_factory() as session:
            checkpoint = await CheckpointRepository(session).set_status(
                contract.chain_id, contract.address, contract.kind.value, status, error
            )
            await session.commit()
        return checkpoint

    async def resume_block(self, contract: ContractConfig, head: int) -> int:
        """
        First block the next backfill should scan.

        last_block + 1 when a scan has advanced the checkpoint, else the
        configured start block, else head minus the default lookback.
        """
        checkpoint = await self.get(contract.chain_id, contract.address)
        if checkpoint is not None and checkpoint.last_sync_at is not None:
            return checkpoint.last_block + 1
        if contract.start_block is not None:
            return contract.start_block
        return max(0, head - self.default_lookback_blocks)

    async def is_paused(self, contract: ContractConfig) -> bool:
        checkpoint = await self.get(contract.chain_id, contract.address)
        return checkpoint is not None and checkpoint.status == SyncStatus.PAUSED.value
