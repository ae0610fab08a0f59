"""
Sync checkpoint repository.

Data access layer for per-contract sync watermarks.
"""

from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from chainledger.models.enums import SyncStatus
from chainledger.models.sync_checkpoint import SyncCheckpoint
from chainledger.repositories.base import BaseRepository


class CheckpointRepository(BaseRepository[SyncCheckpoint]):
    """Repository for sync checkpoints."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(SyncCheckpoint, session)

    async def get_for_contract(
        self, chain_id: int, contract_address: str, for_update: bool = False
    ) -> SyncCheckpoint | None:
        return await self.get_by(
            for_update=for_update,
            chain_id=chain_id,
            contract_address=contract_address,
        )

    async def advance(
        self,
        chain_id: int,
        contract_address: str,
        contract_kind: str,
        block: int,
        status: SyncStatus,
        error: str | None = None,
    ) -> SyncCheckpoint:
        """
        Upsert the checkpoint, moving last_block forward only.

        Args:
            chain_id: Chain ID
            contract_address: Contract address (checksummed)
            contract_kind: Contract kind, stored for reporting
            block: Last block fully processed by the caller
            status: New status
            error: Error text when status is ERROR

        Returns:
            The updated checkpoint
        """
        now = datetime.now(UTC)
        checkpoint = await self.get_for_contract(chain_id, contract_address, for_update=True)

        if checkpoint is None:
            checkpoint = SyncCheckpoint(
                chain_id=chain_id,
                contract_address=contract_address,
                contract_kind=contract_kind,
                last_block=block,
                error_count=0,
            )
            self.session.add(checkpoint)
        else:
            checkpoint.last_block = max(checkpoint.last_block, block)

        checkpoint.status = status.value
        checkpoint.last_sync_at = now
        if error:
            checkpoint.last_error = error[:2000]
            checkpoint.error_count = (checkpoint.error_count or 0) + 1
        else:
            checkpoint.error_count = 0

        await self.session.flush()
        return checkpoint

    async def set_status(
        self,
        chain_id: int,
        contract_address: str,
        contract_kind: str,
        status: SyncStatus,
        error: str | None = None,
    ) -> SyncCheckpoint:
        """
        Change status without touching last_block.

        A row created here has no last_sync_at: nothing has been scanned yet.
        """
        checkpoint = await self.get_for_contract(chain_id, contract_address, for_update=True)
        if checkpoint is None:
            checkpoint = SyncCheckpoint(
                chain_id=chain_id,
                contract_address=contract_address,
                contract_kind=contract_kind,
                last_block=0,
                error_count=0,
            )
            self.session.add(checkpoint)

        checkpoint.status = status.value
        if error:
            checkpoint.last_error = error[:2000]
            checkpoint.error_count = (checkpoint.error_count or 0) + 1
        await self.session.flush()
        return checkpoint
