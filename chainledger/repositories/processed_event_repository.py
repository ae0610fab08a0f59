"""
Processed event repository.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from chainledger.models.enums import ProcessedStatus
from chainledger.models.processed_event import ProcessedEvent
from chainledger.repositories.base import BaseRepository
from chainledger.services.indexer.events import LogMeta


class ProcessedEventRepository(BaseRepository[ProcessedEvent]):
    """Repository for applied-log markers."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(ProcessedEvent, session)

    async def is_processed(self, meta: LogMeta) -> bool:
        return await self.exists(
            tx_hash=meta.tx_hash, log_index=meta.log_index, chain_id=meta.chain_id
        )

    async def mark(
        self,
        meta: LogMeta,
        status: ProcessedStatus = ProcessedStatus.APPLIED,
        detail: str | None = None,
    ) -> ProcessedEvent:
        """
        Insert the marker for a log.

        Raises:
            IntegrityError: on flush, when another transaction marked it first
        """
        return await self.create(
            chain_id=meta.chain_id,
            tx_hash=meta.tx_hash,
            log_index=meta.log_index,
            block_number=meta.block_number,
            contract_address=meta.contract_address,
            contract_kind=meta.contract_kind.value,
            event_name=meta.event_name,
            status=status.value,
            detail=detail,
        )
