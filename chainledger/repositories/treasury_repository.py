"""
Treasury repositories.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from chainledger.models.treasury import FeeStake, PlatformFee, TreasuryStats
from chainledger.repositories.base import BaseRepository


class PlatformFeeRepository(BaseRepository[PlatformFee]):
    """Repository for fees received by a treasury."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(PlatformFee, session)

    async def get_unstaked(self, chain_id: int, treasury_address: str) -> list[PlatformFee]:
        return await self.find_all(
            chain_id=chain_id, treasury_address=treasury_address, is_staked=False
        )

    async def get_for_treasury(self, chain_id: int, treasury_address: str) -> list[PlatformFee]:
        return await self.find_all(chain_id=chain_id, treasury_address=treasury_address)


class FeeStakeRepository(BaseRepository[FeeStake]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(FeeStake, session)

    async def get_for_treasury(self, chain_id: int, treasury_address: str) -> list[FeeStake]:
        return await self.find_all(chain_id=chain_id, treasury_address=treasury_address)


class TreasuryStatsRepository(BaseRepository[TreasuryStats]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(TreasuryStats, session)

    async def get_or_create(self, chain_id: int, treasury_address: str) -> TreasuryStats:
        stats = await self.get_by(
            for_update=True, chain_id=chain_id, treasury_address=treasury_address
        )
        if stats is None:
            stats = await self.create(
                chain_id=chain_id,
                treasury_address=treasury_address,
                total_fees_collected=0,
                pending_fees_to_stake=0,
                total_fees_staked=0,
                operational_funds=0,
                endowment_principal=0,
                endowment_lifetime_yield=0,
                total_yield_distributed=0,
            )
        return stats
