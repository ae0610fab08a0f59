"""
Staking repositories.

Data access layer for stakes, pool harvests and pool aggregates.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chainledger.models.staking import PoolHarvest, PoolStats, Stake, YieldHarvestRecord
from chainledger.repositories.base import BaseRepository


class StakeRepository(BaseRepository[Stake]):
    """Repository for stakes of every pool kind."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(Stake, session)

    async def get_position(
        self,
        chain_id: int,
        pool_address: str,
        staker: str,
        for_update: bool = True,
    ) -> Stake | None:
        """
        Get a staker's position in a pool, locked for update by default.

        Args:
            chain_id: Chain ID
            pool_address: Pool contract address
            staker: Staker address (checksummed)
            for_update: Lock the row

        Returns:
            Stake or None
        """
        return await self.get_by(
            for_update=for_update,
            chain_id=chain_id,
            pool_address=pool_address,
            staker=staker,
        )

    async def get_active_stakes(
        self, chain_id: int, pool_address: str, for_update: bool = True
    ) -> list[Stake]:
        """Active stakes of a pool, ordered by id for deterministic fan-out."""
        stmt = (
            select(Stake)
            .where(
                Stake.chain_id == chain_id,
                Stake.pool_address == pool_address,
                Stake.is_active.is_(True),
            )
            .order_by(Stake.id)
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_pool_stakes(self, chain_id: int, pool_address: str) -> list[Stake]:
        return await self.find_all(chain_id=chain_id, pool_address=pool_address)


class PoolHarvestRepository(BaseRepository[PoolHarvest]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(PoolHarvest, session)

    async def get_for_pool(self, chain_id: int, pool_address: str) -> list[PoolHarvest]:
        return await self.find_all(chain_id=chain_id, pool_address=pool_address)


class YieldHarvestRecordRepository(BaseRepository[YieldHarvestRecord]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(YieldHarvestRecord, session)

    async def get_for_stake(self, stake_id: int) -> list[YieldHarvestRecord]:
        return await self.find_all(stake_id=stake_id)


class PoolStatsRepository(BaseRepository[PoolStats]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(PoolStats, session)

    async def get_or_create(
        self, chain_id: int, pool_kind: str, pool_address: str
    ) -> PoolStats:
        stats = await self.get_by(
            for_update=True, chain_id=chain_id, pool_address=pool_address
        )
        if stats is None:
            stats = await self.create(
                chain_id=chain_id,
                pool_kind=pool_kind,
                pool_address=pool_address,
                total_staked_principal=0,
                stakers_count=0,
                total_yield_harvested=0,
                total_yield_distributed=0,
                total_yield_retained=0,
                total_yield_claimed=0,
            )
        return stats
