"""
Staking ledger.

Applies stake, unstake, split, harvest and claim events of the campaign
pools, the impact pool and treasury FBT staking. All three variants share
the stakes table and the same arithmetic; they differ only in pool_kind and
in what a harvest with no active stakers means.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from chainledger.config.constants import DEFAULT_YIELD_SPLIT, TOTAL_BASIS
from chainledger.models.base import utcnow
from chainledger.models.enums import ContractKind, PoolKind
from chainledger.models.staking import PoolHarvest, PoolStats, Stake
from chainledger.repositories.stake_repository import (
    PoolHarvestRepository,
    PoolStatsRepository,
    StakeRepository,
    YieldHarvestRecordRepository,
)
from chainledger.services.indexer.events import (
    LogMeta,
    PoolYieldHarvested,
    RewardPaid,
    Staked,
    Unstaked,
    YieldClaimed,
    YieldSplitSet,
)
from chainledger.services.ledger.aggregates import add_deltas
from chainledger.services.ledger.splits import allocate_pro_rata, validate_yield_split
from chainledger.utils.exceptions import HandlerReferenceMissing, LedgerInvariantViolation

POOL_KIND_BY_CONTRACT: dict[ContractKind, PoolKind] = {
    ContractKind.STAKING_POOL: PoolKind.CAMPAIGN,
    ContractKind.IMPACT_DAO_POOL: PoolKind.IMPACT,
    ContractKind.PLATFORM_TREASURY: PoolKind.TREASURY,
}

# Treasury FBT stakers receive the whole harvested yield
TREASURY_SPLIT = (0, TOTAL_BASIS, 0)


def pool_kind_for(contract_kind: ContractKind) -> PoolKind:
    try:
        return POOL_KIND_BY_CONTRACT[contract_kind]
    except KeyError:
        raise ValueError(f"{contract_kind} is not a staking contract") from None


class StakingLedger:
    """
    Staking mutations for one unit of work.

    Every method only flushes; the dispatcher owns the transaction.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.stakes = StakeRepository(session)
        self.harvests = PoolHarvestRepository(session)
        self.records = YieldHarvestRecordRepository(session)
        self.stats = PoolStatsRepository(session)

    def _default_split(self, pool_kind: PoolKind) -> tuple[int, int, int]:
        return TREASURY_SPLIT if pool_kind == PoolKind.TREASURY else DEFAULT_YIELD_SPLIT

    async def _require_position(self, meta: LogMeta, staker: str) -> Stake:
        position = await self.stakes.get_position(
            meta.chain_id, meta.contract_address, staker
        )
        if position is None:
            raise HandlerReferenceMissing(
                f"No stake for {staker} in pool {meta.contract_address} ({meta.short()})"
            )
        return position

    async def staked(self, event: Staked) -> Stake:
        """Create the position or add to its principal."""
        meta = event.meta
        pool_kind = pool_kind_for(meta.contract_kind)
        position = await self.stakes.get_position(
            meta.chain_id, meta.contract_address, event.staker
        )
        now = utcnow()
        was_active = position is not None and position.is_active

        if position is None:
            dao, staker_share, platform = event.split or self._default_split(pool_kind)
            position = await self.stakes.create(
                chain_id=meta.chain_id,
                pool_kind=pool_kind.value,
                pool_address=meta.contract_address,
                fundraiser_id=event.fundraiser_id,
                staker=event.staker,
                principal=event.amount,
                dao_share=dao,
                staker_share=staker_share,
                platform_share=platform,
                pending_yield=0,
                claimed_yield=0,
                pending_reward=0,
                claimed_reward=0,
                is_active=event.amount > 0,
                staked_at=now,
                first_tx_hash=meta.tx_hash,
                last_block=meta.block_number,
            )
        else:
            position.principal += event.amount
            if event.split is not None:
                position.dao_share, position.staker_share, position.platform_share = event.split
            if event.fundraiser_id is not None:
                position.fundraiser_id = event.fundraiser_id
            if not position.is_active and position.principal > 0:
                position.is_active = True
                position.staked_at = now
                position.unstaked_at = None
            position.last_block = max(position.last_block, meta.block_number)

        logger.debug(
            f"[Staking] {pool_kind.value} stake {event.staker[:10]} +{event.amount} "
            f"-> {position.principal}"
        )
        await self._update_pool_stats(
            meta,
            pool_kind,
            total_staked_principal=event.amount,
            stakers_count=int(position.is_active) - int(was_active),
        )
        return position

    async def unstaked(self, event: Unstaked) -> Stake:
        """
        Subtract from principal; deactivate exactly at zero.

        Raises:
            HandlerReferenceMissing: No position for the staker yet
            LedgerInvariantViolation: Amount exceeds principal
        """
        meta = event.meta
        position = await self._require_position(meta, event.staker)

        if event.amount > position.principal:
            raise LedgerInvariantViolation(
                f"Unstake of {event.amount} exceeds principal {position.principal} "
                f"for {event.staker} in {meta.contract_address} ({meta.short()})"
            )

        was_active = position.is_active
        position.principal -= event.amount
        if position.principal == 0:
            position.is_active = False
            position.unstaked_at = utcnow()
        position.last_block = max(position.last_block, meta.block_number)

        await self._update_pool_stats(
            meta,
            PoolKind(position.pool_kind),
            total_staked_principal=-event.amount,
            stakers_count=int(position.is_active) - int(was_active),
        )
        return position

    async def yield_split_set(self, event: YieldSplitSet) -> Stake:
        """Record a staker's split; a split set before staking creates an empty position."""
        meta = event.meta
        reason = validate_yield_split(*event.split)
        if reason:
            raise LedgerInvariantViolation(
                f"Invalid yield split {event.split} for {event.staker}: {reason}"
            )

        position = await self.stakes.get_position(
            meta.chain_id, meta.contract_address, event.staker
        )
        if position is None:
            position = await self.stakes.create(
                chain_id=meta.chain_id,
                pool_kind=pool_kind_for(meta.contract_kind).value,
                pool_address=meta.contract_address,
                fundraiser_id=event.fundraiser_id,
                staker=event.staker,
                principal=0,
                dao_share=event.split[0],
                staker_share=event.split[1],
                platform_share=event.split[2],
                pending_yield=0,
                claimed_yield=0,
                pending_reward=0,
                claimed_reward=0,
                is_active=False,
                first_tx_hash=meta.tx_hash,
                last_block=meta.block_number,
            )
        else:
            position.dao_share, position.staker_share, position.platform_share = event.split
            position.last_block = max(position.last_block, meta.block_number)
        return position

    async def harvest(
        self,
        meta: LogMeta,
        total_yield: int,
        dao_amount: int,
        staker_amount: int,
        platform_amount: int,
        fundraiser_id: int | None = None,
        allow_empty: bool = False,
    ) -> PoolHarvest:
        """
        Distribute a harvest over the pool's active stakes by principal.

        Each stake gets floor(amount * principal / total_principal) of the
        staker, dao and platform amounts; what the floors leave is retained.

        Args:
            meta: Harvest log
            total_yield: Total harvested, as emitted
            dao_amount: DAO or cause portion, as emitted
            staker_amount: Portion distributed to stakers
            platform_amount: Platform portion, as emitted
            fundraiser_id: Campaign id for campaign pools
            allow_empty: Record the harvest as fully retained when nobody is staked

        Raises:
            HandlerReferenceMissing: No active stakes and allow_empty is False (terminal)
        """
        pool_kind = pool_kind_for(meta.contract_kind)
        active = [
            s for s in await self.stakes.get_active_stakes(meta.chain_id, meta.contract_address)
            if s.principal > 0
        ]

        if not active and not allow_empty:
            raise HandlerReferenceMissing(
                f"Harvest in {meta.contract_address} with no active stakes ({meta.short()})",
                retryable=False,
            )

        principals = [s.principal for s in active]
        staker_alloc = allocate_pro_rata(staker_amount, principals)
        dao_alloc = allocate_pro_rata(dao_amount, principals)
        platform_alloc = allocate_pro_rata(platform_amount, principals)

        pool_harvest = await self.harvests.create(
            chain_id=meta.chain_id,
            tx_hash=meta.tx_hash,
            log_index=meta.log_index,
            block_number=meta.block_number,
            pool_kind=pool_kind.value,
            pool_address=meta.contract_address,
            fundraiser_id=fundraiser_id,
            total_yield=total_yield,
            dao_amount=dao_amount,
            staker_amount=staker_amount,
            platform_amount=platform_amount,
            distributed_amount=staker_alloc.distributed,
            retained_amount=staker_alloc.retained,
            recipients=len(active),
        )

        for stake, staker_share, dao_share, platform_share in zip(
            active, staker_alloc.shares, dao_alloc.shares, platform_alloc.shares
        ):
            await self.records.create(
                stake_id=stake.id,
                pool_harvest_id=pool_harvest.id,
                chain_id=meta.chain_id,
                tx_hash=meta.tx_hash,
                log_index=meta.log_index,
                block_number=meta.block_number,
                principal_at_harvest=stake.principal,
                total_yield=total_yield,
                dao_amount=dao_share,
                staker_amount=staker_share,
                platform_amount=platform_share,
            )
            stake.pending_yield += staker_share

        logger.info(
            f"[Staking] Harvest {staker_amount} over {len(active)} stakes in "
            f"{meta.contract_address[:10]}: distributed={staker_alloc.distributed} "
            f"retained={staker_alloc.retained}"
        )
        stats = await self._update_pool_stats(
            meta,
            pool_kind,
            total_yield_harvested=total_yield,
            total_yield_distributed=staker_alloc.distributed,
            total_yield_retained=staker_alloc.retained,
        )
        if stats.last_harvest_block is None or meta.block_number >= stats.last_harvest_block:
            stats.last_harvest_block = meta.block_number
            stats.last_harvest_at = pool_harvest.harvested_at
        await self.session.flush()
        return pool_harvest

    async def pool_yield_harvested(self, event: PoolYieldHarvested) -> PoolHarvest:
        return await self.harvest(
            event.meta,
            total_yield=event.total_yield,
            dao_amount=event.dao_amount,
            staker_amount=event.staker_amount,
            platform_amount=event.platform_amount,
            fundraiser_id=event.fundraiser_id,
        )

    async def yield_claimed(self, event: YieldClaimed) -> Stake:
        """Zero pending yield and book the claimed amount. Principal is untouched."""
        position = await self._require_position(event.meta, event.staker)
        position.pending_yield = 0
        position.claimed_yield += event.amount
        await self._update_pool_stats(
            event.meta, PoolKind(position.pool_kind), total_yield_claimed=event.amount
        )
        return position

    async def reward_paid(self, event: RewardPaid) -> Stake:
        position = await self._require_position(event.meta, event.staker)
        position.pending_reward = 0
        position.claimed_reward += event.amount
        return position

    async def _update_pool_stats(
        self, meta: LogMeta, pool_kind: PoolKind, **deltas: int
    ) -> PoolStats:
        """Move the pool aggregate by one event's amounts, or rebuild it if missing."""
        stats = await self.stats.get_by(
            for_update=True, chain_id=meta.chain_id, pool_address=meta.contract_address
        )
        if stats is None:
            return await self.refresh_pool_stats(meta.chain_id, pool_kind, meta.contract_address)
        add_deltas(stats, **deltas)
        await self.session.flush()
        return stats

    async def refresh_pool_stats(
        self, chain_id: int, pool_kind: PoolKind, pool_address: str
    ) -> PoolStats:
        """Rebuild the pool aggregate from stakes and harvests."""
        await self.session.flush()
        stakes = await self.stakes.get_pool_stakes(chain_id, pool_address)
        harvests = await self.harvests.get_for_pool(chain_id, pool_address)
        stats = await self.stats.get_or_create(chain_id, pool_kind.value, pool_address)

        active = [s for s in stakes if s.is_active]
        stats.total_staked_principal = sum(s.principal for s in active)
        stats.stakers_count = len(active)
        stats.total_yield_harvested = sum(h.total_yield for h in harvests)
        stats.total_yield_distributed = sum(h.distributed_amount for h in harvests)
        stats.total_yield_retained = sum(h.retained_amount for h in harvests)
        stats.total_yield_claimed = sum(s.claimed_yield for s in stakes)
        if harvests:
            latest = max(harvests, key=lambda h: (h.block_number, h.log_index))
            stats.last_harvest_block = latest.block_number
            stats.last_harvest_at = latest.harvested_at

        await self.session.flush()
        return stats
