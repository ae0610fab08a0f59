"""
Treasury ledger.

Fee intake and fee staking are booked here; FBT staking events go through
the staking ledger with pool_kind "treasury", after which the treasury
aggregate is moved by the event's amounts.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from chainledger.config.constants import OPERATIONAL_FUNDS_BPS, TOTAL_BASIS
from chainledger.models.base import utcnow
from chainledger.models.enums import FeeSourceType, PoolKind
from chainledger.models.staking import PoolHarvest, Stake
from chainledger.models.treasury import FeeStake, PlatformFee, TreasuryStats
from chainledger.repositories.stake_repository import PoolHarvestRepository, StakeRepository
from chainledger.repositories.treasury_repository import (
    FeeStakeRepository,
    PlatformFeeRepository,
    TreasuryStatsRepository,
)
from chainledger.services.indexer.events import (
    FeeReceived,
    FeesStaked,
    Staked,
    TreasuryYieldHarvested,
    Unstaked,
    YieldClaimed,
)
from chainledger.services.ledger.aggregates import add_deltas
from chainledger.services.ledger.splits import split_amount
from chainledger.services.ledger.staking import StakingLedger


class TreasuryLedger:
    """Platform fee and FBT staking mutations of a treasury contract."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.fees = PlatformFeeRepository(session)
        self.fee_stakes = FeeStakeRepository(session)
        self.stats = TreasuryStatsRepository(session)
        self.staking = StakingLedger(session)

    async def fee_received(self, event: FeeReceived) -> PlatformFee:
        meta = event.meta
        fee = await self.fees.create(
            chain_id=meta.chain_id,
            tx_hash=meta.tx_hash,
            log_index=meta.log_index,
            block_number=meta.block_number,
            treasury_address=meta.contract_address,
            source_contract=event.sender,
            source_type=FeeSourceType.from_source(event.source).value,
            source_label=event.source[:128],
            amount=event.amount,
            is_staked=False,
        )
        logger.info(
            f"[Treasury] Fee {event.amount} from {event.sender[:10]} ({fee.source_type})"
        )
        await self._update_stats(
            meta.chain_id,
            meta.contract_address,
            total_fees_collected=event.amount,
            pending_fees_to_stake=event.amount,
        )
        return fee

    async def fees_staked(self, event: FeesStaked) -> FeeStake:
        """
        Book staked fees and mark every pending fee as staked.

        78% of the staked amount is booked as operational funds.
        """
        meta = event.meta
        pending = await self.fees.get_unstaked(meta.chain_id, meta.contract_address)
        now = utcnow()
        for fee in pending:
            fee.is_staked = True
            fee.staked_tx_hash = meta.tx_hash
            fee.staked_at = now

        operational, _ = split_amount(
            event.amount, (OPERATIONAL_FUNDS_BPS, TOTAL_BASIS - OPERATIONAL_FUNDS_BPS)
        ).shares

        fee_stake = await self.fee_stakes.create(
            chain_id=meta.chain_id,
            tx_hash=meta.tx_hash,
            log_index=meta.log_index,
            block_number=meta.block_number,
            treasury_address=meta.contract_address,
            amount=event.amount,
            endowment_amount=event.endowment_amount,
            operational_amount=operational,
            fees_marked=len(pending),
        )
        logger.info(
            f"[Treasury] Fees staked {event.amount} ({len(pending)} fees), "
            f"operational={operational} endowment={event.endowment_amount}"
        )
        stats = await self._update_stats(
            meta.chain_id,
            meta.contract_address,
            pending_fees_to_stake=-sum(f.amount for f in pending),
            total_fees_staked=event.amount,
            operational_funds=operational,
            endowment_principal=event.endowment_amount,
        )
        stats.last_fee_staked_block = max(stats.last_fee_staked_block or 0, meta.block_number)
        await self.session.flush()
        return fee_stake

    async def fbt_staked(self, event: Staked) -> Stake:
        stake = await self.staking.staked(event)
        await self._update_stats(event.meta.chain_id, event.meta.contract_address)
        return stake

    async def fbt_unstaked(self, event: Unstaked) -> Stake:
        stake = await self.staking.unstaked(event)
        await self._update_stats(event.meta.chain_id, event.meta.contract_address)
        return stake

    async def yield_claimed(self, event: YieldClaimed) -> Stake:
        stake = await self.staking.yield_claimed(event)
        await self._update_stats(
            event.meta.chain_id, event.meta.contract_address, total_yield_distributed=event.amount
        )
        return stake

    async def yield_harvested(self, event: TreasuryYieldHarvested) -> PoolHarvest:
        """
        Distribute platform yield to FBT stakers by stake.

        With no stakers the whole amount is retained as operational funds.
        """
        harvest = await self.staking.harvest(
            event.meta,
            total_yield=event.yield_amount,
            dao_amount=0,
            staker_amount=event.yield_amount,
            platform_amount=0,
            allow_empty=True,
        )
        await self._update_stats(
            event.meta.chain_id,
            event.meta.contract_address,
            operational_funds=harvest.retained_amount,
            endowment_lifetime_yield=event.yield_amount,
        )
        return harvest

    async def _update_stats(
        self, chain_id: int, treasury_address: str, **deltas: int
    ) -> TreasuryStats:
        """Move the treasury aggregate by one event's amounts, or rebuild it if missing."""
        stats = await self.stats.get_by(
            for_update=True, chain_id=chain_id, treasury_address=treasury_address
        )
        if stats is None:
            return await self.refresh_stats(chain_id, treasury_address)
        add_deltas(stats, **deltas)
        await self.session.flush()
        return stats

    async def refresh_stats(self, chain_id: int, treasury_address: str) -> TreasuryStats:
        """Rebuild the treasury aggregate from its source records."""
        await self.session.flush()
        fees = await self.fees.get_for_treasury(chain_id, treasury_address)
        fee_stakes = await self.fee_stakes.get_for_treasury(chain_id, treasury_address)
        harvests = await PoolHarvestRepository(self.session).get_for_pool(chain_id, treasury_address)
        stakes = [
            s for s in await StakeRepository(self.session).get_pool_stakes(chain_id, treasury_address)
            if s.pool_kind == PoolKind.TREASURY.value
        ]
        stats = await self.stats.get_or_create(chain_id, treasury_address)

        stats.total_fees_collected = sum(f.amount for f in fees)
        stats.pending_fees_to_stake = sum(f.amount for f in fees if not f.is_staked)
        stats.total_fees_staked = sum(s.amount for s in fee_stakes)
        stats.operational_funds = (
            sum(s.operational_amount for s in fee_stakes)
            + sum(h.retained_amount for h in harvests)
        )
        stats.endowment_principal = sum(s.endowment_amount for s in fee_stakes)
        stats.endowment_lifetime_yield = sum(h.total_yield for h in harvests)
        stats.total_yield_distributed = sum(s.claimed_yield for s in stakes)
        if fee_stakes:
            stats.last_fee_staked_block = max(s.block_number for s in fee_stakes)

        await self.session.flush()
        return stats
