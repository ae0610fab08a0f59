"""
Event router.

Maps (contract kind, event name) to the ledger operation that applies it.
Handlers take the open session and the decoded event; combinations missing
from the table are logged by the dispatcher and ignored.
"""

from collections.abc import Awaitable, Callable
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from chainledger.models.enums import ContractKind
from chainledger.services.ledger.staking import StakingLedger
from chainledger.services.ledger.treasury import TreasuryLedger
from chainledger.services.ledger.vesting import VestingLedger
from chainledger.services.ledger.wealth_building import WealthBuildingLedger

Handler = Callable[[AsyncSession, Any], Awaitable[Any]]


def _staking(method: str) -> Handler:
    async def handle(session: AsyncSession, event: Any) -> Any:
        return await getattr(StakingLedger(session), method)(event)

    handle.__name__ = f"staking_{method}"
    return handle


def _wealth(method: str) -> Handler:
    async def handle(session: AsyncSession, event: Any) -> Any:
        return await getattr(WealthBuildingLedger(session), method)(event)

    handle.__name__ = f"wealth_{method}"
    return handle


def _treasury(method: str) -> Handler:
    async def handle(session: AsyncSession, event: Any) -> Any:
        return await getattr(TreasuryLedger(session), method)(event)

    handle.__name__ = f"treasury_{method}"
    return handle


def _vesting(method: str) -> Handler:
    async def handle(session: AsyncSession, event: Any) -> Any:
        return await getattr(VestingLedger(session), method)(event)

    handle.__name__ = f"vesting_{method}"
    return handle


ROUTES: dict[tuple[ContractKind, str], Handler] = {
    # Impact pool
    (ContractKind.IMPACT_DAO_POOL, "Staked"): _staking("staked"),
    (ContractKind.IMPACT_DAO_POOL, "Unstaked"): _staking("unstaked"),
    (ContractKind.IMPACT_DAO_POOL, "YieldSplitSet"): _staking("yield_split_set"),
    (ContractKind.IMPACT_DAO_POOL, "YieldHarvested"): _staking("pool_yield_harvested"),
    (ContractKind.IMPACT_DAO_POOL, "StakerYieldClaimed"): _staking("yield_claimed"),
    (ContractKind.IMPACT_DAO_POOL, "FBTRewardPaid"): _staking("reward_paid"),
    # Campaign pools
    (ContractKind.STAKING_POOL, "Staked"): _staking("staked"),
    (ContractKind.STAKING_POOL, "Unstaked"): _staking("unstaked"),
    (ContractKind.STAKING_POOL, "YieldSplitSet"): _staking("yield_split_set"),
    (ContractKind.STAKING_POOL, "YieldHarvested"): _staking("pool_yield_harvested"),
    # Wealth-building
    (ContractKind.WEALTH_BUILDING, "DonationMade"): _wealth("donation_made"),
    (ContractKind.WEALTH_BUILDING, "YieldHarvested"): _wealth("yield_harvested"),
    (ContractKind.WEALTH_BUILDING, "StockPurchased"): _wealth("stock_purchased"),
    # Treasury
    (ContractKind.PLATFORM_TREASURY, "FeeReceived"): _treasury("fee_received"),
    (ContractKind.PLATFORM_TREASURY, "FeesStaked"): _treasury("fees_staked"),
    (ContractKind.PLATFORM_TREASURY, "FBTStaked"): _treasury("fbt_staked"),
    (ContractKind.PLATFORM_TREASURY, "FBTUnstaked"): _treasury("fbt_unstaked"),
    (ContractKind.PLATFORM_TREASURY, "YieldClaimed"): _treasury("yield_claimed"),
    (ContractKind.PLATFORM_TREASURY, "YieldHarvested"): _treasury("yield_harvested"),
    # Vesting token
    (ContractKind.VESTING_TOKEN, "VestingScheduleCreated"): _vesting("schedule_created"),
    (ContractKind.VESTING_TOKEN, "VestedTokensClaimed"): _vesting("tokens_claimed"),
    (ContractKind.VESTING_TOKEN, "TokensBurned"): _vesting("tokens_burned"),
}


def route(contract_kind: ContractKind, event_name: str) -> Handler | None:
    """Handler for an event of a contract kind, or None when unmapped."""
    return ROUTES.get((contract_kind, event_name))
