"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from chainledger.models.base import Base

# Indexer bookkeeping
from chainledger.models.processed_event import ProcessedEvent
from chainledger.models.sync_checkpoint import SyncCheckpoint

# Wealth-building
from chainledger.models.endowment import (
    EndowmentHarvest,
    EndowmentRecord,
    FundraiserEndowment,
    StockPortfolio,
    StockPurchase,
    WealthDonation,
)
from chainledger.models.enums import (
    ContractKind,
    FeeSourceType,
    PoolKind,
    ProcessedStatus,
    SyncStatus,
    VestingType,
)

# Staking
from chainledger.models.staking import PoolHarvest, PoolStats, Stake, YieldHarvestRecord

# Treasury
from chainledger.models.treasury import FeeStake, PlatformFee, TreasuryStats

# Vesting
from chainledger.models.vesting import TokenBurn, VestingClaim, VestingSchedule

__all__ = [
    "Base",
    "ContractKind",
    "EndowmentHarvest",
    "EndowmentRecord",
    "FeeSourceType",
    "FeeStake",
    "FundraiserEndowment",
    "PlatformFee",
    "PoolHarvest",
    "PoolKind",
    "PoolStats",
    "ProcessedEvent",
    "ProcessedStatus",
    "Stake",
    "StockPortfolio",
    "StockPurchase",
    "SyncCheckpoint",
    "SyncStatus",
    "TokenBurn",
    "TreasuryStats",
    "VestingClaim",
    "VestingSchedule",
    "VestingType",
    "WealthDonation",
    "YieldHarvestRecord",
]
