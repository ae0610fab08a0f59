"""
Domain ledger handlers.

Each ledger applies one decoded event inside the caller's transaction.
"""

from chainledger.services.ledger.splits import (
    SplitResult,
    allocate_pro_rata,
    preview_donation_split,
    preview_yield_split,
    split_amount,
    validate_yield_split,
)
from chainledger.services.ledger.staking import StakingLedger
from chainledger.services.ledger.treasury import TreasuryLedger
from chainledger.services.ledger.vesting import VestingLedger, claimable_amount, vested_amount
from chainledger.services.ledger.wealth_building import WealthBuildingLedger

__all__ = [
    "SplitResult",
    "StakingLedger",
    "TreasuryLedger",
    "VestingLedger",
    "WealthBuildingLedger",
    "allocate_pro_rata",
    "claimable_amount",
    "preview_donation_split",
    "preview_yield_split",
    "split_amount",
    "validate_yield_split",
    "vested_amount",
]
