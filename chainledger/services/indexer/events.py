"""
Decoded event types.

Every log the indexer understands decodes into exactly one of the frozen
dataclasses below; anything else becomes UnknownEvent. DecodedEvent is the
closed union handlers and the router work with.
"""

from dataclasses import dataclass

from chainledger.models.enums import ContractKind


@dataclass(frozen=True)
class LogMeta:
    """Where a log came from. (tx_hash, log_index, chain_id) is its identity."""

    chain_id: int
    contract_address: str
    contract_kind: ContractKind
    event_name: str
    tx_hash: str
    log_index: int
    block_number: int

    @property
    def key(self) -> tuple[str, int, int]:
        return (self.tx_hash, self.log_index, self.chain_id)

    def short(self) -> str:
        return f"{self.event_name}@{self.tx_hash[:10]}:{self.log_index} chain={self.chain_id}"


# ----------------------------------------------------------------------
# Staking (campaign pool, impact pool, treasury FBT staking)
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class Staked:
    meta: LogMeta
    staker: str
    amount: int
    # (dao or cause, staker, platform) in bps when the event carries it
    split: tuple[int, int, int] | None = None
    fundraiser_id: int | None = None


@dataclass(frozen=True)
class Unstaked:
    meta: LogMeta
    staker: str
    amount: int
    fundraiser_id: int | None = None


@dataclass(frozen=True)
class YieldSplitSet:
    meta: LogMeta
    staker: str
    split: tuple[int, int, int]
    fundraiser_id: int | None = None


@dataclass(frozen=True)
class PoolYieldHarvested:
    """Harvest of a staking pool; amounts are absolute, already split on-chain."""

    meta: LogMeta
    total_yield: int
    dao_amount: int
    staker_amount: int
    platform_amount: int
    fundraiser_id: int | None = None


@dataclass(frozen=True)
class YieldClaimed:
    meta: LogMeta
    staker: str
    amount: int


@dataclass(frozen=True)
class RewardPaid:
    meta: LogMeta
    staker: str
    amount: int


# ----------------------------------------------------------------------
# Wealth-building
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class DonationMade:
    meta: LogMeta
    donor: str
    fundraiser_id: int
    total_amount: int
    direct_amount: int
    endowment_amount: int
    platform_fee: int


@dataclass(frozen=True)
class EndowmentYieldHarvested:
    meta: LogMeta
    donor: str
    fundraiser_id: int
    total_yield: int
    cause_amount: int
    donor_amount: int


@dataclass(frozen=True)
class StockPurchased:
    meta: LogMeta
    donor: str
    stock_token: str
    usdc_amount: int
    stock_amount: int


# ----------------------------------------------------------------------
# Treasury
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class FeeReceived:
    meta: LogMeta
    sender: str
    amount: int
    source: str


@dataclass(frozen=True)
class FeesStaked:
    meta: LogMeta
    amount: int
    endowment_amount: int


@dataclass(frozen=True)
class TreasuryYieldHarvested:
    meta: LogMeta
    yield_amount: int


# ----------------------------------------------------------------------
# Vesting token
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class VestingScheduleCreated:
    meta: LogMeta
    recipient: str
    schedule_id: int
    amount: int
    duration: int
    start_time: int


@dataclass(frozen=True)
class VestedTokensClaimed:
    meta: LogMeta
    recipient: str
    schedule_id: int
    amount: int


@dataclass(frozen=True)
class TokensBurned:
    meta: LogMeta
    account: str
    amount: int


@dataclass(frozen=True)
class UnknownEvent:
    """A log whose topic0 matches no known schema of its contract."""

    meta: LogMeta
    topic0: str | None


DecodedEvent = (
    Staked
    | Unstaked
    | YieldSplitSet
    | PoolYieldHarvested
    | YieldClaimed
    | RewardPaid
    | DonationMade
    | EndowmentYieldHarvested
    | StockPurchased
    | FeeReceived
    | FeesStaked
    | TreasuryYieldHarvested
    | VestingScheduleCreated
    | VestedTokensClaimed
    | TokensBurned
    | UnknownEvent
)
