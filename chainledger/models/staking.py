"""
Staking ledger models.

Campaign pools, the impact pool and treasury FBT staking share one stakes
table; pool_kind tells the variants apart.
"""

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chainledger.models.base import Base, EventRefMixin, TimestampMixin, utcnow
from chainledger.models.types import TokenAmount


class Stake(TimestampMixin, Base):
    """
    A staker's position in one pool.

    Created on the first Staked event (or YieldSplitSet before any stake),
    deactivated but never deleted when principal reaches zero.
    """

    __tablename__ = "stakes"
    __table_args__ = (
        UniqueConstraint("chain_id", "pool_address", "staker", name="uq_stake_pool_staker"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    chain_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    pool_kind: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    pool_address: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    fundraiser_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    staker: Mapped[str] = mapped_column(String(42), nullable=False, index=True)

    principal: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)

    # Yield split in basis points, sums to 10000
    dao_share: Mapped[int] = mapped_column(Integer, nullable=False)
    staker_share: Mapped[int] = mapped_column(Integer, nullable=False)
    platform_share: Mapped[int] = mapped_column(Integer, nullable=False)

    pending_yield: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)
    claimed_yield: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)

    # FBT rewards (impact pool)
    pending_reward: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)
    claimed_reward: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    staked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    unstaked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    first_tx_hash: Mapped[str | None] = mapped_column(String(66), nullable=True)
    last_block: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    harvests: Mapped[list["YieldHarvestRecord"]] = relationship(
        back_populates="stake", lazy="noload"
    )

    @property
    def split(self) -> tuple[int, int, int]:
        return (self.dao_share, self.staker_share, self.platform_share)

    def __repr__(self) -> str:
        return (
            f"<Stake {self.pool_kind} pool={self.pool_address[:10]} "
            f"staker={self.staker[:10]} principal={self.principal} active={self.is_active}>"
        )


class PoolHarvest(EventRefMixin, Base):
    """
    One row per harvest event of a pool.

    distributed_amount + retained_amount == staker_amount: the rounding
    remainder (or the whole staker pool when nobody is staked) stays with
    the pool.
    """

    __tablename__ = "pool_harvests"
    __table_args__ = (
        UniqueConstraint("tx_hash", "log_index", "chain_id", name="uq_pool_harvest_log"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    pool_kind: Mapped[str] = mapped_column(String(16), nullable=False)
    pool_address: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    fundraiser_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    total_yield: Mapped[int] = mapped_column(TokenAmount, nullable=False)
    dao_amount: Mapped[int] = mapped_column(TokenAmount, nullable=False)
    staker_amount: Mapped[int] = mapped_column(TokenAmount, nullable=False)
    platform_amount: Mapped[int] = mapped_column(TokenAmount, nullable=False)

    distributed_amount: Mapped[int] = mapped_column(TokenAmount, nullable=False)
    retained_amount: Mapped[int] = mapped_column(TokenAmount, nullable=False)
    recipients: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    harvested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )


class YieldHarvestRecord(EventRefMixin, Base):
    """
    Immutable per-stake share of one harvest.

    Uniqueness includes stake_id so one harvest log fans out into one row
    per recipient without colliding.
    """

    __tablename__ = "yield_harvest_records"
    __table_args__ = (
        UniqueConstraint(
            "stake_id", "tx_hash", "log_index", "chain_id",
            name="uq_yield_harvest_stake_log",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    stake_id: Mapped[int] = mapped_column(
        ForeignKey("stakes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    pool_harvest_id: Mapped[int] = mapped_column(
        ForeignKey("pool_harvests.id", ondelete="CASCADE"), nullable=False, index=True
    )

    principal_at_harvest: Mapped[int] = mapped_column(TokenAmount, nullable=False)
    total_yield: Mapped[int] = mapped_column(TokenAmount, nullable=False)
    dao_amount: Mapped[int] = mapped_column(TokenAmount, nullable=False)
    staker_amount: Mapped[int] = mapped_column(TokenAmount, nullable=False)
    platform_amount: Mapped[int] = mapped_column(TokenAmount, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    stake: Mapped[Stake] = relationship(back_populates="harvests", lazy="noload")


class PoolStats(TimestampMixin, Base):
    """
    Per-pool aggregates.

    Always rebuilt from stakes and pool_harvests, never incremented in place.
    """

    __tablename__ = "pool_stats"
    __table_args__ = (
        UniqueConstraint("chain_id", "pool_address", name="uq_pool_stats_pool"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    chain_id: Mapped[int] = mapped_column(Integer, nullable=False)
    pool_kind: Mapped[str] = mapped_column(String(16), nullable=False)
    pool_address: Mapped[str] = mapped_column(String(42), nullable=False)

    total_staked_principal: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)
    stakers_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_yield_harvested: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)
    total_yield_distributed: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)
    total_yield_retained: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)
    total_yield_claimed: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)

    last_harvest_block: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    last_harvest_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
