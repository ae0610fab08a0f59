"""
Treasury ledger models.
"""

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from chainledger.models.base import Base, EventRefMixin, TimestampMixin, utcnow
from chainledger.models.types import TokenAmount


class PlatformFee(EventRefMixin, Base):
    """Fee received by the treasury from a platform contract."""

    __tablename__ = "platform_fees"
    __table_args__ = (
        UniqueConstraint("tx_hash", "log_index", "chain_id", name="uq_platform_fee_log"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    treasury_address: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    source_contract: Mapped[str] = mapped_column(String(42), nullable=False)
    source_type: Mapped[str] = mapped_column(String(32), nullable=False)
    source_label: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    amount: Mapped[int] = mapped_column(TokenAmount, nullable=False)

    is_staked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    staked_tx_hash: Mapped[str | None] = mapped_column(String(66), nullable=True)
    staked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    received_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )


class FeeStake(EventRefMixin, Base):
    """A FeesStaked event: accumulated fees moved into yield generation."""

    __tablename__ = "fee_stakes"
    __table_args__ = (
        UniqueConstraint("tx_hash", "log_index", "chain_id", name="uq_fee_stake_log"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    treasury_address: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    amount: Mapped[int] = mapped_column(TokenAmount, nullable=False)
    endowment_amount: Mapped[int] = mapped_column(TokenAmount, nullable=False)
    operational_amount: Mapped[int] = mapped_column(TokenAmount, nullable=False)
    fees_marked: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    staked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )


class TreasuryStats(TimestampMixin, Base):
    """Per-treasury aggregates, rebuilt from fees, fee stakes, harvests and stakes."""

    __tablename__ = "treasury_stats"
    __table_args__ = (
        UniqueConstraint("chain_id", "treasury_address", name="uq_treasury_stats_treasury"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    chain_id: Mapped[int] = mapped_column(Integer, nullable=False)
    treasury_address: Mapped[str] = mapped_column(String(42), nullable=False)

    total_fees_collected: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)
    pending_fees_to_stake: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)
    total_fees_staked: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)
    operational_funds: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)
    endowment_principal: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)
    endowment_lifetime_yield: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)
    total_yield_distributed: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)

    last_fee_staked_block: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
