"""
Vesting ledger models.
"""

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from chainledger.models.base import Base, EventRefMixin, TimestampMixin, utcnow
from chainledger.models.types import TokenAmount


class VestingSchedule(TimestampMixin, Base):
    """
    Time-locked token allocation.

    released_amount only increases; is_fully_claimed flips when it reaches
    total_amount. The claimable amount is computed, never stored.
    """

    __tablename__ = "vesting_schedules"
    __table_args__ = (
        UniqueConstraint(
            "chain_id", "contract_address", "schedule_id",
            name="uq_vesting_schedule",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    chain_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    contract_address: Mapped[str] = mapped_column(String(42), nullable=False)
    schedule_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    recipient: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    vesting_type: Mapped[str] = mapped_column(String(32), nullable=False)

    total_amount: Mapped[int] = mapped_column(TokenAmount, nullable=False)
    released_amount: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)

    # Unix seconds, as emitted
    start_time: Mapped[int] = mapped_column(BigInteger, nullable=False)
    duration: Mapped[int] = mapped_column(BigInteger, nullable=False)

    is_fully_vested: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_fully_claimed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    tx_hash: Mapped[str] = mapped_column(String(66), nullable=False)
    block_number: Mapped[int] = mapped_column(BigInteger, nullable=False)

    @property
    def end_time(self) -> int:
        return self.start_time + self.duration


class VestingClaim(EventRefMixin, Base):
    __tablename__ = "vesting_claims"
    __table_args__ = (
        UniqueConstraint("tx_hash", "log_index", "chain_id", name="uq_vesting_claim_log"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    schedule_pk: Mapped[int] = mapped_column(
        ForeignKey("vesting_schedules.id", ondelete="CASCADE"), nullable=False, index=True
    )
    recipient: Mapped[str] = mapped_column(String(42), nullable=False)
    amount: Mapped[int] = mapped_column(TokenAmount, nullable=False)

    claimed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )


class TokenBurn(EventRefMixin, Base):
    __tablename__ = "token_burns"
    __table_args__ = (
        UniqueConstraint("tx_hash", "log_index", "chain_id", name="uq_token_burn_log"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    contract_address: Mapped[str] = mapped_column(String(42), nullable=False)
    account: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    amount: Mapped[int] = mapped_column(TokenAmount, nullable=False)

    burned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
