"""
Wealth-building (endowment) ledger models.
"""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from chainledger.models.base import Base, EventRefMixin, TimestampMixin, utcnow
from chainledger.models.types import TokenAmount


class WealthDonation(EventRefMixin, Base):
    """A DonationMade event with the contract-computed split, stored verbatim."""

    __tablename__ = "wealth_donations"
    __table_args__ = (
        UniqueConstraint("tx_hash", "log_index", "chain_id", name="uq_wealth_donation_log"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    contract_address: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    donor: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    fundraiser_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)

    total_amount: Mapped[int] = mapped_column(TokenAmount, nullable=False)
    direct_amount: Mapped[int] = mapped_column(TokenAmount, nullable=False)
    endowment_amount: Mapped[int] = mapped_column(TokenAmount, nullable=False)
    platform_fee: Mapped[int] = mapped_column(TokenAmount, nullable=False)

    donated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )


class EndowmentRecord(TimestampMixin, Base):
    """A donor's endowment in one fundraiser."""

    __tablename__ = "endowment_records"
    __table_args__ = (
        UniqueConstraint(
            "chain_id", "contract_address", "donor", "fundraiser_id",
            name="uq_endowment_donor_fundraiser",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    chain_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    contract_address: Mapped[str] = mapped_column(String(42), nullable=False)
    donor: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    fundraiser_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)

    principal: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)
    lifetime_yield: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)
    cause_yield_paid: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)
    donor_yield_earned: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)
    donor_stock_value: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)

    donations_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_donation_block: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)


class EndowmentHarvest(EventRefMixin, Base):
    """Immutable record of one endowment yield harvest."""

    __tablename__ = "endowment_harvests"
    __table_args__ = (
        UniqueConstraint("tx_hash", "log_index", "chain_id", name="uq_endowment_harvest_log"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    endowment_id: Mapped[int] = mapped_column(
        ForeignKey("endowment_records.id", ondelete="CASCADE"), nullable=False, index=True
    )
    total_yield: Mapped[int] = mapped_column(TokenAmount, nullable=False)
    cause_amount: Mapped[int] = mapped_column(TokenAmount, nullable=False)
    donor_amount: Mapped[int] = mapped_column(TokenAmount, nullable=False)
    retained_amount: Mapped[int] = mapped_column(TokenAmount, nullable=False)

    harvested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )


class FundraiserEndowment(TimestampMixin, Base):
    """Per-fundraiser aggregate, rebuilt from donations and endowment records."""

    __tablename__ = "fundraiser_endowments"
    __table_args__ = (
        UniqueConstraint(
            "chain_id", "contract_address", "fundraiser_id",
            name="uq_fundraiser_endowment",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    chain_id: Mapped[int] = mapped_column(Integer, nullable=False)
    contract_address: Mapped[str] = mapped_column(String(42), nullable=False)
    fundraiser_id: Mapped[int] = mapped_column(BigInteger, nullable=False)

    raised_amount: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)
    endowment_principal: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)
    endowment_yield: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)
    cause_yield_paid: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)
    platform_fees: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)
    donors_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    donations_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class StockPurchase(EventRefMixin, Base):
    """Donor-share yield converted into a stock token."""

    __tablename__ = "stock_purchases"
    __table_args__ = (
        UniqueConstraint("tx_hash", "log_index", "chain_id", name="uq_stock_purchase_log"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    contract_address: Mapped[str] = mapped_column(String(42), nullable=False)
    donor: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    stock_token: Mapped[str] = mapped_column(String(42), nullable=False)
    usdc_amount: Mapped[int] = mapped_column(TokenAmount, nullable=False)
    stock_amount: Mapped[int] = mapped_column(TokenAmount, nullable=False)

    purchased_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )


class StockPortfolio(TimestampMixin, Base):
    """Per donor, per stock token balance and cost basis."""

    __tablename__ = "stock_portfolios"
    __table_args__ = (
        UniqueConstraint(
            "chain_id", "contract_address", "donor", "stock_token",
            name="uq_stock_portfolio_holding",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    chain_id: Mapped[int] = mapped_column(Integer, nullable=False)
    contract_address: Mapped[str] = mapped_column(String(42), nullable=False)
    donor: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    stock_token: Mapped[str] = mapped_column(String(42), nullable=False)

    stock_balance: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)
    cost_basis: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)
    purchases_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
