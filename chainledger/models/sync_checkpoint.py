"""
Sync checkpoint model.

Tracks the last fully scanned block per (chain, contract).
"""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from chainledger.models.base import Base, TimestampMixin
from chainledger.models.enums import SyncStatus


class SyncCheckpoint(TimestampMixin, Base):
    """
    Per-contract synchronization watermark.

    Used to:
    - Resume backfill after restart at last_block + 1
    - Report sync status and the last error per contract
    """

    __tablename__ = "sync_checkpoints"
    __table_args__ = (
        UniqueConstraint("chain_id", "contract_address", name="uq_sync_checkpoint_contract"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    chain_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    contract_address: Mapped[str] = mapped_column(String(42), nullable=False)
    contract_kind: Mapped[str] = mapped_column(String(32), nullable=False)

    # Never decreases
    last_block: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    last_sync_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=SyncStatus.SYNCING.value
    )

    # Error tracking
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return (
            f"<SyncCheckpoint chain={self.chain_id} contract={self.contract_address} "
            f"block={self.last_block} status={self.status}>"
        )
