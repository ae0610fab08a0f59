"""
Processed event marker.

One row per log whose ledger mutation has been committed. The unique
constraint on (tx_hash, log_index, chain_id) is what makes repeated
delivery of the same log a no-op.
"""

from datetime import datetime

from sqlalchemy import DateTime, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from chainledger.models.base import Base, EventRefMixin, utcnow
from chainledger.models.enums import ProcessedStatus


class ProcessedEvent(EventRefMixin, Base):
    __tablename__ = "processed_events"
    __table_args__ = (
        UniqueConstraint("tx_hash", "log_index", "chain_id", name="uq_processed_event_log"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    contract_address: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    contract_kind: Mapped[str] = mapped_column(String(32), nullable=False)
    event_name: Mapped[str] = mapped_column(String(64), nullable=False)

    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=ProcessedStatus.APPLIED.value
    )
    detail: Mapped[str | None] = mapped_column(Text, nullable=True)

    processed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<ProcessedEvent {self.event_name} tx={self.tx_hash[:10]} "
            f"log={self.log_index} chain={self.chain_id} status={self.status}>"
        )
