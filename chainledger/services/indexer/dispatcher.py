"""
Event dispatcher.

Decodes one raw log, routes it and applies it exactly once in effect. The
ProcessedEvent marker and every ledger mutation of a log share a single
transaction, so a log is either fully applied and marked, or neither.
"""

from collections import Counter
from collections.abc import Iterable, Mapping
from enum import StrEnum
from typing import Any

from loguru import logger
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chainledger.config.settings import ContractConfig
from chainledger.models.enums import ProcessedStatus
from chainledger.repositories.processed_event_repository import ProcessedEventRepository
from chainledger.services.indexer.decoding import decode_log, log_position
from chainledger.services.indexer.events import LogMeta, UnknownEvent
from chainledger.services.indexer.router import Handler, route
from chainledger.utils.exceptions import (
    DecodeFailed,
    HandlerReferenceMissing,
    LedgerInvariantViolation,
)


class DispatchOutcome(StrEnum):
    APPLIED = "applied"
    DUPLICATE = "duplicate"
    SKIPPED = "skipped"
    UNKNOWN = "unknown"
    UNROUTED = "unrouted"
    DECODE_FAILED = "decode_failed"
    FAILED = "failed"


class EventDispatcher:
    """
    Applies raw logs through the ledger handlers.

    Safe to call concurrently from backfill, sweep and live delivery: the
    unique (tx_hash, log_index, chain_id) marker decides which delivery wins.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        router=route,
    ) -> None:
        self.session_factory = session_factory
        self.router = router
        self.stats: Counter[str] = Counter()

    async def dispatch(
        self, contract: ContractConfig, raw_log: Mapping[str, Any]
    ) -> DispatchOutcome:
        """
        Apply one raw log of a configured contract.

        Args:
            contract: Contract the log was fetched for
            raw_log: Log as returned by eth_getLogs or a filter

        Returns:
            What happened to the log
        """
        outcome = await self._dispatch(contract, raw_log)
        self.stats[outcome.value] += 1
        return outcome

    async def dispatch_ordered(
        self,
        contract: ContractConfig,
        raw_logs: Iterable[Mapping[str, Any]],
        stop_on_failure: bool = False,
    ) -> list[tuple[tuple[int, int], DispatchOutcome]]:
        """
        Dispatch logs one by one in (block, logIndex) order.

        Args:
            contract: Contract the logs were fetched for
            raw_logs: Raw logs in any order
            stop_on_failure: Leave the logs after the first FAILED one undispatched

        Returns:
            (position, outcome) per dispatched log, in chain order
        """
        results = []
        for raw_log in sorted(raw_logs, key=log_position):
            outcome = await self.dispatch(contract, raw_log)
            results.append((log_position(raw_log), outcome))
            if stop_on_failure and outcome is DispatchOutcome.FAILED:
                break
        return results

    async def dispatch_many(
        self, contract: ContractConfig, raw_logs: Iterable[Mapping[str, Any]]
    ) -> Counter[str]:
        """Dispatch every log in chain order and count the outcomes."""
        return Counter(
            outcome.value for _, outcome in await self.dispatch_ordered(contract, raw_logs)
        )

    async def _dispatch(
        self, contract: ContractConfig, raw_log: Mapping[str, Any]
    ) -> DispatchOutcome:
        try:
            event = decode_log(raw_log, contract.kind, contract.chain_id)
        except DecodeFailed as e:
            logger.warning(f"[Dispatch] Undecodable log from {contract.display_name}: {e}")
            return DispatchOutcome.DECODE_FAILED

        meta = event.meta
        if isinstance(event, UnknownEvent):
            logger.debug(f"[Dispatch] Unknown topic {event.topic0} from {contract.display_name}")
            return DispatchOutcome.UNKNOWN

        handler = self.router(meta.contract_kind, meta.event_name)
        if handler is None:
            logger.info(
                f"[Dispatch] No handler for {meta.contract_kind.value}.{meta.event_name}, ignored"
            )
            return DispatchOutcome.UNROUTED

        return await self._apply(handler, meta, event)

    async def _apply(self, handler: Handler, meta: LogMeta, event: Any) -> DispatchOutcome:
        async with self.session_factory() as session:
            processed = ProcessedEventRepository(session)
            if await processed.is_processed(meta):
                logger.debug(f"[Dispatch] Duplicate {meta.short()}")
                return DispatchOutcome.DUPLICATE

            try:
                await processed.mark(meta)
                await handler(session, event)
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                if await processed.is_processed(meta):
                    logger.debug(f"[Dispatch] Duplicate {meta.short()} (concurrent delivery)")
                    return DispatchOutcome.DUPLICATE
                logger.warning(f"[Dispatch] Integrity error applying {meta.short()}: {e}")
                return DispatchOutcome.FAILED
            except HandlerReferenceMissing as e:
                await session.rollback()
                if e.retryable:
                    logger.warning(f"[Dispatch] {e}; left for a later scan")
                    return DispatchOutcome.FAILED
                return await self._record_skipped(session, meta, str(e))
            except LedgerInvariantViolation as e:
                await session.rollback()
                logger.error(f"[Dispatch] Invariant violation, {meta.short()} not applied: {e}")
                return DispatchOutcome.FAILED
            except SQLAlchemyError as e:
                await session.rollback()
                logger.warning(f"[Dispatch] Database error applying {meta.short()}: {e}")
                return DispatchOutcome.FAILED

        logger.debug(f"[Dispatch] Applied {meta.short()}")
        return DispatchOutcome.APPLIED

    async def _record_skipped(
        self, session: AsyncSession, meta: LogMeta, reason: str
    ) -> DispatchOutcome:
        logger.warning(f"[Dispatch] Skipping {meta.short()}: {reason}")
        try:
            await ProcessedEventRepository(session).mark(
                meta, ProcessedStatus.SKIPPED, detail=reason[:500]
            )
            await session.commit()
        except IntegrityError:
            await session.rollback()
            return DispatchOutcome.DUPLICATE
        return DispatchOutcome.SKIPPED
