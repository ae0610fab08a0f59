"""
Vesting ledger.

Schedules are created once and only ever move forward through claims. The
claimable amount is derived from wall-clock time on demand and is never
persisted.
"""

import time

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from chainledger.config.constants import (
    DONATION_REWARD_VESTING_SECONDS,
    ENGAGEMENT_REWARD_VESTING_SECONDS,
)
from chainledger.models.enums import VestingType
from chainledger.models.vesting import TokenBurn, VestingSchedule
from chainledger.repositories.vesting_repository import (
    TokenBurnRepository,
    VestingClaimRepository,
    VestingScheduleRepository,
)
from chainledger.services.indexer.events import (
    TokensBurned,
    VestedTokensClaimed,
    VestingScheduleCreated,
)
from chainledger.utils.exceptions import HandlerReferenceMissing, LedgerInvariantViolation


def vesting_type_for(duration: int) -> VestingType:
    """Infer the schedule type from its duration."""
    if duration == DONATION_REWARD_VESTING_SECONDS:
        return VestingType.DONATION_REWARD
    if duration == ENGAGEMENT_REWARD_VESTING_SECONDS:
        return VestingType.ENGAGEMENT_REWARD
    return VestingType.ECOSYSTEM


def vested_amount(total: int, start_time: int, duration: int, now: int) -> int:
    """
    Linearly vested amount at a unix timestamp.

    Nothing before start, everything from start + duration, and
    total * elapsed // duration in between.
    """
    if now < start_time:
        return 0
    if duration <= 0 or now >= start_time + duration:
        return total
    return total * (now - start_time) // duration


def claimable_amount(schedule: VestingSchedule, now: int | None = None) -> int:
    """Currently claimable amount of a schedule; never negative."""
    if now is None:
        now = int(time.time())
    vested = vested_amount(schedule.total_amount, schedule.start_time, schedule.duration, now)
    return max(0, vested - schedule.released_amount)


class VestingLedger:
    """Schedule, claim and burn mutations of the vesting token."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.schedules = VestingScheduleRepository(session)
        self.claims = VestingClaimRepository(session)
        self.burns = TokenBurnRepository(session)

    async def schedule_created(self, event: VestingScheduleCreated) -> VestingSchedule:
        meta = event.meta
        existing = await self.schedules.get_schedule(
            meta.chain_id, meta.contract_address, event.schedule_id
        )
        if existing is not None:
            logger.warning(
                f"[Vesting] Schedule {event.schedule_id} already exists, keeping first ({meta.short()})"
            )
            return existing

        now = int(time.time())
        schedule = await self.schedules.create(
            chain_id=meta.chain_id,
            contract_address=meta.contract_address,
            schedule_id=event.schedule_id,
            recipient=event.recipient,
            vesting_type=vesting_type_for(event.duration).value,
            total_amount=event.amount,
            released_amount=0,
            start_time=event.start_time,
            duration=event.duration,
            is_fully_vested=now >= event.start_time + event.duration,
            is_fully_claimed=event.amount == 0,
            tx_hash=meta.tx_hash,
            block_number=meta.block_number,
        )
        logger.info(
            f"[Vesting] Schedule {event.schedule_id} for {event.recipient[:10]}: "
            f"{event.amount} over {event.duration}s ({schedule.vesting_type})"
        )
        return schedule

    async def tokens_claimed(self, event: VestedTokensClaimed) -> VestingSchedule:
        """
        Add a claim to the schedule's released amount.

        Raises:
            HandlerReferenceMissing: Schedule not applied yet
            LedgerInvariantViolation: Claim would release more than the total
        """
        meta = event.meta
        schedule = await self.schedules.get_schedule(
            meta.chain_id, meta.contract_address, event.schedule_id
        )
        if schedule is None:
            raise HandlerReferenceMissing(
                f"No vesting schedule {event.schedule_id} ({meta.short()})"
            )

        released = schedule.released_amount + event.amount
        if released > schedule.total_amount:
            raise LedgerInvariantViolation(
                f"Claim of {event.amount} on schedule {event.schedule_id} would release "
                f"{released} of {schedule.total_amount}"
            )

        await self.claims.create(
            chain_id=meta.chain_id,
            tx_hash=meta.tx_hash,
            log_index=meta.log_index,
            block_number=meta.block_number,
            schedule_pk=schedule.id,
            recipient=event.recipient,
            amount=event.amount,
        )

        schedule.released_amount = released
        schedule.is_fully_claimed = released == schedule.total_amount
        schedule.is_fully_vested = int(time.time()) >= schedule.end_time

        await self.session.flush()
        return schedule

    async def tokens_burned(self, event: TokensBurned) -> TokenBurn:
        meta = event.meta
        return await self.burns.create(
            chain_id=meta.chain_id,
            tx_hash=meta.tx_hash,
            log_index=meta.log_index,
            block_number=meta.block_number,
            contract_address=meta.contract_address,
            account=event.account,
            amount=event.amount,
        )
