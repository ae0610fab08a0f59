"""
Integration tests for the vesting ledger.
"""

import time

import pytest

from chainledger.models.enums import ContractKind, VestingType
from chainledger.repositories.vesting_repository import VestingClaimRepository
from chainledger.services.indexer import events as ev
from chainledger.services.ledger.vesting import VestingLedger, claimable_amount
from chainledger.utils.exceptions import HandlerReferenceMissing, LedgerInvariantViolation

from conftest import ALICE, TOKEN

VT = ContractKind.VESTING_TOKEN
THIRTY_DAYS = 30 * 24 * 3600


@pytest.fixture
def v_meta(make_meta):
    counter = iter(range(1, 10_000))

    def _meta(event_name: str):
        return make_meta(VT, TOKEN, event_name, block=next(counter))

    return _meta


class TestSchedules:
    """Test schedule creation."""

    @pytest.mark.asyncio
    async def test_create_schedule(self, session, v_meta):
        ledger = VestingLedger(session)
        start = int(time.time())

        schedule = await ledger.schedule_created(
            ev.VestingScheduleCreated(v_meta("VestingScheduleCreated"), ALICE, 1, 900, THIRTY_DAYS, start)
        )

        assert schedule.vesting_type == VestingType.DONATION_REWARD.value
        assert schedule.released_amount == 0
        assert schedule.is_fully_vested is False
        assert schedule.is_fully_claimed is False
        assert claimable_amount(schedule, now=start + THIRTY_DAYS // 3) == 300

    @pytest.mark.asyncio
    async def test_duplicate_schedule_keeps_first(self, session, v_meta):
        ledger = VestingLedger(session)
        first = await ledger.schedule_created(
            ev.VestingScheduleCreated(v_meta("VestingScheduleCreated"), ALICE, 1, 900, 100, 0)
        )

        second = await ledger.schedule_created(
            ev.VestingScheduleCreated(v_meta("VestingScheduleCreated"), ALICE, 1, 5, 100, 0)
        )

        assert second.id == first.id
        assert second.total_amount == 900


class TestClaims:
    """Test VestedTokensClaimed handling."""

    @pytest.mark.asyncio
    async def test_claims_accumulate_until_fully_claimed(self, session, v_meta):
        ledger = VestingLedger(session)
        schedule = await ledger.schedule_created(
            ev.VestingScheduleCreated(v_meta("VestingScheduleCreated"), ALICE, 1, 900, 100, 0)
        )
        assert schedule.is_fully_vested is True

        await ledger.tokens_claimed(ev.VestedTokensClaimed(v_meta("VestedTokensClaimed"), ALICE, 1, 400))
        assert schedule.released_amount == 400
        assert schedule.is_fully_claimed is False

        await ledger.tokens_claimed(ev.VestedTokensClaimed(v_meta("VestedTokensClaimed"), ALICE, 1, 500))
        assert schedule.released_amount == 900
        assert schedule.is_fully_claimed is True
        assert claimable_amount(schedule) == 0

        claims = await VestingClaimRepository(session).get_for_schedule(schedule.id)
        assert [c.amount for c in claims] == [400, 500]

    @pytest.mark.asyncio
    async def test_over_release_rejected(self, session, v_meta):
        ledger = VestingLedger(session)
        await ledger.schedule_created(
            ev.VestingScheduleCreated(v_meta("VestingScheduleCreated"), ALICE, 1, 900, 100, 0)
        )

        with pytest.raises(LedgerInvariantViolation):
            await ledger.tokens_claimed(
                ev.VestedTokensClaimed(v_meta("VestedTokensClaimed"), ALICE, 1, 901)
            )

    @pytest.mark.asyncio
    async def test_claim_before_schedule_is_retryable(self, session, v_meta):
        ledger = VestingLedger(session)

        with pytest.raises(HandlerReferenceMissing) as exc_info:
            await ledger.tokens_claimed(
                ev.VestedTokensClaimed(v_meta("VestedTokensClaimed"), ALICE, 9, 1)
            )

        assert exc_info.value.retryable is True


class TestBurns:
    @pytest.mark.asyncio
    async def test_burn_recorded(self, session, v_meta):
        ledger = VestingLedger(session)

        burn = await ledger.tokens_burned(ev.TokensBurned(v_meta("TokensBurned"), ALICE, 77))

        assert burn.amount == 77
        assert burn.account == ALICE
