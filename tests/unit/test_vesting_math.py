"""
Unit tests for vesting arithmetic and enum parsing.
"""

from types import SimpleNamespace

import pytest

from chainledger.config.constants import (
    DONATION_REWARD_VESTING_SECONDS,
    ENGAGEMENT_REWARD_VESTING_SECONDS,
)
from chainledger.models.enums import ContractKind, FeeSourceType, VestingType
from chainledger.services.ledger.vesting import claimable_amount, vested_amount, vesting_type_for


class TestVestedAmount:
    """Test linear vesting."""

    def test_before_start(self):
        assert vested_amount(1000, start_time=100, duration=50, now=99) == 0

    def test_at_start(self):
        assert vested_amount(1000, start_time=100, duration=50, now=100) == 0

    def test_halfway(self):
        assert vested_amount(1000, start_time=100, duration=50, now=125) == 500

    def test_floors_fraction(self):
        # 1000 * 1 / 3 = 333.33
        assert vested_amount(1000, start_time=0, duration=3, now=1) == 333

    def test_at_end(self):
        assert vested_amount(1000, start_time=100, duration=50, now=150) == 1000

    def test_after_end(self):
        assert vested_amount(1000, start_time=100, duration=50, now=10**9) == 1000

    def test_zero_duration_vests_immediately(self):
        assert vested_amount(1000, start_time=100, duration=0, now=100) == 1000


class TestClaimableAmount:
    """Test claimable = vested - released."""

    def _schedule(self, released: int) -> SimpleNamespace:
        return SimpleNamespace(
            total_amount=1000, released_amount=released, start_time=0, duration=100
        )

    def test_claimable_subtracts_released(self):
        assert claimable_amount(self._schedule(200), now=50) == 300

    def test_claimable_never_negative(self):
        assert claimable_amount(self._schedule(800), now=50) == 0

    def test_fully_vested(self):
        assert claimable_amount(self._schedule(0), now=1000) == 1000


class TestVestingType:
    """Test schedule type inference."""

    def test_donation_reward(self):
        assert vesting_type_for(DONATION_REWARD_VESTING_SECONDS) is VestingType.DONATION_REWARD

    def test_engagement_reward(self):
        assert vesting_type_for(ENGAGEMENT_REWARD_VESTING_SECONDS) is VestingType.ENGAGEMENT_REWARD

    def test_anything_else_is_ecosystem(self):
        assert vesting_type_for(365 * 24 * 3600) is VestingType.ECOSYSTEM


class TestFeeSourceType:
    """Test mapping of free-form fee source strings."""

    @pytest.mark.parametrize(
        "source, expected",
        [
            ("STAKING_POOL", FeeSourceType.STAKING_POOL),
            ("StakingPool", FeeSourceType.STAKING_POOL),
            ("staking", FeeSourceType.STAKING_POOL),
            ("ImpactDAO", FeeSourceType.IMPACT_DAO_POOL),
            ("wealth-building", FeeSourceType.WEALTH_BUILDING),
            ("Endowment", FeeSourceType.WEALTH_BUILDING),
            ("donation", FeeSourceType.FUNDRAISER),
            ("bridge", FeeSourceType.OTHER),
        ],
    )
    def test_from_source(self, source, expected):
        assert FeeSourceType.from_source(source) is expected


class TestContractKindParse:
    def test_parse_instance(self):
        assert ContractKind.parse(ContractKind.STAKING_POOL) is ContractKind.STAKING_POOL

    def test_parse_unknown(self):
        with pytest.raises(ValueError, match="Unknown contract kind"):
            ContractKind.parse("FundraiserFactory")
