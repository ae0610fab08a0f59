"""
Unit tests for log decoding and routing.
"""

import pytest
from eth_utils import encode_hex, keccak

from chainledger.models.enums import ContractKind
from chainledger.services.indexer import events as ev
from chainledger.services.indexer.decoding import (
    SCHEMAS,
    decode_log,
    log_position,
    schema_for,
    schemas_for,
)
from chainledger.services.indexer.router import ROUTES, route
from chainledger.utils.exceptions import DecodeFailed

from conftest import ALICE, BOB, CAMPAIGN_POOL, CHAIN_ID, IMPACT_POOL, TOKEN, TREASURY, WEALTH


class TestSchemas:
    """Test schema registry."""

    def test_topic0_is_keccak_of_signature(self):
        schema = schema_for(ContractKind.IMPACT_DAO_POOL, "Staked")

        assert schema.signature == "Staked(address,uint256,uint16,uint16,uint16)"
        assert schema.topic0 == encode_hex(keccak(text=schema.signature))

    def test_same_name_differs_per_contract(self):
        """YieldHarvested has a different shape on every contract."""
        topics = {
            schema_for(kind, "YieldHarvested").topic0
            for kind in (
                ContractKind.IMPACT_DAO_POOL,
                ContractKind.STAKING_POOL,
                ContractKind.WEALTH_BUILDING,
                ContractKind.PLATFORM_TREASURY,
            )
        }
        assert len(topics) == 4

    def test_every_kind_has_schemas(self):
        for kind in ContractKind:
            assert schemas_for(kind), kind

    def test_every_schema_is_routed(self):
        """A known event without a handler would silently drop ledger state."""
        for schema in SCHEMAS:
            assert route(schema.contract_kind, schema.name) is not None, schema.signature

    def test_routes_only_known_schemas(self):
        for kind, name in ROUTES:
            assert schema_for(kind, name) is not None, (kind, name)

    def test_unmapped_route(self):
        assert route(ContractKind.VESTING_TOKEN, "Transfer") is None


class TestDecodeLog:
    """Test raw log decoding."""

    def test_decode_impact_staked(self, make_log):
        raw = make_log(
            ContractKind.IMPACT_DAO_POOL,
            "Staked",
            IMPACT_POOL,
            {"staker": ALICE, "amount": 5000, "daoShare": 7900, "stakerShare": 1900, "platformShare": 200},
            block=42,
            log_index=3,
        )

        event = decode_log(raw, ContractKind.IMPACT_DAO_POOL, CHAIN_ID)

        assert isinstance(event, ev.Staked)
        assert event.staker == ALICE
        assert event.amount == 5000
        assert event.split == (7900, 1900, 200)
        assert event.meta.block_number == 42
        assert event.meta.log_index == 3
        assert event.meta.chain_id == CHAIN_ID
        assert event.meta.event_name == "Staked"
        assert event.meta.key == (raw["transactionHash"], 3, CHAIN_ID)

    def test_decode_campaign_harvest_with_indexed_id(self, make_log):
        raw = make_log(
            ContractKind.STAKING_POOL,
            "YieldHarvested",
            CAMPAIGN_POOL,
            {
                "fundraiserId": 7,
                "totalYield": 10000,
                "causeAmount": 7900,
                "stakerAmount": 1900,
                "platformAmount": 200,
            },
        )

        event = decode_log(raw, ContractKind.STAKING_POOL, CHAIN_ID)

        assert isinstance(event, ev.PoolYieldHarvested)
        assert event.fundraiser_id == 7
        assert (event.total_yield, event.dao_amount, event.staker_amount, event.platform_amount) == (
            10000, 7900, 1900, 200,
        )

    def test_decode_donation(self, make_log):
        raw = make_log(
            ContractKind.WEALTH_BUILDING,
            "DonationMade",
            WEALTH,
            {
                "donor": BOB,
                "fundraiserId": 1,
                "totalAmount": 1000,
                "directAmount": 784,
                "endowmentAmount": 196,
                "platformFee": 20,
            },
        )

        event = decode_log(raw, ContractKind.WEALTH_BUILDING, CHAIN_ID)

        assert isinstance(event, ev.DonationMade)
        assert event.donor == BOB
        assert event.direct_amount == 784

    def test_decode_fee_received_with_string(self, make_log):
        raw = make_log(
            ContractKind.PLATFORM_TREASURY,
            "FeeReceived",
            TREASURY,
            {"from": WEALTH, "amount": 20, "source": "WEALTH_BUILDING"},
        )

        event = decode_log(raw, ContractKind.PLATFORM_TREASURY, CHAIN_ID)

        assert isinstance(event, ev.FeeReceived)
        assert event.sender == WEALTH
        assert event.source == "WEALTH_BUILDING"

    def test_treasury_fbt_events_map_to_staking_events(self, make_log):
        raw = make_log(
            ContractKind.PLATFORM_TREASURY, "FBTStaked", TREASURY, {"staker": ALICE, "amount": 10}
        )

        event = decode_log(raw, ContractKind.PLATFORM_TREASURY, CHAIN_ID)

        assert isinstance(event, ev.Staked)
        assert event.meta.event_name == "FBTStaked"
        assert event.split is None

    def test_decode_vesting_schedule(self, make_log):
        raw = make_log(
            ContractKind.VESTING_TOKEN,
            "VestingScheduleCreated",
            TOKEN,
            {"recipient": ALICE, "scheduleId": 4, "amount": 900, "duration": 2592000, "startTime": 1700000000},
        )

        event = decode_log(raw, ContractKind.VESTING_TOKEN, CHAIN_ID)

        assert isinstance(event, ev.VestingScheduleCreated)
        assert event.schedule_id == 4
        assert event.start_time == 1700000000

    def test_hex_envelope_fields(self, make_log):
        """Block number and log index may arrive as hex strings."""
        raw = make_log(
            ContractKind.VESTING_TOKEN, "TokensBurned", TOKEN, {"account": ALICE, "amount": 1}
        )
        raw["blockNumber"] = "0x10"
        raw["logIndex"] = "0x2"

        event = decode_log(raw, ContractKind.VESTING_TOKEN, CHAIN_ID)

        assert event.meta.block_number == 16
        assert event.meta.log_index == 2
        assert log_position(raw) == (16, 2)

    def test_unknown_topic_is_unknown_event(self, make_log):
        raw = make_log(
            ContractKind.VESTING_TOKEN, "TokensBurned", TOKEN, {"account": ALICE, "amount": 1}
        )
        raw["topics"][0] = encode_hex(keccak(text="Transfer(address,address,uint256)"))

        event = decode_log(raw, ContractKind.VESTING_TOKEN, CHAIN_ID)

        assert isinstance(event, ev.UnknownEvent)
        assert event.topic0 == raw["topics"][0]

    def test_topic_of_other_contract_kind_is_unknown(self, make_log):
        """Schemas are looked up per contract kind, not globally."""
        raw = make_log(
            ContractKind.VESTING_TOKEN, "TokensBurned", TOKEN, {"account": ALICE, "amount": 1}
        )

        event = decode_log(raw, ContractKind.IMPACT_DAO_POOL, CHAIN_ID)

        assert isinstance(event, ev.UnknownEvent)

    def test_no_topics_is_unknown_event(self, make_log):
        raw = make_log(
            ContractKind.VESTING_TOKEN, "TokensBurned", TOKEN, {"account": ALICE, "amount": 1}
        )
        raw["topics"] = []

        event = decode_log(raw, ContractKind.VESTING_TOKEN, CHAIN_ID)

        assert isinstance(event, ev.UnknownEvent)
        assert event.topic0 is None

    def test_wrong_topic_count_fails(self, make_log):
        raw = make_log(
            ContractKind.VESTING_TOKEN, "TokensBurned", TOKEN, {"account": ALICE, "amount": 1}
        )
        raw["topics"] = raw["topics"][:1]

        with pytest.raises(DecodeFailed, match="topics"):
            decode_log(raw, ContractKind.VESTING_TOKEN, CHAIN_ID)

    def test_truncated_data_fails(self, make_log):
        raw = make_log(
            ContractKind.VESTING_TOKEN, "TokensBurned", TOKEN, {"account": ALICE, "amount": 1}
        )
        raw["data"] = "0x1234"

        with pytest.raises(DecodeFailed):
            decode_log(raw, ContractKind.VESTING_TOKEN, CHAIN_ID)

    def test_missing_envelope_field_fails(self, make_log):
        raw = make_log(
            ContractKind.VESTING_TOKEN, "TokensBurned", TOKEN, {"account": ALICE, "amount": 1}
        )
        del raw["transactionHash"]

        with pytest.raises(DecodeFailed, match="envelope"):
            decode_log(raw, ContractKind.VESTING_TOKEN, CHAIN_ID)
