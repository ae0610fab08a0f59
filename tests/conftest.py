"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# Minimal environment so Settings() can load without a .env file
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CHAIN_RPC_URLS", "{}")
os.environ.setdefault("CONTRACTS", "[]")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from typing import Any

import pytest
import pytest_asyncio
from eth_abi import encode as abi_encode
from eth_utils import encode_hex, keccak, to_checksum_address

from chainledger.config.database import create_engine, create_session_maker
from chainledger.config.settings import ContractConfig, Settings
from chainledger.models import Base
from chainledger.models.enums import ContractKind
from chainledger.services.indexer.decoding import schema_for
from chainledger.services.indexer.events import LogMeta

CHAIN_ID = 11155111
IMPACT_POOL = to_checksum_address("0x1111111111111111111111111111111111111111")
CAMPAIGN_POOL = to_checksum_address("0x2222222222222222222222222222222222222222")
WEALTH = to_checksum_address("0x3333333333333333333333333333333333333333")
TREASURY = to_checksum_address("0x4444444444444444444444444444444444444444")
TOKEN = to_checksum_address("0x5555555555555555555555555555555555555555")

ALICE = to_checksum_address("0xaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa")
BOB = to_checksum_address("0xbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbb")
CAROL = to_checksum_address("0xcccccccccccccccccccccccccccccccccccccccc")


def tx_hash_for(seed: Any) -> str:
    """Deterministic 32-byte tx hash for a test log."""
    return encode_hex(keccak(text=str(seed)))


@pytest.fixture
def chain_id() -> int:
    return CHAIN_ID


@pytest.fixture
def addresses() -> dict[str, str]:
    """Contract and account addresses used across tests."""
    return {
        "impact_pool": IMPACT_POOL,
        "campaign_pool": CAMPAIGN_POOL,
        "wealth": WEALTH,
        "treasury": TREASURY,
        "token": TOKEN,
        "alice": ALICE,
        "bob": BOB,
        "carol": CAROL,
    }


@pytest.fixture
def contracts() -> dict[str, ContractConfig]:
    """One configured contract of each kind on the test chain."""
    return {
        "impact_pool": ContractConfig(
            chain_id=CHAIN_ID, kind="ImpactDAOPool", address=IMPACT_POOL, start_block=0
        ),
        "campaign_pool": ContractConfig(
            chain_id=CHAIN_ID, kind="StakingPool", address=CAMPAIGN_POOL, start_block=0
        ),
        "wealth": ContractConfig(
            chain_id=CHAIN_ID, kind="WealthBuildingDonation", address=WEALTH, start_block=0
        ),
        "treasury": ContractConfig(
            chain_id=CHAIN_ID, kind="PlatformTreasury", address=TREASURY, start_block=0
        ),
        "token": ContractConfig(
            chain_id=CHAIN_ID, kind="FundBraveToken", address=TOKEN, start_block=0
        ),
    }


@pytest.fixture
def settings(contracts) -> Settings:
    """Settings with every test contract on one chain and no throttling."""
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite:///:memory:",
        chain_rpc_urls={CHAIN_ID: "https://rpc.sepolia.example.org"},
        contracts=list(contracts.values()),
        index_batch_size=1000,
        index_batch_delay=0,
        reconciliation_window_blocks=200,
        live_poll_interval=0.01,
        rpc_timeout=5,
    )


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """Session factory over a fresh SQLite file database with all tables."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield create_session_maker(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def session(session_factory):
    """Single session for direct ledger tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_meta():
    """Build LogMeta for handler-level tests."""

    def _make(
        contract_kind: ContractKind,
        address: str,
        event_name: str = "Test",
        block: int = 100,
        log_index: int = 0,
        tx_seed: Any = None,
    ) -> LogMeta:
        return LogMeta(
            chain_id=CHAIN_ID,
            contract_address=address,
            contract_kind=contract_kind,
            event_name=event_name,
            tx_hash=tx_hash_for(tx_seed if tx_seed is not None else (event_name, block, log_index)),
            log_index=log_index,
            block_number=block,
        )

    return _make


@pytest.fixture
def make_log():
    """
    Build a raw eth_getLogs-style log for a known event schema.

    Indexed arguments become topics, the rest is ABI-encoded into data.
    """

    def _make(
        contract_kind: ContractKind,
        event_name: str,
        address: str,
        args: dict[str, Any],
        block: int = 100,
        log_index: int = 0,
        tx_seed: Any = None,
    ) -> dict[str, Any]:
        schema = schema_for(contract_kind, event_name)
        assert schema is not None, f"no schema {contract_kind}.{event_name}"

        topics = [schema.topic0]
        for item in schema.indexed_inputs:
            topics.append(encode_hex(abi_encode([item.abi_type], [args[item.name]])))

        data = abi_encode(
            [item.abi_type for item in schema.data_inputs],
            [args[item.name] for item in schema.data_inputs],
        )
        return {
            "address": address,
            "topics": topics,
            "data": encode_hex(data),
            "blockNumber": block,
            "logIndex": log_index,
            "transactionHash": tx_hash_for(
                tx_seed if tx_seed is not None else (address, event_name, block, log_index)
            ),
        }

    return _make


async def _value(value):
    return value


class FakeFilter:
    def __init__(self, filter_id: str) -> None:
        self.filter_id = filter_id


class FakeEth:
    """
    Just enough of AsyncWeb3.eth for the scanners and the listener.

    Logs are served from `logs`; ranges listed in `failing_ranges` raise
    like an overloaded RPC node.
    """

    def __init__(self, head: int = 0) -> None:
        self.head = head
        self.logs: list[dict[str, Any]] = []
        self.failing_ranges: set[tuple[int, int]] = set()
        self.get_logs_calls: list[tuple[int, int]] = []
        self.filters: dict[str, dict[str, Any]] = {}
        self.pending_changes: dict[str, list[dict[str, Any]]] = {}
        self.fail_filter_changes = 0

    @property
    def block_number(self):
        return _value(self.head)

    async def get_logs(self, params: dict[str, Any]) -> list[dict[str, Any]]:
        start, end = params["fromBlock"], params["toBlock"]
        self.get_logs_calls.append((start, end))
        if (start, end) in self.failing_ranges:
            raise ConnectionError(f"upstream timeout for [{start}, {end}]")
        return [
            log
            for log in self.logs
            if log["address"] == params["address"] and start <= log["blockNumber"] <= end
        ]

    async def filter(self, params: dict[str, Any]) -> FakeFilter:
        filter_id = f"0x{len(self.filters) + 1:x}"
        self.filters[filter_id] = params
        self.pending_changes[filter_id] = []
        return FakeFilter(filter_id)

    async def get_filter_changes(self, filter_id: str) -> list[dict[str, Any]]:
        if self.fail_filter_changes > 0:
            self.fail_filter_changes -= 1
            raise ValueError("filter not found")
        changes = self.pending_changes.get(filter_id, [])
        self.pending_changes[filter_id] = []
        return changes

    def emit(self, raw_log: dict[str, Any]) -> None:
        """Deliver a log to every installed filter that matches it."""
        for filter_id, params in self.filters.items():
            if params["address"] == raw_log["address"] and params["topics"][0] == raw_log["topics"][0]:
                self.pending_changes[filter_id].append(raw_log)


class FakeWeb3:
    def __init__(self, head: int = 0) -> None:
        self.eth = FakeEth(head)


@pytest.fixture
def fake_w3() -> FakeWeb3:
    return FakeWeb3(head=0)


@pytest.fixture
def web3_factory(fake_w3):
    """web3_factory for ProviderRegistry that always returns fake_w3."""
    return lambda url, timeout: fake_w3
