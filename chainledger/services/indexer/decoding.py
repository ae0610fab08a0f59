"""
Event schemas and raw log decoding.

Each contract kind has a fixed set of event schemas. A schema knows its
canonical signature (and therefore topic0), which inputs are indexed, and
how to build the typed event from the decoded arguments.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from eth_utils import decode_hex, encode_hex, keccak, to_checksum_address

from chainledger.models.enums import ContractKind
from chainledger.services.indexer import events as ev
from chainledger.utils.exceptions import DecodeFailed


@dataclass(frozen=True)
class EventInput:
    name: str
    abi_type: str
    indexed: bool = False


@dataclass(frozen=True)
class EventSchema:
    """One (contract kind, event) pair the indexer understands."""

    contract_kind: ContractKind
    name: str
    inputs: tuple[EventInput, ...]
    build: Callable[[ev.LogMeta, dict[str, Any]], ev.DecodedEvent]

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(i.abi_type for i in self.inputs)})"

    @property
    def topic0(self) -> str:
        return encode_hex(keccak(text=self.signature))

    @property
    def indexed_inputs(self) -> tuple[EventInput, ...]:
        return tuple(i for i in self.inputs if i.indexed)

    @property
    def data_inputs(self) -> tuple[EventInput, ...]:
        return tuple(i for i in self.inputs if not i.indexed)


def _in(name: str, abi_type: str, indexed: bool = False) -> EventInput:
    return EventInput(name, abi_type, indexed)


ADDRESS = "address"
UINT256 = "uint256"
UINT16 = "uint16"

SCHEMAS: tuple[EventSchema, ...] = (
    # ImpactDAOPool
    EventSchema(
        ContractKind.IMPACT_DAO_POOL, "Staked",
        (_in("staker", ADDRESS, True), _in("amount", UINT256),
         _in("daoShare", UINT16), _in("stakerShare", UINT16), _in("platformShare", UINT16)),
        lambda m, a: ev.Staked(
            m, a["staker"], a["amount"],
            split=(a["daoShare"], a["stakerShare"], a["platformShare"]),
        ),
    ),
    EventSchema(
        ContractKind.IMPACT_DAO_POOL, "Unstaked",
        (_in("staker", ADDRESS, True), _in("amount", UINT256)),
        lambda m, a: ev.Unstaked(m, a["staker"], a["amount"]),
    ),
    EventSchema(
        ContractKind.IMPACT_DAO_POOL, "YieldHarvested",
        (_in("totalYield", UINT256), _in("daoShare", UINT256),
         _in("stakerShare", UINT256), _in("platformShare", UINT256)),
        lambda m, a: ev.PoolYieldHarvested(
            m, a["totalYield"], a["daoShare"], a["stakerShare"], a["platformShare"]
        ),
    ),
    EventSchema(
        ContractKind.IMPACT_DAO_POOL, "YieldSplitSet",
        (_in("staker", ADDRESS, True), _in("daoShare", UINT16),
         _in("stakerShare", UINT16), _in("platformShare", UINT16)),
        lambda m, a: ev.YieldSplitSet(
            m, a["staker"], (a["daoShare"], a["stakerShare"], a["platformShare"])
        ),
    ),
    EventSchema(
        ContractKind.IMPACT_DAO_POOL, "StakerYieldClaimed",
        (_in("staker", ADDRESS, True), _in("amount", UINT256)),
        lambda m, a: ev.YieldClaimed(m, a["staker"], a["amount"]),
    ),
    EventSchema(
        ContractKind.IMPACT_DAO_POOL, "FBTRewardPaid",
        (_in("staker", ADDRESS, True), _in("amount", UINT256)),
        lambda m, a: ev.RewardPaid(m, a["staker"], a["amount"]),
    ),
    # StakingPool (campaign)
    EventSchema(
        ContractKind.STAKING_POOL, "Staked",
        (_in("fundraiserId", UINT256, True), _in("staker", ADDRESS, True), _in("amount", UINT256)),
        lambda m, a: ev.Staked(m, a["staker"], a["amount"], fundraiser_id=a["fundraiserId"]),
    ),
    EventSchema(
        ContractKind.STAKING_POOL, "Unstaked",
        (_in("fundraiserId", UINT256, True), _in("staker", ADDRESS, True), _in("amount", UINT256)),
        lambda m, a: ev.Unstaked(m, a["staker"], a["amount"], fundraiser_id=a["fundraiserId"]),
    ),
    EventSchema(
        ContractKind.STAKING_POOL, "YieldSplitSet",
        (_in("fundraiserId", UINT256, True), _in("staker", ADDRESS, True),
         _in("causeShare", UINT16), _in("stakerShare", UINT16), _in("platformShare", UINT16)),
        lambda m, a: ev.YieldSplitSet(
            m, a["staker"], (a["causeShare"], a["stakerShare"], a["platformShare"]),
            fundraiser_id=a["fundraiserId"],
        ),
    ),
    EventSchema(
        ContractKind.STAKING_POOL, "YieldHarvested",
        (_in("fundraiserId", UINT256, True), _in("totalYield", UINT256),
         _in("causeAmount", UINT256), _in("stakerAmount", UINT256), _in("platformAmount", UINT256)),
        lambda m, a: ev.PoolYieldHarvested(
            m, a["totalYield"], a["causeAmount"], a["stakerAmount"], a["platformAmount"],
            fundraiser_id=a["fundraiserId"],
        ),
    ),
    # WealthBuildingDonation
    EventSchema(
        ContractKind.WEALTH_BUILDING, "DonationMade",
        (_in("donor", ADDRESS, True), _in("fundraiserId", UINT256, True),
         _in("totalAmount", UINT256), _in("directAmount", UINT256),
         _in("endowmentAmount", UINT256), _in("platformFee", UINT256)),
        lambda m, a: ev.DonationMade(
            m, a["donor"], a["fundraiserId"], a["totalAmount"],
            a["directAmount"], a["endowmentAmount"], a["platformFee"],
        ),
    ),
    EventSchema(
        ContractKind.WEALTH_BUILDING, "YieldHarvested",
        (_in("donor", ADDRESS, True), _in("fundraiserId", UINT256, True),
         _in("totalYield", UINT256), _in("causeAmount", UINT256), _in("donorAmount", UINT256)),
        lambda m, a: ev.EndowmentYieldHarvested(
            m, a["donor"], a["fundraiserId"], a["totalYield"], a["causeAmount"], a["donorAmount"]
        ),
    ),
    EventSchema(
        ContractKind.WEALTH_BUILDING, "StockPurchased",
        (_in("donor", ADDRESS, True), _in("stockToken", ADDRESS, True),
         _in("usdcAmount", UINT256), _in("stockAmount", UINT256)),
        lambda m, a: ev.StockPurchased(
            m, a["donor"], a["stockToken"], a["usdcAmount"], a["stockAmount"]
        ),
    ),
    # PlatformTreasury
    EventSchema(
        ContractKind.PLATFORM_TREASURY, "FeeReceived",
        (_in("from", ADDRESS, True), _in("amount", UINT256), _in("source", "string")),
        lambda m, a: ev.FeeReceived(m, a["from"], a["amount"], a["source"]),
    ),
    EventSchema(
        ContractKind.PLATFORM_TREASURY, "FeesStaked",
        (_in("amount", UINT256), _in("endowmentAmount", UINT256)),
        lambda m, a: ev.FeesStaked(m, a["amount"], a["endowmentAmount"]),
    ),
    EventSchema(
        ContractKind.PLATFORM_TREASURY, "FBTStaked",
        (_in("staker", ADDRESS, True), _in("amount", UINT256)),
        lambda m, a: ev.Staked(m, a["staker"], a["amount"]),
    ),
    EventSchema(
        ContractKind.PLATFORM_TREASURY, "FBTUnstaked",
        (_in("staker", ADDRESS, True), _in("amount", UINT256)),
        lambda m, a: ev.Unstaked(m, a["staker"], a["amount"]),
    ),
    EventSchema(
        ContractKind.PLATFORM_TREASURY, "YieldClaimed",
        (_in("staker", ADDRESS, True), _in("amount", UINT256)),
        lambda m, a: ev.YieldClaimed(m, a["staker"], a["amount"]),
    ),
    EventSchema(
        ContractKind.PLATFORM_TREASURY, "YieldHarvested",
        (_in("yieldAmount", UINT256),),
        lambda m, a: ev.TreasuryYieldHarvested(m, a["yieldAmount"]),
    ),
    # FundBraveToken
    EventSchema(
        ContractKind.VESTING_TOKEN, "VestingScheduleCreated",
        (_in("recipient", ADDRESS, True), _in("scheduleId", UINT256, True),
         _in("amount", UINT256), _in("duration", UINT256), _in("startTime", UINT256)),
        lambda m, a: ev.VestingScheduleCreated(
            m, a["recipient"], a["scheduleId"], a["amount"], a["duration"], a["startTime"]
        ),
    ),
    EventSchema(
        ContractKind.VESTING_TOKEN, "VestedTokensClaimed",
        (_in("recipient", ADDRESS, True), _in("scheduleId", UINT256, True), _in("amount", UINT256)),
        lambda m, a: ev.VestedTokensClaimed(m, a["recipient"], a["scheduleId"], a["amount"]),
    ),
    EventSchema(
        ContractKind.VESTING_TOKEN, "TokensBurned",
        (_in("account", ADDRESS, True), _in("amount", UINT256)),
        lambda m, a: ev.TokensBurned(m, a["account"], a["amount"]),
    ),
)


def _build_topic_index() -> dict[ContractKind, dict[str, EventSchema]]:
    index: dict[ContractKind, dict[str, EventSchema]] = {}
    for schema in SCHEMAS:
        index.setdefault(schema.contract_kind, {})[schema.topic0] = schema
    return index


SCHEMAS_BY_TOPIC = _build_topic_index()


def schemas_for(contract_kind: ContractKind) -> list[EventSchema]:
    """All event schemas of a contract kind."""
    return list(SCHEMAS_BY_TOPIC.get(contract_kind, {}).values())


def schema_for(contract_kind: ContractKind, event_name: str) -> EventSchema | None:
    for schema in schemas_for(contract_kind):
        if schema.name == event_name:
            return schema
    return None


def to_hex_str(value: Any) -> str:
    """Normalize a hash/topic (bytes, HexBytes or str) to lowercase 0x-hex."""
    if isinstance(value, (bytes, bytearray)):
        return encode_hex(bytes(value))
    text = str(value).lower()
    return text if text.startswith("0x") else f"0x{text}"


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if not value:
        return b""
    return decode_hex(str(value))


def _to_int(value: Any) -> int:
    if isinstance(value, int):
        return value
    text = str(value)
    return int(text, 16) if text.lower().startswith("0x") else int(text)


def log_position(raw_log: Mapping[str, Any]) -> tuple[int, int]:
    """(blockNumber, logIndex) of a raw log, for chain-order sorting."""
    return (_to_int(raw_log.get("blockNumber", 0)), _to_int(raw_log.get("logIndex", 0)))


def _normalize(abi_type: str, value: Any) -> Any:
    if abi_type == ADDRESS:
        return to_checksum_address(value)
    return value


def decode_log(
    raw_log: Mapping[str, Any],
    contract_kind: ContractKind,
    chain_id: int,
) -> ev.DecodedEvent:
    """
    Decode one raw log of a known contract.

    Args:
        raw_log: Log as returned by eth_getLogs or a log filter
        contract_kind: Kind of the emitting contract (from configuration)
        chain_id: Chain the log was read from

    Returns:
        Typed event, or UnknownEvent when topic0 matches no schema

    Raises:
        DecodeFailed: The log is malformed for its schema
    """
    try:
        topics = [to_hex_str(t) for t in raw_log.get("topics") or []]
        tx_hash = to_hex_str(raw_log["transactionHash"])
        log_index = _to_int(raw_log["logIndex"])
        block_number = _to_int(raw_log["blockNumber"])
        address = to_checksum_address(raw_log["address"])
    except (KeyError, TypeError, ValueError) as e:
        raise DecodeFailed(f"Malformed log envelope: {e}") from e

    topic0 = topics[0] if topics else None
    schema = SCHEMAS_BY_TOPIC.get(contract_kind, {}).get(topic0) if topic0 else None

    meta = ev.LogMeta(
        chain_id=chain_id,
        contract_address=address,
        contract_kind=contract_kind,
        event_name=schema.name if schema else "Unknown",
        tx_hash=tx_hash,
        log_index=log_index,
        block_number=block_number,
    )

    if schema is None:
        return ev.UnknownEvent(meta, topic0)

    indexed = schema.indexed_inputs
    if len(topics) != len(indexed) + 1:
        raise DecodeFailed(
            f"{schema.signature}: expected {len(indexed) + 1} topics, got {len(topics)}"
        )

    args: dict[str, Any] = {}
    try:
        for item, topic in zip(indexed, topics[1:]):
            (value,) = abi_decode([item.abi_type], decode_hex(topic))
            args[item.name] = _normalize(item.abi_type, value)

        data_inputs = schema.data_inputs
        values = abi_decode([i.abi_type for i in data_inputs], _to_bytes(raw_log.get("data")))
        for item, value in zip(data_inputs, values):
            args[item.name] = _normalize(item.abi_type, value)
    except (DecodingError, ValueError, TypeError, OverflowError) as e:
        raise DecodeFailed(f"{schema.signature}: {e}") from e

    return schema.build(meta, args)
