#!/usr/bin/env python3
"""
Contract maintenance CLI.

    resync_contract.py scan   --chain-id 11155111 --address 0x... --from-block 100 --to-block 200 [--enqueue]
    resync_contract.py pause  --chain-id 11155111 --address 0x...
    resync_contract.py resume --chain-id 11155111 --address 0x...
    resync_contract.py status

scan re-applies a block range without moving the checkpoint; --enqueue hands
it to the dramatiq worker instead of running it here. pause stops backfill
of a contract until resume.
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from eth_utils import to_checksum_address
from loguru import logger

from chainledger.config.database import create_engine, create_session_maker
from chainledger.config.settings import ContractConfig, get_settings
from chainledger.models.enums import SyncStatus
from chainledger.services.indexer.checkpoints import CheckpointStore

logger.remove()
logger.add(sys.stderr, level="INFO")


def find_contract(chain_id: int, address: str) -> ContractConfig:
    key = (chain_id, to_checksum_address(address))
    for contract in get_settings().contracts:
        if contract.key == key:
            return contract
    logger.error(f"{key[1]} on chain {chain_id} is not in CONTRACTS")
    sys.exit(1)


async def set_paused(contract: ContractConfig, paused: bool) -> None:
    settings = get_settings()
    engine = create_engine(settings.database_url, use_null_pool=True)
    try:
        store = CheckpointStore(create_session_maker(engine), settings.default_lookback_blocks)
        status = SyncStatus.PAUSED if paused else SyncStatus.SYNCING
        await store.set_status(contract, status)
        logger.success(f"{contract.display_name} is now {status.value}")
    finally:
        await engine.dispose()


async def show_status() -> None:
    settings = get_settings()
    engine = create_engine(settings.database_url, use_null_pool=True)
    try:
        store = CheckpointStore(create_session_maker(engine), settings.default_lookback_blocks)
        for contract in settings.contracts:
            checkpoint = await store.get(contract.chain_id, contract.address)
            if checkpoint is None:
                print(f"{contract.chain_id:>9}  {contract.display_name:<40}  never scanned")
                continue
            print(
                f"{contract.chain_id:>9}  {contract.display_name:<40}  "
                f"block={checkpoint.last_block} status={checkpoint.status} "
                f"errors={checkpoint.error_count}"
            )
    finally:
        await engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="chainledger contract maintenance")
    sub = parser.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="Re-scan a block range")
    for p in (scan, sub.add_parser("pause"), sub.add_parser("resume")):
        p.add_argument("--chain-id", type=int, required=True)
        p.add_argument("--address", required=True)
    scan.add_argument("--from-block", type=int, required=True)
    scan.add_argument("--to-block", type=int, required=True)
    scan.add_argument("--enqueue", action="store_true", help="Run in the dramatiq worker")
    sub.add_parser("status", help="Show checkpoints of all configured contracts")

    args = parser.parse_args()

    if args.command == "status":
        asyncio.run(show_status())
        return

    contract = find_contract(args.chain_id, args.address)

    if args.command in ("pause", "resume"):
        asyncio.run(set_paused(contract, args.command == "pause"))
        return

    from jobs.tasks.resync_task import resync_contract, run_resync

    if args.enqueue:
        resync_contract.send(args.chain_id, contract.address, args.from_block, args.to_block)
        logger.success(f"Resync of {contract.display_name} enqueued")
        return

    result = asyncio.run(run_resync(args.chain_id, contract.address, args.from_block, args.to_block))
    if not result.get("success"):
        logger.error(f"Resync failed: {result}")
        sys.exit(1)
    logger.success(f"Resync done: {result.get('outcomes')}")


if __name__ == "__main__":
    main()
