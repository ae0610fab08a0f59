"""
Contract resync task.

Re-scans an explicit block range of one configured contract on demand, for
example after an RPC outage longer than the reconciliation window. The
checkpoint is left untouched; already-applied logs come back as duplicates.
"""

import asyncio
from typing import Any

import dramatiq
from eth_utils import to_checksum_address
from loguru import logger

from chainledger.config.database import create_engine, create_session_maker
from chainledger.config.settings import get_settings
from chainledger.services.indexer.runtime import IndexerRuntime
from jobs.broker import broker  # noqa: F401  registers the broker


@dramatiq.actor(max_retries=2, time_limit=3_600_000)  # 1 hour timeout
def resync_contract(chain_id: int, address: str, from_block: int, to_block: int) -> None:
    """
    Re-scan [from_block, to_block] of one contract.

    Args:
        chain_id: Chain of the contract
        address: Contract address, any casing
        from_block: First block, inclusive
        to_block: Last block, inclusive
    """
    logger.info(f"[Resync] Chain {chain_id} {address} [{from_block}, {to_block}]")
    result = asyncio.run(run_resync(chain_id, address, from_block, to_block))
    if not result.get("success"):
        logger.warning(f"[Resync] Finished with problems: {result}")


async def run_resync(
    chain_id: int, address: str, from_block: int, to_block: int
) -> dict[str, Any]:
    """Async implementation of the resync, also used by the CLI script."""
    settings = get_settings()
    checksummed = to_checksum_address(address)
    contract = next(
        (c for c in settings.contracts if c.key == (chain_id, checksummed)), None
    )
    if contract is None:
        logger.error(f"[Resync] {checksummed} on chain {chain_id} is not configured")
        return {"success": False, "error": "contract not configured"}
    if from_block > to_block:
        return {"success": False, "error": "from_block is after to_block"}

    # Local engine without pooling: the actor runs in its own event loop
    engine = create_engine(settings.database_url, use_null_pool=True)
    try:
        runtime = IndexerRuntime(settings, create_session_maker(engine))
        endpoint = await runtime.registry.connect(chain_id)
        if not endpoint.is_live:
            return {"success": False, "error": endpoint.reason}

        result = await runtime.sweeper.sweep_contract(contract, from_block, to_block)
        logger.info(
            f"[Resync] {contract.display_name} [{from_block}, {to_block}]: "
            f"{result.get('outcomes', {})}"
        )
        return result
    finally:
        await engine.dispose()
