"""
Chain provider registry.

Owns one AsyncWeb3 connection per configured chain. Each chain is checked
once at startup; chains with a missing or placeholder endpoint, or a failed
check, are marked unavailable and excluded from scanning. Failure is always
per chain and never stops the process.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import aiohttp
from loguru import logger
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import Web3Exception

from chainledger.config.constants import BLOCKCHAIN_CONNECT_TIMEOUT, chain_name
from chainledger.config.settings import Settings, is_placeholder_url
from chainledger.services.blockchain.rpc_wrapper import (
    BlockchainError,
    BlockchainTimeoutError,
    rpc_call_with_retry,
    with_timeout,
)
from chainledger.utils.exceptions import ProviderUnavailable

Web3Factory = Callable[[str, float], AsyncWeb3]


def default_web3_factory(url: str, timeout: float) -> AsyncWeb3:
    """Build an AsyncWeb3 over HTTP with the given request timeout."""
    return AsyncWeb3(AsyncHTTPProvider(url, request_kwargs={"timeout": timeout}))


@dataclass
class ChainEndpoint:
    """Connection state for one chain. Never persisted."""

    chain_id: int
    name: str
    web3: AsyncWeb3 | None = None
    is_live: bool = False
    reason: str | None = None
    head_at_connect: int | None = None
    connected_at: datetime | None = field(default=None)

    def require_web3(self) -> AsyncWeb3:
        if not self.is_live or self.web3 is None:
            raise ProviderUnavailable(self.chain_id, self.reason or "not connected")
        return self.web3


class ProviderRegistry:
    """
    Registry of per-chain RPC connections.

    Example:
        registry = ProviderRegistry(settings)
        await registry.connect_all()
        w3 = registry.get(11155111).require_web3()
    """

    def __init__(
        self,
        settings: Settings,
        web3_factory: Web3Factory | None = None,
        connect_timeout: float = BLOCKCHAIN_CONNECT_TIMEOUT,
    ) -> None:
        """
        Initialize registry.

        Args:
            settings: Application settings with chain_rpc_urls
            web3_factory: Builds a client from (url, timeout); replaced in tests
            connect_timeout: Timeout of the startup liveness check
        """
        self.settings = settings
        self.web3_factory = web3_factory or default_web3_factory
        self.connect_timeout = connect_timeout
        self.endpoints: dict[int, ChainEndpoint] = {}

    async def connect(self, chain_id: int) -> ChainEndpoint:
        """
        Connect to one chain and check it responds.

        Returns a live endpoint or an unavailable one with the reason set.
        """
        name = chain_name(chain_id)
        url = self.settings.chain_rpc_urls.get(chain_id)

        if not url:
            endpoint = ChainEndpoint(chain_id, name, reason="RPC URL not configured")
        elif is_placeholder_url(url):
            endpoint = ChainEndpoint(chain_id, name, reason="RPC URL is a placeholder")
        else:
            endpoint = await self._check_endpoint(chain_id, name, url)

        self.endpoints[chain_id] = endpoint

        if endpoint.is_live:
            logger.info(
                f"[Providers] ✅ {name} ({chain_id}) connected, head={endpoint.head_at_connect}"
            )
        else:
            logger.warning(
                f"[Providers] ❌ {name} ({chain_id}) excluded: {endpoint.reason}"
            )
        return endpoint

    async def _check_endpoint(self, chain_id: int, name: str, url: str) -> ChainEndpoint:
        try:
            w3 = self.web3_factory(url, self.settings.rpc_timeout)
            head = await with_timeout(
                w3.eth.block_number,
                timeout=self.connect_timeout,
                operation_name=f"liveness check {name}",
            )
        except (
            BlockchainTimeoutError,
            Web3Exception,
            aiohttp.ClientError,
            ConnectionError,
            OSError,
            ValueError,
        ) as e:
            return ChainEndpoint(chain_id, name, reason=f"liveness check failed: {e}")
        except Exception as e:
            logger.exception(f"[Providers] Unexpected error probing {name}: {e}")
            return ChainEndpoint(chain_id, name, reason=f"liveness check error: {e}")

        return ChainEndpoint(
            chain_id,
            name,
            web3=w3,
            is_live=True,
            head_at_connect=int(head),
            connected_at=datetime.now(UTC),
        )

    async def connect_all(self) -> dict[int, ChainEndpoint]:
        """Connect every chain referenced by a configured contract, concurrently."""
        chain_ids = self.settings.chain_ids
        await asyncio.gather(*(self.connect(chain_id) for chain_id in chain_ids))

        live = self.available_chains()
        logger.info(
            f"[Providers] {len(live)}/{len(chain_ids)} chains available: "
            f"{', '.join(chain_name(c) for c in live) or 'none'}"
        )
        if chain_ids and not live:
            logger.error("[Providers] 🔥 NO CHAIN PROVIDERS AVAILABLE! Nothing will be indexed.")
        return self.endpoints

    def get(self, chain_id: int) -> ChainEndpoint:
        endpoint = self.endpoints.get(chain_id)
        if endpoint is None:
            return ChainEndpoint(chain_id, chain_name(chain_id), reason="not connected")
        return endpoint

    def is_available(self, chain_id: int) -> bool:
        return self.get(chain_id).is_live

    def available_chains(self) -> list[int]:
        return sorted(cid for cid, ep in self.endpoints.items() if ep.is_live)

    async def block_number(self, chain_id: int) -> int:
        """
        Current head of a live chain.

        Raises:
            ProviderUnavailable: Chain is excluded
            BlockchainError: All attempts failed
        """
        w3 = self.get(chain_id).require_web3()
        head = await rpc_call_with_retry(
            lambda: w3.eth.block_number,
            timeout=self.settings.rpc_timeout,
            operation_name=f"block_number {chain_name(chain_id)}",
        )
        return int(head)

    def status(self) -> dict[str, Any]:
        """Health report for every known chain."""
        return {
            str(chain_id): {
                "name": ep.name,
                "live": ep.is_live,
                "reason": ep.reason,
                "head_at_connect": ep.head_at_connect,
            }
            for chain_id, ep in sorted(self.endpoints.items())
        }


__all__ = [
    "BlockchainError",
    "ChainEndpoint",
    "ProviderRegistry",
    "default_web3_factory",
]
