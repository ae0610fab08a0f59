"""
Integration tests for the provider registry.

Tests cover:
- Exclusion of chains without a usable RPC URL
- Liveness check success and failure
- Head lookup on live and excluded chains
"""

import pytest

from chainledger.config.settings import Settings
from chainledger.services.blockchain.provider_registry import ProviderRegistry
from chainledger.utils.exceptions import ProviderUnavailable

from conftest import CHAIN_ID, FakeWeb3, IMPACT_POOL, TOKEN

OTHER_CHAIN = 80001
THIRD_CHAIN = 43113


class BrokenEth:
    @property
    def block_number(self):
        return self._fail()

    async def _fail(self):
        raise ConnectionError("connection refused")


class BrokenWeb3:
    def __init__(self) -> None:
        self.eth = BrokenEth()


def multi_chain_settings(rpc_urls: dict[int, str]) -> Settings:
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite://",
        chain_rpc_urls=rpc_urls,
        contracts=[
            {"chain_id": CHAIN_ID, "kind": "ImpactDAOPool", "address": IMPACT_POOL},
            {"chain_id": OTHER_CHAIN, "kind": "FundBraveToken", "address": TOKEN},
            {"chain_id": THIRD_CHAIN, "kind": "FundBraveToken", "address": TOKEN},
        ],
        rpc_timeout=1,
    )


class TestConnect:
    """Test per-chain connection."""

    @pytest.mark.asyncio
    async def test_live_chain(self, settings, fake_w3, web3_factory):
        fake_w3.eth.head = 1234
        registry = ProviderRegistry(settings, web3_factory=web3_factory)

        endpoint = await registry.connect(CHAIN_ID)

        assert endpoint.is_live is True
        assert endpoint.head_at_connect == 1234
        assert endpoint.require_web3() is fake_w3
        assert registry.available_chains() == [CHAIN_ID]

    @pytest.mark.asyncio
    async def test_missing_url_excluded(self, settings, web3_factory):
        registry = ProviderRegistry(settings, web3_factory=web3_factory)

        endpoint = await registry.connect(OTHER_CHAIN)

        assert endpoint.is_live is False
        assert "not configured" in endpoint.reason
        with pytest.raises(ProviderUnavailable):
            endpoint.require_web3()

    @pytest.mark.asyncio
    async def test_one_bad_chain_does_not_block_others(self):
        """Missing, placeholder and failing chains are excluded; the live one stays."""
        settings = multi_chain_settings(
            {
                CHAIN_ID: "https://rpc.sepolia.example.org",
                OTHER_CHAIN: "https://polygon-mumbai.g.alchemy.com/v2/YOUR_API_KEY",
                THIRD_CHAIN: "https://api.avax-test.network/ext/bc/C/rpc",
            }
        )
        live = FakeWeb3(head=10)

        def factory(url, timeout):
            return live if "sepolia" in url else BrokenWeb3()

        registry = ProviderRegistry(settings, web3_factory=factory)
        await registry.connect_all()

        assert registry.available_chains() == [CHAIN_ID]
        assert registry.is_available(OTHER_CHAIN) is False
        assert "placeholder" in registry.get(OTHER_CHAIN).reason
        assert "check failed" in registry.get(THIRD_CHAIN).reason

        status = registry.status()
        assert status[str(CHAIN_ID)]["live"] is True
        assert status[str(THIRD_CHAIN)]["live"] is False

    @pytest.mark.asyncio
    async def test_unknown_chain_is_not_connected(self, settings, web3_factory):
        registry = ProviderRegistry(settings, web3_factory=web3_factory)

        assert registry.get(999).is_live is False
        assert registry.get(999).reason == "not connected"


class TestBlockNumber:
    """Test head lookup."""

    @pytest.mark.asyncio
    async def test_head_of_live_chain(self, settings, fake_w3, web3_factory):
        registry = ProviderRegistry(settings, web3_factory=web3_factory)
        await registry.connect(CHAIN_ID)
        fake_w3.eth.head = 5000

        assert await registry.block_number(CHAIN_ID) == 5000

    @pytest.mark.asyncio
    async def test_head_of_excluded_chain(self, settings, web3_factory):
        registry = ProviderRegistry(settings, web3_factory=web3_factory)

        with pytest.raises(ProviderUnavailable):
            await registry.block_number(OTHER_CHAIN)
