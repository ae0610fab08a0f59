"""
Blockchain access: per-chain providers and RPC call wrappers.
"""

from chainledger.services.blockchain.provider_registry import (
    ChainEndpoint,
    ProviderRegistry,
    default_web3_factory,
)
from chainledger.services.blockchain.rpc_wrapper import (
    BlockchainError,
    BlockchainTimeoutError,
    rpc_call_with_retry,
    with_timeout,
)

__all__ = [
    "BlockchainError",
    "BlockchainTimeoutError",
    "ChainEndpoint",
    "ProviderRegistry",
    "default_web3_factory",
    "rpc_call_with_retry",
    "with_timeout",
]
