"""
Application constants.

Centralized constants for the indexer and the ledger handlers.
"""

# ========================================================================
# SPLIT ARITHMETIC
# ========================================================================

# All splits are expressed in basis points of this total
TOTAL_BASIS = 10_000

# Impact pool / campaign pool default split: (dao or cause, staker, platform)
DEFAULT_YIELD_SPLIT = (7900, 1900, 200)
MIN_PLATFORM_SHARE = 200

# Wealth-building donation split
WEALTH_DIRECT_BPS = 8000
WEALTH_ENDOWMENT_BPS = 2000

# Endowment yield split: (cause, donor)
CAUSE_YIELD_BPS = 3000
DONOR_YIELD_BPS = 7000

# Treasury: share of staked fees routed to operational funds
OPERATIONAL_FUNDS_BPS = 7800

# ========================================================================
# VESTING
# ========================================================================

SECONDS_PER_DAY = 24 * 60 * 60
DONATION_REWARD_VESTING_SECONDS = 30 * SECONDS_PER_DAY
ENGAGEMENT_REWARD_VESTING_SECONDS = 7 * SECONDS_PER_DAY

# ========================================================================
# BLOCKCHAIN CONSTANTS
# ========================================================================

# Blockchain operation timeouts (in seconds)
BLOCKCHAIN_TIMEOUT = 30.0  # Standard RPC calls (block_number, get_logs)
BLOCKCHAIN_CONNECT_TIMEOUT = 10.0  # Liveness check at startup

# Blockchain retry settings
BLOCKCHAIN_MAX_RETRIES = 3
BLOCKCHAIN_RETRY_DELAY_BASE = 2  # Base delay in seconds for exponential backoff

# Upper bound for a single eth_getLogs block range
MAX_LOG_QUERY_BLOCKS = 10_000

CHAIN_NAMES: dict[int, str] = {
    1: "Ethereum Mainnet",
    11155111: "Sepolia",
    137: "Polygon",
    80001: "Polygon Mumbai",
    43114: "Avalanche C-Chain",
    43113: "Avalanche Fuji",
    42161: "Arbitrum One",
    421614: "Arbitrum Sepolia",
    10: "Optimism",
    11155420: "Optimism Sepolia",
}

# Substrings that mark an RPC URL copied from an example env file
RPC_PLACEHOLDER_MARKERS = (
    "your_",
    "your-",
    "<",
    "xxx",
    "placeholder",
    "changeme",
    "api_key",
)


def chain_name(chain_id: int) -> str:
    """Human-readable chain name for logs."""
    return CHAIN_NAMES.get(chain_id, f"chain-{chain_id}")
