"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from functools import lru_cache

from eth_utils import is_address, to_checksum_address
from loguru import logger
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from chainledger.config.constants import (
    BLOCKCHAIN_TIMEOUT,
    MAX_LOG_QUERY_BLOCKS,
    RPC_PLACEHOLDER_MARKERS,
)
from chainledger.models.enums import ContractKind


class ContractConfig(BaseModel):
    """One deployed contract to index on one chain."""

    chain_id: int = Field(..., gt=0)
    kind: ContractKind
    address: str
    start_block: int | None = Field(
        default=None,
        ge=0,
        description="Deployment block; scanning starts here when no checkpoint exists",
    )
    label: str | None = None

    @field_validator("kind", mode="before")
    @classmethod
    def parse_kind(cls, v: object) -> ContractKind:
        return ContractKind.parse(v)

    @field_validator("address")
    @classmethod
    def validate_address(cls, v: str) -> str:
        """Validate and checksum the contract address."""
        if not is_address(v):
            raise ValueError(f"Invalid contract address: {v}")
        return to_checksum_address(v)

    @property
    def key(self) -> tuple[int, str]:
        return (self.chain_id, self.address)

    @property
    def display_name(self) -> str:
        return self.label or f"{self.kind.value}@{self.address[:10]}"


def is_placeholder_url(url: str | None) -> bool:
    """True when an RPC URL is empty or looks like an example value."""
    if not url or not url.strip():
        return True
    lowered = url.lower()
    return any(marker in lowered for marker in RPC_PLACEHOLDER_MARKERS)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False

    # Chains and contracts (JSON in the environment)
    chain_rpc_urls: dict[int, str] = Field(
        default_factory=dict,
        description='JSON map of chain id to HTTP RPC URL, e.g. {"11155111": "https://..."}',
    )
    contracts: list[ContractConfig] = Field(
        default_factory=list,
        description="JSON list of contracts: chain_id, kind, address, start_block",
    )

    # Backfill
    index_batch_size: int = Field(
        default=2000,
        ge=1,
        le=MAX_LOG_QUERY_BLOCKS,
        description="Block range per eth_getLogs batch",
    )
    index_batch_delay: float = Field(
        default=0.2, ge=0, description="Pause between batches in seconds"
    )
    confirmation_blocks: int = Field(
        default=0, ge=0, description="Blocks held back from chain head"
    )
    default_lookback_blocks: int = Field(
        default=1000,
        ge=0,
        description="Start offset from head for contracts without start block",
    )
    backfill_interval_seconds: int = Field(
        default=60, ge=5, description="Incremental backfill cadence"
    )

    # Reconciliation sweep
    reconciliation_window_blocks: int = Field(
        default=1000, ge=1, description="Trailing window re-scanned by the sweep"
    )
    reconciliation_interval_seconds: int = Field(
        default=300, ge=10, description="Sweep cadence in seconds"
    )

    # Live listener
    live_poll_interval: float = Field(
        default=3.0, gt=0, description="Log filter polling interval in seconds"
    )
    live_queue_size: int = Field(default=1000, ge=1)

    # RPC
    rpc_timeout: float = Field(default=BLOCKCHAIN_TIMEOUT, gt=0)

    # Redis (for Dramatiq)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    # Application
    environment: str = "production"
    log_level: str = "INFO"
    log_file: str | None = "logs/indexer.log"
    health_check_port: int = Field(
        default=8081, ge=1, le=65535, description="Health check HTTP server port"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_contracts(self) -> "Settings":
        """Reject duplicate contract entries and warn about chains without RPC."""
        seen: set[tuple[int, str]] = set()
        for contract in self.contracts:
            if contract.key in seen:
                raise ValueError(
                    f"Contract {contract.address} configured twice on chain {contract.chain_id}"
                )
            seen.add(contract.key)

        for chain_id in sorted({c.chain_id for c in self.contracts}):
            if is_placeholder_url(self.chain_rpc_urls.get(chain_id)):
                logger.warning(
                    f"No usable RPC URL for chain {chain_id}; "
                    "its contracts will be excluded from indexing"
                )
        return self

    @property
    def chain_ids(self) -> list[int]:
        """Chains referenced by at least one configured contract."""
        return sorted({c.chain_id for c in self.contracts})

    def contracts_for_chain(self, chain_id: int) -> list[ContractConfig]:
        return [c for c in self.contracts if c.chain_id == chain_id]


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
