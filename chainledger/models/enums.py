"""
Enumerations shared by models, configuration and services.
"""

from enum import StrEnum


class ContractKind(StrEnum):
    """Indexed contract families."""

    STAKING_POOL = "staking_pool"
    IMPACT_DAO_POOL = "impact_dao_pool"
    WEALTH_BUILDING = "wealth_building"
    PLATFORM_TREASURY = "platform_treasury"
    VESTING_TOKEN = "vesting_token"

    @classmethod
    def parse(cls, value: "str | ContractKind") -> "ContractKind":
        """
        Resolve a contract kind from its value or deployment name.

        Accepts "impact_dao_pool", "ImpactDAOPool", "IMPACT_DAO_POOL" and so on.
        """
        if isinstance(value, cls):
            return value
        normalized = str(value).strip()
        alias = CONTRACT_NAME_ALIASES.get(normalized)
        if alias is not None:
            return alias
        try:
            return cls(normalized.lower())
        except ValueError:
            raise ValueError(f"Unknown contract kind: {value!r}") from None


CONTRACT_NAME_ALIASES: dict[str, ContractKind] = {
    "StakingPool": ContractKind.STAKING_POOL,
    "ImpactDAOPool": ContractKind.IMPACT_DAO_POOL,
    "WealthBuildingDonation": ContractKind.WEALTH_BUILDING,
    "PlatformTreasury": ContractKind.PLATFORM_TREASURY,
    "FundBraveToken": ContractKind.VESTING_TOKEN,
}


class PoolKind(StrEnum):
    """Staking ledger variants sharing the stakes table."""

    CAMPAIGN = "campaign"
    IMPACT = "impact"
    TREASURY = "treasury"


class SyncStatus(StrEnum):
    SYNCING = "syncing"
    SYNCED = "synced"
    ERROR = "error"
    PAUSED = "paused"


class ProcessedStatus(StrEnum):
    APPLIED = "applied"
    SKIPPED = "skipped"


class FeeSourceType(StrEnum):
    STAKING_POOL = "STAKING_POOL"
    IMPACT_DAO_POOL = "IMPACT_DAO_POOL"
    WEALTH_BUILDING = "WEALTH_BUILDING"
    FUNDRAISER = "FUNDRAISER"
    OTHER = "OTHER"

    @classmethod
    def from_source(cls, source: str) -> "FeeSourceType":
        """Map the free-form source string emitted with a fee."""
        normalized = source.strip().upper().replace(" ", "_").replace("-", "_")
        compact = normalized.replace("_", "")
        for member in cls:
            if compact == member.value.replace("_", ""):
                return member
        if compact in ("STAKING", "CAMPAIGNSTAKING"):
            return cls.STAKING_POOL
        if compact in ("IMPACTDAO", "IMPACTPOOL"):
            return cls.IMPACT_DAO_POOL
        if compact in ("WEALTHBUILDINGDONATION", "ENDOWMENT"):
            return cls.WEALTH_BUILDING
        if compact in ("DONATION", "FUNDRAISERFACTORY"):
            return cls.FUNDRAISER
        return cls.OTHER


class VestingType(StrEnum):
    DONATION_REWARD = "DONATION_REWARD"
    ENGAGEMENT_REWARD = "ENGAGEMENT_REWARD"
    ECOSYSTEM = "ECOSYSTEM"
