"""
Split arithmetic shared by every ledger handler.

All shares are floored. Whatever the floors leave over is retained by the
pool or contract and reported, never paid to anyone. The same rule applies
to basis-point splits and to pro-rata allocations over principals.
"""

from dataclasses import dataclass

from chainledger.config.constants import (
    DEFAULT_YIELD_SPLIT,
    MIN_PLATFORM_SHARE,
    TOTAL_BASIS,
    WEALTH_DIRECT_BPS,
    WEALTH_ENDOWMENT_BPS,
)


@dataclass(frozen=True)
class SplitResult:
    """Floored shares plus what stays with the pool."""

    total: int
    shares: tuple[int, ...]
    retained: int

    @property
    def distributed(self) -> int:
        return self.total - self.retained


def split_amount(amount: int, bps: tuple[int, ...] | list[int]) -> SplitResult:
    """
    Split an amount by basis points with floor-and-retain rounding.

    Args:
        amount: Non-negative integer amount
        bps: Shares in basis points, must sum to TOTAL_BASIS

    Returns:
        SplitResult with one floored share per entry of bps

    Raises:
        ValueError: Negative amount, negative share, or shares not summing to 10000
    """
    if amount < 0:
        raise ValueError(f"Cannot split negative amount {amount}")
    if any(b < 0 for b in bps):
        raise ValueError(f"Negative basis points in {tuple(bps)}")
    if sum(bps) != TOTAL_BASIS:
        raise ValueError(f"Basis points {tuple(bps)} do not sum to {TOTAL_BASIS}")

    shares = tuple(amount * b // TOTAL_BASIS for b in bps)
    return SplitResult(total=amount, shares=shares, retained=amount - sum(shares))


def allocate_pro_rata(amount: int, weights: list[int]) -> SplitResult:
    """
    Allocate an amount proportionally to integer weights.

    Each share is floor(amount * w / sum(weights)). With no positive weight
    nothing is allocated and the whole amount is retained.
    """
    if amount < 0:
        raise ValueError(f"Cannot allocate negative amount {amount}")
    if any(w < 0 for w in weights):
        raise ValueError("Weights must be non-negative")

    total_weight = sum(weights)
    if total_weight == 0:
        return SplitResult(total=amount, shares=tuple(0 for _ in weights), retained=amount)

    shares = tuple(amount * w // total_weight for w in weights)
    return SplitResult(total=amount, shares=shares, retained=amount - sum(shares))


def validate_yield_split(dao_share: int, staker_share: int, platform_share: int) -> str | None:
    """
    Check a (dao or cause, staker, platform) split.

    Returns:
        None when valid, otherwise a reason
    """
    if min(dao_share, staker_share, platform_share) < 0:
        return "shares must be non-negative"
    if dao_share + staker_share + platform_share != TOTAL_BASIS:
        return f"shares must sum to {TOTAL_BASIS}"
    if platform_share < MIN_PLATFORM_SHARE:
        return f"platform share must be at least {MIN_PLATFORM_SHARE}"
    return None


def preview_yield_split(
    total_yield: int,
    split: tuple[int, int, int] = DEFAULT_YIELD_SPLIT,
) -> dict[str, int]:
    """Preview how a staker's split would divide a yield amount."""
    result = split_amount(total_yield, split)
    dao, staker, platform = result.shares
    return {
        "dao_amount": dao,
        "staker_amount": staker,
        "platform_amount": platform,
        "retained": result.retained,
    }


def preview_donation_split(amount: int) -> dict[str, int]:
    """Preview the direct / endowment split of a wealth-building donation."""
    result = split_amount(amount, (WEALTH_DIRECT_BPS, WEALTH_ENDOWMENT_BPS))
    direct, endowment = result.shares
    return {
        "direct_amount": direct,
        "endowment_amount": endowment,
        "retained": result.retained,
    }
