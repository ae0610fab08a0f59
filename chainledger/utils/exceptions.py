"""
Exception handling utilities.

Defines the indexer's error taxonomy. Scan loops catch these to keep a
failure local to one log or one batch.
"""


class IndexerError(Exception):
    """Base class for indexer errors."""


class ProviderUnavailable(IndexerError):
    """A chain has no usable RPC endpoint; it is excluded from scanning."""

    def __init__(self, chain_id: int, reason: str) -> None:
        super().__init__(f"Chain {chain_id} unavailable: {reason}")
        self.chain_id = chain_id
        self.reason = reason


class BatchFetchFailed(IndexerError):
    """eth_getLogs failed for one block range; the range is healed by the sweep."""

    def __init__(
        self,
        chain_id: int,
        address: str,
        from_block: int,
        to_block: int,
        reason: str,
    ) -> None:
        super().__init__(
            f"Fetching logs for {address} on chain {chain_id} "
            f"[{from_block}, {to_block}] failed: {reason}"
        )
        self.chain_id = chain_id
        self.address = address
        self.from_block = from_block
        self.to_block = to_block


class DecodeFailed(IndexerError):
    """A single log could not be decoded against its schema."""


class HandlerReferenceMissing(IndexerError):
    """
    A handler could not resolve an entity the event refers to.

    Retryable misses (stake or schedule not seen yet) are left unrecorded so
    a later scan re-attempts them. Terminal misses (harvest with no active
    stakers) are recorded as skipped.
    """

    def __init__(self, message: str, retryable: bool = True) -> None:
        super().__init__(message)
        self.retryable = retryable


class LedgerInvariantViolation(IndexerError):
    """Applying the event would leave the ledger in an invalid state."""
