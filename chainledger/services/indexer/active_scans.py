"""
Registry of scans currently running per (chain, contract).
"""

from enum import StrEnum


class ScanKind(StrEnum):
    BACKFILL = "backfill"
    SWEEP = "sweep"


class ActiveScans:
    """
    At most one scan of each kind per pair.

    A backfill and a sweep of the same pair may overlap; idempotent
    dispatch makes that harmless. All calls happen on the event loop
    thread, so no lock is needed.
    """

    def __init__(self) -> None:
        self._running: set[tuple[ScanKind, tuple[int, str]]] = set()

    def try_begin(self, kind: ScanKind, pair: tuple[int, str]) -> bool:
        if (kind, pair) in self._running:
            return False
        self._running.add((kind, pair))
        return True

    def end(self, kind: ScanKind, pair: tuple[int, str]) -> None:
        self._running.discard((kind, pair))

    def snapshot(self) -> list[str]:
        return sorted(f"{kind.value}:{chain_id}:{address}" for kind, (chain_id, address) in self._running)
