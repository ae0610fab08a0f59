"""
Running aggregate updates.

Aggregate rows are rebuilt from their source records only when they do not
exist yet; after that every event moves them by its own amounts.
"""

from typing import Any


def add_deltas(row: Any, **deltas: int) -> None:
    """Add each delta to the same-named column of an aggregate row."""
    for field, delta in deltas.items():
        if delta:
            setattr(row, field, getattr(row, field) + delta)
