"""
History Ledger

An ordered log of month-end net worth snapshots, at most one per period.
The entry for the current period is overwritten on every change, so the
last write in a month is what the month shows.
"""

from datetime import date, datetime
from typing import Sequence, Union

from wealth_snapshot.models.wealth import HistoryEntry


def period_key(moment: Union[date, datetime]) -> str:
    """Year-month key for a date, e.g. 2024-03."""
    return f"{moment.year:04d}-{moment.month:02d}"


def upsert_current_period(
    history: Sequence[HistoryEntry],
    period: str,
    total: int,
) -> list[HistoryEntry]:
    """
    Return a new history with `period` set to `total`.

    An existing entry keeps its position; a new period is appended at the
    end. The input sequence is not modified.
    """
    updated = list(history)
    for index, entry in enumerate(updated):
        if entry.period == period:
            updated[index] = HistoryEntry(period=period, total_value_base=total)
            return updated

    updated.append(HistoryEntry(period=period, total_value_base=total))
    return updated


def latest_value(history: Sequence[HistoryEntry]) -> int:
    """Value of the last entry, 0 for an empty history."""
    return history[-1].total_value_base if history else 0
