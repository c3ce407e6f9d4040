"""State store package."""

from wealth_snapshot.store.seed import DEFAULT_WEALTH_GOAL, default_state
from wealth_snapshot.store.state_store import (
    StateStore,
    add_months,
    utc_now,
)

__all__ = [
    "DEFAULT_WEALTH_GOAL",
    "StateStore",
    "add_months",
    "default_state",
    "utc_now",
]
