"""Valuation package: currency conversion, net worth, history, interest."""

from wealth_snapshot.valuation.currency import (
    RATES,
    from_base,
    rate_for,
    to_base,
)
from wealth_snapshot.valuation.engine import (
    breakdown,
    compute_total,
    counted_deposits,
    round_whole,
)
from wealth_snapshot.valuation.history import (
    latest_value,
    period_key,
    upsert_current_period,
)
from wealth_snapshot.valuation.interest import (
    DEFAULT_TERM_MONTHS,
    estimate_term_interest,
    interest_between,
    interest_for_months,
    monthly_interest,
)

__all__ = [
    "RATES",
    "from_base",
    "rate_for",
    "to_base",
    "breakdown",
    "compute_total",
    "counted_deposits",
    "round_whole",
    "latest_value",
    "period_key",
    "upsert_current_period",
    "DEFAULT_TERM_MONTHS",
    "estimate_term_interest",
    "interest_between",
    "interest_for_months",
    "monthly_interest",
]
