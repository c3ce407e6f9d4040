"""
Simple-interest estimates for deposits.

Used to pre-fill the interest on rollover and settlement (the user may
override it, including down to zero) and to estimate passive income.
"""

from datetime import date
from decimal import Decimal

from wealth_snapshot.models.wealth import Deposit
from wealth_snapshot.valuation.engine import round_whole


DEFAULT_TERM_MONTHS = 3


def interest_for_months(principal: Decimal, rate: Decimal, months: int) -> int:
    """principal * rate% * months/12, rounded to whole units."""
    if months <= 0:
        return 0
    return round_whole(Decimal(principal) * Decimal(rate) / 100 * Decimal(months) / 12)


def interest_between(
    principal: Decimal,
    rate: Decimal,
    start: date,
    maturity: date,
) -> int:
    """Interest accrued from start to maturity on a 365-day basis."""
    days = (maturity - start).days
    if days <= 0:
        return 0
    return round_whole(Decimal(principal) * Decimal(rate) / 100 * Decimal(days) / 365)


def estimate_term_interest(
    deposit: Deposit,
    months: int = DEFAULT_TERM_MONTHS,
) -> int:
    """Default interest offered when a deposit is rolled over or settled."""
    return interest_for_months(deposit.principal, deposit.interest_rate, months)


def monthly_interest(deposit: Deposit) -> Decimal:
    """Interest earned per month, in deposit currency, unrounded."""
    return deposit.principal * deposit.interest_rate / 100 / 12
