"""
Monthly Report

Figures behind the monthly report screen, computed from the current
AppState:

- net worth and the change since the previous history point
- progress toward the wealth goal, average growth over the last (up to)
  three intervals and the months needed to reach the goal at that pace
- estimated monthly passive income from deposit interest
- cash share of total assets, with a warning above the configured ratio
- how long ago the balances were last updated
- stock positions sold down to zero
- how assets split between the base currency and foreign currencies
"""

import math
from datetime import datetime
from decimal import Decimal
from typing import Optional

from wealth_snapshot.models.report import MonthlyReport
from wealth_snapshot.models.wealth import BASE_CURRENCY, Account, AppState, Deposit, HistoryEntry
from wealth_snapshot.reports.insights import coverage_pct
from wealth_snapshot.reports.reminders import (
    DEFAULT_CRITICAL_DAYS,
    DEFAULT_WINDOW_DAYS,
    upcoming_maturities,
)
from wealth_snapshot.valuation.currency import to_base
from wealth_snapshot.valuation.engine import breakdown, counted_deposits, unrounded_total
from wealth_snapshot.valuation.interest import monthly_interest


GROWTH_LOOKBACK_MONTHS = 3


def average_monthly_growth(history: list[HistoryEntry]) -> Optional[Decimal]:
    """Mean change per interval over the last GROWTH_LOOKBACK_MONTHS intervals."""
    if len(history) < 2:
        return None
    months = min(len(history) - 1, GROWTH_LOOKBACK_MONTHS)
    start = history[-1 - months].total_value_base
    end = history[-1].total_value_base
    return Decimal(end - start) / months


def months_to_goal(remaining: Decimal, growth: Optional[Decimal]) -> Optional[int]:
    """Months until the goal at the given pace; None if not growing."""
    if remaining <= 0:
        return 0
    if growth is None or growth <= 0:
        return None
    return math.ceil(remaining / growth)


def cleared_positions(accounts: list[Account]) -> list[Account]:
    """Stock accounts with no shares left."""
    return [a for a in accounts if a.is_stock and not a.quantity]


def foreign_currency_share(accounts: list[Account], deposits: list[Deposit]) -> Optional[float]:
    """
    Percentage of assets (in base currency) held outside the base currency.

    Savings deposits are left out, as in the net worth total. None when
    there are no assets to split.
    """
    home = Decimal("0")
    foreign = Decimal("0")
    holdings = [(a.balance, a.currency) for a in accounts]
    holdings += [(d.principal, d.currency) for d in counted_deposits(deposits)]
    for amount, currency in holdings:
        value = to_base(amount, currency)
        if currency == BASE_CURRENCY:
            home += value
        else:
            foreign += value

    total = home + foreign
    if total <= 0:
        return None
    return min(100.0, max(0.0, float(foreign / total * 100)))


def build_monthly_report(
    state: AppState,
    now: datetime,
    monthly_expense_base: Decimal = Decimal("15000"),
    cash_warning_ratio: float = 0.4,
    stale_after_days: int = 30,
    reminder_window_days: int = DEFAULT_WINDOW_DAYS,
    critical_window_days: int = DEFAULT_CRITICAL_DAYS,
) -> MonthlyReport:
    history = state.history
    net_worth = history[-1].total_value_base if history else 0
    previous = history[-2].total_value_base if len(history) > 1 else net_worth

    goal = state.wealth_goal
    if goal > 0:
        progress = min(100.0, float(Decimal(net_worth) / goal * 100))
    else:
        progress = 100.0
    progress = max(0.0, progress)
    remaining = max(Decimal("0"), goal - net_worth)

    growth = average_monthly_growth(history)

    passive = sum(
        (to_base(monthly_interest(d), d.currency) for d in state.deposits),
        Decimal("0"),
    )
    coverage = coverage_pct(passive, monthly_expense_base)

    groups = breakdown(state.accounts, state.deposits)
    total_assets = unrounded_total(state.accounts, state.deposits)
    cash_ratio = float(groups.cash / total_assets) if total_assets > 0 else 0.0

    foreign_share = foreign_currency_share(state.accounts, state.deposits)
    home_share = 100.0 - foreign_share if foreign_share is not None else 0.0

    days_since_update = None
    if state.last_modified is not None:
        days_since_update = max(0, (now - state.last_modified).days)

    return MonthlyReport(
        as_of=now.date(),
        net_worth=net_worth,
        previous_net_worth=previous,
        net_change=net_worth - previous,
        wealth_goal=goal,
        goal_progress_pct=progress,
        remaining_to_goal=remaining,
        average_monthly_growth=growth,
        projected_months_to_goal=months_to_goal(remaining, growth),
        monthly_passive_income=passive,
        passive_income_coverage_pct=coverage,
        cash_ratio=cash_ratio,
        cash_warning=cash_ratio > cash_warning_ratio,
        days_since_update=days_since_update,
        is_stale=days_since_update is not None and days_since_update > stale_after_days,
        upcoming_maturities=upcoming_maturities(
            state.deposits,
            now.date(),
            reminder_window_days,
            critical_window_days,
        ),
        cleared_positions=cleared_positions(state.accounts),
        home_currency_share_pct=home_share,
        foreign_currency_share_pct=foreign_share or 0.0,
    )
