"""
Maturity reminders for deposits.

Days are counted in calendar days from a reference date: a deposit
maturing today has 0 days left and counts as matured.
"""

from datetime import date
from typing import Iterable

from wealth_snapshot.models.report import MaturityReminder
from wealth_snapshot.models.wealth import Deposit


DEFAULT_WINDOW_DAYS = 30
DEFAULT_CRITICAL_DAYS = 7


def days_until(maturity: date, today: date) -> int:
    return (maturity - today).days


def reminder_for(
    deposit: Deposit,
    today: date,
    critical_days: int = DEFAULT_CRITICAL_DAYS,
) -> MaturityReminder:
    days_left = days_until(deposit.maturity_date, today)
    return MaturityReminder(
        deposit=deposit,
        days_left=days_left,
        is_matured=days_left <= 0,
        is_critical=days_left <= critical_days,
    )


def upcoming_maturities(
    deposits: Iterable[Deposit],
    today: date,
    window_days: int = DEFAULT_WINDOW_DAYS,
    critical_days: int = DEFAULT_CRITICAL_DAYS,
) -> list[MaturityReminder]:
    """
    Deposits maturing within `window_days` (matured ones included),
    soonest first. Savings deposits are listed too.
    """
    reminders = [
        reminder_for(deposit, today, critical_days)
        for deposit in deposits
        if days_until(deposit.maturity_date, today) <= window_days
    ]
    reminders.sort(key=lambda r: r.deposit.maturity_date)
    return reminders


def matured(deposits: Iterable[Deposit], today: date) -> list[Deposit]:
    """Deposits at or past maturity, waiting to be rolled over or settled."""
    return [d for d in deposits if days_until(d.maturity_date, today) <= 0]
