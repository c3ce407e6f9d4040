"""Seed state used on first run or when the persisted record is unusable."""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from wealth_snapshot.models.wealth import (
    Account,
    AccountKind,
    AppState,
    Currency,
    Deposit,
    HistoryEntry,
    MaturityAction,
)


DEFAULT_WEALTH_GOAL = Decimal("2000000")


def default_state(now: datetime, wealth_goal: Optional[Decimal] = None) -> AppState:
    """
    Sample accounts, two deposits maturing 5 and 25 days after `now`, and
    six months of history so the charts have something to show.

    The seed carries no timestamp, so any timestamped remote snapshot wins
    over it.
    """
    today = now.date()
    return AppState(
        accounts=[
            Account(
                id="1",
                name="HSBC HK",
                kind=AccountKind.CASH,
                currency=Currency.HKD,
                balance=Decimal("150000"),
            ),
            Account(
                id="2",
                name="CommBank AU",
                kind=AccountKind.CASH,
                currency=Currency.AUD,
                balance=Decimal("5000"),
            ),
            Account(
                id="3",
                name="Interactive Brokers",
                kind=AccountKind.STOCK,
                currency=Currency.HKD,
                symbol="0700.HK",
                quantity=Decimal("100"),
                last_price=Decimal("450"),
            ),
        ],
        deposits=[
            Deposit(
                id="101",
                bank_name="Standard Chartered",
                principal=Decimal("100000"),
                currency=Currency.HKD,
                maturity_date=today + timedelta(days=5),
                action_on_maturity=MaturityAction.RENEW,
                interest_rate=Decimal("4.1"),
                auto_roll=True,
            ),
            Deposit(
                id="102",
                bank_name="Virtual Bank (Mox)",
                principal=Decimal("50000"),
                currency=Currency.HKD,
                maturity_date=today + timedelta(days=25),
                action_on_maturity=MaturityAction.TRANSFER_OUT,
                interest_rate=Decimal("3.8"),
                auto_roll=False,
            ),
        ],
        history=[
            HistoryEntry(period="2023-05", total_value_base=180000),
            HistoryEntry(period="2023-06", total_value_base=185000),
            HistoryEntry(period="2023-07", total_value_base=182000),
            HistoryEntry(period="2023-08", total_value_base=195000),
            HistoryEntry(period="2023-09", total_value_base=210000),
            HistoryEntry(period="2023-10", total_value_base=215000),
        ],
        last_modified=None,
        wealth_goal=wealth_goal if wealth_goal is not None else DEFAULT_WEALTH_GOAL,
    )
