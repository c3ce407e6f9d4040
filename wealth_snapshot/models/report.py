"""Report models: valuation breakdown, maturity reminders, monthly summary, income insights."""

from datetime import date
from decimal import Decimal
from typing import Optional

from enum import Enum

from pydantic import BaseModel, Field

from wealth_snapshot.models.wealth import Account, Currency, Deposit


class ValuationBreakdown(BaseModel):
    """Per-group subtotals in base currency (unrounded) and the rounded total."""

    cash: Decimal = Decimal("0")
    stock: Decimal = Decimal("0")
    crypto: Decimal = Decimal("0")
    fixed_deposits: Decimal = Decimal("0")
    excluded_savings: Decimal = Field(
        default=Decimal("0"),
        description="Savings principal left out of the total"
    )
    total: int = 0


class MaturityReminder(BaseModel):
    """A deposit and how far it is from maturity."""

    deposit: Deposit
    days_left: int
    is_matured: bool
    is_critical: bool


class MonthlyReport(BaseModel):
    """Figures behind the monthly report screen."""

    as_of: date
    net_worth: int
    previous_net_worth: int
    net_change: int
    wealth_goal: Decimal
    goal_progress_pct: float = Field(ge=0.0, le=100.0)
    remaining_to_goal: Decimal
    average_monthly_growth: Optional[Decimal] = None
    projected_months_to_goal: Optional[int] = None
    monthly_passive_income: Decimal
    passive_income_coverage_pct: float = Field(ge=0.0, le=100.0)
    cash_ratio: float
    cash_warning: bool
    days_since_update: Optional[int] = None
    is_stale: bool = False
    upcoming_maturities: list[MaturityReminder] = Field(default_factory=list)
    cleared_positions: list[Account] = Field(
        default_factory=list,
        description="Stock accounts whose holding has been sold down to zero"
    )
    home_currency_share_pct: float = Field(default=0.0, ge=0.0, le=100.0)
    foreign_currency_share_pct: float = Field(default=0.0, ge=0.0, le=100.0)


class IncomeSourceKind(str, Enum):
    DEPOSIT = "FD"
    STOCK = "Stock"


class IncomeSource(BaseModel):
    """One contributor to passive income; monthly is in base currency."""

    name: str
    kind: IncomeSourceKind
    currency: Currency
    yield_pct: Decimal
    monthly: Decimal


class PassiveIncomeInsights(BaseModel):
    """
    Estimated monthly passive income by source, in base currency.

    Stock dividends and cash interest are assumed yields, not observed
    payouts. efficiency_score is the share of net worth not sitting in
    cash accounts.
    """

    deposit_monthly: Decimal
    stock_monthly: Decimal
    cash_monthly: Decimal
    total_monthly: Decimal
    coverage_pct: float = Field(ge=0.0, le=100.0)
    sources: list[IncomeSource] = Field(
        default_factory=list,
        description="Deposits and stocks, highest monthly income first"
    )
    cash_reserve: Decimal
    net_worth: int
    efficiency_score: float
