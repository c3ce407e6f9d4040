"""
Passive income insights.

Deposit interest uses each deposit's own rate. Stock dividends and cash
interest have no observed figure, so they use assumed yields.
"""

from decimal import Decimal

from wealth_snapshot.models.report import IncomeSource, IncomeSourceKind, PassiveIncomeInsights
from wealth_snapshot.models.wealth import AccountKind, AppState, Currency
from wealth_snapshot.valuation.currency import to_base
from wealth_snapshot.valuation.interest import monthly_interest


# Assumed annual dividend yield (%) by listing currency
STOCK_DIVIDEND_YIELDS: dict[Currency, Decimal] = {
    Currency.USD: Decimal("1.5"),
}
DEFAULT_DIVIDEND_YIELD = Decimal("4.5")

# Assumed annual interest (%) on cash accounts
CASH_INTEREST_RATE = Decimal("0.5")


def dividend_yield(currency: Currency) -> Decimal:
    return STOCK_DIVIDEND_YIELDS.get(currency, DEFAULT_DIVIDEND_YIELD)


def coverage_pct(monthly_income: Decimal, monthly_expense_base: Decimal) -> float:
    """Share of monthly expenses covered, capped at 100."""
    if monthly_expense_base <= 0:
        return 100.0
    return min(100.0, float(monthly_income / monthly_expense_base * 100))


def build_income_insights(
    state: AppState,
    monthly_expense_base: Decimal = Decimal("15000"),
) -> PassiveIncomeInsights:
    deposit_sources = [
        IncomeSource(
            name=d.bank_name,
            kind=IncomeSourceKind.DEPOSIT,
            currency=d.currency,
            yield_pct=d.interest_rate,
            monthly=to_base(monthly_interest(d), d.currency),
        )
        for d in state.deposits
    ]
    stock_sources = [
        IncomeSource(
            name=a.symbol or a.name,
            kind=IncomeSourceKind.STOCK,
            currency=a.currency,
            yield_pct=dividend_yield(a.currency),
            monthly=to_base(a.balance, a.currency) * dividend_yield(a.currency) / 100 / 12,
        )
        for a in state.accounts
        if a.kind == AccountKind.STOCK
    ]

    deposit_monthly = sum((s.monthly for s in deposit_sources), Decimal("0"))
    stock_monthly = sum((s.monthly for s in stock_sources), Decimal("0"))

    cash_reserve = sum(
        (to_base(a.balance, a.currency) for a in state.accounts if a.kind == AccountKind.CASH),
        Decimal("0"),
    )
    cash_monthly = cash_reserve * CASH_INTEREST_RATE / 100 / 12
    total = deposit_monthly + stock_monthly + cash_monthly

    net_worth = state.history[-1].total_value_base if state.history else 0
    if net_worth > 0:
        efficiency = float((net_worth - cash_reserve) / net_worth * 100)
    else:
        efficiency = 0.0

    return PassiveIncomeInsights(
        deposit_monthly=deposit_monthly,
        stock_monthly=stock_monthly,
        cash_monthly=cash_monthly,
        total_monthly=total,
        coverage_pct=coverage_pct(total, monthly_expense_base),
        # sorted() is stable: ties keep deposits ahead of stocks
        sources=sorted(deposit_sources + stock_sources, key=lambda s: s.monthly, reverse=True),
        cash_reserve=cash_reserve,
        net_worth=net_worth,
        efficiency_score=efficiency,
    )
