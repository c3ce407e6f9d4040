"""Reports: maturity reminders, monthly summary, income insights, CSV export."""

from wealth_snapshot.reports.export import CSV_HEADER, export_csv, export_filename
from wealth_snapshot.reports.insights import (
    CASH_INTEREST_RATE,
    DEFAULT_DIVIDEND_YIELD,
    STOCK_DIVIDEND_YIELDS,
    build_income_insights,
    coverage_pct,
    dividend_yield,
)
from wealth_snapshot.reports.reminders import (
    days_until,
    matured,
    reminder_for,
    upcoming_maturities,
)
from wealth_snapshot.reports.summary import (
    average_monthly_growth,
    build_monthly_report,
    cleared_positions,
    foreign_currency_share,
    months_to_goal,
)

__all__ = [
    # Export
    "CSV_HEADER",
    "export_csv",
    "export_filename",
    # Insights
    "CASH_INTEREST_RATE",
    "DEFAULT_DIVIDEND_YIELD",
    "STOCK_DIVIDEND_YIELDS",
    "build_income_insights",
    "coverage_pct",
    "dividend_yield",
    # Reminders
    "days_until",
    "matured",
    "reminder_for",
    "upcoming_maturities",
    # Summary
    "average_monthly_growth",
    "build_monthly_report",
    "cleared_positions",
    "foreign_currency_share",
    "months_to_goal",
]
