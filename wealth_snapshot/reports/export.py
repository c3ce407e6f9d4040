"""CSV export of accounts and deposits."""

import csv
import io
from datetime import date

from wealth_snapshot.models.wealth import AppState


CSV_HEADER = ["Type", "Name", "Currency", "Balance/Principal", "Symbol/Bank", "Maturity"]


def export_filename(today: date) -> str:
    return f"wealth_snapshot_{today.isoformat()}.csv"


def export_csv(state: AppState) -> str:
    """One row per account, then one per deposit."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)

    for account in state.accounts:
        writer.writerow([
            account.kind.value,
            account.name,
            account.currency.value,
            str(account.balance),
            account.symbol or "",
            "",
        ])

    for deposit in state.deposits:
        writer.writerow([
            "FixedDeposit",
            deposit.bank_name,
            deposit.currency.value,
            str(deposit.principal),
            "",
            deposit.maturity_date.isoformat(),
        ])

    return buffer.getvalue()
