"""Tests for currency conversion, net worth, history and interest."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from wealth_snapshot.models import Currency, DepositKind, HistoryEntry
from wealth_snapshot.valuation import (
    breakdown,
    compute_total,
    estimate_term_interest,
    from_base,
    interest_between,
    interest_for_months,
    latest_value,
    monthly_interest,
    period_key,
    rate_for,
    round_whole,
    to_base,
    upsert_current_period,
)

from conftest import cash_account, deposit, stock_account


class TestCurrency:
    """Tests for the currency converter."""

    @pytest.mark.parametrize("amount", ["0", "1", "1234.56", "-20"])
    def test_base_currency_is_identity(self, amount):
        """Test that HKD converts to itself."""
        assert to_base(Decimal(amount), Currency.HKD) == Decimal(amount)

    @pytest.mark.parametrize("currency", list(Currency))
    def test_conversion_is_linear(self, currency):
        """Test to_base(k*x) == k*to_base(x)."""
        x = Decimal("123.45")
        k = Decimal("3")
        assert to_base(k * x, currency) == k * to_base(x, currency)

    def test_rates(self):
        """Test the static rate table."""
        assert to_base(Decimal("1000"), Currency.AUD) == Decimal("5100.0")
        assert to_base(Decimal("100"), "USD") == Decimal("780.0")

    def test_unknown_currency_is_unconverted(self):
        """Test that unknown codes pass through."""
        assert rate_for("JPY") == Decimal("1")
        assert to_base(Decimal("50"), "JPY") == Decimal("50")

    def test_from_base(self):
        """Test display conversion back out of base."""
        assert from_base(Decimal("5100"), Currency.AUD) == Decimal("1000")


class TestValuationEngine:
    """Tests for compute_total and breakdown."""

    def test_savings_deposit_is_excluded(self):
        """Test that adding a Savings deposit leaves the total unchanged."""
        accounts = [cash_account(balance="5000")]
        deposits = [deposit("fd", principal="2000")]
        savings = deposit("sv", principal="9999", kind=DepositKind.SAVINGS)

        assert compute_total(accounts, deposits + [savings]) == compute_total(accounts, deposits)

    def test_fixed_deposit_is_included(self):
        """Test that a Fixed deposit adds its converted principal."""
        accounts = [cash_account(balance="5000")]
        fixed = deposit("fd", principal="1000", currency=Currency.AUD)

        assert compute_total(accounts, [fixed]) == compute_total(accounts, []) + 5100

    def test_kind_switch_scenario(self):
        """Test Cash 5000 + Savings 1000 = 5000; switching to Fixed gives 6000."""
        accounts = [cash_account(balance="5000")]
        savings = deposit("d", principal="1000", rate="2", kind=DepositKind.SAVINGS)
        assert compute_total(accounts, [savings]) == 5000

        fixed = savings.model_copy(update={"deposit_kind": DepositKind.FIXED})
        assert compute_total(accounts, [fixed]) == 6000

    def test_aud_account(self):
        """Test AUD 1000 at 5.1 -> 5100."""
        assert compute_total([cash_account(balance="1000", currency=Currency.AUD)], []) == 5100

    def test_rounds_once_at_the_end(self):
        """Test that parts are summed before rounding."""
        accounts = [
            cash_account("a", balance="0.4"),
            cash_account("b", balance="0.4"),
        ]
        # Rounding each part would give 0
        assert compute_total(accounts, []) == 1

    def test_half_up(self):
        """Test half-up rounding."""
        assert round_whole(Decimal("2.5")) == 3
        assert round_whole(Decimal("2.49")) == 2

    def test_empty(self):
        """Test the empty portfolio."""
        assert compute_total([], []) == 0

    def test_breakdown_groups(self):
        """Test per-group subtotals and the excluded savings figure."""
        result = breakdown(
            [cash_account(balance="1000"), stock_account(quantity="10", price="100")],
            [deposit("fd", principal="2000"), deposit("sv", principal="500", kind=DepositKind.SAVINGS)],
        )
        assert result.cash == Decimal("1000")
        assert result.stock == Decimal("1000")
        assert result.fixed_deposits == Decimal("2000")
        assert result.excluded_savings == Decimal("500")
        assert result.total == 4000


class TestHistoryLedger:
    """Tests for period keys and upserts."""

    def test_period_key(self):
        """Test the YYYY-MM format."""
        assert period_key(datetime(2024, 3, 1, tzinfo=timezone.utc)) == "2024-03"
        assert period_key(date(987, 11, 30)) == "0987-11"

    def test_upsert_same_period_twice(self):
        """Test that two writes in a pre-existing period keep the length and the last value."""
        history = [
            HistoryEntry(period="2024-01", total_value_base=100),
            HistoryEntry(period="2024-02", total_value_base=200),
        ]
        once = upsert_current_period(history, "2024-02", 300)
        twice = upsert_current_period(once, "2024-02", 400)

        assert len(twice) == len(history)
        assert twice[-1].total_value_base == 400

    def test_upsert_replaces_in_place(self):
        """Test that an earlier period keeps its position."""
        history = [
            HistoryEntry(period="2024-01", total_value_base=100),
            HistoryEntry(period="2024-02", total_value_base=200),
        ]
        updated = upsert_current_period(history, "2024-01", 150)
        assert [h.period for h in updated] == ["2024-01", "2024-02"]
        assert updated[0].total_value_base == 150

    def test_upsert_appends_new_period(self):
        """Test that a new period goes at the end."""
        history = [HistoryEntry(period="2024-01", total_value_base=100)]
        updated = upsert_current_period(history, "2024-02", 120)
        assert [h.period for h in updated] == ["2024-01", "2024-02"]

    def test_upsert_does_not_mutate_input(self):
        """Test that the input list is untouched."""
        history = [HistoryEntry(period="2024-01", total_value_base=100)]
        upsert_current_period(history, "2024-01", 999)
        upsert_current_period(history, "2024-02", 999)
        assert len(history) == 1
        assert history[0].total_value_base == 100

    def test_latest_value(self):
        """Test latest value and the empty default."""
        assert latest_value([]) == 0
        assert latest_value([HistoryEntry(period="2024-01", total_value_base=7)]) == 7


class TestInterest:
    """Tests for simple-interest estimates."""

    def test_interest_for_months(self):
        """Test 100000 at 4% for 3 months."""
        assert interest_for_months(Decimal("100000"), Decimal("4"), 3) == 1000

    def test_interest_for_no_months(self):
        """Test that a zero term earns nothing."""
        assert interest_for_months(Decimal("100000"), Decimal("4"), 0) == 0

    def test_interest_between_dates(self):
        """Test the 365-day basis."""
        assert interest_between(
            Decimal("36500"), Decimal("10"), date(2024, 1, 1), date(2024, 1, 11)
        ) == 100

    def test_interest_between_reversed_dates(self):
        """Test that a maturity before the start earns nothing."""
        assert interest_between(
            Decimal("36500"), Decimal("10"), date(2024, 1, 11), date(2024, 1, 1)
        ) == 0

    def test_estimate_term_interest_default_term(self):
        """Test the default three-month estimate."""
        d = deposit(principal="100000", rate="4.1")
        assert estimate_term_interest(d) == 1025

    def test_monthly_interest(self):
        """Test unrounded monthly interest."""
        d = deposit(principal="12000", rate="5")
        assert monthly_interest(d) == Decimal("50")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
