"""Tests for the balance aggregator and the summary view."""

import pytest
from datetime import date
from decimal import Decimal

from moneymate.errors import ValidationError
from moneymate.ledger.aggregator import (
    filter_by_range,
    percent_of,
    round_half_up,
    shared_savings_pool,
    summarize,
    total_by_type,
)
from moneymate.models.ledger import Transaction, TransactionType

from tests.conftest import OTHER_USER, USER


def tx(amount, type, day, category="General"):
    return Transaction(
        user_id=USER,
        amount=Decimal(amount),
        type=type,
        category=category,
        date=day,
    )


INCOME = TransactionType.INCOME
EXPENSE = TransactionType.EXPENSE
SAVINGS = TransactionType.SAVINGS


class TestRounding:
    """Tests for half-up percentage rounding."""

    def test_round_half_up(self):
        """Test that halves round away from zero."""
        assert round_half_up(Decimal("66.5")) == 67
        assert round_half_up(Decimal("0.5")) == 1
        assert round_half_up(Decimal("66.4999")) == 66

    def test_percent_of_zero_whole(self):
        """Test that a zero denominator yields 0."""
        assert percent_of(Decimal("50"), Decimal("0")) == 0

    def test_percent_of(self):
        """Test 200 of 300 is 67%."""
        assert percent_of(Decimal("200"), Decimal("300")) == 67


class TestTotals:
    """Tests for totals and the summary."""

    def test_empty_set_is_all_zeros(self):
        """Test that no transactions yields zeros everywhere."""
        summary = summarize([], "2024-03")
        assert summary.total_income == 0
        assert summary.total_expenses == 0
        assert summary.total_savings == 0
        assert summary.net_balance == 0
        assert summary.monthly_income == 0

    def test_net_balance_includes_offsets(self):
        """Test net balance with a goal achievement pair recorded."""
        transactions = [
            tx("1000", INCOME, date(2024, 3, 1)),
            tx("200", EXPENSE, date(2024, 3, 2)),
            tx("400", SAVINGS, date(2024, 3, 3)),
            tx("400", EXPENSE, date(2024, 3, 4)),
            tx("-400", SAVINGS, date(2024, 3, 4)),
        ]
        summary = summarize(transactions, "2024-03")
        assert summary.total_savings == Decimal("0")
        assert summary.total_expenses == Decimal("600")
        assert summary.net_balance == Decimal("400")

    def test_monthly_split_uses_month_prefix(self):
        """Test that only transactions dated in the month count monthly."""
        transactions = [
            tx("1000", INCOME, date(2024, 2, 29)),
            tx("500", INCOME, date(2024, 3, 1)),
            tx("50", EXPENSE, date(2024, 3, 31)),
        ]
        summary = summarize(transactions, "2024-03")
        assert summary.total_income == Decimal("1500")
        assert summary.monthly_income == Decimal("500")
        assert summary.monthly_expenses == Decimal("50")
        assert summary.month == "2024-03"

    def test_date_range_is_inclusive(self):
        """Test that range bounds are included."""
        transactions = [
            tx("1", INCOME, date(2024, 1, 1)),
            tx("2", INCOME, date(2024, 1, 15)),
            tx("4", INCOME, date(2024, 1, 31)),
            tx("8", INCOME, date(2024, 2, 1)),
        ]
        kept = filter_by_range(transactions, date(2024, 1, 1), date(2024, 1, 31))
        assert total_by_type(kept, INCOME) == Decimal("7")

    def test_shared_pool_nets_offsets(self):
        """Test that the pool is the net of savings rows only."""
        transactions = [
            tx("300", SAVINGS, date(2024, 1, 1)),
            tx("100", SAVINGS, date(2024, 1, 2)),
            tx("-250", SAVINGS, date(2024, 1, 3)),
            tx("999", INCOME, date(2024, 1, 3)),
        ]
        assert shared_savings_pool(transactions) == Decimal("150")

    def test_summarize_is_idempotent(self):
        """Test that summarizing twice gives the same result."""
        transactions = [tx("10", INCOME, date(2024, 3, 1)), tx("3", SAVINGS, date(2024, 3, 1))]
        assert summarize(transactions, "2024-03") == summarize(transactions, "2024-03")


class TestSummaryView:
    """Tests for FinanceTracker.get_summary."""

    async def test_summary_defaults_to_current_month(self, tracker):
        """Test monthly figures follow the injected clock."""
        await tracker.transactions.record_transaction(USER, "100", "income", "Salary", "2024-03-01")
        await tracker.transactions.record_transaction(USER, "40", "income", "Salary", "2024-02-01")

        summary = await tracker.get_summary(USER)
        assert summary.month == "2024-03"
        assert summary.monthly_income == Decimal("100")
        assert summary.total_income == Decimal("140")

    async def test_summary_is_scoped_to_user(self, tracker):
        """Test that other users' rows never leak into a summary."""
        await tracker.transactions.record_transaction(OTHER_USER, "100", "income", "Salary", "2024-03-01")
        summary = await tracker.get_summary(USER)
        assert summary.total_income == 0

    async def test_summary_with_range_and_month(self, tracker):
        """Test explicit range and month arguments."""
        await tracker.transactions.record_transaction(USER, "100", "income", "Salary", "2024-01-10")
        await tracker.transactions.record_transaction(USER, "30", "expense", "Food", "2024-01-20")
        await tracker.transactions.record_transaction(USER, "500", "income", "Salary", "2024-02-10")

        summary = await tracker.get_summary(
            USER, date_from="2024-01-01", date_to="2024-01-31", month="2024-01"
        )
        assert summary.total_income == Decimal("100")
        assert summary.net_balance == Decimal("70")
        assert summary.monthly_expenses == Decimal("30")

    async def test_summary_rejects_bad_month(self, tracker):
        """Test that a malformed month is a validation error."""
        with pytest.raises(ValidationError):
            await tracker.get_summary(USER, month="2024-3")
