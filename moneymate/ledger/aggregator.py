"""
Balance Aggregator

Pure functions over a user's transaction set. Nothing here touches storage.

DESIGN DECISION: The savings total is NET of goal-achievement offsets.
Offsets are savings-type rows with negative amounts, so summing every
savings row gives the shared savings pool directly.

Monthly figures match transactions by the YYYY-MM prefix of their ISO
date string.
"""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from moneymate.models.ledger import LedgerSummary, Transaction, TransactionType


ZERO = Decimal("0")


def round_half_up(value: Decimal) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def percent_of(part: Decimal, whole: Decimal) -> int:
    """Integer percentage of `part` in `whole`, 0 when `whole` is zero."""
    if whole == 0:
        return 0
    return round_half_up(part * 100 / whole)


def month_key(value: date) -> str:
    return value.isoformat()[:7]


def in_month(transaction: Transaction, month: str) -> bool:
    return transaction.date.isoformat().startswith(month)


def filter_by_range(
    transactions: Iterable[Transaction],
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> list[Transaction]:
    """Keep transactions within the inclusive [date_from, date_to] range."""
    return [
        t for t in transactions
        if (date_from is None or t.date >= date_from)
        and (date_to is None or t.date <= date_to)
    ]


def total_by_type(
    transactions: Iterable[Transaction],
    transaction_type: TransactionType,
    month: Optional[str] = None,
) -> Decimal:
    """Sum of amounts of one type, optionally limited to a YYYY-MM month."""
    return sum(
        (
            t.amount for t in transactions
            if t.type == transaction_type
            and (month is None or in_month(t, month))
        ),
        ZERO,
    )


def shared_savings_pool(transactions: Iterable[Transaction]) -> Decimal:
    """Current savings available to every goal of the user."""
    return total_by_type(transactions, TransactionType.SAVINGS)


def summarize(
    transactions: Iterable[Transaction],
    month: str,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> LedgerSummary:
    """
    Compute running totals and the monthly split for `month`.

    net_balance = income - expenses - savings. An empty set yields zeros.
    """
    rows = filter_by_range(transactions, date_from, date_to)

    total_income = total_by_type(rows, TransactionType.INCOME)
    total_expenses = total_by_type(rows, TransactionType.EXPENSE)
    total_savings = total_by_type(rows, TransactionType.SAVINGS)

    return LedgerSummary(
        total_income=total_income,
        total_expenses=total_expenses,
        total_savings=total_savings,
        net_balance=total_income - total_expenses - total_savings,
        month=month,
        monthly_income=total_by_type(rows, TransactionType.INCOME, month),
        monthly_expenses=total_by_type(rows, TransactionType.EXPENSE, month),
        monthly_savings=total_by_type(rows, TransactionType.SAVINGS, month),
    )
