"""
Report Generator

DESIGN DECISION: Reports are DETERMINISTIC aggregations of stored data.
Every number shown in a chart is a sum over real transactions, grouped
in Python after a single storage query per report. Nothing is estimated.

Reports:
1. monthly_savings:      net savings per YYYY-MM, oldest first
2. monthly_spending:     expenses per YYYY-MM, oldest first
3. spending_by_category: expenses per category, largest first, with shares
"""

import calendar
import datetime as dt
from collections import defaultdict
from decimal import Decimal
from typing import Callable, Iterable, Optional, Union

import structlog

from moneymate.errors import ValidationError
from moneymate.ledger.aggregator import ZERO, filter_by_range, month_key, percent_of
from moneymate.models.ledger import (
    CategorySpending,
    EntityKind,
    MonthlyAmount,
    SpendingBreakdown,
    Transaction,
    TransactionType,
)
from moneymate.services.storage import LedgerStorageInterface
from moneymate.validation import LedgerValidator


logger = structlog.get_logger(__name__)

DateInput = Union[dt.date, str, None]


def month_label(raw_month: str) -> str:
    """'2024-01' -> 'Jan 2024'."""
    year, month = raw_month.split("-")
    return f"{calendar.month_abbr[int(month)]} {year}"


def months_before(day: dt.date, months: int) -> dt.date:
    """Same day `months` calendar months earlier, clamped to month end."""
    total = day.year * 12 + (day.month - 1) - months
    year, month = divmod(total, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return dt.date(year, month, min(day.day, last_day))


def monthly_series(transactions: Iterable[Transaction]) -> list[MonthlyAmount]:
    """Sum amounts per YYYY-MM, ascending. Months with no rows are omitted."""
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for transaction in transactions:
        totals[month_key(transaction.date)] += transaction.amount

    return [
        MonthlyAmount(month=month_label(raw), raw_month=raw, amount=totals[raw])
        for raw in sorted(totals)
    ]


def spending_breakdown(transactions: Iterable[Transaction]) -> SpendingBreakdown:
    """Expense totals per category name with their share of all expenses."""
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for transaction in transactions:
        if transaction.type == TransactionType.EXPENSE:
            totals[transaction.category] += transaction.amount

    total_expenses = sum(totals.values(), ZERO)
    ordered = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
    return SpendingBreakdown(
        categories=[
            CategorySpending(
                category=category,
                amount=amount,
                percentage=percent_of(amount, total_expenses),
            )
            for category, amount in ordered
        ],
        total_expenses=total_expenses,
    )


class ReportGenerator:
    """Builds chart-ready reports from a user's transactions."""

    def __init__(
        self,
        storage: LedgerStorageInterface,
        clock: Optional[Callable[[], dt.date]] = None,
        window_months: int = 6,
    ):
        self._storage = storage
        self._clock = clock or dt.date.today
        self._window_months = window_months

    def _resolve_range(
        self,
        date_from: DateInput,
        date_to: DateInput,
        default_from: Callable[[dt.date], dt.date],
    ) -> tuple[dt.date, dt.date]:
        end = LedgerValidator.parse_date(date_to, "date_to") if date_to else self._clock()
        start = (
            LedgerValidator.parse_date(date_from, "date_from") if date_from
            else default_from(end)
        )
        if start > end:
            raise ValidationError("date_from must not be after date_to", field="date_from")
        return start, end

    async def _transactions(
        self,
        user_id: str,
        transaction_type: TransactionType,
        start: dt.date,
        end: dt.date,
    ) -> list[Transaction]:
        rows = await self._storage.query(
            EntityKind.TRANSACTION,
            {"user_id": user_id, "type": transaction_type},
        )
        return filter_by_range(rows, start, end)

    async def monthly_savings(
        self,
        user_id: str,
        date_from: DateInput = None,
        date_to: DateInput = None,
    ) -> list[MonthlyAmount]:
        """Net savings per month (offsets included). Default: last six months."""
        start, end = self._resolve_range(
            date_from, date_to,
            lambda end: months_before(end, self._window_months),
        )
        rows = await self._transactions(user_id, TransactionType.SAVINGS, start, end)
        logger.debug("report_built", report="monthly_savings", user_id=user_id, rows=len(rows))
        return monthly_series(rows)

    async def monthly_spending(
        self,
        user_id: str,
        date_from: DateInput = None,
        date_to: DateInput = None,
    ) -> list[MonthlyAmount]:
        """Expenses per month. Default: last six months."""
        start, end = self._resolve_range(
            date_from, date_to,
            lambda end: months_before(end, self._window_months),
        )
        rows = await self._transactions(user_id, TransactionType.EXPENSE, start, end)
        logger.debug("report_built", report="monthly_spending", user_id=user_id, rows=len(rows))
        return monthly_series(rows)

    async def spending_by_category(
        self,
        user_id: str,
        date_from: DateInput = None,
        date_to: DateInput = None,
    ) -> SpendingBreakdown:
        """Expenses per category. Default: current month to date."""
        start, end = self._resolve_range(
            date_from, date_to,
            lambda end: end.replace(day=1),
        )
        rows = await self._transactions(user_id, TransactionType.EXPENSE, start, end)
        logger.debug("report_built", report="spending_by_category", user_id=user_id, rows=len(rows))
        return spending_breakdown(rows)
