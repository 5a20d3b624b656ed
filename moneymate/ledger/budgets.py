"""
Budget Adherence Calculator

Joins a month's budgets with the expenses actually recorded that month.

The join is by category NAME: a budget references its category by id,
the id is resolved to the category's current name, and expenses are
matched on that name exactly (case-sensitive). Consequences:

- Renaming a category makes its budget stop matching older expenses.
- A budget whose category was deleted is still reported, with no
  category and nothing spent.
- Duplicate budgets for the same category each report the full spend.
"""

from decimal import Decimal
from typing import Any, Iterable, Optional, Union
from uuid import UUID

import structlog

from moneymate.audit import AuditLogger
from moneymate.errors import NotFoundError, ValidationError
from moneymate.ledger.aggregator import ZERO, in_month, percent_of
from moneymate.models.audit import AuditEventType
from moneymate.models.ledger import (
    Budget,
    BudgetAdherence,
    BudgetStatus,
    Category,
    EntityKind,
    Transaction,
    TransactionType,
)
from moneymate.services.storage import LedgerStorageInterface
from moneymate.validation import LedgerValidator


logger = structlog.get_logger(__name__)


def spent_in_month(
    transactions: Iterable[Transaction],
    category_name: Optional[str],
    month: str,
) -> Decimal:
    """Expense total of one category name in a YYYY-MM month."""
    if category_name is None:
        return ZERO
    return sum(
        (
            t.amount for t in transactions
            if t.type == TransactionType.EXPENSE
            and t.category == category_name
            and in_month(t, month)
        ),
        ZERO,
    )


def compute_adherence(
    budgets: Iterable[Budget],
    categories: Iterable[Category],
    transactions: Iterable[Transaction],
    month: str,
) -> list[BudgetAdherence]:
    """
    One adherence row per budget of `month`.

    percent_used is 0 for a zero budget. Status is "Under Budget" while
    remaining >= 0.
    """
    names = {category.id: category.name for category in categories}
    transactions = list(transactions)

    rows = []
    for budget in budgets:
        if budget.month != month:
            continue
        category_name = names.get(budget.category_id)
        spent = spent_in_month(transactions, category_name, month)
        remaining = budget.amount - spent
        rows.append(BudgetAdherence(
            budget_id=budget.id,
            category=category_name,
            budgeted=budget.amount,
            spent=spent,
            remaining=remaining,
            percent_used=percent_of(spent, budget.amount),
            status=(
                BudgetStatus.UNDER_BUDGET if remaining >= 0
                else BudgetStatus.OVER_BUDGET
            ),
        ))

    rows.sort(key=lambda row: (row.category is None, row.category or "", str(row.budget_id)))
    return rows


class BudgetService:
    """Budget CRUD and the adherence view."""

    def __init__(
        self,
        storage: LedgerStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger

    async def _require_category(self, user_id: str, category_id: Any) -> UUID:
        try:
            category_id = category_id if isinstance(category_id, UUID) else UUID(str(category_id))
        except ValueError:
            raise ValidationError("category_id must be a valid id", field="category_id")
        category = await self._storage.get(EntityKind.CATEGORY, category_id, user_id)
        if category is None:
            raise NotFoundError("category", category_id)
        return category_id

    async def create_budget(
        self,
        user_id: str,
        month: str,
        category_id: Union[UUID, str],
        amount: Union[Decimal, str, int, float],
    ) -> Budget:
        """
        Create a monthly budget.

        Uniqueness per (month, category) is NOT checked.
        """
        budget = LedgerValidator.build(
            Budget,
            user_id=user_id,
            month=LedgerValidator.parse_month(month),
            category_id=await self._require_category(user_id, category_id),
            amount=LedgerValidator.parse_amount(amount),
        )
        await self._storage.insert(budget)

        if self._audit_logger:
            await self._audit_logger.log_entity_changed(
                event_type=AuditEventType.BUDGET_SAVED,
                user_id=user_id,
                entity_type=EntityKind.BUDGET.value,
                entity_id=budget.id,
                fields={
                    "month": budget.month,
                    "category_id": budget.category_id,
                    "amount": budget.amount,
                },
            )
        return budget

    async def get_budget(self, user_id: str, budget_id: UUID) -> Budget:
        budget = await self._storage.get(EntityKind.BUDGET, budget_id, user_id)
        if budget is None:
            raise NotFoundError("budget", budget_id)
        return budget

    async def update_budget(
        self,
        user_id: str,
        budget_id: UUID,
        month: Optional[str] = None,
        category_id: Union[UUID, str, None] = None,
        amount: Union[Decimal, str, int, float, None] = None,
    ) -> Budget:
        current = await self.get_budget(user_id, budget_id)

        fields: dict[str, Any] = {}
        if month is not None:
            fields["month"] = LedgerValidator.parse_month(month)
        if category_id is not None:
            fields["category_id"] = await self._require_category(user_id, category_id)
        if amount is not None:
            fields["amount"] = LedgerValidator.parse_amount(amount)
        if not fields:
            return current

        await self._storage.update(
            EntityKind.BUDGET,
            {"id": budget_id, "user_id": user_id},
            fields,
        )
        if self._audit_logger:
            await self._audit_logger.log_entity_changed(
                event_type=AuditEventType.BUDGET_SAVED,
                user_id=user_id,
                entity_type=EntityKind.BUDGET.value,
                entity_id=budget_id,
                fields=fields,
            )
        return current.model_copy(update=fields)

    async def delete_budget(self, user_id: str, budget_id: UUID) -> None:
        deleted = await self._storage.delete(
            EntityKind.BUDGET,
            {"id": budget_id, "user_id": user_id},
        )
        if not deleted:
            raise NotFoundError("budget", budget_id)

        if self._audit_logger:
            await self._audit_logger.log_entity_changed(
                event_type=AuditEventType.BUDGET_DELETED,
                user_id=user_id,
                entity_type=EntityKind.BUDGET.value,
                entity_id=budget_id,
            )

    async def list_budgets(self, user_id: str, month: Optional[str] = None) -> list[Budget]:
        filters: dict[str, Any] = {"user_id": user_id}
        if month is not None:
            filters["month"] = LedgerValidator.parse_month(month)
        budgets = await self._storage.query(EntityKind.BUDGET, filters)
        return sorted(budgets, key=lambda b: (b.month, str(b.id)))

    async def get_budget_adherence(
        self,
        user_id: str,
        year: Any,
        month: Any,
    ) -> list[BudgetAdherence]:
        """Budget vs actual spending for one month."""
        month_key = LedgerValidator.month_of(year, month)

        budgets = await self._storage.query(
            EntityKind.BUDGET, {"user_id": user_id, "month": month_key}
        )
        categories = await self._storage.query(EntityKind.CATEGORY, {"user_id": user_id})
        transactions = await self._storage.query(
            EntityKind.TRANSACTION,
            {"user_id": user_id, "type": TransactionType.EXPENSE},
        )

        rows = compute_adherence(budgets, categories, transactions, month_key)
        logger.debug(
            "budget_adherence_computed",
            user_id=user_id,
            month=month_key,
            budgets=len(rows),
            over_budget=sum(1 for row in rows if row.status == BudgetStatus.OVER_BUDGET),
        )
        return rows
