"""
Core Ledger Models for MoneyMate

These models define the strict schemas for everything stored in, or derived
from, a user's ledger:
1. Stored entities (Transaction, Category, Budget, SavingsGoal)
2. Derived views (summary, budget adherence, goal progress, reports)

DESIGN DECISION: The savings balance of a goal is NEVER stored.
Every goal reads the same shared pool, computed from the transaction log
on demand. Goals do not own independent balances.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Kinds of ledger entries."""
    INCOME = "income"
    EXPENSE = "expense"
    SAVINGS = "savings"


class EntityKind(str, Enum):
    """
    Entity tables known to the storage collaborator.

    The value doubles as the table/worksheet key.
    """
    TRANSACTION = "transaction"
    CATEGORY = "category"
    BUDGET = "budget"
    SAVINGS_GOAL = "savings_goal"


class BudgetStatus(str, Enum):
    """Budget adherence status, as shown to the user."""
    UNDER_BUDGET = "Under Budget"
    OVER_BUDGET = "Over Budget"


MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


# =============================================================================
# STORED ENTITIES
# =============================================================================

class LedgerEntity(BaseModel):
    """
    Base for every persisted row.

    Every entity is owned by exactly one user.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    kind: ClassVar[EntityKind]

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique entity ID"
    )
    user_id: str = Field(
        ...,
        min_length=1,
        description="Owner, as issued by the identity provider"
    )


class Transaction(LedgerEntity):
    """
    A single ledger entry.

    Amounts are positive, except for the savings offset written when a
    goal is achieved: that entry is a savings-type row with a NEGATIVE
    amount, which is what decrements the shared savings pool.
    """
    kind: ClassVar[EntityKind] = EntityKind.TRANSACTION

    amount: Decimal = Field(
        ...,
        decimal_places=2,
        description="Amount (negative only for savings offsets)"
    )
    type: TransactionType
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Category NAME (not id)"
    )
    date: dt.date = Field(
        ...,
        description="Date of the transaction"
    )
    description: Optional[str] = Field(
        default=None,
        max_length=255,
    )

    @model_validator(mode='after')
    def validate_amount_sign(self) -> 'Transaction':
        """Zero is never valid; negatives only for savings offsets."""
        if self.amount == 0:
            raise ValueError("Transaction amount cannot be zero")
        if self.amount < 0 and self.type != TransactionType.SAVINGS:
            raise ValueError("Only savings offsets may carry a negative amount")
        return self

    @property
    def month(self) -> str:
        """The YYYY-MM prefix of the transaction date."""
        return self.date.isoformat()[:7]


class Category(LedgerEntity):
    """A user-scoped category. Names are unique per user."""
    kind: ClassVar[EntityKind] = EntityKind.CATEGORY

    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
    )
    type: TransactionType


class Budget(LedgerEntity):
    """
    Monthly budget for one category.

    NOTE: Uniqueness per (user, month, category) is not enforced.
    Duplicate rows are reported (and counted) separately.
    """
    kind: ClassVar[EntityKind] = EntityKind.BUDGET

    month: str = Field(
        ...,
        pattern=MONTH_PATTERN,
        description="Budget month as YYYY-MM"
    )
    category_id: UUID = Field(
        ...,
        description="Category referenced by ID (transactions use the name)"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        decimal_places=2,
        description="Budgeted amount"
    )


class SavingsGoal(LedgerEntity):
    """
    A savings goal.

    There is no stored balance here on purpose - see GoalProgress.
    `achieved` flips from False to True exactly once.
    """
    kind: ClassVar[EntityKind] = EntityKind.SAVINGS_GOAL

    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
    )
    target_amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
    )
    deadline: dt.date
    achieved: bool = False


ENTITY_MODELS: dict[EntityKind, type[LedgerEntity]] = {
    EntityKind.TRANSACTION: Transaction,
    EntityKind.CATEGORY: Category,
    EntityKind.BUDGET: Budget,
    EntityKind.SAVINGS_GOAL: SavingsGoal,
}


# =============================================================================
# DERIVED VIEWS
# =============================================================================

class LedgerSummary(BaseModel):
    """Running balances over a user's transaction set."""

    total_income: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    total_savings: Decimal = Field(
        default=Decimal("0"),
        description="NET savings (offsets included)"
    )
    net_balance: Decimal = Decimal("0")
    month: str = Field(
        ...,
        pattern=MONTH_PATTERN,
        description="Reference month for the monthly figures"
    )
    monthly_income: Decimal = Decimal("0")
    monthly_expenses: Decimal = Decimal("0")
    monthly_savings: Decimal = Decimal("0")


class BudgetAdherence(BaseModel):
    """One budget row compared with what was actually spent."""

    budget_id: UUID
    category: Optional[str] = Field(
        default=None,
        description="Category name, None if the category was deleted"
    )
    budgeted: Decimal
    spent: Decimal
    remaining: Decimal
    percent_used: int
    status: BudgetStatus


class GoalProgress(BaseModel):
    """
    A savings goal together with its progress against the shared pool.

    `current_savings` is the SAME number for every goal of a user.
    """

    id: UUID
    name: str
    target_amount: Decimal
    current_savings: Decimal
    deadline: dt.date
    achieved: bool
    progress_percent: int = Field(
        ...,
        ge=0,
        le=100,
        description="Display progress, clamped to 0-100"
    )
    raw_progress_percent: Decimal = Field(
        ...,
        description="Uncapped progress, exceeds 100 when over-funded"
    )
    days_remaining: int = Field(ge=0)


class AchievementResult(BaseModel):
    """Outcome of converting a funded goal into an expense."""

    goal_id: UUID
    remaining_savings: Decimal
    expense_transaction_id: UUID
    savings_transaction_id: UUID


class MonthlyAmount(BaseModel):
    """A point in a monthly time series."""

    month: str = Field(
        ...,
        description="Display label, e.g. 'Jan 2024'"
    )
    raw_month: str = Field(
        ...,
        pattern=MONTH_PATTERN,
    )
    amount: Decimal


class CategorySpending(BaseModel):
    """Expense total of one category and its share of all expenses."""

    category: str
    amount: Decimal
    percentage: int


class SpendingBreakdown(BaseModel):
    """Expenses grouped by category name."""

    categories: list[CategorySpending] = Field(default_factory=list)
    total_expenses: Decimal = Decimal("0")
