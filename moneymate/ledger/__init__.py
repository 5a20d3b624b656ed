"""
Ledger Package

Transactions, balances, budgets and savings goals of a single user, and
the atomic goal achievement that ties them together.
"""

from moneymate.errors import (
    InsufficientFundsError,
    InvalidStateError,
    LedgerError,
    NotFoundError,
    ValidationError,
)
from moneymate.ledger.aggregator import (
    filter_by_range,
    percent_of,
    round_half_up,
    shared_savings_pool,
    summarize,
    total_by_type,
)
from moneymate.ledger.transactions import TransactionStore
from moneymate.ledger.categories import CategoryService
from moneymate.ledger.budgets import BudgetService, compute_adherence
from moneymate.ledger.goals import GoalTracker, build_progress
from moneymate.ledger.achievement import GoalAchievement

__all__ = [
    # Errors
    "InsufficientFundsError",
    "InvalidStateError",
    "LedgerError",
    "NotFoundError",
    "ValidationError",
    # Aggregation
    "filter_by_range",
    "percent_of",
    "round_half_up",
    "shared_savings_pool",
    "summarize",
    "total_by_type",
    # Services
    "BudgetService",
    "CategoryService",
    "GoalAchievement",
    "GoalTracker",
    "TransactionStore",
    "build_progress",
    "compute_adherence",
]
