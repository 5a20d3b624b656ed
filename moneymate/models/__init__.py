"""
Data Models Package

This package contains all Pydantic models used in MoneyMate.
Everything read from or written to the ledger must conform to these schemas.
"""

from moneymate.models.ledger import (
    ENTITY_MODELS,
    MONTH_PATTERN,
    AchievementResult,
    Budget,
    BudgetAdherence,
    BudgetStatus,
    Category,
    CategorySpending,
    EntityKind,
    GoalProgress,
    LedgerEntity,
    LedgerSummary,
    MonthlyAmount,
    SavingsGoal,
    SpendingBreakdown,
    Transaction,
    TransactionType,
)
from moneymate.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger entities
    "ENTITY_MODELS",
    "MONTH_PATTERN",
    "Budget",
    "Category",
    "EntityKind",
    "LedgerEntity",
    "SavingsGoal",
    "Transaction",
    "TransactionType",
    # Derived views
    "AchievementResult",
    "BudgetAdherence",
    "BudgetStatus",
    "CategorySpending",
    "GoalProgress",
    "LedgerSummary",
    "MonthlyAmount",
    "SpendingBreakdown",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
