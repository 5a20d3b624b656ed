"""
Main Orchestrator for MoneyMate

This module ties together all the components behind one facade,
`FinanceTracker`, and defines how they are wired from settings.

Views exposed:
1. Summary (totals, net balance, monthly split)
2. Budget adherence for a month
3. Savings goals with progress against the shared pool
4. Reports (monthly series, spending by category)

Mutations exposed:
1. Transactions, categories, budgets and goals CRUD
2. Goal achievement (atomic: goal flag + expense + savings offset)

DESIGN DECISION: The facade holds NO business rules of its own.
It only routes calls to the ledger services, which share one storage
collaborator and one audit logger. Every caller-supplied user_id is the
ownership boundary: no operation reads or writes another user's rows.
"""

import datetime as dt
from typing import Any, Callable, Optional, Union
from uuid import UUID

import structlog

from moneymate.audit import AuditLogger, configure_logging
from moneymate.config import get_settings
from moneymate.ledger import (
    BudgetService,
    CategoryService,
    GoalAchievement,
    GoalTracker,
    TransactionStore,
    summarize,
)
from moneymate.models.ledger import (
    AchievementResult,
    BudgetAdherence,
    GoalProgress,
    LedgerSummary,
    SavingsGoal,
)
from moneymate.reports import ReportGenerator
from moneymate.services.storage import (
    AuditStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
)
from moneymate.validation import LedgerValidator


logger = structlog.get_logger(__name__)


class FinanceTracker:
    """
    Entry point for every ledger operation of a user.

    The services are also exposed as attributes (transactions, categories,
    budgets, goals, reports) for callers that need the full CRUD surface.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Callable[[], dt.date]] = None,
        savings_category: str = "Savings",
        report_window_months: int = 6,
    ):
        self._storage = storage
        self._audit_logger = audit_logger or AuditLogger()
        self._clock = clock or dt.date.today

        self.transactions = TransactionStore(storage, self._audit_logger)
        self.categories = CategoryService(storage, self._audit_logger)
        self.budgets = BudgetService(storage, self._audit_logger)
        self.goals = GoalTracker(storage, self._audit_logger, clock=self._clock)
        self.reports = ReportGenerator(
            storage,
            clock=self._clock,
            window_months=report_window_months,
        )
        self._achievement = GoalAchievement(
            storage,
            self._audit_logger,
            clock=self._clock,
            savings_category=savings_category,
        )

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    async def get_summary(
        self,
        user_id: str,
        date_from: Union[dt.date, str, None] = None,
        date_to: Union[dt.date, str, None] = None,
        month: Optional[str] = None,
    ) -> LedgerSummary:
        """
        Totals and net balance, optionally within an inclusive date range.

        Monthly figures are for `month` (YYYY-MM), defaulting to today's.
        """
        start = LedgerValidator.parse_date(date_from, "date_from") if date_from else None
        end = LedgerValidator.parse_date(date_to, "date_to") if date_to else None
        month_key = (
            LedgerValidator.parse_month(month) if month
            else self._clock().isoformat()[:7]
        )
        transactions = await self.transactions.all_transactions(user_id)
        return summarize(transactions, month_key, start, end)

    async def get_budget_adherence(
        self,
        user_id: str,
        year: Any,
        month: Any,
    ) -> list[BudgetAdherence]:
        return await self.budgets.get_budget_adherence(user_id, year, month)

    async def list_savings_goals(self, user_id: str) -> list[GoalProgress]:
        return await self.goals.list_goals(user_id)

    # -------------------------------------------------------------------------
    # Goals
    # -------------------------------------------------------------------------

    async def create_goal(self, user_id: str, name: str, target_amount, deadline) -> SavingsGoal:
        return await self.goals.create_goal(user_id, name, target_amount, deadline)

    async def update_goal(self, user_id: str, goal_id: UUID, **changes) -> SavingsGoal:
        return await self.goals.update_goal(user_id, goal_id, **changes)

    async def delete_goal(self, user_id: str, goal_id: UUID) -> None:
        await self.goals.delete_goal(user_id, goal_id)

    async def achieve_goal(
        self,
        user_id: str,
        goal_id: UUID,
        expense_category: Optional[str],
        description: Optional[str] = None,
    ) -> AchievementResult:
        """
        Spend a fully funded goal.

        Raises NotFoundError, InvalidStateError, InsufficientFundsError or
        ValidationError (in that order of precedence), or StorageError if
        the unit of work could not be committed. Nothing is written unless
        the whole operation succeeds.
        """
        return await self._achievement.achieve_goal(
            user_id, goal_id, expense_category, description
        )


def create_app_components(
    backend: Optional[str] = None,
    clock: Optional[Callable[[], dt.date]] = None,
) -> tuple[FinanceTracker, LedgerStorageInterface, AuditStorageInterface]:
    """
    Factory function to create all application components.

    Args:
        backend: "memory" or "google_sheets". Defaults to the configured
                 storage backend.
        clock: Source of "today". Defaults to the system date.

    Returns:
        (tracker, ledger_storage, audit_storage)
    """
    app_settings = get_settings().app
    configure_logging(app_settings.log_level)
    backend = backend or app_settings.storage_backend

    if backend == "google_sheets":
        sheets_client = GoogleSheetsClient()
        storage: LedgerStorageInterface = GoogleSheetsLedgerStorage(sheets_client)
        audit_storage: AuditStorageInterface = GoogleSheetsAuditStorage(sheets_client)
    elif backend == "memory":
        storage = InMemoryLedgerStorage()
        audit_storage = InMemoryAuditStorage()
    else:
        raise ValueError(f"Unknown storage backend: {backend}")

    logger.info(
        "app_components_created",
        backend=backend,
        environment=app_settings.app_environment,
    )

    tracker = FinanceTracker(
        storage=storage,
        audit_logger=AuditLogger(audit_storage),
        clock=clock,
        savings_category=app_settings.savings_category_name,
        report_window_months=app_settings.report_window_months,
    )
    return tracker, storage, audit_storage
