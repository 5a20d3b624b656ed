"""
Goal Achievement Transaction

Converts a funded savings goal into spending, all or nothing.

Flow (inside ONE unit of work):
1. Load the goal           → NotFoundError if absent or not owned
2. Check it is not achieved → InvalidStateError
3. Read the shared pool    → InsufficientFundsError(shortfall) if short
4. Check expense category  → ValidationError if missing
5. Mark the goal achieved
6. Insert the expense      (+target, supplied category, today)
7. Insert the offset       (-target, savings category, today)

The first failing precondition wins. Preconditions are read through the
same unit of work as the writes, so a second achievement of the same goal
racing this one is rejected at step 2 or 3 instead of spending twice.

Any exception inside the block discards every staged write. Storage
failures surface as StorageError after the rollback is audited. A commit
that could not be fully undone (Google Sheets only) is audited as a
system error and surfaces as PartialCommitError.
"""

import datetime as dt
from typing import Callable, Optional
from uuid import UUID

import structlog

from moneymate.audit import AuditLogger, create_correlation_id
from moneymate.errors import (
    InsufficientFundsError,
    InvalidStateError,
    LedgerError,
    NotFoundError,
)
from moneymate.ledger.goals import current_savings
from moneymate.models.ledger import (
    AchievementResult,
    EntityKind,
    Transaction,
    TransactionType,
)
from moneymate.services.storage import (
    LedgerStorageInterface,
    PartialCommitError,
    StorageError,
)
from moneymate.validation import LedgerValidator


logger = structlog.get_logger(__name__)


class GoalAchievement:
    """Executes the achieve-goal unit of work."""

    def __init__(
        self,
        storage: LedgerStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Callable[[], dt.date]] = None,
        savings_category: str = "Savings",
    ):
        self._storage = storage
        self._audit_logger = audit_logger
        self._clock = clock or dt.date.today
        self._savings_category = savings_category

    async def achieve_goal(
        self,
        user_id: str,
        goal_id: UUID,
        expense_category: Optional[str],
        description: Optional[str] = None,
    ) -> AchievementResult:
        correlation_id = create_correlation_id()
        log = logger.bind(
            user_id=user_id,
            goal_id=str(goal_id),
            correlation_id=str(correlation_id),
        )

        try:
            async with self._storage.atomic() as session:
                goal = await session.get(EntityKind.SAVINGS_GOAL, goal_id, user_id)
                if goal is None:
                    raise NotFoundError("savings_goal", goal_id)
                if goal.achieved:
                    raise InvalidStateError(f"Goal already achieved: {goal.name}")

                pool = await current_savings(session, user_id)
                if pool < goal.target_amount:
                    raise InsufficientFundsError(
                        shortfall=goal.target_amount - pool,
                        available=pool,
                        required=goal.target_amount,
                    )

                category = LedgerValidator.require_text(expense_category, "expense_category")
                expense_description = (
                    LedgerValidator.optional_text(description, "description")
                    or f"Spent savings for: {goal.name}"
                )
                today = self._clock()

                await session.update(
                    EntityKind.SAVINGS_GOAL,
                    {"id": goal.id, "user_id": user_id},
                    {"achieved": True},
                )
                expense = LedgerValidator.build(
                    Transaction,
                    user_id=user_id,
                    amount=goal.target_amount,
                    type=TransactionType.EXPENSE,
                    category=category,
                    date=today,
                    description=expense_description,
                )
                offset = LedgerValidator.build(
                    Transaction,
                    user_id=user_id,
                    amount=-goal.target_amount,
                    type=TransactionType.SAVINGS,
                    category=self._savings_category,
                    date=today,
                    description=f"Used savings for: {goal.name}",
                )
                await session.insert(expense)
                await session.insert(offset)

        except LedgerError as e:
            log.info("goal_achievement_rejected", reason=e.message)
            if self._audit_logger:
                await self._audit_logger.log_goal_achievement_rejected(
                    user_id=user_id,
                    goal_id=goal_id,
                    reason=e.message,
                    correlation_id=correlation_id,
                )
            raise

        except PartialCommitError as e:
            log.critical(
                "goal_achievement_partially_committed",
                error=str(e),
                unreverted=len(e.unreverted),
            )
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    details={
                        "user_id": user_id,
                        "goal_id": str(goal_id),
                        "unreverted": [repr(op) for op in e.unreverted],
                    },
                    correlation_id=correlation_id,
                )
            raise

        except StorageError as e:
            log.error("goal_achievement_rolled_back", error=str(e))
            if self._audit_logger:
                await self._audit_logger.log_goal_achievement_rolled_back(
                    user_id=user_id,
                    goal_id=goal_id,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        result = AchievementResult(
            goal_id=goal.id,
            remaining_savings=pool - goal.target_amount,
            expense_transaction_id=expense.id,
            savings_transaction_id=offset.id,
        )
        log.info("goal_achieved", remaining_savings=str(result.remaining_savings))
        if self._audit_logger:
            await self._audit_logger.log_goal_achieved(
                user_id=user_id,
                goal_id=goal.id,
                goal_name=goal.name,
                target_amount=str(goal.target_amount),
                remaining_savings=str(result.remaining_savings),
                expense_transaction_id=expense.id,
                savings_transaction_id=offset.id,
                correlation_id=correlation_id,
            )
        return result
