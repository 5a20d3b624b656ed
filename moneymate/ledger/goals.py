"""
Savings Goal Tracker

DESIGN DECISION: There is ONE savings pool per user.
Every goal reports the same `current_savings` (the net total of all
savings-type transactions), so two goals of 400 and 600 over a pool of
400 show 100% and 67%. Goals never reserve money from the pool.

Progress is reported twice:
- progress_percent: rounded and clamped to 0..100 for display
- raw_progress_percent: the exact uncapped ratio, to spot over-funding
"""

import datetime as dt
from decimal import Decimal
from typing import Any, Callable, Iterable, Optional, Union
from uuid import UUID

import structlog

from moneymate.audit import AuditLogger
from moneymate.errors import NotFoundError
from moneymate.ledger.aggregator import round_half_up, shared_savings_pool
from moneymate.models.audit import AuditEventType
from moneymate.models.ledger import (
    EntityKind,
    GoalProgress,
    SavingsGoal,
    Transaction,
    TransactionType,
)
from moneymate.services.storage import LedgerSession, LedgerStorageInterface
from moneymate.validation import LedgerValidator


logger = structlog.get_logger(__name__)

Clock = Callable[[], dt.date]


def days_remaining(deadline: dt.date, today: dt.date) -> int:
    """Whole days until the deadline, never negative."""
    return max(0, (deadline - today).days)


def goal_progress(
    goal: SavingsGoal,
    pool: Decimal,
    today: dt.date,
) -> GoalProgress:
    raw = pool * 100 / goal.target_amount
    return GoalProgress(
        id=goal.id,
        name=goal.name,
        target_amount=goal.target_amount,
        current_savings=pool,
        deadline=goal.deadline,
        achieved=goal.achieved,
        progress_percent=min(100, max(0, round_half_up(raw))),
        raw_progress_percent=raw,
        days_remaining=days_remaining(goal.deadline, today),
    )


def build_progress(
    goals: Iterable[SavingsGoal],
    transactions: Iterable[Transaction],
    today: dt.date,
) -> list[GoalProgress]:
    """Progress of every goal against the shared pool, by deadline then name."""
    pool = shared_savings_pool(transactions)
    ordered = sorted(goals, key=lambda g: (g.deadline, g.name, str(g.id)))
    return [goal_progress(goal, pool, today) for goal in ordered]


async def current_savings(session: LedgerSession, user_id: str) -> Decimal:
    """Read the shared pool through `session` (storage or unit of work)."""
    savings = await session.query(
        EntityKind.TRANSACTION,
        {"user_id": user_id, "type": TransactionType.SAVINGS},
    )
    return shared_savings_pool(savings)


class GoalTracker:
    """Goal CRUD and progress against the shared savings pool."""

    def __init__(
        self,
        storage: LedgerStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Clock] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger
        self._clock = clock or dt.date.today

    async def list_goals(self, user_id: str) -> list[GoalProgress]:
        goals = await self._storage.query(EntityKind.SAVINGS_GOAL, {"user_id": user_id})
        savings = await self._storage.query(
            EntityKind.TRANSACTION,
            {"user_id": user_id, "type": TransactionType.SAVINGS},
        )
        return build_progress(goals, savings, self._clock())

    async def get_goal(self, user_id: str, goal_id: UUID) -> SavingsGoal:
        goal = await self._storage.get(EntityKind.SAVINGS_GOAL, goal_id, user_id)
        if goal is None:
            raise NotFoundError("savings_goal", goal_id)
        return goal

    async def create_goal(
        self,
        user_id: str,
        name: str,
        target_amount: Union[Decimal, str, int, float],
        deadline: Union[dt.date, str],
    ) -> SavingsGoal:
        goal = LedgerValidator.build(
            SavingsGoal,
            user_id=user_id,
            name=LedgerValidator.require_text(name, "name"),
            target_amount=LedgerValidator.parse_amount(target_amount, "target_amount"),
            deadline=LedgerValidator.parse_date(deadline, "deadline"),
        )
        await self._storage.insert(goal)

        logger.info("goal_created", user_id=user_id, goal_id=str(goal.id))
        if self._audit_logger:
            await self._audit_logger.log_entity_changed(
                event_type=AuditEventType.GOAL_CREATED,
                user_id=user_id,
                entity_type=EntityKind.SAVINGS_GOAL.value,
                entity_id=goal.id,
                fields={
                    "name": goal.name,
                    "target_amount": goal.target_amount,
                    "deadline": goal.deadline,
                },
            )
        return goal

    async def update_goal(
        self,
        user_id: str,
        goal_id: UUID,
        name: Optional[str] = None,
        target_amount: Union[Decimal, str, int, float, None] = None,
        deadline: Union[dt.date, str, None] = None,
    ) -> SavingsGoal:
        """
        Edit name, target or deadline.

        The achieved flag is not editable here; achieved goals can still
        be renamed or re-dated.
        """
        current = await self.get_goal(user_id, goal_id)

        fields: dict[str, Any] = {}
        if name is not None:
            fields["name"] = LedgerValidator.require_text(name, "name")
        if target_amount is not None:
            fields["target_amount"] = LedgerValidator.parse_amount(
                target_amount, "target_amount"
            )
        if deadline is not None:
            fields["deadline"] = LedgerValidator.parse_date(deadline, "deadline")
        if not fields:
            return current

        await self._storage.update(
            EntityKind.SAVINGS_GOAL,
            {"id": goal_id, "user_id": user_id},
            fields,
        )
        if self._audit_logger:
            await self._audit_logger.log_entity_changed(
                event_type=AuditEventType.GOAL_UPDATED,
                user_id=user_id,
                entity_type=EntityKind.SAVINGS_GOAL.value,
                entity_id=goal_id,
                fields=fields,
            )
        return current.model_copy(update=fields)

    async def delete_goal(self, user_id: str, goal_id: UUID) -> None:
        """
        Delete a goal.

        Transactions written when the goal was achieved are NOT reversed.
        """
        deleted = await self._storage.delete(
            EntityKind.SAVINGS_GOAL,
            {"id": goal_id, "user_id": user_id},
        )
        if not deleted:
            raise NotFoundError("savings_goal", goal_id)

        if self._audit_logger:
            await self._audit_logger.log_entity_changed(
                event_type=AuditEventType.GOAL_DELETED,
                user_id=user_id,
                entity_type=EntityKind.SAVINGS_GOAL.value,
                entity_id=goal_id,
            )
