"""
Audit Logger

DESIGN DECISION: Every mutation of a ledger is logged.
This provides:
1. Complete traceability of balance changes
2. Debugging capability (especially for rolled-back goal achievements)
3. User can see history of their ledger

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
from typing import Any, Optional
from uuid import UUID, uuid4

import structlog

from moneymate.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from moneymate.services.storage import AuditStorageInterface


def configure_logging(level: str = "INFO") -> None:
    """Configure the stdlib root logger and structlog (JSON lines)."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level, logging.INFO))
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(default=str)
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("moneymate.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_transaction_recorded(
        self,
        user_id: str,
        transaction_id: UUID,
        transaction_type: str,
        amount: str,
        category: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a new ledger entry."""
        event = AuditEventBuilder.transaction_recorded(
            user_id=user_id,
            transaction_id=transaction_id,
            transaction_type=transaction_type,
            amount=amount,
            category=category,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_entity_changed(
        self,
        event_type: AuditEventType,
        user_id: str,
        entity_type: str,
        entity_id: UUID,
        fields: Optional[dict[str, Any]] = None,
    ) -> None:
        """Log an update or deletion of any ledger entity."""
        event = AuditEventBuilder.entity_changed(
            event_type=event_type,
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            fields=fields or {},
        )
        await self.log(event)

    async def log_goal_achieved(
        self,
        user_id: str,
        goal_id: UUID,
        goal_name: str,
        target_amount: str,
        remaining_savings: str,
        expense_transaction_id: UUID,
        savings_transaction_id: UUID,
        correlation_id: UUID,
    ) -> None:
        """Log a completed goal achievement."""
        event = AuditEventBuilder.goal_achieved(
            user_id=user_id,
            goal_id=goal_id,
            goal_name=goal_name,
            target_amount=target_amount,
            remaining_savings=remaining_savings,
            expense_transaction_id=expense_transaction_id,
            savings_transaction_id=savings_transaction_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_goal_achievement_rejected(
        self,
        user_id: str,
        goal_id: UUID,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        """Log a goal achievement refused by a precondition."""
        event = AuditEventBuilder.goal_achievement_rejected(
            user_id=user_id,
            goal_id=goal_id,
            reason=reason,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_goal_achievement_rolled_back(
        self,
        user_id: str,
        goal_id: UUID,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a goal achievement undone by a storage failure."""
        event = AuditEventBuilder.goal_achievement_rolled_back(
            user_id=user_id,
            goal_id=goal_id,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., achieving a goal).
    Pass it through all subsequent operations.
    """
    return uuid4()
