"""
Audit Models for MoneyMate

Every mutation of a user's ledger is logged for audit purposes.
This provides:
1. Traceability of every balance change
2. Debugging information when a goal achievement is rolled back
3. A history the user can inspect

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Transactions
    TRANSACTION_RECORDED = "transaction_recorded"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"

    # Categories and budgets
    CATEGORY_CREATED = "category_created"
    CATEGORY_RENAMED = "category_renamed"
    CATEGORY_DELETED = "category_deleted"
    BUDGET_SAVED = "budget_saved"
    BUDGET_DELETED = "budget_deleted"

    # Savings goals
    GOAL_CREATED = "goal_created"
    GOAL_UPDATED = "goal_updated"
    GOAL_DELETED = "goal_deleted"
    GOAL_ACHIEVED = "goal_achieved"
    GOAL_ACHIEVEMENT_REJECTED = "goal_achievement_rejected"
    GOAL_ACHIEVEMENT_ROLLED_BACK = "goal_achievement_rolled_back"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every ledger mutation creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - whose ledger, and which entity?
    user_id: Optional[str] = Field(
        default=None,
        description="Owner of the affected ledger"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'savings_goal')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one goal achievement)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, user_id, entity_type,
         entity_id, correlation_id, description, details_json, error_message]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.user_id or "",
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_recorded(user_id, tx_id, ...)
        event = AuditEventBuilder.goal_achieved(user_id, goal_id, ...)
    """

    @staticmethod
    def transaction_recorded(
        user_id: str,
        transaction_id: UUID,
        transaction_type: str,
        amount: str,
        category: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_RECORDED,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Recorded {transaction_type} of {amount} ({category})",
            details={
                "type": transaction_type,
                "amount": amount,
                "category": category,
            },
        )

    @staticmethod
    def entity_changed(
        event_type: AuditEventType,
        user_id: str,
        entity_type: str,
        entity_id: UUID,
        fields: dict[str, Any],
    ) -> AuditEvent:
        """Generic update/delete event; `fields` lists what changed."""
        verb = event_type.value.rsplit("_", 1)[-1]
        return AuditEvent(
            event_type=event_type,
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type.replace('_', ' ').capitalize()} {verb}",
            details={key: str(value) for key, value in fields.items()},
        )

    @staticmethod
    def goal_achieved(
        user_id: str,
        goal_id: UUID,
        goal_name: str,
        target_amount: str,
        remaining_savings: str,
        expense_transaction_id: UUID,
        savings_transaction_id: UUID,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_ACHIEVED,
            user_id=user_id,
            entity_type="savings_goal",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description=f"Goal achieved: {goal_name} - {target_amount}",
            details={
                "target_amount": target_amount,
                "remaining_savings": remaining_savings,
                "expense_transaction_id": str(expense_transaction_id),
                "savings_transaction_id": str(savings_transaction_id),
            },
        )

    @staticmethod
    def goal_achievement_rejected(
        user_id: str,
        goal_id: UUID,
        reason: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_ACHIEVEMENT_REJECTED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="savings_goal",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description="Goal achievement rejected",
            details={
                "reason": reason,
            },
        )

    @staticmethod
    def goal_achievement_rolled_back(
        user_id: str,
        goal_id: UUID,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_ACHIEVEMENT_ROLLED_BACK,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            entity_type="savings_goal",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description="Goal achievement rolled back after a storage failure",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
