"""
Transaction Store

Ledger entries per user. Entries are appended by default; editing in place
and deleting are explicit operations, both ownership-checked.

User-created amounts are always positive. The negative savings offset is
only ever written by the goal achievement transaction, never through here.
"""

import datetime as dt
from decimal import Decimal
from typing import Any, Optional, Union
from uuid import UUID

import structlog

from moneymate.audit import AuditLogger
from moneymate.errors import NotFoundError, ValidationError
from moneymate.ledger.aggregator import filter_by_range
from moneymate.models.audit import AuditEventType
from moneymate.models.ledger import EntityKind, Transaction, TransactionType
from moneymate.services.storage import LedgerStorageInterface
from moneymate.validation import LedgerValidator


logger = structlog.get_logger(__name__)

UPDATABLE_FIELDS = ("amount", "type", "category", "date", "description")


class TransactionStore:
    """Record, edit, delete and list transactions."""

    def __init__(
        self,
        storage: LedgerStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger

    async def record_transaction(
        self,
        user_id: str,
        amount: Union[Decimal, str, int, float],
        type: Union[TransactionType, str],
        category: str,
        date: Union[dt.date, str],
        description: Optional[str] = None,
    ) -> Transaction:
        transaction = LedgerValidator.build(
            Transaction,
            user_id=LedgerValidator.require_text(user_id, "user_id", max_length=255),
            amount=LedgerValidator.parse_amount(amount),
            type=LedgerValidator.parse_type(type),
            category=LedgerValidator.require_text(category, "category"),
            date=LedgerValidator.parse_date(date),
            description=LedgerValidator.optional_text(description, "description"),
        )
        await self._storage.insert(transaction)

        logger.info(
            "transaction_recorded",
            user_id=user_id,
            transaction_id=str(transaction.id),
            type=transaction.type.value,
        )
        if self._audit_logger:
            await self._audit_logger.log_transaction_recorded(
                user_id=user_id,
                transaction_id=transaction.id,
                transaction_type=transaction.type.value,
                amount=str(transaction.amount),
                category=transaction.category,
            )
        return transaction

    async def get_transaction(self, user_id: str, transaction_id: UUID) -> Transaction:
        transaction = await self._storage.get(EntityKind.TRANSACTION, transaction_id, user_id)
        if transaction is None:
            raise NotFoundError("transaction", transaction_id)
        return transaction

    async def update_transaction(
        self,
        user_id: str,
        transaction_id: UUID,
        **changes: Any,
    ) -> Transaction:
        """
        Edit a transaction in place.

        Only amount, type, category, date and description may change.
        """
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(
                f"Cannot update field(s): {', '.join(sorted(unknown))}",
                field=sorted(unknown)[0],
            )

        fields: dict[str, Any] = {}
        if "amount" in changes:
            fields["amount"] = LedgerValidator.parse_amount(changes["amount"])
        if "type" in changes:
            fields["type"] = LedgerValidator.parse_type(changes["type"])
        if "category" in changes:
            fields["category"] = LedgerValidator.require_text(changes["category"], "category")
        if "date" in changes:
            fields["date"] = LedgerValidator.parse_date(changes["date"])
        if "description" in changes:
            fields["description"] = LedgerValidator.optional_text(
                changes["description"], "description"
            )

        current = await self.get_transaction(user_id, transaction_id)
        if not fields:
            return current
        # Re-check the combined row (e.g. a negative offset cannot become an expense)
        updated = LedgerValidator.build(
            Transaction, **{**current.model_dump(), **fields}
        )

        await self._storage.update(
            EntityKind.TRANSACTION,
            {"id": transaction_id, "user_id": user_id},
            fields,
        )
        if self._audit_logger:
            await self._audit_logger.log_entity_changed(
                event_type=AuditEventType.TRANSACTION_UPDATED,
                user_id=user_id,
                entity_type=EntityKind.TRANSACTION.value,
                entity_id=transaction_id,
                fields=fields,
            )
        return updated

    async def delete_transaction(self, user_id: str, transaction_id: UUID) -> None:
        deleted = await self._storage.delete(
            EntityKind.TRANSACTION,
            {"id": transaction_id, "user_id": user_id},
        )
        if not deleted:
            raise NotFoundError("transaction", transaction_id)

        if self._audit_logger:
            await self._audit_logger.log_entity_changed(
                event_type=AuditEventType.TRANSACTION_DELETED,
                user_id=user_id,
                entity_type=EntityKind.TRANSACTION.value,
                entity_id=transaction_id,
            )

    async def all_transactions(self, user_id: str) -> list[Transaction]:
        """Every transaction of the user, unordered."""
        return await self._storage.query(EntityKind.TRANSACTION, {"user_id": user_id})

    async def list_transactions(
        self,
        user_id: str,
        date_from: Union[dt.date, str, None] = None,
        date_to: Union[dt.date, str, None] = None,
        type: Union[TransactionType, str, None] = None,
    ) -> list[Transaction]:
        """
        List the user's transactions, newest first.

        All filters are optional; the date range is inclusive.
        """
        start = LedgerValidator.parse_date(date_from, "date_from") if date_from else None
        end = LedgerValidator.parse_date(date_to, "date_to") if date_to else None
        if start and end and start > end:
            raise ValidationError("date_from must not be after date_to", field="date_from")

        filters: dict[str, Any] = {"user_id": user_id}
        if type:
            filters["type"] = LedgerValidator.parse_type(type)

        rows = filter_by_range(
            await self._storage.query(EntityKind.TRANSACTION, filters),
            start,
            end,
        )
        return sorted(rows, key=lambda t: (t.date, str(t.id)), reverse=True)
