"""
Category Registry

User-scoped categories. Names are unique per user (case-sensitive).

NOTE: Transactions reference categories by NAME, budgets by ID.
Renaming a category does not rewrite existing transactions, so budgets on
that category stop matching the old transactions. This asymmetry is kept
on purpose; reports and budgets depend on it being stable.
"""

from typing import Optional, Union
from uuid import UUID

import structlog

from moneymate.audit import AuditLogger
from moneymate.errors import NotFoundError, ValidationError
from moneymate.models.audit import AuditEventType
from moneymate.models.ledger import Category, EntityKind, TransactionType
from moneymate.services.storage import LedgerStorageInterface
from moneymate.validation import LedgerValidator


logger = structlog.get_logger(__name__)


class CategoryService:
    """Create, list, rename and delete categories."""

    def __init__(
        self,
        storage: LedgerStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger

    async def _ensure_unique(
        self,
        user_id: str,
        name: str,
        exclude_id: Optional[UUID] = None,
    ) -> None:
        existing = await self._storage.query(
            EntityKind.CATEGORY, {"user_id": user_id, "name": name}
        )
        if any(category.id != exclude_id for category in existing):
            raise ValidationError(f"Category already exists: {name}", field="name")

    async def create_category(
        self,
        user_id: str,
        name: str,
        type: Union[TransactionType, str],
    ) -> Category:
        category = LedgerValidator.build(
            Category,
            user_id=user_id,
            name=LedgerValidator.require_text(name, "name"),
            type=LedgerValidator.parse_type(type),
        )
        await self._ensure_unique(user_id, category.name)
        await self._storage.insert(category)

        if self._audit_logger:
            await self._audit_logger.log_entity_changed(
                event_type=AuditEventType.CATEGORY_CREATED,
                user_id=user_id,
                entity_type=EntityKind.CATEGORY.value,
                entity_id=category.id,
                fields={"name": category.name, "type": category.type.value},
            )
        return category

    async def get_category(self, user_id: str, category_id: UUID) -> Category:
        category = await self._storage.get(EntityKind.CATEGORY, category_id, user_id)
        if category is None:
            raise NotFoundError("category", category_id)
        return category

    async def list_categories(
        self,
        user_id: str,
        type: Union[TransactionType, str, None] = None,
    ) -> list[Category]:
        """The user's categories ordered by name, optionally of one type."""
        filters = {"user_id": user_id}
        if type:
            filters["type"] = LedgerValidator.parse_type(type)
        categories = await self._storage.query(EntityKind.CATEGORY, filters)
        return sorted(categories, key=lambda c: (c.name, str(c.id)))

    async def rename_category(
        self,
        user_id: str,
        category_id: UUID,
        name: str,
    ) -> Category:
        new_name = LedgerValidator.require_text(name, "name")
        category = await self.get_category(user_id, category_id)
        if category.name == new_name:
            return category
        await self._ensure_unique(user_id, new_name, exclude_id=category_id)

        await self._storage.update(
            EntityKind.CATEGORY,
            {"id": category_id, "user_id": user_id},
            {"name": new_name},
        )
        logger.info(
            "category_renamed",
            user_id=user_id,
            category_id=str(category_id),
            old_name=category.name,
            new_name=new_name,
        )
        if self._audit_logger:
            await self._audit_logger.log_entity_changed(
                event_type=AuditEventType.CATEGORY_RENAMED,
                user_id=user_id,
                entity_type=EntityKind.CATEGORY.value,
                entity_id=category_id,
                fields={"old_name": category.name, "name": new_name},
            )
        return category.model_copy(update={"name": new_name})

    async def delete_category(self, user_id: str, category_id: UUID) -> None:
        """
        Delete a category.

        Budgets referencing it are kept and reported without a category.
        """
        deleted = await self._storage.delete(
            EntityKind.CATEGORY,
            {"id": category_id, "user_id": user_id},
        )
        if not deleted:
            raise NotFoundError("category", category_id)

        if self._audit_logger:
            await self._audit_logger.log_entity_changed(
                event_type=AuditEventType.CATEGORY_DELETED,
                user_id=user_id,
                entity_type=EntityKind.CATEGORY.value,
                entity_id=category_id,
            )
