"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep ledger logic decoupled from storage implementation

The interface is intentionally simple - we're not building a full ORM.
Four generic operations (insert, update, delete, query) over the four
entity kinds, plus one unit-of-work primitive: `atomic()`.

Writes made through the session yielded by `atomic()` are committed
together when the block exits normally, and are discarded if it
raises. With the in-memory backend readers outside the block never see
a partial unit of work. The Google Sheets backend replays the writes one
by one: other readers of the spreadsheet can see the rows mid-replay, and
a failed commit is undone with compensating writes. If an undo write also
fails the commit raises PartialCommitError naming what was left behind.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, AsyncContextManager, Optional
from uuid import UUID

from moneymate.models.audit import AuditEvent
from moneymate.models.ledger import EntityKind, LedgerEntity


Filters = dict[str, Any]


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class PartialCommitError(StorageError):
    """A failed commit could not be fully undone."""

    def __init__(self, message: str, unreverted: list):
        super().__init__(message)
        self.unreverted = unreverted


def _normalize(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, UUID):
        return str(value)
    return value


def matches(entity: LedgerEntity, filters: Optional[Filters]) -> bool:
    """Equality match of every filter key against the entity's attributes."""
    if not filters:
        return True
    for key, expected in filters.items():
        if _normalize(getattr(entity, key)) != _normalize(expected):
            return False
    return True


def apply_fields(entity: LedgerEntity, fields: dict[str, Any]) -> LedgerEntity:
    """
    Return a re-validated copy of `entity` with `fields` applied.

    `id` and `user_id` are never rewritten.
    """
    data = entity.model_dump()
    data.update({k: v for k, v in fields.items() if k not in ("id", "user_id")})
    return type(entity).model_validate(data)


class LedgerSession(ABC):
    """
    Read/write operations over the ledger tables.

    Implemented both by the storage itself (each write is its own unit)
    and by the session handed out by `atomic()`.
    """

    @abstractmethod
    async def insert(self, entity: LedgerEntity) -> UUID:
        """
        Insert a new entity.

        Returns:
            The entity's ID

        Raises:
            StorageError: If the write fails or the ID already exists
        """
        pass

    @abstractmethod
    async def update(
        self,
        kind: EntityKind,
        filters: Filters,
        fields: dict[str, Any],
    ) -> int:
        """
        Update every entity of `kind` matching `filters`.

        Returns:
            Number of entities updated
        """
        pass

    @abstractmethod
    async def delete(self, kind: EntityKind, filters: Filters) -> int:
        """
        Delete every entity of `kind` matching `filters`.

        Returns:
            Number of entities deleted
        """
        pass

    @abstractmethod
    async def query(
        self,
        kind: EntityKind,
        filters: Optional[Filters] = None,
    ) -> list[LedgerEntity]:
        """
        List entities of `kind` matching `filters` (field equality).

        Returned entities are copies; mutating them has no effect on storage.
        """
        pass

    async def get(
        self,
        kind: EntityKind,
        entity_id: UUID,
        user_id: str,
    ) -> Optional[LedgerEntity]:
        """Fetch one entity by ID, only if it belongs to `user_id`."""
        rows = await self.query(kind, {"id": entity_id, "user_id": user_id})
        return rows[0] if rows else None


class LedgerStorageInterface(LedgerSession):
    """
    Abstract interface for ledger storage.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    @abstractmethod
    def atomic(self) -> AsyncContextManager[LedgerSession]:
        """
        Open a unit of work.

        Usage:
            async with storage.atomic() as session:
                await session.update(...)
                await session.insert(...)

        Units of work are serialized. Do not call write methods on the
        storage itself from inside the block; use the session.

        Isolation from readers outside this process is backend specific;
        see the module docstring.
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events for a correlation ID, in chronological order."""
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events for a specific entity, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent audit events (newest first)."""
        pass
