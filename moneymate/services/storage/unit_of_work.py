"""
Staged Unit of Work

Shared by every storage backend. A StagedSession works on a private copy
of the tables it touches and records each write as a WriteOp. The backend
decides how to make the recorded operations durable when the block exits:

- In-memory: apply all operations to a copy of the tables and swap it in.
- Google Sheets: replay operations against the worksheets, undoing the
  already-applied ones if a later one fails.

Nothing is written anywhere until commit, so raising inside the block is
a complete rollback.
"""

from typing import Any, Awaitable, Callable, Optional
from uuid import UUID

from moneymate.models.ledger import EntityKind, LedgerEntity
from moneymate.services.storage.interface import (
    Filters,
    LedgerSession,
    StorageError,
    apply_fields,
    matches,
)


Table = dict[UUID, LedgerEntity]
TableLoader = Callable[[EntityKind], Awaitable[Table]]


class WriteOp:
    """
    One recorded change.

    insert: before is None. delete: after is None. update: both set.
    """

    __slots__ = ("kind", "before", "after")

    def __init__(
        self,
        kind: EntityKind,
        before: Optional[LedgerEntity],
        after: Optional[LedgerEntity],
    ):
        self.kind = kind
        self.before = before
        self.after = after

    @property
    def entity_id(self) -> UUID:
        return (self.after or self.before).id

    def inverse(self) -> "WriteOp":
        """The operation that undoes this one."""
        return WriteOp(self.kind, before=self.after, after=self.before)

    def __repr__(self) -> str:
        if self.before is None:
            action = "insert"
        elif self.after is None:
            action = "delete"
        else:
            action = "update"
        return f"WriteOp({action} {self.kind.value} {self.entity_id})"


class StagedSession(LedgerSession):
    """Session that stages writes on private table copies."""

    def __init__(self, loader: TableLoader):
        self._loader = loader
        self._tables: dict[EntityKind, Table] = {}
        self.operations: list[WriteOp] = []
        self._closed = False

    async def _table(self, kind: EntityKind) -> Table:
        if self._closed:
            raise StorageError("Unit of work is already closed")
        if kind not in self._tables:
            self._tables[kind] = dict(await self._loader(kind))
        return self._tables[kind]

    def close(self) -> None:
        self._closed = True

    async def insert(self, entity: LedgerEntity) -> UUID:
        table = await self._table(entity.kind)
        if entity.id in table:
            raise StorageError(f"Duplicate {entity.kind.value} id: {entity.id}")
        stored = entity.model_copy()
        table[stored.id] = stored
        self.operations.append(WriteOp(entity.kind, None, stored))
        return stored.id

    async def update(
        self,
        kind: EntityKind,
        filters: Filters,
        fields: dict[str, Any],
    ) -> int:
        table = await self._table(kind)
        targets = [entity for entity in table.values() if matches(entity, filters)]
        for entity in targets:
            updated = apply_fields(entity, fields)
            table[entity.id] = updated
            self.operations.append(WriteOp(kind, entity, updated))
        return len(targets)

    async def delete(self, kind: EntityKind, filters: Filters) -> int:
        table = await self._table(kind)
        targets = [entity for entity in table.values() if matches(entity, filters)]
        for entity in targets:
            del table[entity.id]
            self.operations.append(WriteOp(kind, entity, None))
        return len(targets)

    async def query(
        self,
        kind: EntityKind,
        filters: Optional[Filters] = None,
    ) -> list[LedgerEntity]:
        table = await self._table(kind)
        return [
            entity.model_copy()
            for entity in table.values()
            if matches(entity, filters)
        ]
