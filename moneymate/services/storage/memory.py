"""
In-Memory Storage Implementation

Used by the test-suite and for local runs without Google credentials.

Committed state is a dict of tables. A unit of work builds a new dict from
the committed one plus its staged operations and swaps it in with a single
assignment, so a concurrent reader sees either the old tables or the new
ones, never a mix.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional
from uuid import UUID

import structlog

from moneymate.models.audit import AuditEvent
from moneymate.models.ledger import EntityKind, LedgerEntity
from moneymate.services.storage.interface import (
    AuditStorageInterface,
    Filters,
    LedgerSession,
    LedgerStorageInterface,
    matches,
)
from moneymate.services.storage.unit_of_work import (
    StagedSession,
    Table,
    WriteOp,
)


logger = structlog.get_logger(__name__)


class InMemoryLedgerStorage(LedgerStorageInterface):
    """Dict-backed ledger storage with all-or-nothing units of work."""

    def __init__(self):
        self._tables: dict[EntityKind, Table] = {kind: {} for kind in EntityKind}
        self._write_lock = asyncio.Lock()

    async def _load(self, kind: EntityKind) -> Table:
        return self._tables[kind]

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[LedgerSession]:
        async with self._write_lock:
            session = StagedSession(self._load)
            try:
                yield session
            except BaseException:
                logger.debug(
                    "unit_of_work_discarded",
                    operations=len(session.operations),
                )
                raise
            else:
                self._commit(session.operations)
            finally:
                session.close()

    def _commit(self, operations: list[WriteOp]) -> None:
        tables = {kind: dict(rows) for kind, rows in self._tables.items()}
        for op in operations:
            self._apply(tables, op)
        self._tables = tables

    def _apply(self, tables: dict[EntityKind, Table], op: WriteOp) -> None:
        """Apply one operation to a working copy of the tables."""
        if op.after is None:
            tables[op.kind].pop(op.before.id, None)
        else:
            tables[op.kind][op.after.id] = op.after

    # Single writes are one-operation units of work.

    async def insert(self, entity: LedgerEntity) -> UUID:
        async with self.atomic() as session:
            return await session.insert(entity)

    async def update(
        self,
        kind: EntityKind,
        filters: Filters,
        fields: dict[str, Any],
    ) -> int:
        async with self.atomic() as session:
            return await session.update(kind, filters, fields)

    async def delete(self, kind: EntityKind, filters: Filters) -> int:
        async with self.atomic() as session:
            return await session.delete(kind, filters)

    async def query(
        self,
        kind: EntityKind,
        filters: Optional[Filters] = None,
    ) -> list[LedgerEntity]:
        return [
            entity.model_copy()
            for entity in self._tables[kind].values()
            if matches(entity, filters)
        ]

    def snapshot(self) -> dict[EntityKind, list[dict]]:
        """Plain-data dump of every table (used for before/after comparisons)."""
        return {
            kind: sorted(
                (entity.model_dump(mode="json") for entity in rows.values()),
                key=lambda row: row["id"],
            )
            for kind, rows in self._tables.items()
        }


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
