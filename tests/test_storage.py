"""
Tests for storage backends.

Google Sheets is exercised against an in-process fake worksheet; no
network access.
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from moneymate.models.audit import AuditEventBuilder
from moneymate.models.ledger import (
    Category,
    EntityKind,
    SavingsGoal,
    Transaction,
    TransactionType,
)
from moneymate.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsLedgerStorage,
    InMemoryLedgerStorage,
    PartialCommitError,
    StagedSession,
    StorageError,
    WriteOp,
)
from moneymate.services.storage.google_sheets import AUDIT_COLUMNS, LEDGER_COLUMNS

from tests.conftest import USER


def make_transaction(amount="10", type=TransactionType.INCOME, user=USER):
    return Transaction(
        user_id=user,
        amount=Decimal(amount),
        type=type,
        category="Salary",
        date=date(2024, 3, 1),
    )


class FakeWorksheet:
    """Minimal stand-in for gspread.Worksheet."""

    def __init__(self, columns):
        self.rows = [list(columns)]
        self.fail_on = None
        self.fail_after = 0

    def _maybe_fail(self, method):
        if self.fail_on == method:
            if self.fail_after == 0:
                raise RuntimeError(f"{method} failed")
            self.fail_after -= 1

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def col_values(self, col):
        return [row[col - 1] for row in self.rows]

    def append_row(self, values, value_input_option=None):
        self._maybe_fail("append_row")
        self.rows.append(list(values))

    def delete_rows(self, index):
        self._maybe_fail("delete_rows")
        del self.rows[index - 1]

    def update(self, range_name=None, values=None, value_input_option=None):
        self._maybe_fail("update")
        row_index = int(range_name.split(":")[0][1:])
        self.rows[row_index - 1] = list(values[0])


class FakeSheetsClient:
    """Stand-in for GoogleSheetsClient with one fake worksheet per kind."""

    def __init__(self):
        self.sheets = {kind: FakeWorksheet(LEDGER_COLUMNS[kind]) for kind in EntityKind}
        self.audit_sheet = FakeWorksheet(AUDIT_COLUMNS)

    def get_ledger_sheet(self, kind):
        return self.sheets[kind]

    def get_audit_sheet(self):
        return self.audit_sheet


class TestWriteOp:
    """Tests for recorded operations."""

    def test_inverse_of_insert_is_delete(self):
        """Test insert/delete inversion."""
        entity = make_transaction()
        op = WriteOp(EntityKind.TRANSACTION, None, entity)
        inverse = op.inverse()
        assert inverse.before is entity
        assert inverse.after is None
        assert inverse.entity_id == entity.id
        assert "delete" in repr(inverse)


class TestStagedSession:
    """Tests for the unit-of-work session."""

    async def test_writes_are_staged_not_applied(self):
        """Test the loader's tables are never mutated."""
        committed = {}

        async def loader(kind):
            return committed

        session = StagedSession(loader)
        await session.insert(make_transaction())
        assert committed == {}
        assert len(session.operations) == 1
        assert len(await session.query(EntityKind.TRANSACTION)) == 1

    async def test_duplicate_id_rejected(self):
        """Test inserting the same id twice."""
        async def loader(kind):
            return {}

        session = StagedSession(loader)
        entity = make_transaction()
        await session.insert(entity)
        with pytest.raises(StorageError):
            await session.insert(entity)

    async def test_closed_session_rejects_use(self):
        """Test a session cannot be used after its block exits."""
        storage = InMemoryLedgerStorage()
        async with storage.atomic() as session:
            pass
        with pytest.raises(StorageError):
            await session.query(EntityKind.TRANSACTION)


class TestInMemoryStorage:
    """Tests for the in-memory backend."""

    async def test_crud(self):
        """Test insert, update, query and delete by filters."""
        storage = InMemoryLedgerStorage()
        entity = make_transaction()
        assert await storage.insert(entity) == entity.id

        updated = await storage.update(
            EntityKind.TRANSACTION, {"id": entity.id}, {"amount": Decimal("12")}
        )
        assert updated == 1
        (row,) = await storage.query(EntityKind.TRANSACTION, {"user_id": USER})
        assert row.amount == Decimal("12")

        assert await storage.delete(EntityKind.TRANSACTION, {"id": entity.id}) == 1
        assert await storage.query(EntityKind.TRANSACTION) == []

    async def test_update_never_rewrites_identity(self):
        """Test id and user_id are not changed by update."""
        storage = InMemoryLedgerStorage()
        entity = make_transaction()
        await storage.insert(entity)
        await storage.update(EntityKind.TRANSACTION, {"id": entity.id}, {"user_id": "intruder"})
        (row,) = await storage.query(EntityKind.TRANSACTION)
        assert row.user_id == USER

    async def test_query_returns_copies(self):
        """Test mutating a result does not change storage."""
        storage = InMemoryLedgerStorage()
        goal = SavingsGoal(user_id=USER, name="Bike", target_amount=Decimal("1"), deadline=date(2024, 1, 1))
        await storage.insert(goal)
        (row,) = await storage.query(EntityKind.SAVINGS_GOAL)
        row.achieved = True
        (again,) = await storage.query(EntityKind.SAVINGS_GOAL)
        assert again.achieved is False

    async def test_atomic_block_discarded_on_error(self):
        """Test an exception inside the block writes nothing."""
        storage = InMemoryLedgerStorage()
        with pytest.raises(RuntimeError):
            async with storage.atomic() as session:
                await session.insert(make_transaction())
                await session.insert(make_transaction())
                raise RuntimeError("boom")
        assert await storage.query(EntityKind.TRANSACTION) == []

    async def test_atomic_writes_invisible_until_commit(self):
        """Test outside readers do not see staged rows."""
        storage = InMemoryLedgerStorage()
        async with storage.atomic() as session:
            await session.insert(make_transaction())
            assert await storage.query(EntityKind.TRANSACTION) == []
        assert len(await storage.query(EntityKind.TRANSACTION)) == 1


class TestGoogleSheetsLedgerStorage:
    """Tests for the Google Sheets backend against a fake client."""

    async def test_round_trip(self):
        """Test rows are written and read back as entities."""
        client = FakeSheetsClient()
        storage = GoogleSheetsLedgerStorage(client)
        goal = SavingsGoal(user_id=USER, name="Bike", target_amount=Decimal("400.50"), deadline=date(2024, 6, 1))
        await storage.insert(goal)

        assert client.sheets[EntityKind.SAVINGS_GOAL].rows[1][0] == str(goal.id)
        (loaded,) = await storage.query(EntityKind.SAVINGS_GOAL, {"user_id": USER})
        assert loaded == goal

    async def test_update_and_delete_rows(self):
        """Test in-place row update and row deletion."""
        client = FakeSheetsClient()
        storage = GoogleSheetsLedgerStorage(client)
        first = Category(user_id=USER, name="Food", type=TransactionType.EXPENSE)
        second = Category(user_id=USER, name="Rent", type=TransactionType.EXPENSE)
        await storage.insert(first)
        await storage.insert(second)

        await storage.update(EntityKind.CATEGORY, {"id": second.id}, {"name": "Housing"})
        await storage.delete(EntityKind.CATEGORY, {"id": first.id})

        rows = client.sheets[EntityKind.CATEGORY].rows
        assert len(rows) == 2  # header + one row
        assert rows[1][:3] == [str(second.id), USER, "Housing"]

    async def test_malformed_rows_skipped(self):
        """Test a bad row is skipped instead of failing the read."""
        client = FakeSheetsClient()
        client.sheets[EntityKind.TRANSACTION].rows.append(
            [str(uuid4()), USER, "not-a-number", "income", "Salary", "2024-03-01", ""]
        )
        storage = GoogleSheetsLedgerStorage(client)
        await storage.insert(make_transaction())
        assert len(await storage.query(EntityKind.TRANSACTION)) == 1

    async def test_failed_commit_is_undone(self):
        """Test already-applied writes are reversed when a later one fails."""
        client = FakeSheetsClient()
        storage = GoogleSheetsLedgerStorage(client)
        goal = SavingsGoal(user_id=USER, name="Bike", target_amount=Decimal("400"), deadline=date(2024, 6, 1))
        await storage.insert(goal)
        before = {kind: sheet.get_all_values() for kind, sheet in client.sheets.items()}

        client.sheets[EntityKind.TRANSACTION].fail_on = "append_row"
        client.sheets[EntityKind.TRANSACTION].fail_after = 1

        with pytest.raises(StorageError):
            async with storage.atomic() as session:
                await session.update(EntityKind.SAVINGS_GOAL, {"id": goal.id}, {"achieved": True})
                await session.insert(make_transaction("400", TransactionType.EXPENSE))
                await session.insert(make_transaction("-400", TransactionType.SAVINGS))

        after = {kind: sheet.get_all_values() for kind, sheet in client.sheets.items()}
        assert after == before

    async def test_failed_undo_raises_partial_commit(self):
        """Test a commit whose undo also fails reports the writes left behind."""
        client = FakeSheetsClient()
        storage = GoogleSheetsLedgerStorage(client)
        goal = SavingsGoal(user_id=USER, name="Bike", target_amount=Decimal("400"), deadline=date(2024, 6, 1))
        await storage.insert(goal)

        client.sheets[EntityKind.SAVINGS_GOAL].fail_on = "update"
        client.sheets[EntityKind.SAVINGS_GOAL].fail_after = 1
        client.sheets[EntityKind.TRANSACTION].fail_on = "append_row"

        with pytest.raises(PartialCommitError) as exc_info:
            async with storage.atomic() as session:
                await session.update(EntityKind.SAVINGS_GOAL, {"id": goal.id}, {"achieved": True})
                await session.insert(make_transaction("400", TransactionType.EXPENSE))

        (op,) = exc_info.value.unreverted
        assert op.kind == EntityKind.SAVINGS_GOAL
        assert (await storage.get(EntityKind.SAVINGS_GOAL, goal.id, USER)).achieved is True
        assert await storage.query(EntityKind.TRANSACTION) == []


class TestGoogleSheetsAuditStorage:
    """Tests for the audit sheet."""

    async def test_append_and_read_back(self):
        """Test events survive the row round trip."""
        client = FakeSheetsClient()
        storage = GoogleSheetsAuditStorage(client)
        correlation_id = uuid4()
        event = AuditEventBuilder.goal_achievement_rejected(
            user_id=USER,
            goal_id=uuid4(),
            reason="Not enough savings",
            correlation_id=correlation_id,
        )

        assert await storage.append_event(event) is True

        (loaded,) = await storage.get_events_by_correlation_id(correlation_id)
        assert loaded.event_id == event.event_id
        assert loaded.details == {"reason": "Not enough savings"}
        assert await storage.get_recent_events(limit=10) == [loaded]
