"""Tests for the transaction store."""

import pytest
from decimal import Decimal
from uuid import uuid4

from moneymate.errors import NotFoundError, ValidationError
from moneymate.models.audit import AuditEventType
from moneymate.models.ledger import TransactionType

from tests.conftest import OTHER_USER, USER


class TestRecordTransaction:
    """Tests for recording transactions."""

    async def test_record_and_list(self, tracker):
        """Test that a recorded transaction is listed."""
        recorded = await tracker.transactions.record_transaction(
            USER, "25.10", "expense", "Food", "2024-03-02", description="Lunch"
        )
        rows = await tracker.transactions.list_transactions(USER)
        assert [r.id for r in rows] == [recorded.id]
        assert rows[0].amount == Decimal("25.10")
        assert rows[0].type == TransactionType.EXPENSE

    @pytest.mark.parametrize(
        "amount, type, category, day",
        [
            ("0", "expense", "Food", "2024-03-02"),
            ("-5", "savings", "Savings", "2024-03-02"),
            ("5", "gift", "Food", "2024-03-02"),
            ("5", "expense", "", "2024-03-02"),
            ("5", "expense", "Food", "2024/03/02"),
        ],
    )
    async def test_record_rejects_invalid_input(self, tracker, storage, amount, type, category, day):
        """Test that invalid input raises and writes nothing."""
        with pytest.raises(ValidationError):
            await tracker.transactions.record_transaction(USER, amount, type, category, day)
        assert await tracker.transactions.list_transactions(USER) == []

    async def test_record_is_audited(self, tracker, audit_storage):
        """Test that recording emits an audit event."""
        recorded = await tracker.transactions.record_transaction(
            USER, "10", "income", "Salary", "2024-03-01"
        )
        events = await audit_storage.get_events_by_entity("transaction", recorded.id)
        assert [e.event_type for e in events] == [AuditEventType.TRANSACTION_RECORDED]


class TestListTransactions:
    """Tests for listing and filtering."""

    async def test_newest_first(self, tracker):
        """Test ordering by date, newest first."""
        for day in ("2024-01-05", "2024-03-01", "2024-02-10"):
            await tracker.transactions.record_transaction(USER, "1", "income", "Salary", day)
        rows = await tracker.transactions.list_transactions(USER)
        assert [r.date.isoformat() for r in rows] == ["2024-03-01", "2024-02-10", "2024-01-05"]

    async def test_filters(self, tracker):
        """Test date range and type filters."""
        await tracker.transactions.record_transaction(USER, "1", "income", "Salary", "2024-01-05")
        await tracker.transactions.record_transaction(USER, "2", "expense", "Food", "2024-01-06")
        await tracker.transactions.record_transaction(USER, "3", "expense", "Food", "2024-02-06")

        rows = await tracker.transactions.list_transactions(
            USER, date_from="2024-01-01", date_to="2024-01-31", type="expense"
        )
        assert [r.amount for r in rows] == [Decimal("2")]

    async def test_inverted_range_rejected(self, tracker):
        """Test that date_from after date_to is invalid."""
        with pytest.raises(ValidationError):
            await tracker.transactions.list_transactions(
                USER, date_from="2024-02-01", date_to="2024-01-01"
            )

    async def test_other_users_not_listed(self, tracker):
        """Test per-user scoping."""
        await tracker.transactions.record_transaction(OTHER_USER, "1", "income", "Salary", "2024-01-05")
        assert await tracker.transactions.list_transactions(USER) == []


class TestEditAndDelete:
    """Tests for explicit edits and deletes."""

    async def test_update_in_place(self, tracker):
        """Test editing amount and category."""
        recorded = await tracker.transactions.record_transaction(
            USER, "10", "expense", "Food", "2024-03-01"
        )
        updated = await tracker.transactions.update_transaction(
            USER, recorded.id, amount="12.00", category="Dining"
        )
        assert updated.id == recorded.id
        stored = await tracker.transactions.get_transaction(USER, recorded.id)
        assert stored.amount == Decimal("12.00")
        assert stored.category == "Dining"

    async def test_update_unknown_field_rejected(self, tracker):
        """Test that ownership fields cannot be edited."""
        recorded = await tracker.transactions.record_transaction(
            USER, "10", "expense", "Food", "2024-03-01"
        )
        with pytest.raises(ValidationError):
            await tracker.transactions.update_transaction(USER, recorded.id, user_id=OTHER_USER)

    async def test_update_of_other_users_row_is_not_found(self, tracker):
        """Test ownership check on edit."""
        recorded = await tracker.transactions.record_transaction(
            OTHER_USER, "10", "expense", "Food", "2024-03-01"
        )
        with pytest.raises(NotFoundError):
            await tracker.transactions.update_transaction(USER, recorded.id, amount="1")

    async def test_delete(self, tracker):
        """Test deleting a transaction."""
        recorded = await tracker.transactions.record_transaction(
            USER, "10", "expense", "Food", "2024-03-01"
        )
        await tracker.transactions.delete_transaction(USER, recorded.id)
        assert await tracker.transactions.list_transactions(USER) == []

    async def test_delete_missing_is_not_found(self, tracker):
        """Test deleting an unknown id."""
        with pytest.raises(NotFoundError) as exc_info:
            await tracker.transactions.delete_transaction(USER, uuid4())
        assert "Transaction not found" in exc_info.value.message
