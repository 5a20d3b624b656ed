"""Tests for the audit logger and the audit trail of ledger mutations."""

from uuid import uuid4

from moneymate.audit import AuditLogger, create_correlation_id
from moneymate.models.audit import AuditEvent, AuditEventType
from moneymate.services.storage import InMemoryAuditStorage, StorageError

from tests.conftest import USER


class BrokenAuditStorage(InMemoryAuditStorage):
    """Audit storage whose writes always fail."""

    async def append_event(self, event: AuditEvent) -> bool:
        raise StorageError("audit sheet unavailable")


class TestAuditLogger:
    """Tests for AuditLogger."""

    async def test_persists_events(self, audit_storage):
        """Test events reach the configured storage."""
        logger = AuditLogger(audit_storage)
        await logger.log_error("TestError", "something broke")
        (event,) = await audit_storage.get_recent_events()
        assert event.event_type == AuditEventType.SYSTEM_ERROR
        assert event.error_message == "something broke"

    async def test_storage_failure_is_not_raised(self):
        """Test the main flow is never broken by audit persistence."""
        logger = AuditLogger(BrokenAuditStorage())
        event = AuditEvent(event_type=AuditEventType.GOAL_CREATED, description="Goal created")
        assert await logger.log(event) is False

    async def test_local_only_logger(self):
        """Test a logger without storage still succeeds."""
        logger = AuditLogger()
        event = AuditEvent(event_type=AuditEventType.GOAL_CREATED, description="Goal created")
        assert await logger.log(event) is True

    def test_correlation_ids_are_unique(self):
        """Test correlation id generation."""
        assert create_correlation_id() != create_correlation_id()


class TestLedgerAuditTrail:
    """Tests that ledger mutations leave an audit trail."""

    async def test_category_lifecycle(self, tracker, audit_storage):
        """Test create, rename and delete are all recorded."""
        category = await tracker.categories.create_category(USER, "Food", "expense")
        await tracker.categories.rename_category(USER, category.id, "Groceries")
        await tracker.categories.delete_category(USER, category.id)

        events = await audit_storage.get_events_by_entity("category", category.id)
        assert [e.event_type for e in events] == [
            AuditEventType.CATEGORY_CREATED,
            AuditEventType.CATEGORY_RENAMED,
            AuditEventType.CATEGORY_DELETED,
        ]
        assert events[1].details == {"old_name": "Food", "name": "Groceries"}

    async def test_broken_audit_does_not_block_ledger(self, storage):
        """Test ledger writes succeed while audit storage is down."""
        from datetime import date

        from moneymate.orchestrator import FinanceTracker

        tracker = FinanceTracker(
            storage=storage,
            audit_logger=AuditLogger(BrokenAuditStorage()),
            clock=lambda: date(2024, 3, 15),
        )
        goal = await tracker.create_goal(USER, "Bike", "100", "2024-06-01")
        assert (await tracker.goals.get_goal(USER, goal.id)).name == "Bike"

    async def test_events_by_unknown_entity_empty(self, audit_storage):
        """Test lookups of unknown entities."""
        assert await audit_storage.get_events_by_entity("transaction", uuid4()) == []
