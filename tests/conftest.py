"""
Shared fixtures.

Every test runs against in-memory storage with a fixed "today", so
nothing touches the network or depends on the wall clock.
"""

from datetime import date

import pytest

from moneymate.audit import AuditLogger
from moneymate.orchestrator import FinanceTracker
from moneymate.services.storage import InMemoryAuditStorage, InMemoryLedgerStorage


TODAY = date(2024, 3, 15)
USER = "user-1"
OTHER_USER = "user-2"


@pytest.fixture
def storage():
    return InMemoryLedgerStorage()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def tracker(storage, audit_logger):
    return FinanceTracker(
        storage=storage,
        audit_logger=audit_logger,
        clock=lambda: TODAY,
    )
