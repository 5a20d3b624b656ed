"""
Storage Services Package

Provides abstract interfaces and concrete implementations for ledger storage.
Google Sheets is the persistent backend; the in-memory backend serves tests
and local runs. Both share the staged unit-of-work in `unit_of_work`.
"""

from moneymate.services.storage.interface import (
    AuditStorageInterface,
    Filters,
    LedgerSession,
    LedgerStorageInterface,
    PartialCommitError,
    StorageConnectionError,
    StorageError,
)
from moneymate.services.storage.unit_of_work import StagedSession, WriteOp
from moneymate.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
)
from moneymate.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "Filters",
    "LedgerSession",
    "LedgerStorageInterface",
    # Exceptions
    "PartialCommitError",
    "StorageConnectionError",
    "StorageError",
    # Unit of work
    "StagedSession",
    "WriteOp",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryLedgerStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStorage",
]
