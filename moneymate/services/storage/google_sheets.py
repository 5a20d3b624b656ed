"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the initial storage backend because:
1. Non-technical users can view their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No native transactions: a unit of work is replayed row by row and,
  if a write fails, the already-applied writes are undone in reverse order
- Limited query capabilities (we filter in Python)

The implementation follows the abstract interface, so we can swap
to PostgreSQL/SQLite later without changing ledger logic.
"""

import asyncio
import json
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Optional
from uuid import UUID

import gspread
import structlog
from gspread.utils import rowcol_to_a1
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from moneymate.config import get_settings
from moneymate.models.audit import AuditEvent, AuditEventType, AuditSeverity
from moneymate.models.ledger import ENTITY_MODELS, EntityKind, LedgerEntity
from moneymate.services.storage.interface import (
    AuditStorageInterface,
    Filters,
    LedgerSession,
    LedgerStorageInterface,
    PartialCommitError,
    StorageConnectionError,
    StorageError,
    matches,
)
from moneymate.services.storage.unit_of_work import (
    StagedSession,
    Table,
    WriteOp,
)


logger = structlog.get_logger(__name__)


# Column mappings, one worksheet per entity kind
LEDGER_COLUMNS: dict[EntityKind, list[str]] = {
    EntityKind.TRANSACTION: [
        "id",
        "user_id",
        "amount",
        "type",
        "category",
        "date",
        "description",
    ],
    EntityKind.CATEGORY: [
        "id",
        "user_id",
        "name",
        "type",
    ],
    EntityKind.BUDGET: [
        "id",
        "user_id",
        "month",
        "category_id",
        "amount",
    ],
    EntityKind.SAVINGS_GOAL: [
        "id",
        "user_id",
        "name",
        "target_amount",
        "deadline",
        "achieved",
    ],
}

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "user_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
]

_sheet_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @_sheet_retry
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StorageConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StorageConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise StorageConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_worksheet(
        self,
        title: str,
        columns: list[str],
        rows: int = 1000,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_ledger_sheet(self, kind: EntityKind) -> gspread.Worksheet:
        """Get or create the worksheet holding one entity kind."""
        titles = {
            EntityKind.TRANSACTION: self._settings.transactions_sheet_name,
            EntityKind.CATEGORY: self._settings.categories_sheet_name,
            EntityKind.BUDGET: self._settings.budgets_sheet_name,
            EntityKind.SAVINGS_GOAL: self._settings.goals_sheet_name,
        }
        return self._get_or_create_worksheet(titles[kind], LEDGER_COLUMNS[kind])

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_worksheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


class GoogleSheetsLedgerStorage(LedgerStorageInterface):
    """
    Google Sheets implementation of ledger storage.

    Entities are stored one per row; the first column is always the id.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._write_lock = asyncio.Lock()

    def _entity_to_row(self, entity: LedgerEntity) -> list:
        """Convert an entity to a spreadsheet row."""
        data = entity.model_dump(mode="json")
        row = []
        for column in LEDGER_COLUMNS[entity.kind]:
            value = data.get(column)
            row.append("" if value is None else str(value))
        return row

    def _row_to_entity(self, kind: EntityKind, row: list) -> LedgerEntity:
        """Convert a spreadsheet row to an entity."""
        columns = LEDGER_COLUMNS[kind]
        data = {}
        for index, column in enumerate(columns):
            value = row[index] if index < len(row) else ""
            data[column] = value if value != "" else None
        return ENTITY_MODELS[kind].model_validate(data)

    @_sheet_retry
    async def _load(self, kind: EntityKind) -> Table:
        """Read every entity of `kind` (header row skipped)."""
        try:
            sheet = self._client.get_ledger_sheet(kind)
            all_rows = sheet.get_all_values()[1:]
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read {kind.value} sheet: {e}")

        table: Table = {}
        for row in all_rows:
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                entity = self._row_to_entity(kind, row)
            except ValueError as e:
                logger.warning(
                    "malformed_row_skipped",
                    kind=kind.value,
                    row_id=row[0],
                    error=str(e),
                )
                continue
            table[entity.id] = entity
        return table

    def _find_row_index(self, sheet: gspread.Worksheet, entity_id: UUID) -> int:
        """1-based sheet row of an entity (row 1 is the header)."""
        ids = sheet.col_values(1)
        try:
            return ids.index(str(entity_id), 1) + 1
        except ValueError:
            raise StorageError(f"Row not found for id {entity_id}")

    def _apply(self, op: WriteOp) -> None:
        """Write one operation to its worksheet."""
        sheet = self._client.get_ledger_sheet(op.kind)
        if op.before is None:
            sheet.append_row(self._entity_to_row(op.after), value_input_option="RAW")
            return

        row_index = self._find_row_index(sheet, op.before.id)
        if op.after is None:
            sheet.delete_rows(row_index)
        else:
            row = self._entity_to_row(op.after)
            last_cell = rowcol_to_a1(row_index, len(row))
            sheet.update(
                range_name=f"A{row_index}:{last_cell}",
                values=[row],
                value_input_option="RAW",
            )

    def _commit(self, operations: list[WriteOp]) -> None:
        applied: list[WriteOp] = []
        try:
            for op in operations:
                self._apply(op)
                applied.append(op)
        except Exception as e:
            unreverted = self._undo(applied)
            if unreverted:
                raise PartialCommitError(
                    f"Failed to commit unit of work: {e}; "
                    f"{len(unreverted)} write(s) could not be undone",
                    unreverted=unreverted,
                )
            if isinstance(e, StorageError):
                raise
            raise StorageError(f"Failed to commit unit of work: {e}")

    def _undo(self, applied: list[WriteOp]) -> list[WriteOp]:
        """Best-effort reversal, newest first. Returns the ops left applied."""
        unreverted = []
        for op in reversed(applied):
            try:
                self._apply(op.inverse())
            except Exception as e:
                logger.critical(
                    "unit_of_work_undo_failed",
                    operation=repr(op),
                    error=str(e),
                )
                unreverted.append(op)
        return unreverted

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
        table = await self._load(kind)
        return [entity for entity in table.values() if matches(entity, filters)]


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            user_id=safe_get(4) or None,
            entity_type=safe_get(5) or None,
            entity_id=UUID(safe_get(6)) if safe_get(6) else None,
            correlation_id=UUID(safe_get(7)) if safe_get(7) else None,
            description=safe_get(8),
            details=json.loads(safe_get(9)) if safe_get(9) else {},
            error_message=safe_get(10) or None,
        )

    def _read_events(self) -> list[AuditEvent]:
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except ValueError:
                logger.warning("malformed_audit_row_skipped", row_id=row[0])
        return events

    @_sheet_retry
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        events = [e for e in self._read_events() if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by entity."""
        events = [
            e for e in self._read_events()
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        events = self._read_events()
        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
