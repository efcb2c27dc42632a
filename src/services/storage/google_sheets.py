"""
Google Sheets Storage Implementation

DESIGN DECISION: Each collection is one worksheet of a single
spreadsheet; the first row holds the column names.

TRADEOFFS:
- Not suitable for high-volume data (fine for a small business back office)
- No transactions (writes are single appends or cell updates)
- Limited query capabilities (we filter, order and window in Python,
  so filter values are never spliced into any query text)

gspread is synchronous; calls run in a worker thread so a slow sheet
never blocks the event loop. Calls are single-attempt: failures are
reported to the caller as tagged results, not retried.
"""

import asyncio
import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

import gspread
import structlog
from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials

from src.config import get_settings
from src.config.settings import GoogleSheetsSettings
from src.models.audit import AuditEvent, AuditEventType, AuditSeverity
from src.models.collection import CollectionQuery, QueryResult
from src.services.storage.filtering import apply_query, row_matches
from src.services.storage.interface import (
    AuditStorageInterface,
    NotFoundError,
    RemoteCollectionClient,
    RemoteUnavailableError,
    StorageError,
    UnauthorizedError,
    error_kind_for,
)


logger = structlog.get_logger(__name__)


# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_code",
    "error_message",
    "is_user_action",
]


def translate_error(error: Exception) -> StorageError:
    """Turn a gspread / google-auth failure into a StorageError."""
    if isinstance(error, StorageError):
        return error
    if isinstance(error, (gspread.SpreadsheetNotFound, gspread.WorksheetNotFound)):
        return NotFoundError(f"Not found: {error}")
    if isinstance(error, (FileNotFoundError, GoogleAuthError)):
        return UnauthorizedError(f"Google credentials unusable: {error}")
    if isinstance(error, gspread.exceptions.APIError):
        status = getattr(getattr(error, "response", None), "status_code", None)
        if status in (401, 403):
            return UnauthorizedError(f"Google Sheets rejected credentials: {error}")
        if status == 404:
            return NotFoundError(f"Not found: {error}")
    return RemoteUnavailableError(f"Google Sheets unavailable: {error}")


def to_cell(value: Any) -> Any:
    """Render a Python value the way it is written to a cell."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return value


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and worksheet lookup. Every failure surfaces
    as a StorageError subclass.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

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
                raise UnauthorizedError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise translate_error(e) from e

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
                raise NotFoundError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
            except Exception as e:
                raise translate_error(e) from e
        return self._spreadsheet

    def get_worksheet(self, name: str) -> gspread.Worksheet:
        """Get the worksheet backing a collection. Collections are never auto-created."""
        spreadsheet = self.get_spreadsheet()
        try:
            return spreadsheet.worksheet(name)
        except gspread.WorksheetNotFound:
            raise NotFoundError(f"Collection not found: {name}")
        except Exception as e:
            raise translate_error(e) from e

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.audit_sheet_name)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=self._settings.audit_sheet_name,
                rows=5000,
                cols=len(AUDIT_COLUMNS),
            )
            sheet.append_row(AUDIT_COLUMNS)
        return sheet


class GoogleSheetsCollectionClient(RemoteCollectionClient):
    """
    Google Sheets implementation of the collection client.

    One worksheet per collection; records are dicts keyed by the header row.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _read_records(self, collection_name: str) -> list[dict[str, Any]]:
        try:
            sheet = self._client.get_worksheet(collection_name)
            return sheet.get_all_records()
        except Exception as e:
            raise translate_error(e) from e

    def _append(self, collection_name: str, values: dict[str, Any]) -> dict[str, Any]:
        try:
            sheet = self._client.get_worksheet(collection_name)
            header = sheet.row_values(1)
            unknown = sorted(set(values) - set(header))
            if unknown:
                logger.warning(
                    "sheets_insert_unknown_columns",
                    collection=collection_name,
                    columns=unknown,
                )
            sheet.append_row(
                [to_cell(values.get(column)) for column in header],
                value_input_option="RAW",
            )
            return {column: values.get(column) for column in header}
        except Exception as e:
            raise translate_error(e) from e

    def _update_matching(
        self,
        collection_name: str,
        values: dict[str, Any],
        filters: dict[str, Any],
    ) -> list[dict[str, Any]]:
        try:
            sheet = self._client.get_worksheet(collection_name)
            all_rows = sheet.get_all_values()
            if not all_rows:
                return []
            header = all_rows[0]
            missing = [column for column in values if column not in header]
            if missing:
                raise NotFoundError(
                    f"Columns not found in {collection_name}: {', '.join(missing)}"
                )

            updated = []
            # Row 1 is the header
            for idx, row in enumerate(all_rows[1:], start=2):
                record = dict(zip(header, row))
                if not row_matches(record, filters):
                    continue
                for column, value in values.items():
                    sheet.update_cell(idx, header.index(column) + 1, to_cell(value))
                record.update(values)
                updated.append(record)
            return updated
        except Exception as e:
            raise translate_error(e) from e

    async def fetch(self, query: CollectionQuery) -> QueryResult:
        """Read a worksheet and apply the query in Python."""
        try:
            records = await asyncio.to_thread(self._read_records, query.collection_name)
        except StorageError as e:
            logger.warning(
                "sheets_fetch_failed",
                collection=query.collection_name,
                error=str(e),
            )
            return QueryResult.failure(error_kind_for(e), str(e), sequence=query.sequence)

        return QueryResult(rows=apply_query(records, query), sequence=query.sequence)

    async def insert(self, collection_name: str, values: dict[str, Any]) -> QueryResult:
        """Append one row, laid out by the worksheet's header."""
        try:
            row = await asyncio.to_thread(self._append, collection_name, values)
        except StorageError as e:
            logger.warning("sheets_insert_failed", collection=collection_name, error=str(e))
            return QueryResult.failure(error_kind_for(e), str(e))
        return QueryResult(rows=[row])

    async def update(
        self,
        collection_name: str,
        values: dict[str, Any],
        filters: dict[str, Any],
    ) -> QueryResult:
        """Update cells of every row matching `filters`."""
        try:
            rows = await asyncio.to_thread(
                self._update_matching, collection_name, values, filters
            )
        except StorageError as e:
            logger.warning("sheets_update_failed", collection=collection_name, error=str(e))
            return QueryResult.failure(error_kind_for(e), str(e))
        return QueryResult(rows=rows)


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
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_code=safe_get(9) or None,
            error_message=safe_get(10) or None,
            is_user_action=safe_get(11).lower() == "true",
        )

    def _read_events(self) -> list[AuditEvent]:
        try:
            all_rows = self._client.get_audit_sheet().get_all_values()[1:]
        except Exception as e:
            raise translate_error(e) from e

        events = []
        for row in all_rows:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except ValueError as e:
                logger.warning("audit_row_unreadable", row_id=row[0], error=str(e))
        return events

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event. Failures are logged, never raised."""
        try:
            sheet = await asyncio.to_thread(self._client.get_audit_sheet)
            await asyncio.to_thread(
                sheet.append_row, event.to_sheets_row(), value_input_option="RAW"
            )
            return True
        except Exception as e:
            logger.warning(
                "audit_event_write_failed",
                event_id=str(event.event_id),
                error=str(e),
            )
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        events = await asyncio.to_thread(self._read_events)
        matching = [e for e in events if e.correlation_id == correlation_id]
        matching.sort(key=lambda e: e.timestamp)
        return matching

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events, newest first."""
        events = await asyncio.to_thread(self._read_events)
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
