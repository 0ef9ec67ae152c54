"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets can back the entity store because:
1. Non-technical users can see their data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

Layout: one worksheet, one row per collection key.
    key | value_json | updated_at
plus an append-only audit worksheet (one row per audit event).

TRADEOFFS:
- Each collection is a single JSON cell (Sheets caps a cell at 50k chars,
  fine for personal use)
- No transactions across keys (each key is written independently)
"""

import json
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from finance_tracker.config import StorageSettings, get_settings
from finance_tracker.models.audit import AuditEvent, AuditEventType, AuditSeverity
from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    EntityStoreInterface,
    StorageError,
)

logger = structlog.get_logger(__name__)

STATE_COLUMNS = [
    "key",
    "value_json",
    "updated_at",
]

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
    "error_message",
    "is_user_action",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[StorageSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().storage

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            if not self._settings.credentials_path:
                raise ConnectionError("STORAGE_CREDENTIALS_PATH is not configured")
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
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            if not self._settings.spreadsheet_id:
                raise ConnectionError("STORAGE_SPREADSHEET_ID is not configured")
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_state_sheet(self) -> gspread.Worksheet:
        """Get or create the state worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.worksheet_name)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=self._settings.worksheet_name,
                rows=50,
                cols=len(STATE_COLUMNS),
            )
            sheet.append_row(STATE_COLUMNS)
        return sheet

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the audit worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.audit_worksheet_name)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=self._settings.audit_worksheet_name,
                rows=5000,  # More rows for audit log
                cols=len(AUDIT_COLUMNS),
            )
            sheet.append_row(AUDIT_COLUMNS)
        return sheet


class GoogleSheetsEntityStore(EntityStoreInterface):
    """
    Google Sheets implementation of the entity store.

    Collections are JSON-serialized into the ``value_json`` column.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _rows(self) -> list[list[str]]:
        # Skip header
        return self._client.get_state_sheet().get_all_values()[1:]

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def get(self, key: str, default: Any = None) -> Any:
        try:
            rows = self._rows()
        except Exception as e:
            raise StorageError(f"Failed to read {key}: {e}")

        for row in rows:
            if row and row[0] == key:
                raw = row[1] if len(row) > 1 else ""
                if not raw:
                    return default
                try:
                    return json.loads(raw)
                except json.JSONDecodeError as e:
                    # Corrupt cell: copied to its own row, then treated as absent
                    logger.warning("sheets_store_corrupt", key=key, error=str(e))
                    self._write_row(f"{key}.corrupt", raw)
                    return default
        return default

    def set(self, key: str, value: Any) -> None:
        try:
            payload = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value for {key} is not JSON-serializable: {e}")
        self._write_row(key, payload)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _write_row(self, key: str, payload: str) -> None:
        updated_at = datetime.now(timezone.utc).isoformat()
        try:
            sheet = self._client.get_state_sheet()
            all_rows = sheet.get_all_values()

            # Row 1 is the header
            for idx, row in enumerate(all_rows[1:], start=2):
                if row and row[0] == key:
                    sheet.update_cell(idx, 2, payload)
                    sheet.update_cell(idx, 3, updated_at)
                    return

            sheet.append_row([key, payload, updated_at], value_input_option="RAW")
        except Exception as e:
            raise StorageError(f"Failed to write {key}: {e}")

    def keys(self) -> list[str]:
        try:
            return [row[0] for row in self._rows() if row and row[0]]
        except Exception as e:
            raise StorageError(f"Failed to list keys: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _event_to_row(self, event: AuditEvent) -> list:
        """Convert an AuditEvent to a spreadsheet row."""
        return [
            str(event.event_id),
            event.timestamp.isoformat(),
            event.event_type.value,
            event.severity.value,
            event.entity_type or "",
            event.entity_id or "",
            str(event.correlation_id) if event.correlation_id else "",
            event.description,
            json.dumps(event.details, default=str) if event.details else "",
            event.error_message or "",
            str(event.is_user_action),
        ]

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
            error_message=safe_get(9) or None,
            is_user_action=safe_get(10).lower() == "true",
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _append_row(self, row: list) -> None:
        self._client.get_audit_sheet().append_row(row, value_input_option="RAW")

    def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event. Failures are logged, never raised."""
        try:
            self._append_row(self._event_to_row(event))
            return True
        except Exception as e:
            logger.warning(
                "audit_sheet_write_failed",
                event_type=event.event_type.value,
                error=str(e),
            )
            return False

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """Get recent events (newest first). Unparseable rows are skipped."""
        try:
            all_rows = self._client.get_audit_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, IndexError):
                logger.debug("audit_row_skipped", event_id=row[0])

        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
