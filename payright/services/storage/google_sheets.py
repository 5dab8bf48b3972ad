"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a shared backend because:
1. The user can look at their data directly in Sheets
2. No database setup required
3. The same data is reachable from more than one machine

Each storage key is one row: [key, value, updated_at].
Values are the same JSON documents the file backend holds.

TRADEOFFS:
- Every call is a network round trip (fine for one user)
- No transactions; last write wins, same as local storage
"""

from datetime import datetime, timezone
from typing import Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from payright.config import get_settings
from payright.services.storage.interface import (
    ConnectionError,
    KeyValueStorageInterface,
    StorageError,
)


STORAGE_COLUMNS = [
    "key",
    "value",
    "updated_at",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

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

    def get_storage_sheet(self) -> gspread.Worksheet:
        """Get or create the key/value worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.storage_sheet_name)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=self._settings.storage_sheet_name,
                rows=100,
                cols=len(STORAGE_COLUMNS),
            )
            sheet.append_row(STORAGE_COLUMNS)
        return sheet


class GoogleSheetsStorage(KeyValueStorageInterface):
    """
    Google Sheets implementation of key-value storage.

    Row 1 is the header; keys live in column A.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _find_row(self, sheet: gspread.Worksheet, key: str) -> Optional[int]:
        """Return the 1-based row index holding key, if any."""
        for idx, cell_value in enumerate(sheet.col_values(1)[1:], start=2):
            if cell_value == key:
                return idx
        return None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def get_item(self, key: str) -> Optional[str]:
        try:
            sheet = self._client.get_storage_sheet()
            row_idx = self._find_row(sheet, key)
            if row_idx is None:
                return None
            row = sheet.row_values(row_idx)
            return row[1] if len(row) > 1 else ""
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read {key}: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def set_item(self, key: str, value: str) -> None:
        try:
            sheet = self._client.get_storage_sheet()
            updated_at = datetime.now(timezone.utc).isoformat()
            row_idx = self._find_row(sheet, key)
            if row_idx is None:
                sheet.append_row([key, value, updated_at], value_input_option="RAW")
            else:
                sheet.update_cell(row_idx, 2, value)
                sheet.update_cell(row_idx, 3, updated_at)
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to write {key}: {e}")

    async def remove_item(self, key: str) -> bool:
        try:
            sheet = self._client.get_storage_sheet()
            row_idx = self._find_row(sheet, key)
            if row_idx is None:
                return False
            sheet.delete_rows(row_idx)
            return True
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to remove {key}: {e}")

    async def keys(self) -> list[str]:
        try:
            sheet = self._client.get_storage_sheet()
            return [k for k in sheet.col_values(1)[1:] if k]
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list keys: {e}")
