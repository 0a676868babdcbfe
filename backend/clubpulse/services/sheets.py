"""Google Sheets access for the member activity sheet.

The scanner only needs one call: read a range and get back a rectangular array of
cell values, or None when the read failed.
"""
import json
import logging
from typing import Any, List, Optional

from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from ..core.config import Settings

SCOPES = ["https://www.googleapis.com/auth/spreadsheets.readonly"]

log = logging.getLogger(__name__)

CellValue = Any  # str | int | float | bool | None
SheetRows = List[List[CellValue]]


class SheetsConfigError(RuntimeError):
    """Required Google Sheets configuration is missing or malformed."""


def _load_credentials(raw_json: Optional[str]):
    if not raw_json:
        raise SheetsConfigError("GOOGLE_SERVICE_ACCOUNT_CREDENTIALS environment variable not set.")
    try:
        info = json.loads(raw_json)
    except json.JSONDecodeError as e:
        raise SheetsConfigError("Invalid format for GOOGLE_SERVICE_ACCOUNT_CREDENTIALS.") from e
    if not isinstance(info, dict):
        raise SheetsConfigError("Invalid format for GOOGLE_SERVICE_ACCOUNT_CREDENTIALS.")
    if isinstance(info.get('private_key'), str):
        # keys pasted into env vars usually carry escaped newlines
        info['private_key'] = info['private_key'].replace('\\n', '\n')
    try:
        return service_account.Credentials.from_service_account_info(info, scopes=SCOPES)
    except (ValueError, TypeError, GoogleAuthError) as e:
        raise SheetsConfigError(f"Invalid service account credentials: {e}") from e


class GoogleSheetsClient:
    def __init__(self, spreadsheet_id: Optional[str], credentials_json: Optional[str]):
        if not spreadsheet_id:
            raise SheetsConfigError("GOOGLE_SHEET_ID environment variable not set.")
        self.spreadsheet_id = spreadsheet_id
        self._credentials_json = credentials_json
        self._service = None

    @classmethod
    def from_settings(cls, settings: Settings) -> 'GoogleSheetsClient':
        return cls(settings.google_sheet_id, settings.google_credentials_json)

    def _get_service(self):
        if self._service is None:
            creds = _load_credentials(self._credentials_json)
            self._service = build("sheets", "v4", credentials=creds, cache_discovery=False)
        return self._service

    def get_values(self, cell_range: str) -> Optional[SheetRows]:
        """Fetch the values in an A1 range (e.g. 'members!A2:D').

        Returns an empty list when the range holds no data, None when the read failed.
        Configuration problems raise SheetsConfigError.
        """
        service = self._get_service()
        try:
            response = service.spreadsheets().values().get(
                spreadsheetId=self.spreadsheet_id,
                range=cell_range,
                valueRenderOption="UNFORMATTED_VALUE",
            ).execute()
        except HttpError as e:
            log.error("sheet_fetch_failed", extra={"reason": str(e), "status": getattr(e.resp, 'status', None)})
            return None
        except Exception:
            log.exception("sheet_fetch_failed")
            return None
        return response.get("values", [])


def get_sheets_client(settings: Settings) -> GoogleSheetsClient:
    return GoogleSheetsClient.from_settings(settings)
