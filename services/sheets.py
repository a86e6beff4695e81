import logging
from typing import Any, Dict, List, Optional

import httplib2
from google.oauth2.service_account import Credentials
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from services.errors import StoreError
from services.retry import remote_retry
from sheet_bot.config import Settings, load_google_credentials

logger = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive.readonly",
]

# Cells are written as if typed by a user so dates, numbers and formulas coerce normally.
VALUE_INPUT_OPTION = "USER_ENTERED"


def quote_sheet_name(name: str) -> str:
    """Quote a sheet title for A1 notation.

    Always quoted: a bare title such as "Q1" would read as a cell reference.
    """
    return "'" + name.replace("'", "''") + "'"


def a1_range(sheet_name: str, cells: str) -> str:
    return f"{quote_sheet_name(sheet_name)}!{cells}"


def create_sheets_service(credentials_info: Dict[str, Any], timeout: float = 20.0):
    credentials = Credentials.from_service_account_info(credentials_info, scopes=SCOPES)
    http = AuthorizedHttp(credentials, http=httplib2.Http(timeout=timeout))
    return build("sheets", "v4", http=http, cache_discovery=False)


class GoogleSheetsStore:
    """Grid store over one spreadsheet; each sheet is a table."""

    def __init__(self, service: Any, spreadsheet_id: str):
        self.service = service
        self.spreadsheet_id = spreadsheet_id

    @classmethod
    def from_settings(cls, settings: Settings, credentials_info: Optional[Dict[str, Any]] = None) -> "GoogleSheetsStore":
        info = credentials_info or load_google_credentials()
        if not info:
            raise StoreError("GOOGLE_CREDENTIALS is not set.")
        return cls(create_sheets_service(info, timeout=settings.sheets_timeout), settings.spreadsheet_id)

    @remote_retry
    def list_table_names(self) -> List[str]:
        try:
            res = (
                self.service.spreadsheets()
                .get(spreadsheetId=self.spreadsheet_id, fields="sheets.properties.title")
                .execute()
            )
        except HttpError as exc:
            raise StoreError(f"Listing sheets failed: {exc}") from exc
        return [str(sheet["properties"]["title"]) for sheet in res.get("sheets", [])]

    @remote_retry
    def read_range(self, range_spec: str) -> List[List[str]]:
        try:
            res = (
                self.service.spreadsheets()
                .values()
                .get(spreadsheetId=self.spreadsheet_id, range=range_spec)
                .execute()
            )
        except HttpError as exc:
            raise StoreError(f"Reading {range_spec} failed: {exc}") from exc
        rows = res.get("values") or []
        return [["" if cell is None else str(cell) for cell in row] for row in rows]

    @remote_retry
    def write_cell(self, range_spec: str, value: str) -> Dict[str, Any]:
        try:
            res = (
                self.service.spreadsheets()
                .values()
                .update(
                    spreadsheetId=self.spreadsheet_id,
                    range=range_spec,
                    valueInputOption=VALUE_INPUT_OPTION,
                    body={"values": [[value]]},
                )
                .execute()
            )
        except HttpError as exc:
            raise StoreError(f"Writing {range_spec} failed: {exc}") from exc
        logger.info("Wrote %s", range_spec)
        return res
