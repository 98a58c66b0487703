"""
sheets.py
---------
Row-level access to the spreadsheet that acts as the database.

Both clients expose the same four calls and address rows by their
1-based sheet row number, header row included:

    read_rows(sheet)                 -> list of rows (header first)
    append_row(sheet, row)
    update_row(sheet, row_number, row)
    delete_row(sheet, row_number)
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pandas as pd
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

import config
import storage
from errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
TOKEN_URI = "https://oauth2.googleapis.com/token"


def column_letter(index: int) -> str:
    """1 -> A, 26 -> Z, 27 -> AA."""
    letters = ""
    while index > 0:
        index, rem = divmod(index - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return letters


def row_range(sheet: str, row_number: int, width: int) -> str:
    return f"{sheet}!A{row_number}:{column_letter(max(width, 1))}{row_number}"


def _trim(row: Sequence) -> List[str]:
    # The Sheets API drops trailing blank cells, so the CSV backend does too
    cells = ["" if cell is None else str(cell) for cell in row]
    while cells and cells[-1] == "":
        cells.pop()
    return cells


def service_account_credentials():
    if not config.GOOGLE_SERVICE_ACCOUNT_EMAIL or not config.GOOGLE_PRIVATE_KEY:
        raise ConfigurationError("Google service account credentials are not configured")
    info = {
        "type": "service_account",
        "client_email": config.GOOGLE_SERVICE_ACCOUNT_EMAIL,
        "private_key": config.GOOGLE_PRIVATE_KEY,
        "token_uri": TOKEN_URI,
    }
    try:
        return service_account.Credentials.from_service_account_info(info, scopes=SCOPES)
    except ValueError as e:
        raise ConfigurationError("Google service account credentials are invalid") from e


class GoogleSheetsClient:
    """
    Wrapper around the Google Sheets API v4 values endpoints.
    """

    def __init__(self, spreadsheet_id: Optional[str], service=None, credentials=None):
        if not spreadsheet_id:
            raise ConfigurationError("Spreadsheet ID is not configured")
        self.spreadsheet_id = spreadsheet_id
        if service is None:
            service = build("sheets", "v4", credentials=credentials or service_account_credentials(),
                            cache_discovery=False)
        self.service = service
        self._sheet_ids: Dict[str, int] = {}

    def _execute(self, request, action: str):
        try:
            return request.execute()
        except (HttpError, GoogleAuthError) as e:
            logger.error("Spreadsheet %s failed: %s", action, e)
            raise UpstreamError(f"Failed to {action} spreadsheet") from e

    def read_rows(self, sheet: str) -> List[List[str]]:
        request = self.service.spreadsheets().values().get(spreadsheetId=self.spreadsheet_id, range=sheet)
        response = self._execute(request, "read from")
        return [_trim(row) for row in response.get("values", [])]

    def append_row(self, sheet: str, row: Sequence):
        logger.info("Appending to %s: %s", sheet, list(row))
        request = self.service.spreadsheets().values().append(
            spreadsheetId=self.spreadsheet_id,
            range=f"{sheet}!A1",
            valueInputOption="USER_ENTERED",
            insertDataOption="INSERT_ROWS",
            body={"values": [list(row)]},
        )
        self._execute(request, "append to")

    def update_row(self, sheet: str, row_number: int, row: Sequence):
        target = row_range(sheet, row_number, len(row))
        logger.info("Updating %s: %s", target, list(row))
        request = self.service.spreadsheets().values().update(
            spreadsheetId=self.spreadsheet_id,
            range=target,
            valueInputOption="USER_ENTERED",
            body={"values": [list(row)]},
        )
        self._execute(request, "update")

    def _sheet_id(self, sheet: str) -> int:
        if sheet not in self._sheet_ids:
            request = self.service.spreadsheets().get(
                spreadsheetId=self.spreadsheet_id, fields="sheets.properties(sheetId,title)"
            )
            meta = self._execute(request, "read from")
            for entry in meta.get("sheets", []):
                props = entry.get("properties", {})
                self._sheet_ids[props.get("title")] = props.get("sheetId")
        if sheet not in self._sheet_ids:
            raise UpstreamError(f"Sheet {sheet} does not exist")
        return self._sheet_ids[sheet]

    def delete_row(self, sheet: str, row_number: int):
        logger.info("Deleting %s row %d", sheet, row_number)
        body = {
            "requests": [
                {
                    "deleteDimension": {
                        "range": {
                            "sheetId": self._sheet_id(sheet),
                            "dimension": "ROWS",
                            "startIndex": row_number - 1,
                            "endIndex": row_number,
                        }
                    }
                }
            ]
        }
        request = self.service.spreadsheets().batchUpdate(spreadsheetId=self.spreadsheet_id, body=body)
        self._execute(request, "delete from")


class CsvWorkbook:
    """
    One headerless CSV per sheet, on local disk or in S3 (see storage.py).
    """

    def __init__(self, root: Optional[Path] = None, bucket: Optional[str] = None, folder: str = "sheets"):
        self.root = Path(root) if root else config.DATA_DIR
        self.bucket = bucket
        self.folder = folder

    def _file_name(self, sheet: str) -> str:
        return f"{sheet}.csv"

    def read_rows(self, sheet: str) -> List[List[str]]:
        grid = storage.load_file(self._file_name(sheet), folder=self.folder, root=self.root, bucket=self.bucket)
        if grid is None or grid.empty:
            return []
        return [_trim(row) for row in grid.itertuples(index=False, name=None)]

    def _write(self, sheet: str, rows: List[List[str]]):
        width = max((len(r) for r in rows), default=0)
        frame = pd.DataFrame([list(r) + [""] * (width - len(r)) for r in rows])
        storage.save_file(self._file_name(sheet), frame, folder=self.folder, root=self.root, bucket=self.bucket)

    def append_row(self, sheet: str, row: Sequence):
        rows = self.read_rows(sheet)
        rows.append(_trim(row))
        self._write(sheet, rows)

    def update_row(self, sheet: str, row_number: int, row: Sequence):
        rows = self.read_rows(sheet)
        if not 1 <= row_number <= len(rows):
            raise UpstreamError(f"Row {row_number} is outside sheet {sheet}")
        rows[row_number - 1] = _trim(row)
        self._write(sheet, rows)

    def delete_row(self, sheet: str, row_number: int):
        rows = self.read_rows(sheet)
        if not 1 <= row_number <= len(rows):
            raise UpstreamError(f"Row {row_number} is outside sheet {sheet}")
        del rows[row_number - 1]
        self._write(sheet, rows)


def get_client():
    """Build the client selected by STORAGE_BACKEND."""
    if config.STORAGE_BACKEND == "sheets":
        return GoogleSheetsClient(config.SPREADSHEET_ID)
    if config.STORAGE_BACKEND == "csv":
        return CsvWorkbook(config.DATA_DIR, bucket=config.S3_BUCKET)
    raise ConfigurationError(f"Unknown storage backend: {config.STORAGE_BACKEND}")
