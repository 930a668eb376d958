from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
import webbrowser

import httplib2
from google.auth.transport.requests import Request
from google.oauth2 import service_account
from google.oauth2.credentials import Credentials
from google_auth_httplib2 import AuthorizedHttp
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build

logger = logging.getLogger(__name__)


class MissingSheetError(RuntimeError):
    """A sheet the run reads from does not exist in the spreadsheet."""


@dataclass(frozen=True)
class SheetRef:
    sheet_id: int
    title: str


def column_letter(index: int) -> str:
    """1-based column index to A1 letters (1 -> A, 27 -> AA)."""
    if index < 1:
        raise ValueError(f"Column index must be >= 1, got {index}")
    letters = ""
    while index:
        index, remainder = divmod(index - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


def _quote_title(title: str) -> str:
    return "'" + title.replace("'", "''") + "'"


class SheetsClient:
    """Tabular store backed by one Google Sheets spreadsheet."""

    SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
    HTTP_TIMEOUT_SEC = 30
    PERCENT_PATTERN = "0.00%"

    def __init__(
        self,
        spreadsheet_id: str,
        client_secret_path: str = "",
        token_path: str = "",
        service=None,
    ) -> None:
        self.spreadsheet_id = spreadsheet_id.strip()
        self.client_secret_path = client_secret_path.strip()
        self.token_path = token_path.strip() or ".google_sheets_token.json"
        self._service = service

    def _load_credentials(self) -> Credentials:
        secret_path = Path(self.client_secret_path)
        if not secret_path.exists():
            raise RuntimeError(
                f"Google Sheets credentials file not found: {self.client_secret_path}"
            )

        secret_payload = json.loads(secret_path.read_text(encoding="utf-8"))
        if secret_payload.get("type") == "service_account":
            return service_account.Credentials.from_service_account_file(
                str(secret_path),
                scopes=self.SCOPES,
            )

        creds: Credentials | None = None
        token_file = Path(self.token_path)
        if token_file.exists():
            creds = Credentials.from_authorized_user_file(str(token_file), self.SCOPES)

        if creds and creds.expired and creds.refresh_token:
            creds.refresh(Request())

        if not creds or not creds.valid:
            flow = InstalledAppFlow.from_client_secrets_file(str(secret_path), self.SCOPES)
            try:
                creds = flow.run_local_server(port=0, access_type="offline", prompt="consent")
            except webbrowser.Error as exc:
                raise RuntimeError(
                    "Unable to start browser for Google OAuth flow. "
                    "Run locally once to create the token file (SHEETS_TOKEN_PATH)."
                ) from exc

        token_file.write_text(creds.to_json(), encoding="utf-8")
        return creds

    def _sheets(self):
        if self._service is None:
            http = AuthorizedHttp(
                self._load_credentials(),
                http=httplib2.Http(timeout=self.HTTP_TIMEOUT_SEC),
            )
            self._service = build("sheets", "v4", http=http, cache_discovery=False)
        return self._service.spreadsheets()

    def _batch_update(self, requests: list[dict]) -> dict:
        return (
            self._sheets()
            .batchUpdate(spreadsheetId=self.spreadsheet_id, body={"requests": requests})
            .execute()
        )

    def list_sheets(self) -> list[SheetRef]:
        meta = (
            self._sheets()
            .get(spreadsheetId=self.spreadsheet_id, fields="sheets.properties")
            .execute()
        )
        refs: list[SheetRef] = []
        for row in meta.get("sheets", []) if isinstance(meta, dict) else []:
            properties = row.get("properties") if isinstance(row, dict) else None
            if not isinstance(properties, dict):
                continue
            refs.append(
                SheetRef(
                    sheet_id=int(properties.get("sheetId", 0)),
                    title=str(properties.get("title", "")),
                )
            )
        return refs

    def require_sheet(self, title: str) -> SheetRef:
        for ref in self.list_sheets():
            if ref.title == title:
                return ref
        raise MissingSheetError(f"Sheet '{title}' is not defined in the spreadsheet.")

    def read_values(self, title: str, a1_range: str) -> list[list[object]]:
        payload = (
            self._sheets()
            .values()
            .get(
                spreadsheetId=self.spreadsheet_id,
                range=f"{_quote_title(title)}!{a1_range}",
                majorDimension="ROWS",
                valueRenderOption="UNFORMATTED_VALUE",
                dateTimeRenderOption="SERIAL_NUMBER",
            )
            .execute()
        )
        values = payload.get("values", []) if isinstance(payload, dict) else []
        return [row for row in values if isinstance(row, list)]

    def read_cell(self, title: str, cell: str) -> object | None:
        values = self.read_values(title, cell)
        if values and values[0]:
            return values[0][0]
        return None

    def add_sheet(self) -> SheetRef:
        """Append a sheet with a default title at the end of the spreadsheet."""
        index = len(self.list_sheets())
        response = self._batch_update([{"addSheet": {"properties": {"index": index}}}])
        properties = response["replies"][0]["addSheet"]["properties"]
        ref = SheetRef(sheet_id=int(properties["sheetId"]), title=str(properties["title"]))
        logger.info("Added sheet '%s' (id=%d)", ref.title, ref.sheet_id)
        return ref

    def rename_sheet(self, sheet: SheetRef, title: str) -> SheetRef:
        self._batch_update(
            [
                {
                    "updateSheetProperties": {
                        "properties": {"sheetId": sheet.sheet_id, "title": title},
                        "fields": "title",
                    }
                }
            ]
        )
        logger.info("Renamed sheet '%s' to '%s'", sheet.title, title)
        return SheetRef(sheet_id=sheet.sheet_id, title=title)

    def last_filled_row(self, sheet: SheetRef, column: int) -> int:
        """1-based index of the last non-empty cell in ``column`` (0 if empty)."""
        letter = column_letter(column)
        values = self.read_values(sheet.title, f"{letter}:{letter}")
        for idx in range(len(values), 0, -1):
            row = values[idx - 1]
            if row and str(row[0]).strip():
                return idx
        return 0

    def write_rows(
        self,
        sheet: SheetRef,
        start_row: int,
        start_column: int,
        rows: list[list[object]],
    ) -> None:
        if not rows:
            return
        width = max(len(row) for row in rows)
        a1_range = (
            f"{column_letter(start_column)}{start_row}:"
            f"{column_letter(start_column + width - 1)}{start_row + len(rows) - 1}"
        )
        (
            self._sheets()
            .values()
            .update(
                spreadsheetId=self.spreadsheet_id,
                range=f"{_quote_title(sheet.title)}!{a1_range}",
                valueInputOption="RAW",
                body={"values": rows},
            )
            .execute()
        )

    def format_percent(self, sheet: SheetRef, start_row: int, row_count: int, column: int) -> None:
        if row_count <= 0:
            return
        self._batch_update(
            [
                {
                    "repeatCell": {
                        "range": {
                            "sheetId": sheet.sheet_id,
                            "startRowIndex": start_row - 1,
                            "endRowIndex": start_row - 1 + row_count,
                            "startColumnIndex": column - 1,
                            "endColumnIndex": column,
                        },
                        "cell": {
                            "userEnteredFormat": {
                                "numberFormat": {
                                    "type": "PERCENT",
                                    "pattern": self.PERCENT_PATTERN,
                                }
                            }
                        },
                        "fields": "userEnteredFormat.numberFormat",
                    }
                }
            ]
        )
