from __future__ import annotations

import asyncio
from typing import Any, List, Optional, Sequence

import google.auth
from google.auth.exceptions import DefaultCredentialsError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from ..errors import ConfigError, TableStoreError
from .table_store import Row, TableStore

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]


def column_letter(n: int) -> str:
    """1 -> A, 5 -> E, 27 -> AA."""
    if n < 1:
        raise ValueError("column number must be >= 1")
    out = ""
    while n:
        n, rem = divmod(n - 1, 26)
        out = chr(ord("A") + rem) + out
    return out


def a1_range(sheet: str, ref: str) -> str:
    """Quote the sheet title (titles here are Japanese and may contain spaces)."""
    title = sheet.replace("'", "''")
    return f"'{title}'!{ref}"


def build_sheets_service(credentials_file: Optional[str] = None) -> Any:
    """
    Service-account JSON when given, application default credentials
    otherwise (GOOGLE_APPLICATION_CREDENTIALS, gcloud, metadata server).
    """
    try:
        if credentials_file:
            creds = service_account.Credentials.from_service_account_file(credentials_file, scopes=SCOPES)
        else:
            creds, _ = google.auth.default(scopes=SCOPES)
    except (DefaultCredentialsError, OSError, ValueError) as e:
        raise ConfigError(f"Google credentials unavailable: {e}") from e
    return build("sheets", "v4", credentials=creds, cache_discovery=False)


class SheetsTableStore(TableStore):
    """
    One spreadsheet; each table is a sheet (tab). Values are written RAW so
    dates and URLs are stored verbatim.
    """

    def __init__(self, spreadsheet_id: str, service: Any) -> None:
        self.spreadsheet_id = spreadsheet_id
        self.service = service

    @classmethod
    def from_config(cls, spreadsheet_id: str, credentials_file: Optional[str] = None) -> "SheetsTableStore":
        return cls(spreadsheet_id, build_sheets_service(credentials_file))

    async def _execute(self, request: Any, what: str) -> Any:
        # googleapiclient is blocking; run in a worker thread, one call at a time
        try:
            return await asyncio.to_thread(request.execute)
        except HttpError as e:
            raise TableStoreError(f"sheets {what} failed: {e}") from e

    def _values(self) -> Any:
        return self.service.spreadsheets().values()

    async def table_exists(self, name: str) -> bool:
        req = self.service.spreadsheets().get(
            spreadsheetId=self.spreadsheet_id,
            fields="sheets.properties.title",
        )
        resp = await self._execute(req, "get")
        titles = [
            (s.get("properties") or {}).get("title")
            for s in (resp or {}).get("sheets", [])
        ]
        return name in titles

    async def create_table(self, name: str, header: Sequence[str]) -> None:
        add = self.service.spreadsheets().batchUpdate(
            spreadsheetId=self.spreadsheet_id,
            body={"requests": [{"addSheet": {"properties": {"title": name}}}]},
        )
        await self._execute(add, f"addSheet {name}")

        last = column_letter(len(header))
        put_header = self._values().update(
            spreadsheetId=self.spreadsheet_id,
            range=a1_range(name, f"A1:{last}1"),
            valueInputOption="RAW",
            body={"values": [list(header)]},
        )
        await self._execute(put_header, f"header {name}")

    async def read_range(
        self, name: str, from_row: int, to_row: Optional[int], columns: int
    ) -> List[Row]:
        last = column_letter(columns)
        ref = f"A{from_row}:{last}{to_row if to_row is not None else ''}"
        req = self._values().get(spreadsheetId=self.spreadsheet_id, range=a1_range(name, ref))
        resp = await self._execute(req, f"read {name}!{ref}")
        return [[str(c) for c in row] for row in (resp or {}).get("values", [])]

    async def append_row(self, name: str, row: Sequence[str]) -> None:
        last = column_letter(len(row))
        req = self._values().append(
            spreadsheetId=self.spreadsheet_id,
            range=a1_range(name, f"A:{last}"),
            valueInputOption="RAW",
            body={"values": [list(row)]},
        )
        await self._execute(req, f"append {name}")

    async def update_row(self, name: str, row_index: int, row: Sequence[str]) -> None:
        last = column_letter(len(row))
        req = self._values().update(
            spreadsheetId=self.spreadsheet_id,
            range=a1_range(name, f"A{row_index}:{last}{row_index}"),
            valueInputOption="RAW",
            body={"values": [list(row)]},
        )
        await self._execute(req, f"update {name}!{row_index}")
