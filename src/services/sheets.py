"""Google Sheets tab store for the media bridge.

Each tab of one spreadsheet is a record whose id is its exact title. Rows
are appended as ``[file name, timestamp, link]`` at a position computed by
:class:`~src.core.media_record_writer.MediaRecordWriter`.
"""

from __future__ import annotations

from typing import Any, List
from urllib.parse import quote

import httpx

from src.models.records import MatchPolicy, Record, WriteStyle
from src.services.google_auth import GoogleServiceAccountAuth
from src.services.http import request_json
from src.utils.logger import get_logger


_SHEETS_BASE_URL = "https://sheets.googleapis.com/v4/spreadsheets"

logger = get_logger("media_bridge.sheets")


def a1_range(tab: str, cells: str) -> str:
    """Build an A1 range, quoting the tab title (``'Maria Souza'!A:A``)."""

    escaped = tab.replace("'", "''")
    return f"'{escaped}'!{cells}"


def row_range(tab: str, row: int, width: int) -> str:
    last_column = chr(ord("A") + max(width, 1) - 1)
    return a1_range(tab, f"A{row}:{last_column}{row}")


class SheetsTabStore:
    """Append-style record store backed by the tabs of a spreadsheet."""

    match_policy = MatchPolicy.EXACT
    write_style = WriteStyle.APPEND

    def __init__(
        self,
        client: httpx.AsyncClient,
        auth: GoogleServiceAccountAuth,
        spreadsheet_id: str,
    ) -> None:
        self.client = client
        self.auth = auth
        self.spreadsheet_id = spreadsheet_id

    def _values_url(self, range_: str) -> str:
        return f"{_SHEETS_BASE_URL}/{self.spreadsheet_id}/values/{quote(range_, safe='')}"

    async def list_tabs(self) -> List[str]:
        payload = await request_json(
            self.client,
            "GET",
            f"{_SHEETS_BASE_URL}/{self.spreadsheet_id}",
            params={"fields": "sheets.properties.title"},
            headers=await self.auth.authorization_headers(),
            context="list spreadsheet tabs",
        )
        sheets: List[Any] = (payload or {}).get("sheets") or []
        return [
            str(sheet["properties"]["title"])
            for sheet in sheets
            if isinstance(sheet, dict) and (sheet.get("properties") or {}).get("title")
        ]

    async def create_tab(self, title: str) -> None:
        await request_json(
            self.client,
            "POST",
            f"{_SHEETS_BASE_URL}/{self.spreadsheet_id}:batchUpdate",
            json_body={"requests": [{"addSheet": {"properties": {"title": title}}}]},
            headers=await self.auth.authorization_headers(),
            context=f"create tab '{title}'",
        )
        logger.info("Tab '%s' created.", title)

    async def read_column(self, tab: str, column: str) -> List[str]:
        payload = await request_json(
            self.client,
            "GET",
            self._values_url(a1_range(tab, f"{column}:{column}")),
            headers=await self.auth.authorization_headers(),
            context=f"read column {column} of tab '{tab}'",
        )
        values = (payload or {}).get("values") or []
        return [row[0] if row else "" for row in values]

    async def write_row(self, tab: str, row: int, values: List[str]) -> None:
        range_ = row_range(tab, row, len(values))
        await request_json(
            self.client,
            "PUT",
            self._values_url(range_),
            params={"valueInputOption": "USER_ENTERED"},
            json_body={"range": range_, "majorDimension": "ROWS", "values": [values]},
            headers=await self.auth.authorization_headers(),
            context=f"write row {row} of tab '{tab}'",
        )

    # RecordStore interface ---------------------------------------------------

    async def list_records(self) -> List[Record]:
        return [Record(id=title, title=title) for title in await self.list_tabs()]

    async def create_record(self, title: str) -> Record:
        await self.create_tab(title)
        return Record(id=title, title=title)
