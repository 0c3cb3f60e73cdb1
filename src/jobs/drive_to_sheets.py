"""Replay a Drive folder into per-person spreadsheet tabs.

Every file in the configured Drive folder is recorded in the tab named after
the file's base name (``"Maria Souza.jpg"`` goes to tab ``Maria Souza``),
found case- and accent-insensitively or created on a miss. ``SHEET_NAME_MAP``
covers base names that differ entirely from the tab title.

Run with ``python -m src.jobs.drive_to_sheets``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

import httpx
from dotenv import load_dotenv

from src.config.settings import PIPELINE_SHEETS, Settings, load_settings
from src.core.errors import BridgeError
from src.core.media_record_writer import MediaRecordWriter
from src.core.name_resolver import NameResolver
from src.models.records import MediaMetadata
from src.services.drive import DriveFile, DriveStorage
from src.services.google_auth import GoogleServiceAccountAuth
from src.services.http import build_http_client
from src.services.sheets import SheetsTabStore
from src.utils.format import format_pt_br_datetime, parse_rfc3339, strip_extension
from src.utils.logger import get_logger


logger = get_logger("media_bridge.jobs.drive_to_sheets")


@dataclass
class SyncReport:
    inserted: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)
    created_tabs: List[str] = field(default_factory=list)


def tab_label_for(file_name: str, name_map: Mapping[str, str]) -> str:
    """Base name of ``file_name``, replaced by its ``name_map`` entry if any."""

    base = strip_extension(file_name)
    return name_map.get(base.strip().lower(), base)


async def sync_drive_folder_to_sheets(
    drive: DriveStorage,
    resolver: NameResolver,
    writer: MediaRecordWriter,
    name_map: Optional[Mapping[str, str]] = None,
    tz_name: str = "America/Sao_Paulo",
) -> SyncReport:
    """Record every file of the Drive folder in its tab.

    A failure on one file is logged and that file skipped. A failure to list
    the folder propagates.
    """

    name_map = name_map or {}
    report = SyncReport()

    logger.info("Listing files in Drive folder %s", drive.folder_id)
    files: List[DriveFile] = await drive.list_folder_files()
    if not files:
        logger.info("No files found.")
        return report

    logger.info("Found %s files. Inserting into Sheets...", len(files))

    for drive_file in files:
        label = tab_label_for(drive_file.name, name_map)
        metadata = MediaMetadata(
            display_title=drive_file.name,
            url=drive_file.share_link,
            timestamp=format_pt_br_datetime(parse_rfc3339(drive_file.created_time), tz_name),
        )
        try:
            result = await resolver.resolve(label)
            row = await writer.write(result, metadata)
        except BridgeError as exc:
            logger.error("Failed to process file '%s'. Skipping. Details: %s", drive_file.name, exc.message)
            report.failed[drive_file.name] = exc.message
            continue

        if result.is_new:
            report.created_tabs.append(result.record.title)
        report.inserted.append(drive_file.name)
        logger.info("Inserted into tab '%s' (row %s): %s", result.record.title, row, drive_file.name)

    logger.info("Insert run finished: %s inserted, %s failed", len(report.inserted), len(report.failed))
    return report


async def run(settings: Settings, http_client: Optional[httpx.AsyncClient] = None) -> SyncReport:
    client = http_client or build_http_client(settings.http_timeout)
    try:
        auth = GoogleServiceAccountAuth(settings.google)
        store = SheetsTabStore(client, auth, settings.spreadsheet_id)
        return await sync_drive_folder_to_sheets(
            DriveStorage(client, auth, settings.drive_folder_id),
            NameResolver(store),
            MediaRecordWriter(store),
            name_map=settings.sheet_name_map,
            tz_name=settings.display_timezone,
        )
    finally:
        if http_client is None:
            await client.aclose()


def main() -> int:
    load_dotenv()
    try:
        settings = load_settings(include_gateway=False, pipeline=PIPELINE_SHEETS)
        report = asyncio.run(run(settings))
    except BridgeError as exc:
        logger.error("Drive to Sheets sync aborted: %s", exc.message)
        return 1
    return 1 if report.failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
