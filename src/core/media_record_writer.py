"""Write media metadata into a resolved record.

Cards take an attachment (one call, no position). Spreadsheet tabs are an
ordered log: the next row is computed from the current length of column A,
except for a freshly created tab, which always starts at row 1.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol, Union

from src.models.records import MediaMetadata, ResolveResult, WriteStyle


logger = logging.getLogger("media_bridge.writer")

KEY_COLUMN = "A"


class AttachmentStore(Protocol):
    async def attach_url(self, record_id: str, title: str, url: str) -> None:
        ...


class AppendStore(Protocol):
    async def read_column(self, tab: str, column: str) -> List[str]:
        ...

    async def write_row(self, tab: str, row: int, values: List[str]) -> None:
        ...


class MediaRecordWriter:
    """Adds one piece of media to a record, in the store's write style."""

    def __init__(self, store: Union[AttachmentStore, AppendStore], style: Optional[WriteStyle] = None) -> None:
        self.store = store
        self.style = style or getattr(store, "write_style")

    async def next_row(self, result: ResolveResult) -> int:
        if result.is_new:
            return 1
        values = await self.store.read_column(result.record.id, KEY_COLUMN)
        return len(values) + 1

    async def write(self, result: ResolveResult, metadata: MediaMetadata) -> Optional[int]:
        """Write ``metadata`` to ``result.record``.

        Returns the row written for append-style stores, ``None`` otherwise.
        """

        if self.style is WriteStyle.ATTACHMENT:
            await self.store.attach_url(result.record.id, metadata.display_title, metadata.url)
            logger.info("Attachment added to '%s'", result.record.title)
            return None

        row = await self.next_row(result)
        await self.store.write_row(
            result.record.id,
            row,
            [metadata.display_title, metadata.timestamp, metadata.url],
        )
        logger.info("Inserted into tab '%s' (row %s): %s", result.record.id, row, metadata.display_title)
        return row
